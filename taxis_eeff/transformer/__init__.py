"""Transformer module for derived metrics.

Key exports:
- derive: Monthly average pay from extracted fields
- build_record: Assemble a ``ResultRecord`` for the CSV sink
"""

from taxis_eeff.transformer.metrics import DerivedMetrics, build_record, derive

__all__ = ["DerivedMetrics", "build_record", "derive"]
