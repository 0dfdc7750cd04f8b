"""Extractor module for pulling numeric fields out of statement HTML.

Key exports:
- load_field_specs: Build ordered rule lists from ``config/extraction_rules.json``
- extract_fields: Resolve every configured field, reporting misses
- ExtractionMiss: Diagnostic for a field that defaulted to 0
"""

from taxis_eeff.extractor.patterns import (
    ExtractionMiss,
    ExtractionRule,
    FieldResult,
    FieldSpec,
    extract_field,
    extract_fields,
    load_field_specs,
)

__all__ = [
    "ExtractionMiss",
    "ExtractionRule",
    "FieldResult",
    "FieldSpec",
    "extract_field",
    "extract_fields",
    "load_field_specs",
]
