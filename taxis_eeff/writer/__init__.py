"""Writer module for CSV output.

Results.csv layout: ``name,Year,totalIncome,profit,employeeCount,netPayCosts,averagePay``
"""

from taxis_eeff.writer.csv_sink import CsvSink
from taxis_eeff.writer.report import (
    format_harvest_report,
    load_results,
    print_harvest_report,
    summarize_results,
)

__all__ = [
    "CsvSink",
    "format_harvest_report",
    "load_results",
    "print_harvest_report",
    "summarize_results",
]
