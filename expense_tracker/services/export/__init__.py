"""Report export package."""

from expense_tracker.services.export.report_exporter import (
    NO_RECEIPT,
    REPORT_COLUMNS,
    ReportExporter,
    format_money,
    summarize,
)

__all__ = [
    "NO_RECEIPT",
    "REPORT_COLUMNS",
    "ReportExporter",
    "format_money",
    "summarize",
]
