"""
Reporting Module
Per-listing rollups over a reporting range
"""
from .summary import (
    ProductSummaryReport,
    ProductSummaryRow,
    RangeType,
    ReportRange,
    ReportRangeError,
    build_product_summary,
    resolve_report_range,
)

__all__ = [
    "ProductSummaryReport",
    "ProductSummaryRow",
    "RangeType",
    "ReportRange",
    "ReportRangeError",
    "build_product_summary",
    "resolve_report_range",
]
