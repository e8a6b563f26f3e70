"""Reporting package — text report, delivery, and JSON output."""

from .text_report import AuditReport, build_report, format_detail_line
from .delivery import ConsoleDelivery, ReportSink
from .json_export import export_json

__all__ = [
    "AuditReport",
    "build_report",
    "format_detail_line",
    "ConsoleDelivery",
    "ReportSink",
    "export_json",
]
