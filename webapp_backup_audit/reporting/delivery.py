"""
Report delivery sinks.
Only console delivery ships here; mail or ticket integrations plug in by
implementing deliver(report).
"""

from __future__ import annotations

import logging
import sys
from typing import Protocol, TextIO

from .text_report import AuditReport

logger = logging.getLogger("webapp_backup_audit.reporting.delivery")


class ReportSink(Protocol):
    def deliver(self, report: AuditReport) -> None: ...


class ConsoleDelivery:
    """Print subject and body to a text stream (stdout by default)."""

    def __init__(self, stream: TextIO | None = None):
        self.stream = stream

    def deliver(self, report: AuditReport) -> None:
        out = self.stream or sys.stdout
        print("=" * 70, file=out)
        print(f" {report.subject}", file=out)
        print("=" * 70, file=out)
        print(report.body, file=out)
        logger.info(f"Report delivered to console: {report.subject}")
