"""
Text report — per-app detail lines and the final subject/body pair.
Line wording is kept stable for downstream log scraping.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..models import AuditFinding, AuditSummary

NO_ISSUES_BODY = "No web app backup issues found."


@dataclass
class AuditReport:
    subject: str
    body: str


def _fmt_time(value: Optional[datetime]) -> str:
    if value is None:
        return "N/A"
    return value.astimezone().strftime("%Y-%m-%d %H:%M:%S %z")


def format_detail_line(finding: AuditFinding) -> str:
    """One line per app, emitted whether or not any signal fired."""
    app = finding.app
    latest = finding.latest
    retention = finding.configuration.retention_days
    return (
        f"Subscription: {app.subscription.name} | "
        f"SubscriptionId: {app.subscription.subscription_id} | "
        f"WebApp: {app.name} | "
        f"LastBackupStarted: {_fmt_time(latest.created_at if latest else None)} | "
        f"LastBackupFinished: {_fmt_time(latest.finished_at if latest else None)} | "
        f"LastBackupStatus: {latest.status if latest and latest.status else 'N/A'} | "
        f"RetentionDays: {retention if retention is not None else 'N/A'} | "
        f"BackupEnabled: {finding.configuration.enabled}"
    )


def build_report(summary: AuditSummary) -> AuditReport:
    subject = f"Web App Backup Audit: {summary.total_issues} issue(s) found"
    if summary.total_issues == 0:
        return AuditReport(subject=subject, body=NO_ISSUES_BODY)
    body = "\n".join([
        f"Web apps without backup configured: {summary.not_configured}",
        f"Web apps whose last backup failed: {summary.failed}",
        f"Total issues: {summary.total_issues}",
    ])
    return AuditReport(subject=subject, body=body)
