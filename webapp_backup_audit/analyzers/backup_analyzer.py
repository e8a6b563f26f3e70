"""
Backup Compliance Analyzer
Classifies one web app's backup state into compliance signals:
not configured, last backup failed, stale successful backup.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum

from ..collectors.backups import STATUS_FAILED
from ..config import STALE_AFTER_DAYS
from ..models import AuditFinding, AuditSummary

logger = logging.getLogger("webapp_backup_audit.analyzers.backup")


class SignalKind(str, Enum):
    NOT_CONFIGURED = "not_configured"
    LAST_BACKUP_FAILED = "last_backup_failed"
    STALE_BACKUP = "stale_backup"


@dataclass
class ComplianceSignal:
    kind: SignalKind
    message: str
    counted: bool = True       # Stale warnings are reported but not counted

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.message, "counted": self.counted}


@dataclass
class Classification:
    """Signals raised for one finding, plus its contribution to the run counters."""
    finding: AuditFinding
    signals: list[ComplianceSignal] = field(default_factory=list)

    @property
    def kinds(self) -> list[SignalKind]:
        return [s.kind for s in self.signals]

    @property
    def summary(self) -> AuditSummary:
        return AuditSummary(
            not_configured=int(SignalKind.NOT_CONFIGURED in self.kinds),
            failed=int(SignalKind.LAST_BACKUP_FAILED in self.kinds),
        )


class BackupComplianceAnalyzer:
    """
    Pure classifier: no I/O, so it can be exercised without ARM.
    Rules run in a fixed order and are independent of each other.
    """

    name = "backup_analyzer"
    description = "Backup enablement, last backup outcome, and backup age"

    def __init__(self, stale_after_days: int = STALE_AFTER_DAYS):
        self.stale_after_days = stale_after_days

    def analyze(self, finding: AuditFinding, now: datetime) -> Classification:
        result = Classification(finding=finding)
        app = finding.app
        where = f"web app '{app.name}' in subscription '{app.subscription.name}'"

        if finding.configuration.enabled is not True:
            result.signals.append(ComplianceSignal(
                kind=SignalKind.NOT_CONFIGURED,
                message=f"Backup is not configured for {where}",
            ))

        if finding.latest is not None and finding.latest.has_status(STATUS_FAILED):
            result.signals.append(ComplianceSignal(
                kind=SignalKind.LAST_BACKUP_FAILED,
                message=f"Last backup failed for {where}",
            ))

        if self._is_stale(finding, now):
            result.signals.append(ComplianceSignal(
                kind=SignalKind.STALE_BACKUP,
                message=(
                    f"WARNING: No successful backup in the last "
                    f"{self.stale_after_days} days for {where}"
                ),
                counted=False,
            ))

        logger.debug(f"[{self.name}] {app.name}: {[k.value for k in result.kinds]}")
        return result

    def _is_stale(self, finding: AuditFinding, now: datetime) -> bool:
        # No successful backup at all counts as infinitely stale
        successful = finding.latest_successful
        if successful is None or successful.finished_at is None:
            return True
        cutoff = now.astimezone() - timedelta(days=self.stale_after_days)
        return successful.finished_at.astimezone() < cutoff
