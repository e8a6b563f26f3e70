"""
Data model for a single audit run.
Everything here is transient: built while the run iterates and discarded after the report.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class BackupState(str, Enum):
    """Why a web app is (or is not) backed up."""
    NOT_CONFIGURED = "not_configured"
    DISABLED = "disabled"
    ENABLED = "enabled"


@dataclass(frozen=True)
class Subscription:
    name: str
    subscription_id: str


@dataclass(frozen=True)
class WebApp:
    """An App Service site, unique by (resource_group, name) inside its subscription."""
    subscription: Subscription
    resource_group: str
    name: str


@dataclass
class BackupConfiguration:
    state: BackupState = BackupState.NOT_CONFIGURED
    retention_days: Optional[int] = None
    frequency_interval: Optional[int] = None
    frequency_unit: Optional[str] = None

    @property
    def enabled(self) -> bool:
        return self.state is BackupState.ENABLED

    @classmethod
    def not_configured(cls) -> "BackupConfiguration":
        return cls()

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "enabled": self.enabled,
            "retentionDays": self.retention_days,
            "frequencyInterval": self.frequency_interval,
            "frequencyUnit": self.frequency_unit,
        }


@dataclass
class BackupAttempt:
    """One historical execution of the backup process."""
    backup_id: str
    name: str
    status: str
    created_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None   # None while running or when aborted

    def has_status(self, status: str) -> bool:
        return (self.status or "").lower() == status.lower()

    def to_dict(self) -> dict:
        return {
            "id": self.backup_id,
            "name": self.name,
            "status": self.status,
            "created": self.created_at.isoformat() if self.created_at else None,
            "finished": self.finished_at.isoformat() if self.finished_at else None,
        }


@dataclass
class AuditFinding:
    """Everything known about one web app's backups in this run."""
    app: WebApp
    configuration: BackupConfiguration = field(default_factory=BackupConfiguration)
    latest: Optional[BackupAttempt] = None
    latest_successful: Optional[BackupAttempt] = None

    def to_dict(self) -> dict:
        return {
            "subscription": self.app.subscription.name,
            "subscriptionId": self.app.subscription.subscription_id,
            "resourceGroup": self.app.resource_group,
            "app": self.app.name,
            "configuration": self.configuration.to_dict(),
            "latestBackup": self.latest.to_dict() if self.latest else None,
            "latestSuccessfulBackup": (
                self.latest_successful.to_dict() if self.latest_successful else None
            ),
        }


@dataclass(frozen=True)
class AuditSummary:
    """Run-level counters, reduced from per-app classifications."""
    not_configured: int = 0
    failed: int = 0

    @property
    def total_issues(self) -> int:
        return self.not_configured + self.failed

    def __add__(self, other: "AuditSummary") -> "AuditSummary":
        return AuditSummary(
            not_configured=self.not_configured + other.not_configured,
            failed=self.failed + other.failed,
        )

    def to_dict(self) -> dict:
        return {
            "notConfigured": self.not_configured,
            "failed": self.failed,
            "totalIssues": self.total_issues,
        }
