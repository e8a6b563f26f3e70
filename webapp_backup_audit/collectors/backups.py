"""
Backup Status Collector
Retrieves the backup configuration and backup history of one web app, and
selects the latest and latest successful attempts.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

import httpx

from ..arm.client import ArmAPIError
from ..config import WEB_API_VERSION
from ..models import (
    AuditFinding,
    BackupAttempt,
    BackupConfiguration,
    BackupState,
    WebApp,
)
from .base import BaseCollector, parse_arm_timestamp

logger = logging.getLogger("webapp_backup_audit.collectors.backups")

STATUS_SUCCEEDED = "Succeeded"
STATUS_FAILED = "Failed"

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def site_path(app: WebApp) -> str:
    return (
        f"subscriptions/{app.subscription.subscription_id}"
        f"/resourceGroups/{app.resource_group}"
        f"/providers/Microsoft.Web/sites/{app.name}"
    )


def parse_backup_configuration(data: dict[str, Any]) -> BackupConfiguration:
    """
    Turn a config/backup/list response into a BackupConfiguration.
    A missing or empty body is the normal "no backup set up" state.
    """
    if not data or data.get("_not_found"):
        return BackupConfiguration.not_configured()
    props = data.get("properties") or {}
    if not props:
        return BackupConfiguration.not_configured()

    schedule = props.get("backupSchedule") or {}
    state = BackupState.ENABLED if props.get("enabled") is True else BackupState.DISABLED
    return BackupConfiguration(
        state=state,
        retention_days=schedule.get("retentionPeriodInDays"),
        frequency_interval=schedule.get("frequencyInterval"),
        frequency_unit=schedule.get("frequencyUnit"),
    )


def parse_backup_attempt(item: dict[str, Any]) -> BackupAttempt:
    props = item.get("properties") or {}
    return BackupAttempt(
        backup_id=str(props.get("id", item.get("id", ""))),
        name=props.get("name") or item.get("name", ""),
        status=props.get("status") or "",
        created_at=parse_arm_timestamp(props.get("created")),
        finished_at=parse_arm_timestamp(props.get("finishedTimeStamp")),
    )


def select_latest(attempts: Iterable[BackupAttempt]) -> Optional[BackupAttempt]:
    """The attempt with the greatest created_at; the first one wins ties."""
    latest: Optional[BackupAttempt] = None
    for attempt in attempts:
        if latest is None or (attempt.created_at or _EPOCH) > (latest.created_at or _EPOCH):
            latest = attempt
    return latest


def select_latest_successful(attempts: Iterable[BackupAttempt]) -> Optional[BackupAttempt]:
    """Among Succeeded attempts, the one with the greatest finished_at."""
    latest: Optional[BackupAttempt] = None
    for attempt in attempts:
        if not attempt.has_status(STATUS_SUCCEEDED):
            continue
        if latest is None or (attempt.finished_at or _EPOCH) > (latest.finished_at or _EPOCH):
            latest = attempt
    return latest


class BackupCollector(BaseCollector):
    name = "backups"
    description = "Backup configuration and history per web app"

    async def get_configuration(self, app: WebApp) -> BackupConfiguration:
        try:
            data = await self.arm.post_action(
                f"{site_path(app)}/config/backup/list", WEB_API_VERSION
            )
        except (ArmAPIError, httpx.HTTPError) as e:
            self.add_warning(
                f"Backup configuration unavailable for {app.name}, "
                f"treating as not configured: {e}"
            )
            return BackupConfiguration.not_configured()
        return parse_backup_configuration(data)

    async def list_attempts(self, app: WebApp) -> list[BackupAttempt]:
        try:
            items = await self.arm.get_all_pages(f"{site_path(app)}/backups", WEB_API_VERSION)
        except (ArmAPIError, httpx.HTTPError) as e:
            self.add_error(f"Failed to list backups for {app.name}: {e}")
            return []
        return [parse_backup_attempt(item) for item in items]

    async def fetch(self, app: WebApp) -> AuditFinding:
        """Build the audit finding for one web app."""
        configuration = await self.get_configuration(app)
        attempts = await self.list_attempts(app)
        finding = AuditFinding(
            app=app,
            configuration=configuration,
            latest=select_latest(attempts),
            latest_successful=select_latest_successful(attempts),
        )
        logger.debug(
            f"[{app.subscription.name}] {app.name}: {configuration.state.value}, "
            f"{len(attempts)} backups"
        )
        return finding
