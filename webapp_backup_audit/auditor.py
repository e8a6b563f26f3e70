"""
Backup Compliance Auditor — walks subscriptions and web apps one at a time,
classifies each app's backup state, and reduces the results into run counters.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import reduce
from typing import Callable, Optional

from .analyzers.backup_analyzer import BackupComplianceAnalyzer, Classification
from .arm.client import ArmClient
from .collectors.backups import BackupCollector
from .collectors.subscriptions import SubscriptionNotFoundError, SubscriptionResolver
from .collectors.webapps import WebAppCollector
from .config import AuditConfig
from .models import AuditSummary, Subscription
from .reporting.text_report import format_detail_line
from .safety.guardian import SafetyViolation

logger = logging.getLogger("webapp_backup_audit.auditor")


@dataclass
class AuditRun:
    """Everything produced by one audit run."""
    subscriptions: list[Subscription] = field(default_factory=list)
    skipped_subscriptions: list[str] = field(default_factory=list)
    classifications: list[Classification] = field(default_factory=list)
    failed_apps: list[dict] = field(default_factory=list)
    collector_errors: list[str] = field(default_factory=list)

    @property
    def summary(self) -> AuditSummary:
        return reduce(
            lambda acc, c: acc + c.summary,
            self.classifications,
            AuditSummary(),
        )


class BackupComplianceAuditor:

    def __init__(
        self,
        arm: ArmClient,
        config: AuditConfig,
        emit: Callable[[str], None] = print,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.config = config
        self.emit = emit
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.resolver = SubscriptionResolver(arm)
        self.webapps = WebAppCollector(arm)
        self.backups = BackupCollector(arm)
        self.analyzer = BackupComplianceAnalyzer(config.stale_after_days)

    async def run(self, subscription_names: Optional[list[str]] = None) -> AuditRun:
        """
        Audit the named subscriptions in order.

        Raises:
            SubscriptionNotFoundError: a name did not resolve and strict mode is on.
            ArmAPIError: subscriptions or web apps could not be listed.
        """
        names = self.config.subscriptions if subscription_names is None else subscription_names
        now = self.clock()
        audit_run = AuditRun()

        for name in names:
            try:
                subscription = await self.resolver.resolve(name)
            except SubscriptionNotFoundError as e:
                if self.config.strict_subscriptions:
                    self.emit(f"ERROR: {e}. Stopping audit.")
                    raise
                self.emit(f"ERROR: {e}. Skipping.")
                logger.error(f"Skipping subscription '{name}': not visible")
                audit_run.skipped_subscriptions.append(name)
                continue

            audit_run.subscriptions.append(subscription)
            self.emit(f"Processing subscription: {subscription.name} ({subscription.subscription_id})")
            await self._audit_subscription(subscription, now, audit_run)

        audit_run.collector_errors = [
            f"{collector.name}: {error}"
            for collector in (self.resolver, self.webapps, self.backups)
            for error in collector.errors
        ]
        return audit_run

    async def _audit_subscription(
        self,
        subscription: Subscription,
        now: datetime,
        audit_run: AuditRun,
    ):
        apps = await self.webapps.list_web_apps(subscription)

        for app in apps:
            try:
                finding = await self.backups.fetch(app)
            except SafetyViolation:
                raise
            except Exception as e:
                # One bad app never stops the rest of the subscription
                logger.exception(f"[{subscription.name}] Audit of {app.name} failed")
                self.emit(f"ERROR: Could not audit web app '{app.name}' "
                          f"in subscription '{subscription.name}': {e}")
                audit_run.failed_apps.append({
                    "subscription": subscription.name,
                    "resourceGroup": app.resource_group,
                    "app": app.name,
                    "error": f"{type(e).__name__}: {e}",
                })
                continue

            classification = self.analyzer.analyze(finding, now)
            for signal in classification.signals:
                self.emit(signal.message)
            self.emit(format_detail_line(finding))
            audit_run.classifications.append(classification)
