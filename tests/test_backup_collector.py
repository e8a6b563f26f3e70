"""tests/test_backup_collector.py - backup configuration and history retrieval"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from conftest import backup_config, backup_item, make_arm
from webapp_backup_audit.collectors.backups import (
    BackupCollector,
    parse_backup_attempt,
    parse_backup_configuration,
    select_latest,
    select_latest_successful,
)
from webapp_backup_audit.collectors.base import parse_arm_timestamp, resource_group_from_id
from webapp_backup_audit.models import BackupAttempt, BackupState, Subscription, WebApp

SUB = Subscription(name="Prod", subscription_id="sub-1")
APP = WebApp(subscription=SUB, resource_group="rg-web", name="shop")


def _attempt(backup_id, status, created=None, finished=None) -> BackupAttempt:
    return BackupAttempt(
        backup_id=str(backup_id),
        name=f"backup-{backup_id}",
        status=status,
        created_at=created,
        finished_at=finished,
    )


def _dt(day: int, hour: int = 0) -> datetime:
    return datetime(2026, 10, day, hour, tzinfo=timezone.utc)


# =============================================================================
# Timestamp / id parsing
# =============================================================================


class TestParsing:

    def test_seven_digit_fraction(self):
        parsed = parse_arm_timestamp("2026-10-17T03:04:05.1234567Z")
        assert parsed == datetime(2026, 10, 17, 3, 4, 5, 123456, tzinfo=timezone.utc)

    def test_short_fraction_and_naive(self):
        parsed = parse_arm_timestamp("2026-10-17T03:04:05.5")
        assert parsed == datetime(2026, 10, 17, 3, 4, 5, 500000, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [None, "", "not-a-date", "0001-01-01T00:00:00"])
    def test_missing_values(self, value):
        assert parse_arm_timestamp(value) is None

    def test_resource_group_from_id(self):
        rid = "/subscriptions/s/resourceGroups/rg-Web/providers/Microsoft.Web/sites/shop"
        assert resource_group_from_id(rid) == "rg-Web"
        assert resource_group_from_id("") == ""

    def test_attempt_from_arm_item(self):
        attempt = parse_backup_attempt(backup_item(
            7, "Succeeded", "2026-10-17T01:00:00Z", "2026-10-17T01:05:00Z"
        ))
        assert attempt.backup_id == "7"
        assert attempt.status == "Succeeded"
        assert attempt.created_at == _dt(17, 1)
        assert attempt.finished_at == datetime(2026, 10, 17, 1, 5, tzinfo=timezone.utc)


# =============================================================================
# Configuration states
# =============================================================================


class TestConfiguration:

    def test_missing_configuration_is_not_configured(self):
        config = parse_backup_configuration({"value": [], "_not_found": True})
        assert config.state is BackupState.NOT_CONFIGURED
        assert config.enabled is False
        assert config.retention_days is None

    @pytest.mark.parametrize("body", [{}, {"properties": None}, {"properties": {}}])
    def test_empty_bodies(self, body):
        config = parse_backup_configuration(body)
        assert config.state is BackupState.NOT_CONFIGURED
        assert config.retention_days is None

    def test_enabled(self):
        config = parse_backup_configuration(backup_config(enabled=True, retention=14))
        assert config.state is BackupState.ENABLED
        assert config.enabled is True
        assert config.retention_days == 14
        assert config.frequency_unit == "Day"

    def test_configured_but_disabled(self):
        config = parse_backup_configuration(backup_config(enabled=False, retention=7))
        assert config.state is BackupState.DISABLED
        assert config.enabled is False
        assert config.retention_days == 7


# =============================================================================
# Latest / latest successful selection
# =============================================================================


class TestSelection:

    def test_latest_is_max_created(self):
        attempts = [
            _attempt(1, "Succeeded", _dt(10)),
            _attempt(2, "Failed", _dt(15)),
            _attempt(3, "Succeeded", _dt(12)),
        ]
        assert select_latest(attempts).backup_id == "2"

    def test_latest_ties_keep_first(self):
        attempts = [_attempt(1, "Failed", _dt(15)), _attempt(2, "Succeeded", _dt(15))]
        assert select_latest(attempts).backup_id == "1"
        assert select_latest(list(reversed(attempts))).backup_id == "2"

    def test_latest_of_nothing(self):
        assert select_latest([]) is None
        assert select_latest_successful([]) is None

    def test_latest_successful_uses_finished_and_ignores_other_statuses(self):
        attempts = [
            _attempt(1, "Succeeded", _dt(10), _dt(10, 2)),
            _attempt(2, "succeeded", _dt(9), _dt(11)),
            _attempt(3, "Failed", _dt(16), _dt(16, 1)),
            _attempt(4, "PartiallySucceeded", _dt(17), _dt(17, 1)),
            _attempt(5, "InProgress", _dt(18)),
        ]
        assert select_latest_successful(attempts).backup_id == "2"

    def test_no_successful_attempts(self):
        attempts = [_attempt(1, "Failed", _dt(10), _dt(10, 1))]
        assert select_latest_successful(attempts) is None


# =============================================================================
# Collector against a fake ARM
# =============================================================================


class TestBackupCollector:

    @pytest.mark.asyncio
    async def test_fetch_builds_finding(self, fake_azure):
        fake_azure.add_subscription("Prod", "sub-1").add_app(
            "sub-1", "rg-web", "shop",
            config=backup_config(retention=30),
            backups=[
                backup_item(1, "Succeeded", "2026-10-16T01:00:00Z", "2026-10-16T01:10:00Z"),
                backup_item(2, "Failed", "2026-10-17T01:00:00Z", "2026-10-17T01:02:00Z"),
            ],
        )
        async with make_arm(fake_azure) as arm:
            finding = await BackupCollector(arm).fetch(APP)

        assert finding.configuration.enabled is True
        assert finding.configuration.retention_days == 30
        assert finding.latest.backup_id == "2"
        assert finding.latest_successful.backup_id == "1"
        assert ("POST", "/subscriptions/sub-1/resourceGroups/rg-web/providers/"
                        "Microsoft.Web/sites/shop/config/backup/list") in fake_azure.requests

    @pytest.mark.asyncio
    async def test_no_configuration_is_not_an_error(self, fake_azure):
        fake_azure.add_subscription("Prod", "sub-1").add_app("sub-1", "rg-web", "shop")
        async with make_arm(fake_azure) as arm:
            collector = BackupCollector(arm)
            finding = await collector.fetch(APP)

        assert finding.configuration.state is BackupState.NOT_CONFIGURED
        assert finding.configuration.retention_days is None
        assert finding.latest is None
        assert collector.errors == []

    @pytest.mark.asyncio
    async def test_configuration_error_treated_as_not_configured(self, fake_azure):
        fake_azure.add_subscription("Prod", "sub-1").add_app(
            "sub-1", "rg-web", "shop", config=403, backups=[]
        )
        async with make_arm(fake_azure) as arm:
            finding = await BackupCollector(arm).fetch(APP)
        assert finding.configuration.state is BackupState.NOT_CONFIGURED

    @pytest.mark.asyncio
    async def test_backup_list_failure_means_no_attempts(self, fake_azure):
        fake_azure.add_subscription("Prod", "sub-1").add_app(
            "sub-1", "rg-web", "shop", config=backup_config(), backups=500
        )
        async with make_arm(fake_azure) as arm:
            collector = BackupCollector(arm)
            finding = await collector.fetch(APP)

        assert finding.configuration.enabled is True
        assert finding.latest is None
        assert finding.latest_successful is None
        assert len(collector.errors) == 1
        assert "shop" in collector.errors[0]
