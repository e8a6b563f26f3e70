"""tests/test_reporting.py - subject/body, detail lines, console delivery, JSON export"""

from __future__ import annotations

import io
import json
from datetime import timedelta

import pytest

from conftest import NOW, backup_config, backup_item, make_arm
from webapp_backup_audit.auditor import BackupComplianceAuditor
from webapp_backup_audit.config import AuditConfig
from webapp_backup_audit.models import (
    AuditFinding,
    AuditSummary,
    BackupAttempt,
    BackupConfiguration,
    BackupState,
    Subscription,
    WebApp,
)
from webapp_backup_audit.reporting import (
    ConsoleDelivery,
    build_report,
    export_json,
    format_detail_line,
)
from webapp_backup_audit.reporting.text_report import NO_ISSUES_BODY

APP = WebApp(subscription=Subscription("Prod", "sub-1"), resource_group="rg", name="shop")


class TestBuildReport:

    def test_no_issues(self):
        report = build_report(AuditSummary())
        assert "0 issue" in report.subject
        assert report.body == NO_ISSUES_BODY

    def test_issue_counts(self):
        report = build_report(AuditSummary(not_configured=3, failed=2))
        assert "5 issue" in report.subject
        lines = report.body.splitlines()
        assert len(lines) == 3
        assert lines[0].endswith(": 3")
        assert lines[1].endswith(": 2")
        assert lines[2] == "Total issues: 5"

    def test_summary_addition(self):
        total = AuditSummary(1, 0) + AuditSummary(0, 1) + AuditSummary(1, 1)
        assert total == AuditSummary(not_configured=2, failed=2)
        assert total.total_issues == 4


class TestDetailLine:

    def test_unconfigured_app_without_history(self):
        line = format_detail_line(AuditFinding(app=APP))
        assert line == (
            "Subscription: Prod | SubscriptionId: sub-1 | WebApp: shop | "
            "LastBackupStarted: N/A | LastBackupFinished: N/A | LastBackupStatus: N/A | "
            "RetentionDays: N/A | BackupEnabled: False"
        )

    def test_configured_app(self):
        attempt = BackupAttempt(
            backup_id="9",
            name="backup-9",
            status="Succeeded",
            created_at=NOW - timedelta(hours=2),
            finished_at=NOW - timedelta(hours=1),
        )
        finding = AuditFinding(
            app=APP,
            configuration=BackupConfiguration(state=BackupState.ENABLED, retention_days=30),
            latest=attempt,
            latest_successful=attempt,
        )
        line = format_detail_line(finding)
        started = (NOW - timedelta(hours=2)).astimezone().strftime("%Y-%m-%d %H:%M:%S %z")
        assert f"LastBackupStarted: {started}" in line
        assert "LastBackupStatus: Succeeded" in line
        assert "RetentionDays: 30" in line
        assert "BackupEnabled: True" in line


def test_console_delivery_prints_subject_and_body():
    stream = io.StringIO()
    ConsoleDelivery(stream).deliver(build_report(AuditSummary(failed=1)))
    output = stream.getvalue()
    assert "1 issue(s) found" in output
    assert "Total issues: 1" in output


@pytest.mark.asyncio
async def test_json_export(fake_azure, tmp_path):
    fake_azure.add_subscription("Prod", "sub-1").add_app(
        "sub-1", "rg", "shop",
        config=backup_config(retention=10),
        backups=[backup_item(1, "Failed", "2026-10-17T00:00:00Z", "2026-10-17T00:01:00Z")],
    )
    async with make_arm(fake_azure) as arm:
        audit_run = await BackupComplianceAuditor(
            arm,
            AuditConfig(subscriptions=["Prod", "Missing"]),
            emit=lambda line: None,
            clock=lambda: NOW,
        ).run()

    path = export_json(audit_run, tmp_path / "out" / "audit.json", "scan-1")
    data = json.loads(path.read_text(encoding="utf-8"))

    assert data["metadata"]["scan_id"] == "scan-1"
    assert data["summary"] == {"notConfigured": 0, "failed": 1, "totalIssues": 1}
    assert data["subscriptions"] == {"audited": ["Prod"], "skipped": ["Missing"]}
    app = data["apps"][0]
    assert app["app"] == "shop"
    assert app["configuration"]["retentionDays"] == 10
    assert app["latestBackup"]["status"] == "Failed"
    assert app["latestSuccessfulBackup"] is None
    assert [s["kind"] for s in app["signals"]] == ["last_backup_failed", "stale_backup"]
    assert data["collection_errors"] == []
    assert "safety_guardian" not in data
