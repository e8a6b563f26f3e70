"""
Shared fixtures: an in-memory Azure Resource Manager served through httpx.MockTransport.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional, Union

import httpx
import pytest

from webapp_backup_audit.arm.client import ArmClient
from webapp_backup_audit.safety.guardian import SafetyGuardian

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def backup_item(
    backup_id: int,
    status: str,
    created: Optional[str],
    finished: Optional[str] = None,
) -> dict:
    return {
        "id": f"/backups/{backup_id}",
        "name": str(backup_id),
        "properties": {
            "id": backup_id,
            "name": f"backup-{backup_id}",
            "status": status,
            "created": created,
            "finishedTimeStamp": finished,
        },
    }


def backup_config(enabled: bool = True, retention: int = 30) -> dict:
    return {
        "properties": {
            "enabled": enabled,
            "backupName": "nightly",
            "backupSchedule": {
                "frequencyInterval": 1,
                "frequencyUnit": "Day",
                "keepAtLeastOneBackup": True,
                "retentionPeriodInDays": retention,
            },
        }
    }


class FakeAzure:
    """Minimal ARM backend keyed by subscription id, resource group and site name."""

    def __init__(self):
        self.subscriptions: list[tuple[str, str]] = []
        self.sites: dict[str, list[dict]] = {}
        self.configs: dict[tuple, Union[dict, int]] = {}
        self.backups: dict[tuple, Union[list, int, httpx.Response]] = {}
        self.failing_subscriptions: set[str] = set()
        self.requests: list[tuple[str, str]] = []

    def add_subscription(self, name: str, sub_id: str) -> "FakeAzure":
        self.subscriptions.append((name, sub_id))
        self.sites.setdefault(sub_id, [])
        return self

    def add_app(
        self,
        sub_id: str,
        rg: str,
        name: str,
        config: Union[dict, int, None] = None,
        backups: Union[list, int, httpx.Response, None] = None,
    ) -> "FakeAzure":
        self.sites.setdefault(sub_id, []).append({
            "id": f"/subscriptions/{sub_id}/resourceGroups/{rg}/providers/Microsoft.Web/sites/{name}",
            "name": name,
            "type": "Microsoft.Web/sites",
            "properties": {"resourceGroup": rg},
        })
        if config is not None:
            self.configs[(sub_id, rg, name)] = config
        if backups is not None:
            self.backups[(sub_id, rg, name)] = backups
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append((request.method, path))
        parts = path.strip("/").split("/")

        if parts == ["subscriptions"]:
            return httpx.Response(200, json={"value": [
                {"displayName": name, "subscriptionId": sub_id, "state": "Enabled"}
                for name, sub_id in self.subscriptions
            ]})

        if len(parts) == 5 and parts[2:] == ["providers", "Microsoft.Web", "sites"]:
            sub_id = parts[1]
            if sub_id in self.failing_subscriptions:
                return _error(500, "Internal error listing sites")
            return httpx.Response(200, json={"value": self.sites.get(sub_id, [])})

        if len(parts) >= 8 and parts[6] == "sites":
            key = (parts[1], parts[3], parts[7])
            rest = parts[8:]
            if rest == ["config", "backup", "list"] and request.method == "POST":
                return _respond(self.configs.get(key), lambda body: body)
            if rest == ["backups"] and request.method == "GET":
                return _respond(self.backups.get(key, []), lambda body: {"value": body})

        return _error(404, f"Resource {path} not found")


def _respond(entry: Any, wrap) -> httpx.Response:
    if isinstance(entry, httpx.Response):
        return entry
    if entry is None:
        return _error(404, "Backup configuration not found")
    if isinstance(entry, int):
        return _error(entry, "Injected failure")
    return httpx.Response(200, json=wrap(entry))


def _error(status: int, message: str) -> httpx.Response:
    return httpx.Response(status, json={"error": {"code": str(status), "message": message}})


def make_arm(fake: FakeAzure, guardian: Optional[SafetyGuardian] = None) -> ArmClient:
    return ArmClient(
        access_token="test-token",
        guardian=guardian or SafetyGuardian(),
        transport=httpx.MockTransport(fake.handler),
    )


@pytest.fixture
def fake_azure() -> FakeAzure:
    return FakeAzure()
