"""
Base collector class — Shared plumbing for the ARM-backed collectors.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Optional

from ..arm.client import ArmClient

logger = logging.getLogger("webapp_backup_audit.collectors")

# ARM emits 1 to 7 fractional digits; fromisoformat wants exactly 6.
_FRACTION_RE = re.compile(r"\.(\d+)")


def parse_arm_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ARM ISO-8601 timestamp into an aware UTC datetime.
    Returns None for missing, unparseable, or placeholder (year 1) values.
    """
    if not value:
        return None
    text = _FRACTION_RE.sub(
        lambda m: "." + m.group(1)[:6].ljust(6, "0"),
        value.strip().replace("Z", "+00:00"),
        count=1,
    )
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.debug(f"Unparseable timestamp: {value!r}")
        return None
    if parsed.year <= 1:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def resource_group_from_id(resource_id: str) -> str:
    """Extract the resource group segment from an ARM resource id."""
    parts = resource_id.strip("/").split("/")
    for i, part in enumerate(parts[:-1]):
        if part.lower() == "resourcegroups":
            return parts[i + 1]
    return ""


class BaseCollector:
    """
    Base class for collectors.
    Holds the ARM client and a per-collector error log for the run.
    """

    name: str = "base"
    description: str = "Base collector"

    def __init__(self, arm: ArmClient):
        self.arm = arm
        self.errors: list[str] = []

    def add_error(self, error: str):
        self.errors.append(error)
        logger.error(f"[{self.name}] {error}")

    def add_warning(self, warning: str):
        logger.warning(f"[{self.name}] {warning}")
