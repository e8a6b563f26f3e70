"""
JSON exporter — Writes the findings, signals and counters of a run to disk.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from .. import __version__


def export_json(
    audit_run: Any,
    output_path: Path,
    scan_id: str,
    guardian: Optional[Any] = None,
) -> Path:
    """
    Write the audit run to a JSON file.

    Returns:
        Path to the created JSON file.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)

    payload = {
        "metadata": {
            "engine": "Web App Backup Compliance Auditor",
            "version": __version__,
            "scan_id": scan_id,
            "generated_utc": datetime.now(timezone.utc).isoformat(),
            "mode": "READ-ONLY",
        },
        "summary": audit_run.summary.to_dict(),
        "subscriptions": {
            "audited": [s.name for s in audit_run.subscriptions],
            "skipped": audit_run.skipped_subscriptions,
        },
        "apps": [_classification_to_dict(c) for c in audit_run.classifications],
        "failed_apps": audit_run.failed_apps,
        "collection_errors": audit_run.collector_errors,
    }
    if guardian is not None:
        payload.update(guardian.get_audit_record())

    with open(output_path, "w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2, default=str, ensure_ascii=False)

    return output_path


def _classification_to_dict(classification) -> dict:
    return {
        **classification.finding.to_dict(),
        "signals": [s.to_dict() for s in classification.signals],
    }
