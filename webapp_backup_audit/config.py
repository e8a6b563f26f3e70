"""
Configuration module for the Web App Backup Compliance Auditor.
Defines tunable parameters, ARM endpoints, and operational settings.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Optional


# ─── Tenant Authentication ───────────────────────────────────────────────────

@dataclass
class CertificateAuth:
    """Certificate-based app-only authentication configuration."""
    tenant_id: str
    client_id: str
    certificate_path: str          # Path to base64-encoded PFX
    certificate_password: str = "" # Will be prompted if empty
    thumbprint: str = ""           # Expected SHA-1 thumbprint, checked when set

@dataclass
class DelegatedAuth:
    """Delegated (interactive) authentication configuration."""
    tenant_id: str
    client_id: str
    scopes: list[str] = field(default_factory=lambda: [
        "https://management.azure.com/user_impersonation"
    ])

@dataclass
class AuthConfig:
    """Authentication configuration — supports both modes."""
    mode: str = "certificate"  # "certificate" or "delegated"
    certificate: Optional[CertificateAuth] = None
    delegated: Optional[DelegatedAuth] = None


# ─── Azure Resource Manager Settings ────────────────────────────────────────

ARM_BASE_URL = "https://management.azure.com"
ARM_SCOPES = ["https://management.azure.com/.default"]
SUBSCRIPTIONS_API_VERSION = "2022-12-01"
WEB_API_VERSION = "2023-12-01"

# Throttling (transport level only)
MAX_RETRIES = 3                   # Retry count for throttled requests
INITIAL_BACKOFF_SECONDS = 2.0     # First retry delay
MAX_BACKOFF_SECONDS = 60.0        # Cap on exponential backoff
BACKOFF_MULTIPLIER = 2.0          # Exponential factor

# Pagination
MAX_PAGES_PER_ENDPOINT = 1000     # Safety cap on nextLink loops


# ─── Audit Settings ─────────────────────────────────────────────────────────

DEFAULT_SUBSCRIPTIONS = ["Sample Subscription 1", "Sample Subscription 2"]
STALE_AFTER_DAYS = 5


@dataclass
class AuditConfig:
    """Controls for the backup audit."""
    subscriptions: list[str] = field(default_factory=lambda: list(DEFAULT_SUBSCRIPTIONS))
    stale_after_days: int = STALE_AFTER_DAYS
    strict_subscriptions: bool = False    # Halt the run on an unknown subscription


# ─── Output Configuration ───────────────────────────────────────────────────

@dataclass
class OutputConfig:
    """Optional machine-readable output."""
    json_path: str = ""


# ─── Master Configuration ───────────────────────────────────────────────────

@dataclass
class EngineConfig:
    """Top-level configuration for the auditor."""
    auth: AuthConfig = field(default_factory=AuthConfig)
    audit: AuditConfig = field(default_factory=AuditConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    debug: bool = False

    @classmethod
    def from_file(cls, path: str) -> "EngineConfig":
        """Load configuration from a JSON file."""
        with open(path, "r") as f:
            data = json.load(f)
        config = cls()
        if "auth" in data:
            auth_data = data["auth"]
            config.auth.mode = auth_data.get("mode", "certificate")
            if "certificate" in auth_data:
                c = auth_data["certificate"]
                config.auth.certificate = CertificateAuth(
                    tenant_id=c["tenant_id"],
                    client_id=c["client_id"],
                    certificate_path=c.get("certificate_path", "./base64.txt"),
                    certificate_password=c.get("certificate_password", ""),
                    thumbprint=c.get("thumbprint", ""),
                )
            if "delegated" in auth_data:
                d = auth_data["delegated"]
                config.auth.delegated = DelegatedAuth(
                    tenant_id=d["tenant_id"],
                    client_id=d["client_id"],
                )
        if "audit" in data:
            for k, v in data["audit"].items():
                if hasattr(config.audit, k):
                    setattr(config.audit, k, v)
        if "output" in data:
            for k, v in data["output"].items():
                if hasattr(config.output, k):
                    setattr(config.output, k, v)
        config.debug = data.get("debug", False)
        return config
