"""
Web App Backup Compliance Auditor — Main Orchestrator

Usage:
    python -m webapp_backup_audit                                  # default profile
    python -m webapp_backup_audit --profile contoso-prod           # named profile
    python -m webapp_backup_audit --config config.json             # JSON config file
    python -m webapp_backup_audit -s "Prod" -s "Staging"           # explicit subscriptions
    python -m webapp_backup_audit --strict-subscriptions           # halt on an unknown name

Profile management:
    python -m webapp_backup_audit profile add <name> --tenant-id ... --client-id ...
    python -m webapp_backup_audit profile list
    python -m webapp_backup_audit profile remove <name>
    python -m webapp_backup_audit profile set-default <name>

This tool is STRICTLY READ-ONLY. It never triggers, restores or edits backups.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import httpx

from . import __version__
from .arm.client import ArmAPIError, ArmClient
from .auditor import BackupComplianceAuditor
from .auth.authenticator import AuthenticationError, Authenticator
from .collectors.subscriptions import SubscriptionNotFoundError
from .config import CertificateAuth, DelegatedAuth, EngineConfig
from .profiles import ProfileStore, TenantProfile, resolve_profile
from .reporting import ConsoleDelivery, build_report, export_json
from .safety.guardian import SafetyGuardian, SafetyViolation

logger = logging.getLogger("webapp_backup_audit")


class ConfigurationError(Exception):
    """Raised when the CLI cannot assemble credentials for a run."""
    pass


# ---------------------------------------------------------------------------
# Profile management sub-commands
# ---------------------------------------------------------------------------

def _cmd_profile(args: argparse.Namespace) -> int:
    """Handle `profile add|list|remove|set-default` sub-commands."""
    action = args.profile_action
    store = ProfileStore.load()

    if action == "list":
        profiles = store.list_profiles()
        if not profiles:
            print("No profiles configured. Add one with:\n")
            print("  python -m webapp_backup_audit profile add <name> \\")
            print("    --tenant-id <GUID> --client-id <GUID> --cert-path ./base64.txt")
            return 0
        print(f"\n  {'Name':<20s} {'Tenant ID':<38s} {'Client ID':<38s} {'Subscriptions':<30s} {'Default'}")
        for p in profiles:
            default_marker = "  *" if p.name == store.default_profile else ""
            subs = ", ".join(p.subscriptions) or "-"
            print(f"  {p.name:<20s} {p.tenant_id:<38s} {p.client_id:<38s} {subs:<30s}{default_marker}")
        print()
        return 0

    if action == "add":
        profile = TenantProfile(
            name=args.profile_name,
            tenant_id=args.tenant_id,
            client_id=args.client_id,
            cert_path=args.cert_path or "./base64.txt",
            thumbprint=args.thumbprint or "",
            subscriptions=list(args.subscription or []),
        )
        set_as_default = args.set_default or not store.profiles
        store.add(profile, set_default=set_as_default)
        print(f"  Profile '{profile.name}' saved{' as default' if set_as_default else ''}.")
        return 0

    if action == "remove":
        if store.remove(args.profile_name):
            print(f"  Profile '{args.profile_name}' removed.")
            return 0
        print(f"  Profile '{args.profile_name}' not found.")
        return 1

    if action == "set-default":
        if store.set_default(args.profile_name):
            print(f"  Default profile set to '{args.profile_name}'.")
            return 0
        print(f"  Profile '{args.profile_name}' not found.")
        return 1

    print("Usage: python -m webapp_backup_audit profile {add|list|remove|set-default}")
    return 0


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="webapp_backup_audit",
        description="Web App Backup Compliance Auditor (READ-ONLY)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Management commands")
    prof_parser = subparsers.add_parser("profile", help="Manage tenant profiles")
    prof_sub = prof_parser.add_subparsers(dest="profile_action", help="Profile actions")

    add_p = prof_sub.add_parser("add", help="Add or update a tenant profile")
    add_p.add_argument("profile_name", help="Short name for the profile (e.g. 'contoso-prod')")
    add_p.add_argument("--tenant-id", required=True, help="Entra tenant ID (GUID)")
    add_p.add_argument("--client-id", required=True, help="App registration client ID (GUID)")
    add_p.add_argument("--cert-path", default="./base64.txt", help="Path to base64-encoded PFX")
    add_p.add_argument("--thumbprint", help="Expected certificate thumbprint")
    add_p.add_argument("--subscription", "-s", action="append", help="Subscription name to audit (repeatable)")
    add_p.add_argument("--set-default", action="store_true", help="Set as default profile")

    prof_sub.add_parser("list", help="List all configured profiles")
    rm_p = prof_sub.add_parser("remove", help="Remove a profile")
    rm_p.add_argument("profile_name")
    sd_p = prof_sub.add_parser("set-default", help="Set the default profile")
    sd_p.add_argument("profile_name")

    # --- Audit options ---
    parser.add_argument("--profile", "-p", type=str, default=None,
                        help="Tenant profile name to use")
    parser.add_argument("--config", "-c", type=Path,
                        help="Path to JSON configuration file")
    parser.add_argument("--delegated", action="store_true",
                        help="Use delegated (device-code) authentication instead of certificate")
    parser.add_argument("--tenant-id", type=str, default=None,
                        help="Tenant ID (overrides profile)")
    parser.add_argument("--client-id", type=str, default=None,
                        help="Client ID (overrides profile)")
    parser.add_argument("--cert-path", type=Path,
                        help="Path to base64-encoded certificate file (overrides profile)")
    parser.add_argument("--thumbprint", type=str, default=None,
                        help="Expected certificate thumbprint (overrides profile)")
    parser.add_argument("--subscription", "-s", action="append", default=None,
                        help="Subscription name to audit (repeatable; overrides profile)")
    parser.add_argument("--stale-days", type=int, default=None,
                        help="Days after which the last successful backup is stale (default: 5)")
    parser.add_argument("--strict-subscriptions", action="store_true",
                        help="Stop the whole run when a subscription name cannot be resolved")
    parser.add_argument("--json-out", type=Path, default=None,
                        help="Also write findings and counters to this JSON file")
    parser.add_argument("--debug", action="store_true",
                        help="Verbose logging")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace, profile: Optional[TenantProfile] = None) -> EngineConfig:
    """Build configuration from config file, profile, then CLI flags."""
    if args.config and args.config.exists():
        config = EngineConfig.from_file(str(args.config))
    else:
        config = EngineConfig()

    if args.delegated:
        config.auth.mode = "delegated"

    if profile:
        tenant_id = args.tenant_id or profile.tenant_id
        client_id = args.client_id or profile.client_id
        cert_path = str(args.cert_path) if args.cert_path else profile.resolve_cert_path()
        thumbprint = args.thumbprint or profile.thumbprint
        if profile.subscriptions:
            config.audit.subscriptions = list(profile.subscriptions)
    elif args.tenant_id and args.client_id:
        tenant_id = args.tenant_id
        client_id = args.client_id
        cert_path = str(args.cert_path) if args.cert_path else "./base64.txt"
        thumbprint = args.thumbprint or ""
    elif config.auth.certificate:
        c = config.auth.certificate
        tenant_id, client_id = c.tenant_id, c.client_id
        cert_path = str(args.cert_path) if args.cert_path else c.certificate_path
        thumbprint = args.thumbprint or c.thumbprint
    elif config.auth.delegated:
        tenant_id, client_id = config.auth.delegated.tenant_id, config.auth.delegated.client_id
        cert_path, thumbprint = "", ""
    else:
        raise ConfigurationError(
            "No tenant credentials found. Use --profile <name>, "
            "--tenant-id X --client-id Y, or --config config.json"
        )

    if config.auth.mode == "delegated":
        config.auth.delegated = DelegatedAuth(tenant_id=tenant_id, client_id=client_id)
    else:
        password = config.auth.certificate.certificate_password if config.auth.certificate else ""
        config.auth.certificate = CertificateAuth(
            tenant_id=tenant_id,
            client_id=client_id,
            certificate_path=cert_path,
            certificate_password=password,
            thumbprint=thumbprint,
        )

    if args.subscription:
        config.audit.subscriptions = list(args.subscription)
    if args.stale_days is not None:
        config.audit.stale_after_days = args.stale_days
    if args.strict_subscriptions:
        config.audit.strict_subscriptions = True
    if args.json_out:
        config.output.json_path = str(args.json_out)
    config.debug = config.debug or args.debug
    return config


def configure_logging(debug: bool):
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def run_audit(config: EngineConfig, scan_id: str) -> int:
    """Authenticate, audit, report. Returns the process exit code."""
    print("\nAuthenticating...")
    try:
        token = await Authenticator(config.auth).acquire_token()
    except AuthenticationError as e:
        print(f"❌ Authentication failed: {e}")
        return 1

    guardian = SafetyGuardian()
    async with ArmClient(access_token=token, guardian=guardian) as arm:
        auditor = BackupComplianceAuditor(arm, config.audit)
        try:
            audit_run = await auditor.run()
        except SubscriptionNotFoundError as e:
            print(f"❌ Audit stopped: subscription '{e.name}' is not visible to this identity.")
            return 1
        except (ArmAPIError, ValueError) as e:
            print(f"❌ Audit stopped: {e}")
            return 1
        except httpx.HTTPError as e:
            print(f"❌ Audit stopped: network error talking to Azure Resource Manager: {e}")
            return 1
        except SafetyViolation as e:
            print(f"❌ Audit stopped: {e}")
            return 1
        logger.debug(f"ARM stats: {arm.get_stats()}")

    report = build_report(audit_run.summary)
    ConsoleDelivery().deliver(report)

    if config.output.json_path:
        path = export_json(audit_run, Path(config.output.json_path), scan_id, guardian)
        print(f"\n  JSON: {path}")
    return 0


async def main_async(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)

    if args.command == "profile":
        return _cmd_profile(args)

    profile = None
    if args.profile:
        profile = resolve_profile(args.profile)
        if not profile:
            print(f"\n❌ Profile '{args.profile}' not found. Use 'profile list' to see available profiles.")
            return 1
    elif not args.config and not args.tenant_id:
        profile = resolve_profile()

    try:
        config = build_config(args, profile)
    except ConfigurationError as e:
        print(f"\n❌ {e}")
        return 1
    except (OSError, ValueError, KeyError) as e:
        print(f"\n❌ Could not read configuration {args.config}: {e}")
        return 1

    configure_logging(config.debug)

    scan_id = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S") + "_" + uuid.uuid4().hex[:8]
    print("=" * 70)
    print(f" Web App Backup Compliance Auditor v{__version__}")
    print(" Mode: READ-ONLY — No backup settings will be changed")
    print("=" * 70)
    print(f"\n  Scan ID:       {scan_id}")
    print(f"  Subscriptions: {', '.join(config.audit.subscriptions) or '(none)'}")
    if profile:
        print(f"  Profile:       {profile.name}")

    return await run_audit(config, scan_id)


def main():
    """Synchronous entry point for `python -m webapp_backup_audit`."""
    sys.exit(asyncio.run(main_async()))


if __name__ == "__main__":
    main()
