"""
Tag Governance Engine — Main Orchestrator

Usage:
    python -m tag_governance audit                              # default profile, read-only
    python -m tag_governance audit --profile contoso-prod --csv
    python -m tag_governance remediate --mode confirm-each
    python -m tag_governance remediate --mode apply-all --settle-seconds 15
    python -m tag_governance remediate --dry-run

Profile management:
    python -m tag_governance profile add <name> --tenant-id ... --client-id ...
    python -m tag_governance profile list
    python -m tag_governance profile remove <name>
    python -m tag_governance profile set-default <name>

Action log:
    python -m tag_governance log show --limit 20

`audit` never modifies the tenant. `remediate` only changes resource tags,
and only after a confirmation mode has been selected.
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

from . import __version__
from .config import (
    CONFLICT_POLICIES,
    CertificateAuth,
    DelegatedAuth,
    EngineConfig,
)
from .errors import ConfigurationError, TagGovernanceError
from .safety.guardian import MutationGuardian
from .auth.authenticator import AuthenticationError, Authenticator
from .arm.client import ArmClient
from .inventory.arm import ArmInventory
from .audit.action_log import ActionLog
from .engine import run_audit, run_remediation
from .remediation.confirmation import ConfirmationMode
from .reporting import (
    export_findings_csv,
    export_results_csv,
    export_json,
    export_markdown,
    render_outcome,
)
from .profiles import ProfileStore, TenantProfile, resolve_profile

logger = logging.getLogger("tag_governance")

ACTION_LOG_NAME = "action_log.db"


# ---------------------------------------------------------------------------
# profile / log sub-commands
# ---------------------------------------------------------------------------

def _profile_table(store: ProfileStore) -> int:
    rows = store.list_profiles()
    if not rows:
        print("  No tenant profiles yet. Create one with:")
        print("    python -m tag_governance profile add <name> --tenant-id <GUID> --client-id <GUID>")
        return 0
    print(f"\n  {'Profile':<20s} {'Tenant':<38s} {'App':<38s} {'Scope':<14s} Default")
    print("  " + " ".join("─" * w for w in (20, 38, 38, 14, 7)))
    for p in rows:
        scope = ", ".join(p.subscriptions) if p.subscriptions else "all"
        marker = "  ✓" if p.name == store.default_profile else ""
        print(f"  {p.name:<20s} {p.tenant_id:<38s} {p.client_id:<38s} {scope[:14]:<14s}{marker}")
    print()
    return 0


def _profile_save(store: ProfileStore, args: argparse.Namespace) -> int:
    replacing = store.get(args.profile_name) is not None
    becomes_default = args.set_default or not store.profiles
    store.add(
        TenantProfile(
            name=args.profile_name,
            tenant_id=args.tenant_id,
            client_id=args.client_id,
            cert_path=args.cert_path,
            tenant_display_name=args.display_name or "",
            subscriptions=args.subscription or [],
            notes=args.notes or "",
        ),
        set_default=becomes_default,
    )
    print(f"  ✅ Profile '{args.profile_name}' {'replaced' if replacing else 'saved'}"
          + (" (default)." if becomes_default else "."))
    return 0


def _profile_drop(store: ProfileStore, args: argparse.Namespace) -> int:
    if not store.remove(args.profile_name):
        print(f"  ❌ No profile named '{args.profile_name}'.")
        return 1
    print(f"  ✅ Profile '{args.profile_name}' removed.")
    return 0


def _profile_make_default(store: ProfileStore, args: argparse.Namespace) -> int:
    if not store.set_default(args.profile_name):
        print(f"  ❌ No profile named '{args.profile_name}'.")
        return 1
    print(f"  ✅ '{args.profile_name}' is now the default profile.")
    return 0


PROFILE_ACTIONS = {
    "list": lambda store, args: _profile_table(store),
    "add": _profile_save,
    "remove": _profile_drop,
    "set-default": _profile_make_default,
}


def _cmd_profile(args: argparse.Namespace) -> int:
    return PROFILE_ACTIONS[args.profile_action](ProfileStore.load(), args)


def _cmd_log(args: argparse.Namespace) -> int:
    """`log show`: recent runs from the action log."""
    db_path = args.output_dir / "audit" / ACTION_LOG_NAME
    if not db_path.exists():
        print(f"  No action log at {db_path}")
        return 0
    history = ActionLog(str(db_path)).history(limit=args.limit)
    print(f"\n  {'Run ID':<26s} {'Command':<10s} {'Started (UTC)':<34s} {'Status':<10s} Summary")
    print("  " + " ".join("─" * w for w in (26, 10, 34, 10, 30)))
    for run in history:
        summary = ", ".join(f"{k}={v}" for k, v in run["summary"].items())
        print(f"  {run['run_id']:<26s} {run['command']:<10s} {run['started_at']:<34s} {run['status']:<10s} {summary}")
    print()
    return 0


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def _add_scan_options(parser: argparse.ArgumentParser):
    parser.add_argument("--profile", "-p", type=str, default=None,
                        help="Tenant profile name to use (run 'profile list' to see available)")
    parser.add_argument("--config", "-c", type=Path, help="Path to JSON configuration file")
    parser.add_argument("--delegated", action="store_true",
                        help="Use delegated (device-code) authentication instead of certificate")
    parser.add_argument("--cert-path", type=Path, help="Path to base64-encoded certificate file (overrides profile)")
    parser.add_argument("--tenant-id", type=str, default=None, help="Tenant ID (overrides profile)")
    parser.add_argument("--client-id", type=str, default=None, help="Client ID (overrides profile)")
    parser.add_argument("--subscription", "-s", action="append", default=None,
                        help="Restrict to a subscription id or display name (repeatable)")
    parser.add_argument("--canonical-key", type=str, default=None,
                        help="Canonical tag key (default: DeptCode)")
    parser.add_argument("--output-dir", "-o", type=Path, default=None,
                        help="Output directory for reports and the action log "
                             "(default: output.base_dir from --config, else ./tag_governance_output)")
    parser.add_argument("--csv", action="store_true", help="Export findings to a timestamped CSV file")
    parser.add_argument("--formats", nargs="+", choices=["json", "markdown"], default=["json", "markdown"],
                        help="Report formats to generate")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tag_governance",
        description="Department-code tag governance: audit and remediate inconsistent tag keys",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    audit_p = subparsers.add_parser("audit", help="Report inconsistent tags (read-only)")
    _add_scan_options(audit_p)

    rem_p = subparsers.add_parser("remediate", help="Audit, then rewrite inconsistent tags")
    _add_scan_options(rem_p)
    rem_p.add_argument("--mode", type=str, choices=[m.value for m in ConfirmationMode], default=None,
                       help="Confirmation mode (prompted when omitted)")
    rem_p.add_argument("--dry-run", action="store_true", help="Walk through remediation without changing anything")
    rem_p.add_argument("--settle-seconds", type=float, default=None,
                       help="Pause between delete and merge (default: 10)")
    rem_p.add_argument("--conflict-policy", choices=list(CONFLICT_POLICIES), default=None,
                       help="What to do when the canonical tag already exists (default: overwrite)")

    prof_parser = subparsers.add_parser("profile", help="Manage named tenant profiles")
    prof_sub = prof_parser.add_subparsers(dest="profile_action")
    add_p = prof_sub.add_parser("add", help="Create or replace a profile")
    add_p.add_argument("profile_name")
    add_p.add_argument("--tenant-id", required=True, help="Entra tenant ID")
    add_p.add_argument("--client-id", required=True, help="App registration (client) ID")
    add_p.add_argument("--cert-path", default="./base64.txt", help="Base64-encoded PFX used for app-only sign-in")
    add_p.add_argument("--display-name", help="Tenant name shown in reports")
    add_p.add_argument("--subscription", action="append", help="Default subscription filter (repeatable)")
    add_p.add_argument("--notes")
    add_p.add_argument("--set-default", action="store_true")
    prof_sub.add_parser("list", help="Show configured profiles")
    for action, text in (("remove", "Delete a profile"), ("set-default", "Make a profile the default")):
        prof_sub.add_parser(action, help=text).add_argument("profile_name")

    log_parser = subparsers.add_parser("log", help="Inspect the action log")
    log_sub = log_parser.add_subparsers(dest="log_action")
    show_p = log_sub.add_parser("show", help="List recent runs")
    show_p.add_argument("--limit", type=int, default=10)
    show_p.add_argument("--output-dir", "-o", type=Path, default=Path("./tag_governance_output"))

    return parser


def _credentials(args: argparse.Namespace, config: EngineConfig,
                 profile: Optional[TenantProfile]) -> tuple[str, str, str]:
    """(tenant_id, client_id, cert_path); CLI flags beat the profile, which beats the config file."""
    if profile:
        cert_path = str(args.cert_path) if args.cert_path else profile.resolve_cert_path()
        return args.tenant_id or profile.tenant_id, args.client_id or profile.client_id, cert_path
    if args.tenant_id and args.client_id:
        return args.tenant_id, args.client_id, str(args.cert_path or "./base64.txt")
    from_file = config.auth.certificate or config.auth.delegated
    if from_file is None:
        raise ConfigurationError(
            "No tenant credentials found. Use --profile <name>, "
            "--tenant-id X --client-id Y, or --config config.json"
        )
    cert_path = config.auth.certificate.certificate_path if config.auth.certificate else ""
    return from_file.tenant_id, from_file.client_id, cert_path


def build_config(args: argparse.Namespace) -> tuple[EngineConfig, Optional[TenantProfile]]:
    """Merge config file, tenant profile and CLI flags into one EngineConfig."""
    if args.config and not args.config.exists():
        raise ConfigurationError(f"Config file not found: {args.config}")
    config = EngineConfig.from_file(args.config) if args.config else EngineConfig()

    profile = None
    if args.profile:
        profile = resolve_profile(args.profile)
        if profile is None:
            raise ConfigurationError(
                f"Profile '{args.profile}' not found. Use 'profile list' to see available profiles."
            )
    elif not (args.config or args.tenant_id):
        profile = resolve_profile()

    tenant_id, client_id, cert_path = _credentials(args, config, profile)
    if args.delegated:
        config.auth.mode = "delegated"
    if config.auth.mode == "delegated":
        config.auth.delegated = DelegatedAuth(tenant_id=tenant_id, client_id=client_id)
    else:
        password = config.auth.certificate.certificate_password if config.auth.certificate else ""
        config.auth.certificate = CertificateAuth(tenant_id, client_id, cert_path, password)

    tagging = config.tagging
    if args.subscription:
        tagging.boundaries = list(args.subscription)
    elif profile and not tagging.boundaries:
        tagging.boundaries = list(profile.subscriptions)
    if args.canonical_key:
        tagging.canonical_key = args.canonical_key
    if getattr(args, "settle_seconds", None) is not None:
        tagging.settle_seconds = args.settle_seconds
    if getattr(args, "conflict_policy", None):
        tagging.conflict_policy = args.conflict_policy
    tagging.validate()
    tagging.dictionary()

    if args.output_dir is not None:
        config.output.base_dir = str(args.output_dir)
    config.verbose = config.verbose or args.verbose
    return config, profile


def setup_logging(verbose: bool, log_file: Path):
    """Console gets warnings (or everything with --verbose); the log file gets INFO and up."""
    log_file.parent.mkdir(parents=True, exist_ok=True)
    root = logging.getLogger("tag_governance")
    root.setLevel(logging.DEBUG if verbose else logging.INFO)

    console = logging.StreamHandler()
    console.setLevel(logging.DEBUG if verbose else logging.WARNING)
    console.setFormatter(logging.Formatter("  %(levelname)s %(name)s: %(message)s"))

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

    root.addHandler(console)
    root.addHandler(file_handler)


# ---------------------------------------------------------------------------
# Audit / remediate
# ---------------------------------------------------------------------------

async def main_async(args: argparse.Namespace) -> int:
    """Async entry point for `audit` and `remediate`."""
    command = args.command
    remediate = command == "remediate"
    dry_run = remediate and args.dry_run

    try:
        config, profile = build_config(args)
    except ConfigurationError as e:
        print(f"\n❌ {e}")
        return 2

    output = config.output
    output.create_directories()
    setup_logging(config.verbose, output.audit_dir / "tag_governance.log")

    guardian = MutationGuardian(allow_tag_writes=remediate and not dry_run)
    guardian.print_banner()

    run_id = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S") + "_" + uuid.uuid4().hex[:8]
    tenant_name = (profile.tenant_display_name if profile else "") or "Unknown Tenant"
    print(f"\n📋 Run ID:    {run_id}")
    print(f"📂 Output:    {output.scan_dir.resolve()}")
    print(f"🏢 Tenant:    {tenant_name}" + (f" (profile: {profile.name})" if profile else ""))
    print(f"🏷  Canonical: {config.tagging.canonical_key}")

    action_log = ActionLog(str(output.audit_dir / ACTION_LOG_NAME))
    action_log.start_run(run_id, command + (" --dry-run" if dry_run else ""))

    print("\n🔐 Authenticating...")
    try:
        token = Authenticator(config.auth).acquire_token()
    except AuthenticationError as e:
        print(f"❌ Authentication failed: {e}")
        action_log.complete_run(run_id, status="failed", summary={"error": str(e)})
        return 1
    print("✅ Authentication successful.")

    outcome = None
    try:
        async with ArmClient(access_token=token, guardian=guardian) as client:
            source = ArmInventory(client)

            print("\n" + "=" * 70)
            print(" PHASE 1: TAG AUDIT")
            print("=" * 70)
            audit = await run_audit(source, config.tagging, action_log=action_log, run_id=run_id)

            if remediate:
                print("\n" + "=" * 70)
                print(" PHASE 2: REMEDIATION" + (" (DRY RUN)" if dry_run else ""))
                print("=" * 70)
                mode = ConfirmationMode(args.mode) if args.mode else None
                outcome = await run_remediation(
                    source, config.tagging, audit,
                    mode=mode, action_log=action_log, run_id=run_id, dry_run=dry_run,
                )
    except TagGovernanceError as e:
        logger.error(f"Run failed: {e}")
        print(f"\n❌ {e}")
        action_log.complete_run(run_id, status="failed", summary={"error": str(e)})
        return 1

    print("\n" + "=" * 70)
    print(" REPORTS")
    print("=" * 70)
    if args.csv:
        print(f"  📊 CSV:      {export_findings_csv(audit.findings, output.csv_dir, output.timestamp)}")
        if outcome and outcome.results:
            print(f"  📊 CSV:      {export_results_csv(outcome, output.csv_dir, output.timestamp)}")
    if "json" in args.formats:
        path = export_json(audit, output.reports_dir, run_id, command,
                           outcome=outcome, guardian_record=guardian.get_audit_record())
        print(f"  📄 JSON:     {path}")
    if "markdown" in args.formats:
        path = export_markdown(audit, output.reports_dir, run_id, config.tagging.canonical_key,
                               tenant_name=tenant_name, outcome=outcome)
        print(f"  📝 Markdown: {path}")

    summary = {"findings": len(audit.findings), "boundaries_skipped": audit.boundaries_skipped}
    if outcome:
        summary.update(outcome.counts())
        print("\n" + "=" * 70)
        print(" RUN SUMMARY")
        print("=" * 70)
        print(render_outcome(outcome))
    if audit.boundaries_skipped:
        print(f"\n  ⚠  {audit.boundaries_skipped} subscriptions could not be scanned; see the report for details.")

    if audit.scan_failed:
        status = "failed"
        print("  ❌ None of the selected subscriptions could be scanned.")
    elif outcome and outcome.aborted:
        status = "aborted"
    else:
        status = "completed"
    action_log.complete_run(run_id, status=status, summary=summary)
    print()
    return 1 if audit.scan_failed or (outcome and outcome.errored) else 0


def main():
    """Synchronous entry point for `python -m tag_governance` and the console script."""
    parser = build_parser()
    args = parser.parse_args()

    if args.command == "profile":
        if not getattr(args, "profile_action", None):
            print("Usage: python -m tag_governance profile {add|list|remove|set-default}")
            sys.exit(0)
        sys.exit(_cmd_profile(args))

    if args.command == "log":
        if not getattr(args, "log_action", None):
            print("Usage: python -m tag_governance log show [--limit N]")
            sys.exit(0)
        sys.exit(_cmd_log(args))

    if args.command not in ("audit", "remediate"):
        parser.print_help()
        sys.exit(0)

    try:
        sys.exit(asyncio.run(main_async(args)))
    except KeyboardInterrupt:
        print("\n⚠  Interrupted. Changes already applied remain; see the action log for progress.")
        sys.exit(130)


if __name__ == "__main__":
    main()
