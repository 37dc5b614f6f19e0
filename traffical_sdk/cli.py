#!/usr/bin/env python3
"""
Traffical CLI - manage parameter and event definitions from the command line

Keeps the project's config.yaml and the platform in step, and installs the
agent skill for AI coding tools.

Usage:
    traffical init --project-id proj_123 --org-id org_456
    traffical status
    traffical push --dry-run
    traffical pull
    traffical sync
    traffical import "checkout.*"
    traffical integrate-ai-tools

Exit codes are CI-friendly: 0 on success, 1 on any error.
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

import yaml

from . import __version__
from .config import (
    API_BASE_ENV,
    DEFAULT_CONFIG_LOCATIONS,
    DEFAULT_MANAGEMENT_URL,
    find_config_path,
    load_config_file,
    load_management_key,
    parse_config,
    read_template,
    save_config_file,
)
from .exceptions import ConfigFileError, CredentialsError, ErrorCodes, TrafficalError
from .integrations import integrate_ai_tools
from .management import ManagementClient
from .models import ConfigFile
from .sync import (
    ConfigDiff,
    apply_pull,
    build_push_payload,
    diff_config,
    import_matching,
    merge_remote_only,
)

logger = logging.getLogger(__name__)


def setup_argument_parser() -> argparse.ArgumentParser:
    """Set up command line argument parsing"""
    parser = argparse.ArgumentParser(
        prog="traffical",
        description="Manage Traffical parameters and events for this project",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Create .traffical/config.yaml
    traffical init --project-id proj_123 --org-id org_456

    # Preview what a push would change
    traffical push --dry-run

    # Bring dashboard-created pricing parameters into the repo
    traffical import "pricing.*"
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", "-c", type=Path, help="Path to config.yaml")
    parser.add_argument(
        "--api-base",
        help=f"Management API base URL (default: ${API_BASE_ENV} or {DEFAULT_MANAGEMENT_URL})",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose logging output"
    )

    subparsers = parser.add_subparsers(dest="command", metavar="<command>")
    subparsers.required = True

    init = subparsers.add_parser("init", help="Create a starter config file")
    init.add_argument("--project-id", help="Project id from the dashboard")
    init.add_argument("--org-id", help="Organization id from the dashboard")
    init.add_argument("--force", action="store_true", help="Overwrite an existing config")
    init.set_defaults(handler=cmd_init)

    status = subparsers.add_parser("status", help="Show local definitions and remote differences")
    status.set_defaults(handler=cmd_status)

    push = subparsers.add_parser("push", help="Push local parameters and events")
    push.add_argument("--dry-run", action="store_true", help="Show changes without pushing")
    push.set_defaults(handler=cmd_push)

    pull = subparsers.add_parser("pull", help="Replace local definitions with remote ones")
    pull.set_defaults(handler=cmd_pull)

    sync = subparsers.add_parser("sync", help="Pull remote-only definitions, then push")
    sync.set_defaults(handler=cmd_sync)

    import_ = subparsers.add_parser("import", help="Import remote parameters matching a pattern")
    import_.add_argument("pattern", help='Glob pattern over parameter keys, e.g. "checkout.*"')
    import_.set_defaults(handler=cmd_import)

    integrate = subparsers.add_parser(
        "integrate-ai-tools", help="Install the Traffical skill for AI coding tools"
    )
    integrate.set_defaults(handler=cmd_integrate_ai_tools)

    return parser


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------


def _config_path(args: argparse.Namespace) -> Path:
    return args.config if args.config else find_config_path()


def _load_local(args: argparse.Namespace):
    path = _config_path(args)
    return path, load_config_file(path)


def _api_base(args: argparse.Namespace) -> str:
    return args.api_base or os.environ.get(API_BASE_ENV) or DEFAULT_MANAGEMENT_URL


def _management_client(args: argparse.Namespace) -> ManagementClient:
    key = load_management_key()
    base_url = _api_base(args)
    logger.debug(f"Using management API at {base_url}")
    return ManagementClient(key, base_url=base_url)


def _print_list(label: str, keys: List[str], marker: str) -> None:
    if keys:
        print(f"   {label}:")
        for key in keys:
            print(f"      {marker} {key}")


def format_diff(diff: ConfigDiff) -> None:
    """Print a ConfigDiff for humans"""
    for title, section in (("Parameters", diff.parameters), ("Events", diff.events)):
        print(f"\n📦 {title}:")
        _print_list("Local only (will be created)", section.local_only, "+")
        _print_list("Changed locally (will be updated)", section.changed, "~")
        _print_list("Remote only (pull or import to keep locally)", section.remote_only, "?")
        print(f"   Unchanged: {len(section.unchanged)}")


def format_local_summary(path: Path, config: ConfigFile) -> None:
    print(f"\n📋 Config: {path}")
    print(f"   Project: {config.project.id} (org {config.project.org_id})")
    print(f"   Parameters: {len(config.parameters)}")
    for key, definition in config.parameters.items():
        print(f"      • {key} [{definition.type}] = {definition.default!r}")
    print(f"   Events: {len(config.events)}")
    for name, definition in config.events.items():
        unit = f" ({definition.unit})" if definition.unit else ""
        print(f"      • {name} [{definition.value_type}]{unit}")


# ---------------------------------------------------------------------------
# commands
# ---------------------------------------------------------------------------


def cmd_init(args: argparse.Namespace) -> int:
    path = args.config or Path.cwd() / DEFAULT_CONFIG_LOCATIONS[0]
    if path.exists() and not args.force:
        raise ConfigFileError(
            ErrorCodes.CONFIG_EXISTS, f"{path} already exists (use --force to overwrite)"
        )

    text = read_template("config.yaml")
    text = text.replace("__PROJECT_ID__", args.project_id or "your-project-id")
    text = text.replace("__ORG_ID__", args.org_id or "your-org-id")
    config = parse_config(yaml.safe_load(text), source="template")

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    print(f"✅ Created {path} with {len(config.parameters)} example parameter(s)")
    if not args.project_id:
        print("   Edit project.id and project.orgId before pushing.")
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    path, config = _load_local(args)
    format_local_summary(path, config)

    try:
        client = _management_client(args)
    except CredentialsError as e:
        print(f"\nℹ️ Remote comparison skipped: {e}")
        return 0

    with client:
        remote = client.get_config(config.project.id)
    diff = diff_config(config, remote)
    format_diff(diff)
    if diff.in_sync:
        print("\n✅ Local config is in sync with the platform")
    return 0


def cmd_push(args: argparse.Namespace) -> int:
    path, config = _load_local(args)
    with _management_client(args) as client:
        remote = client.get_config(config.project.id)
        diff = diff_config(config, remote)
        format_diff(diff)

        if not diff.has_local_changes:
            print("\n✅ Nothing to push")
            return 0
        if args.dry_run:
            print("\n🔍 Dry run - nothing was pushed")
            return 0

        client.put_config(config.project.id, build_push_payload(config, remote))
    parameters = len(diff.parameters.local_only) + len(diff.parameters.changed)
    events = len(diff.events.local_only) + len(diff.events.changed)
    print(
        f"\n🚀 Pushed {parameters} parameter change(s) and {events} event change(s) "
        f"to project {config.project.id}"
    )
    return 0


def cmd_pull(args: argparse.Namespace) -> int:
    path, config = _load_local(args)
    with _management_client(args) as client:
        remote = client.get_config(config.project.id)
    save_config_file(apply_pull(config, remote), path)
    print(
        f"⬇️ Pulled {len(remote.parameters)} parameter(s) and {len(remote.events)} "
        f"event(s) into {path}"
    )
    return 0


def cmd_sync(args: argparse.Namespace) -> int:
    path, config = _load_local(args)
    with _management_client(args) as client:
        remote = client.get_config(config.project.id)
        merged = merge_remote_only(config, remote)
        diff = diff_config(merged, remote)
        if diff.has_local_changes:
            client.put_config(config.project.id, build_push_payload(merged, remote))
    save_config_file(merged, path)

    pulled = len(merged.parameters) - len(config.parameters)
    pushed = len(diff.parameters.local_only) + len(diff.parameters.changed)
    pushed_events = len(diff.events.local_only) + len(diff.events.changed)
    print(
        f"🔄 Synced: {pulled} parameter(s) pulled, {pushed} parameter change(s) "
        f"and {pushed_events} event change(s) pushed"
    )
    return 0


def cmd_import(args: argparse.Namespace) -> int:
    path, config = _load_local(args)
    with _management_client(args) as client:
        remote = client.get_config(config.project.id)
    updated, imported = import_matching(config, remote, args.pattern)
    if not imported:
        print(f"⚠️ No remote parameters match '{args.pattern}'")
        return 0
    save_config_file(updated, path)
    print(f"📥 Imported {len(imported)} parameter(s) into {path}:")
    for key in imported:
        print(f"   • {key}")
    return 0


def cmd_integrate_ai_tools(args: argparse.Namespace) -> int:
    config: Optional[ConfigFile] = None
    try:
        path, config = _load_local(args)
        root = path.parent.parent if path.parent.name == ".traffical" else path.parent
    except ConfigFileError as e:
        if e.code != ErrorCodes.CONFIG_NOT_FOUND:
            raise
        root = Path.cwd()

    result = integrate_ai_tools(root, config)
    status = "Installed" if result.skill_written else "Up to date"
    print(f"🤖 {status}: {result.skill_path}")
    for updated in result.updated_files:
        print(f"   • Added Traffical pointer to {updated}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point"""
    parser = setup_argument_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        return args.handler(args)
    except KeyboardInterrupt:
        print("\n\n⏹️ Cancelled by user")
        return 1
    except TrafficalError as e:
        print(f"❌ {e}")
        if args.verbose:
            logger.exception("Command failed")
        return 1
    except OSError as e:
        print(f"❌ File error: {e}")
        if args.verbose:
            logger.exception("Command failed")
        return 1


if __name__ == "__main__":
    sys.exit(main())
