"""
CLI commands that change FusionAuth.

Commands:
    fusionauth-provider apply <resources.yaml> [--yes]   - Converge FusionAuth to the file
    fusionauth-provider destroy [ADDRESS ...] [--yes]    - Delete tracked resources
"""

from __future__ import annotations

import argparse
import asyncio

from fusionauth_provider.cli.context import (
    add_common_arguments,
    build_reconciler,
    resolve_state_path,
)
from fusionauth_provider.cli.plan import print_plan_summary
from fusionauth_provider.cli.ux import confirm, error, info, print_table, spinner, success, warning
from fusionauth_provider.config.loader import load_resource_file
from fusionauth_provider.core.errors import ExitCode, main_with_error_handling
from fusionauth_provider.orchestration.results import ApplyResult
from fusionauth_provider.orchestration.state import save_state


def print_apply_summary(result: ApplyResult) -> None:
    rows = [
        [change.address, f"[{change.action}]{change.action}[/{change.action}]", change.resource_id or ""]
        for change in result.changes
        if change.action != "noop"
    ]
    if rows:
        print_table("Applied", ["Address", "Action", "ID"], rows)
    for address in result.drift:
        warning(f"{address} changed outside of the provider and was brought back to the declaration")
    for message in result.errors:
        error(message)
    if result.success:
        success(f"Apply complete in {result.duration_seconds:.1f}s")


@main_with_error_handling()
def apply_command(resource_file: str, state_path: str | None = None, auto_approve: bool = False) -> int:
    blocks = load_resource_file(resource_file)
    path = resolve_state_path(state_path)
    reconciler, state = build_reconciler(path)

    plan = asyncio.run(reconciler.plan(blocks))
    print_plan_summary(plan)
    if not plan.success:
        return ExitCode.VALIDATION_ERROR
    if not plan.has_changes:
        return ExitCode.SUCCESS
    if not auto_approve and not confirm("Apply these changes?"):
        info("Apply cancelled")
        return ExitCode.SUCCESS

    # Keys created before an interruption must still be tracked.
    try:
        with spinner("Applying changes..."):
            result = asyncio.run(reconciler.apply(blocks))
    finally:
        save_state(state, path)
    print_apply_summary(result)
    return ExitCode.SUCCESS if result.success else ExitCode.REMOTE_ERROR


@main_with_error_handling()
def destroy_command(
    addresses: list[str] | None = None,
    state_path: str | None = None,
    auto_approve: bool = False,
) -> int:
    path = resolve_state_path(state_path)
    reconciler, state = build_reconciler(path)

    targets = addresses or state.addresses()
    if not targets:
        info("Nothing to destroy")
        return ExitCode.SUCCESS
    if not auto_approve and not confirm(f"Destroy {len(targets)} resource(s)?"):
        info("Destroy cancelled")
        return ExitCode.SUCCESS

    try:
        with spinner("Destroying resources..."):
            result = asyncio.run(reconciler.destroy(targets))
    finally:
        save_state(state, path)
    print_apply_summary(result)
    return ExitCode.SUCCESS if result.success else ExitCode.REMOTE_ERROR


def register_apply_parsers(subparsers: argparse._SubParsersAction) -> None:
    apply_parser = subparsers.add_parser("apply", help="Create, update or replace resources to match the file")
    apply_parser.add_argument("resource_file", help="Path to resources YAML file")
    apply_parser.add_argument("--yes", "-y", dest="auto_approve", action="store_true", help="Skip confirmation")
    add_common_arguments(apply_parser)

    destroy_parser = subparsers.add_parser("destroy", help="Delete tracked resources")
    destroy_parser.add_argument("addresses", nargs="*", help="Addresses to destroy (default: all)")
    destroy_parser.add_argument("--yes", "-y", dest="auto_approve", action="store_true", help="Skip confirmation")
    add_common_arguments(destroy_parser)


def handle_apply_command(args: argparse.Namespace) -> int:
    return apply_command(
        resource_file=args.resource_file,
        state_path=getattr(args, "state_path", None),
        auto_approve=getattr(args, "auto_approve", False),
    )


def handle_destroy_command(args: argparse.Namespace) -> int:
    return destroy_command(
        addresses=getattr(args, "addresses", None) or None,
        state_path=getattr(args, "state_path", None),
        auto_approve=getattr(args, "auto_approve", False),
    )
