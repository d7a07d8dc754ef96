"""
CLI command for planning changes.

Commands:
    fusionauth-provider plan <resources.yaml>           - Show pending changes
    fusionauth-provider plan <resources.yaml> --json    - Output as JSON
"""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import asdict

from fusionauth_provider.cli.context import (
    add_common_arguments,
    build_reconciler,
    resolve_state_path,
)
from fusionauth_provider.cli.ux import console, error, info, print_table, warning
from fusionauth_provider.config.loader import load_resource_file
from fusionauth_provider.core.errors import ExitCode, main_with_error_handling
from fusionauth_provider.orchestration.results import PlanResult


def print_plan_summary(result: PlanResult) -> None:
    rows = [
        [
            change.address,
            f"[{change.action}]{change.action}[/{change.action}]",
            change.resource_id or "(known after apply)",
            ", ".join(change.fields),
        ]
        for change in result.changes
    ]
    print_table("Plan", ["Address", "Action", "ID", "Changed"], rows)
    for address in result.drift:
        warning(f"{address} changed outside of the provider")
    for message in result.errors:
        error(message)
    if not result.has_changes and result.success:
        info("No changes. Infrastructure matches the configuration.")


@main_with_error_handling()
def plan_command(resource_file: str, state_path: str | None = None, output_format: str = "table") -> int:
    """
    Compare declared resources with FusionAuth and tracked state.

    Exit codes:
        0 - Plan computed (changes may be pending)
        12 - A declaration failed validation or a remote read failed
    """
    blocks = load_resource_file(resource_file)
    reconciler, _ = build_reconciler(resolve_state_path(state_path))
    result = asyncio.run(reconciler.plan(blocks))

    if output_format == "json":
        console.print_json(
            data={
                "changes": [asdict(change) for change in result.changes],
                "drift": result.drift,
                "errors": result.errors,
            }
        )
    else:
        print_plan_summary(result)

    return ExitCode.SUCCESS if result.success else ExitCode.VALIDATION_ERROR


def register_plan_parser(subparsers: argparse._SubParsersAction) -> None:
    plan_parser = subparsers.add_parser("plan", help="Show changes required by the resource file")
    plan_parser.add_argument("resource_file", help="Path to resources YAML file")
    plan_parser.add_argument(
        "--format",
        "-f",
        dest="output_format",
        choices=["table", "json"],
        default="table",
        help="Output format (default: table)",
    )
    add_common_arguments(plan_parser)


def handle_plan_command(args: argparse.Namespace) -> int:
    return plan_command(
        resource_file=args.resource_file,
        state_path=getattr(args, "state_path", None),
        output_format=getattr(args, "output_format", "table"),
    )
