"""
CLI commands for tracked state.

Commands:
    fusionauth-provider import <ADDRESS> <ID>   - Adopt an existing FusionAuth object
    fusionauth-provider show <ADDRESS>          - Refresh and display one tracked resource
"""

from __future__ import annotations

import argparse
import asyncio

from fusionauth_provider.cli.context import (
    add_common_arguments,
    build_reconciler,
    resolve_state_path,
)
from fusionauth_provider.cli.ux import print_key_value, success, warning
from fusionauth_provider.core.errors import ConfigurationError, ExitCode, main_with_error_handling
from fusionauth_provider.orchestration.state import save_state
from fusionauth_provider.reconcile.models import ManagedResource


def _split_address(address: str) -> str:
    type_name, _, name = address.partition(".")
    if not type_name or not name:
        raise ConfigurationError(
            f"Invalid address '{address}', expected <type>.<name>", {"address": address}
        )
    return type_name


def _describe(resource: ManagedResource) -> dict[str, str]:
    items = {"id": resource.resource_id}
    items.update({name: str(value) for name, value in resource.attributes.items() if value is not None})
    items.update({name: str(value) for name, value in resource.computed.items() if name != "public_key"})
    return items


@main_with_error_handling()
def import_command(address: str, resource_id: str, state_path: str | None = None) -> int:
    type_name = _split_address(address)
    path = resolve_state_path(state_path)
    reconciler, state = build_reconciler(path)

    resource = asyncio.run(reconciler.import_resource(address, type_name, resource_id))
    save_state(state, path)
    print_key_value(_describe(resource), title=address)
    success(f"Imported {address}")
    return ExitCode.SUCCESS


@main_with_error_handling()
def show_command(address: str, state_path: str | None = None) -> int:
    path = resolve_state_path(state_path)
    reconciler, state = build_reconciler(path)

    read = asyncio.run(reconciler.refresh(address))
    save_state(state, path)
    if read.resource is None:
        warning(f"{address} no longer exists in FusionAuth and was removed from state")
        return ExitCode.WARNING
    print_key_value(_describe(read.resource), title=address)
    if read.drift is not None and read.drift.has_drift:
        for name, (before, after) in read.drift.changes.items():
            warning(f"{name} changed outside of the provider: {before!r} -> {after!r}")
        return ExitCode.WARNING
    return ExitCode.SUCCESS


def register_state_parsers(subparsers: argparse._SubParsersAction) -> None:
    import_parser = subparsers.add_parser("import", help="Bring an existing FusionAuth object under management")
    import_parser.add_argument("address", help="Resource address, e.g. fusionauth_key.access_token")
    import_parser.add_argument("resource_id", help="FusionAuth identifier of the object")
    add_common_arguments(import_parser)

    show_parser = subparsers.add_parser("show", help="Refresh and display a tracked resource")
    show_parser.add_argument("address", help="Resource address")
    add_common_arguments(show_parser)


def handle_import_command(args: argparse.Namespace) -> int:
    return import_command(
        address=args.address,
        resource_id=args.resource_id,
        state_path=getattr(args, "state_path", None),
    )


def handle_show_command(args: argparse.Namespace) -> int:
    return show_command(address=args.address, state_path=getattr(args, "state_path", None))
