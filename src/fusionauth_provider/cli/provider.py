"""
CLI commands describing the provider itself.

Commands:
    fusionauth-provider resources   - List manageable resource types and attributes
    fusionauth-provider health      - Check that FusionAuth is reachable
"""

from __future__ import annotations

import argparse
import asyncio

from fusionauth_provider.cli.ux import error, print_table, success, warning
from fusionauth_provider.core.errors import ExitCode, main_with_error_handling
from fusionauth_provider.providers import FusionAuthProvider


@main_with_error_handling()
def resources_command() -> int:
    provider = FusionAuthProvider.from_settings()
    for schema in asyncio.run(provider.resources()):
        rows = [[name, description] for name, description in schema.attributes.items()]
        print_table(f"{schema.name}: {schema.description}", ["Attribute", "Description"], rows)
    return ExitCode.SUCCESS


@main_with_error_handling()
def health_command() -> int:
    provider = FusionAuthProvider.from_settings()
    health = asyncio.run(provider.health_check())
    if health.status == "healthy":
        success(f"FusionAuth at {provider.client.base_url} is healthy")
        return ExitCode.SUCCESS
    if health.status == "degraded":
        warning(f"FusionAuth is degraded: {health.details}")
        return ExitCode.WARNING
    error(f"FusionAuth is unreachable: {health.details}")
    return ExitCode.REMOTE_ERROR


def register_provider_parsers(subparsers: argparse._SubParsersAction) -> None:
    subparsers.add_parser("resources", help="List manageable resource types")
    subparsers.add_parser("health", help="Check FusionAuth connectivity")


def handle_resources_command(args: argparse.Namespace) -> int:  # noqa: ARG001
    return resources_command()


def handle_health_command(args: argparse.Namespace) -> int:  # noqa: ARG001
    return health_command()
