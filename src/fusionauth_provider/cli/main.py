from __future__ import annotations

import argparse
import sys
from typing import Callable, Sequence

from fusionauth_provider import __version__
from fusionauth_provider.cli.apply import (
    handle_apply_command,
    handle_destroy_command,
    register_apply_parsers,
)
from fusionauth_provider.cli.plan import handle_plan_command, register_plan_parser
from fusionauth_provider.cli.provider import (
    handle_health_command,
    handle_resources_command,
    register_provider_parsers,
)
from fusionauth_provider.cli.state import (
    handle_import_command,
    handle_show_command,
    register_state_parsers,
)
from fusionauth_provider.config.settings import get_settings
from fusionauth_provider.logging import configure_logging

HANDLERS: dict[str, Callable[[argparse.Namespace], int]] = {
    "apply": handle_apply_command,
    "destroy": handle_destroy_command,
    "health": handle_health_command,
    "import": handle_import_command,
    "plan": handle_plan_command,
    "resources": handle_resources_command,
    "show": handle_show_command,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fusionauth-provider",
        description="Manage FusionAuth signing keys declaratively",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", help="Log level (or set FUSIONAUTH_LOG_LEVEL)")
    parser.add_argument(
        "--log-format",
        choices=["json", "console"],
        help="Log renderer (or set FUSIONAUTH_LOG_JSON)",
    )
    subparsers = parser.add_subparsers(dest="command")

    register_provider_parsers(subparsers)
    register_plan_parser(subparsers)
    register_apply_parsers(subparsers)
    register_state_parsers(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    json_output = settings.log_json if args.log_format is None else args.log_format == "json"
    configure_logging((args.log_level or settings.log_level).upper(), json_output=json_output)

    handler = HANDLERS.get(args.command or "")
    if handler is None:
        parser.print_help()
        return 1
    return handler(args)


if __name__ == "__main__":  # pragma: no cover - exercised via module entrypoint
    sys.exit(main())
