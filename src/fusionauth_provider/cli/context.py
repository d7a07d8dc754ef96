"""Shared construction of provider, state and reconciler for CLI commands."""

from __future__ import annotations

import argparse
from pathlib import Path

from fusionauth_provider.config.settings import Settings, get_settings
from fusionauth_provider.orchestration import Reconciler, StateFile, load_state
from fusionauth_provider.providers import FusionAuthProvider


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--state",
        dest="state_path",
        help="Path to the state file (or set FUSIONAUTH_STATE_PATH)",
    )


def resolve_state_path(value: str | None, settings: Settings | None = None) -> Path:
    settings = settings or get_settings()
    return Path(value or settings.state_path).expanduser()


def build_reconciler(state_path: Path, settings: Settings | None = None) -> tuple[Reconciler, StateFile]:
    settings = settings or get_settings()
    provider = FusionAuthProvider.from_settings(settings)
    state = load_state(state_path)
    return Reconciler(provider, state, concurrency=settings.concurrency), state
