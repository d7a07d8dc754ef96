"""Orchestration package: plan/apply over declared resources with tracked state."""

from fusionauth_provider.orchestration.engine import Reconciler
from fusionauth_provider.orchestration.results import ApplyResult, PlanResult, ResourceChange
from fusionauth_provider.orchestration.state import (
    DEFAULT_STATE_PATH,
    StateFile,
    TrackedResource,
    load_state,
    save_state,
)

__all__ = [
    "DEFAULT_STATE_PATH",
    "ApplyResult",
    "PlanResult",
    "Reconciler",
    "ResourceChange",
    "StateFile",
    "TrackedResource",
    "load_state",
    "save_state",
]
