"""Reconciliation core: classification, convergence polling, diff policy, lifecycle."""

from fusionauth_provider.reconcile.classifier import (
    ClassifyContext,
    FatalFailure,
    Proceed,
    RetryableFailure,
    RetryDecision,
    classify,
)
from fusionauth_provider.reconcile.lifecycle import ResourceManager
from fusionauth_provider.reconcile.models import (
    DriftReport,
    LifecycleState,
    ManagedResource,
    ReadResult,
    UpdateOutcome,
)
from fusionauth_provider.reconcile.policy import (
    AttributeRule,
    ChangeMode,
    DiffPolicy,
    Plan,
    PlanAction,
)
from fusionauth_provider.reconcile.poller import RetrySettings, poll_until

__all__ = [
    "AttributeRule",
    "ChangeMode",
    "ClassifyContext",
    "DiffPolicy",
    "DriftReport",
    "FatalFailure",
    "LifecycleState",
    "ManagedResource",
    "Plan",
    "PlanAction",
    "Proceed",
    "ReadResult",
    "ResourceManager",
    "RetryDecision",
    "RetrySettings",
    "RetryableFailure",
    "UpdateOutcome",
    "classify",
    "poll_until",
]
