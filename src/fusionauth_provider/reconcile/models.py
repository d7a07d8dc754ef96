"""State carried by a lifecycle manager between operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from fusionauth_provider.reconcile.policy import Plan


class LifecycleState(Enum):
    PLANNED = "planned"
    CREATING = "creating"
    CREATED = "created"
    READING = "reading"
    UPDATING = "updating"
    DELETING = "deleting"
    DELETED = "deleted"


@dataclass(frozen=True)
class ManagedResource:
    """A remote object as last observed, reduced to declared attributes."""

    resource_id: str
    attributes: dict[str, Any]
    # Read-only values reported by FusionAuth (kid, public key, ...).
    computed: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DriftReport:
    """Difference between the last known state and what a read observed."""

    resource_id: str
    removed: bool = False
    changes: dict[str, tuple[Any, Any]] = field(default_factory=dict)

    @property
    def has_drift(self) -> bool:
        return self.removed or bool(self.changes)


@dataclass(frozen=True)
class ReadResult:
    resource: ManagedResource | None
    drift: DriftReport | None = None

    @property
    def exists(self) -> bool:
        return self.resource is not None


@dataclass(frozen=True)
class UpdateOutcome:
    """Result of an update call.

    ``drift`` is what the pre-update read found against the last known state.
    """

    plan: Plan
    resource: ManagedResource
    drift: DriftReport | None = None
