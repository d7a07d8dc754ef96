"""Result types for plan/apply runs."""

from dataclasses import dataclass, field
from typing import List, Tuple

from fusionauth_provider.core.errors import ProviderError, format_error_message


@dataclass(frozen=True)
class ResourceChange:
    """One instance-level change, planned or applied."""

    address: str
    action: str  # create, update, replace, delete, noop, import
    resource_id: str | None = None
    fields: Tuple[str, ...] = ()


@dataclass
class PlanResult:
    """Result of planning (dry-run) a set of declared resources."""

    changes: List[ResourceChange] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    drift: List[str] = field(default_factory=list)

    @property
    def pending(self) -> List[ResourceChange]:
        return [c for c in self.changes if c.action != "noop"]

    @property
    def has_changes(self) -> bool:
        return bool(self.pending)

    @property
    def success(self) -> bool:
        """Whether plan succeeded without errors."""
        return len(self.errors) == 0


@dataclass
class ApplyResult:
    """Result of applying declared resources."""

    changes: List[ResourceChange] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    drift: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    def record(self, change: ResourceChange) -> None:
        self.changes.append(change)

    def record_error(self, address: str, error: Exception) -> None:
        message = format_error_message(error) if isinstance(error, ProviderError) else str(error)
        self.errors.append(f"{address}: {message}")

    @property
    def success(self) -> bool:
        """Whether apply succeeded without errors."""
        return len(self.errors) == 0
