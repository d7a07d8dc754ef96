from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Protocol

from fusionauth_provider.resources.base import ProviderResourceSchema


@dataclass(frozen=True)
class ProviderHealth:
    status: Literal["healthy", "degraded", "unreachable"]
    details: str | None = None


class Provider(Protocol):
    """Minimal provider interface exposed to the host orchestrator."""

    name: str

    async def health_check(self) -> ProviderHealth:
        ...

    async def resources(self) -> list[ProviderResourceSchema]:
        ...
