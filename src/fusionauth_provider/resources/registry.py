from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List

from fusionauth_provider.resources.base import ResourceType

ResourceTypeFactory = Callable[[], ResourceType]


@dataclass(frozen=True)
class ResourceTypeSpec:
    """Metadata describing a registered resource type."""

    name: str
    factory: ResourceTypeFactory
    description: str | None = None


class ResourceTypeRegistry:
    """Simple in-memory registry of manageable resource types."""

    def __init__(self) -> None:
        self._types: Dict[str, ResourceTypeSpec] = {}

    def register(
        self,
        name: str,
        factory: ResourceTypeFactory,
        *,
        description: str | None = None,
    ) -> None:
        if not name:
            raise ValueError("Resource type name is required")
        self._types[name] = ResourceTypeSpec(name=name, factory=factory, description=description)

    def create(self, name: str) -> ResourceType:
        spec = self._types.get(name)
        if spec is None:
            raise KeyError(f"Resource type '{name}' is not registered")
        return spec.factory()

    def list(self) -> List[ResourceTypeSpec]:
        return list(self._types.values())


resource_type_registry = ResourceTypeRegistry()


def register_resource_type(
    name: str,
    factory: ResourceTypeFactory,
    *,
    description: str | None = None,
) -> None:
    resource_type_registry.register(name, factory, description=description)


def get_resource_type(name: str) -> ResourceType:
    return resource_type_registry.create(name)


def list_resource_types() -> List[ResourceTypeSpec]:
    return resource_type_registry.list()
