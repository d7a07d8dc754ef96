"""Base contract for resource types managed by the provider."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar, Mapping

from fusionauth_provider.reconcile.policy import DiffPolicy

if TYPE_CHECKING:
    from fusionauth_provider.clients.base import RemoteResourceClient
    from fusionauth_provider.clients.fusionauth import FusionAuthClient


@dataclass(frozen=True)
class ProviderResourceSchema:
    """Schema metadata describing a provider-managed resource."""

    name: str
    description: str
    attributes: dict[str, str]


class ResourceType(ABC):
    """Knows how one FusionAuth object type maps to declared attributes.

    Subclasses supply validation, payload translation and the diff policy;
    the lifecycle manager supplies everything else.
    """

    name: ClassVar[str]
    description: ClassVar[str] = ""
    # Declared attribute name -> FusionAuth JSON field name.
    api_fields: ClassVar[Mapping[str, str]] = {}
    # Declared attribute holding the resource identifier.
    id_attribute: ClassVar[str] = "id"

    policy: DiffPolicy

    @abstractmethod
    def schema(self) -> ProviderResourceSchema:
        ...

    @abstractmethod
    def validate(self, declared: Mapping[str, Any]) -> dict[str, Any]:
        """Return normalised attributes or raise ``ValidationError``."""

    @abstractmethod
    def attributes_from_payload(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        ...

    @abstractmethod
    def endpoint(self, client: "FusionAuthClient") -> "RemoteResourceClient":
        ...

    def computed_from_payload(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        return {}

    def normalize_identifier(self, value: str) -> str:
        """Canonical form of a caller-supplied identifier (import, read)."""
        return value

    def identifier_from_payload(self, payload: Mapping[str, Any]) -> str | None:
        value = payload.get("id")
        return str(value) if value else None

    def create_payload(self, attributes: Mapping[str, Any]) -> dict[str, Any]:
        return {
            api_name: attributes[attr]
            for attr, api_name in self.api_fields.items()
            if attributes.get(attr) is not None
        }

    def update_payload(self, attributes: Mapping[str, Any], fields: tuple[str, ...]) -> dict[str, Any]:
        return {
            self.api_fields[attr]: attributes.get(attr)
            for attr in fields
            if attr in self.api_fields
        }
