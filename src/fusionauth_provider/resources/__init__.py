"""Resource types and their registry."""

# Import built-in resource types for side effects (registration)
from fusionauth_provider.resources import key as _key  # noqa: F401
from fusionauth_provider.resources.base import ProviderResourceSchema, ResourceType
from fusionauth_provider.resources.registry import (
    get_resource_type,
    list_resource_types,
    register_resource_type,
)

__all__ = [
    "ProviderResourceSchema",
    "ResourceType",
    "get_resource_type",
    "list_resource_types",
    "register_resource_type",
]
