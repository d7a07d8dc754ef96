"""Provider implementations exposed to the host orchestrator."""

from fusionauth_provider.providers.base import Provider, ProviderHealth
from fusionauth_provider.providers.fusionauth import FusionAuthProvider

__all__ = [
    "FusionAuthProvider",
    "Provider",
    "ProviderHealth",
]
