from fusionauth_provider.clients.base import BaseHTTPClient, RemoteResourceClient
from fusionauth_provider.clients.fusionauth import FusionAuthClient, ResourceEndpoint
from fusionauth_provider.clients.results import (
    NOT_FOUND_CODE,
    ApiError,
    ErrorDetail,
    OperationResult,
    Success,
    TransportError,
)

__all__ = [
    "NOT_FOUND_CODE",
    "ApiError",
    "BaseHTTPClient",
    "ErrorDetail",
    "FusionAuthClient",
    "OperationResult",
    "RemoteResourceClient",
    "ResourceEndpoint",
    "Success",
    "TransportError",
]
