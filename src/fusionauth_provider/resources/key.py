"""FusionAuth signing keys (``fusionauth_key``)."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping

import structlog

from fusionauth_provider.core.errors import ValidationError
from fusionauth_provider.reconcile.policy import (
    AttributeRule,
    ChangeMode,
    DiffPolicy,
)
from fusionauth_provider.resources.base import ProviderResourceSchema, ResourceType
from fusionauth_provider.resources.registry import register_resource_type

if TYPE_CHECKING:
    from fusionauth_provider.clients.base import RemoteResourceClient
    from fusionauth_provider.clients.fusionauth import FusionAuthClient

logger = structlog.get_logger()


class Algorithm(str, Enum):
    ES256 = "ES256"
    ES384 = "ES384"
    ES512 = "ES512"
    HS256 = "HS256"
    HS384 = "HS384"
    HS512 = "HS512"
    RS256 = "RS256"
    RS384 = "RS384"
    RS512 = "RS512"


class KeyFamily(str, Enum):
    EC = "EC"
    HMAC = "HMAC"
    RSA = "RSA"


@dataclass(frozen=True)
class AlgorithmSpec:
    family: KeyFamily
    takes_length: bool = False
    lengths: tuple[int, ...] = ()
    # Whether FusionAuth accepts a length change on an existing key.
    length_updatable: bool = False


RSA_LENGTHS = (2048, 3072, 4096)

# FusionAuth's key update only accepts a new name, so no algorithm allows an
# in-place length change by default.
DEFAULT_ALGORITHMS: dict[Algorithm, AlgorithmSpec] = {
    Algorithm.ES256: AlgorithmSpec(KeyFamily.EC),
    Algorithm.ES384: AlgorithmSpec(KeyFamily.EC),
    Algorithm.ES512: AlgorithmSpec(KeyFamily.EC),
    Algorithm.HS256: AlgorithmSpec(KeyFamily.HMAC),
    Algorithm.HS384: AlgorithmSpec(KeyFamily.HMAC),
    Algorithm.HS512: AlgorithmSpec(KeyFamily.HMAC),
    Algorithm.RS256: AlgorithmSpec(KeyFamily.RSA, takes_length=True, lengths=RSA_LENGTHS),
    Algorithm.RS384: AlgorithmSpec(KeyFamily.RSA, takes_length=True, lengths=RSA_LENGTHS),
    Algorithm.RS512: AlgorithmSpec(KeyFamily.RSA, takes_length=True, lengths=RSA_LENGTHS),
}

ATTRIBUTES = ("key_id", "name", "algorithm", "length")

COMPUTED_FIELDS = {
    "kid": "kid",
    "type": "type",
    "publicKey": "public_key",
    "certificate": "certificate",
    "issuer": "issuer",
    "insertInstant": "insert_instant",
}


def normalize_key_id(value: Any) -> str:
    """Return the canonical UUID form of a caller-supplied key id."""
    if not isinstance(value, str):
        raise ValidationError("key_id must be a string", {"attribute": "key_id", "value": value})
    try:
        return str(uuid.UUID(value))
    except ValueError as exc:
        raise ValidationError(
            f"key_id must be a valid UUID, got {value!r}",
            {"attribute": "key_id", "value": value},
        ) from exc


class SigningKeyType(ResourceType):
    """Signing keys: identity is client-supplied or generated by FusionAuth."""

    name = "fusionauth_key"
    description = "FusionAuth signing key used for JWT signing"
    api_fields = {"name": "name", "algorithm": "algorithm", "length": "length"}
    id_attribute = "key_id"

    def __init__(self, algorithms: Mapping[Algorithm, AlgorithmSpec] | None = None) -> None:
        self.algorithms: dict[Algorithm, AlgorithmSpec] = dict(algorithms or DEFAULT_ALGORITHMS)
        self.policy = DiffPolicy.from_rules(
            [
                AttributeRule("key_id", ChangeMode.REPLACE, computed=True),
                AttributeRule("algorithm", ChangeMode.REPLACE),
                AttributeRule("length", resolver=self._length_mode),
                AttributeRule("name", ChangeMode.UPDATE),
            ]
        )

    def schema(self) -> ProviderResourceSchema:
        return ProviderResourceSchema(
            name=self.name,
            description=self.description,
            attributes={
                "key_id": "Optional UUID; generated by FusionAuth when omitted. Changing it replaces the key",
                "name": "Display name of the key",
                "algorithm": "Signing algorithm: " + ", ".join(a.value for a in self.algorithms),
                "length": "Key size in bits; required for algorithms that take one",
            },
        )

    def spec_for(self, algorithm: Any) -> AlgorithmSpec | None:
        try:
            return self.algorithms.get(Algorithm(algorithm))
        except ValueError:
            return None

    def _length_mode(self, old: Mapping[str, Any], new: Mapping[str, Any]) -> ChangeMode:
        if old.get("algorithm") != new.get("algorithm"):
            return ChangeMode.REPLACE
        spec = self.spec_for(new.get("algorithm"))
        if spec is None or not spec.takes_length:
            return ChangeMode.IGNORE
        return ChangeMode.UPDATE if spec.length_updatable else ChangeMode.REPLACE

    def validate(self, declared: Mapping[str, Any]) -> dict[str, Any]:
        unknown = sorted(set(declared) - set(ATTRIBUTES))
        if unknown:
            raise ValidationError(
                f"Unknown attributes for {self.name}: {', '.join(unknown)}",
                {"attributes": unknown},
            )

        name = declared.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("name is required", {"attribute": "name"})

        algorithm_value = declared.get("algorithm")
        spec = self.spec_for(algorithm_value)
        if spec is None:
            allowed = ", ".join(a.value for a in self.algorithms)
            raise ValidationError(
                f"algorithm must be one of {allowed}, got {algorithm_value!r}",
                {"attribute": "algorithm", "value": algorithm_value},
            )
        algorithm = Algorithm(algorithm_value).value

        length = declared.get("length")
        if spec.takes_length:
            if length is None:
                raise ValidationError(
                    f"length is required for {algorithm}",
                    {"attribute": "length", "algorithm": algorithm},
                )
            if isinstance(length, bool) or not isinstance(length, int):
                raise ValidationError("length must be an integer", {"attribute": "length", "value": length})
            if spec.lengths and length not in spec.lengths:
                raise ValidationError(
                    f"length {length} is not valid for {algorithm}; expected one of {list(spec.lengths)}",
                    {"attribute": "length", "value": length, "algorithm": algorithm},
                )
        else:
            if length is not None:
                logger.debug("key_length_ignored", algorithm=algorithm, length=length)
            length = None

        key_id = declared.get("key_id")
        if key_id is not None:
            key_id = normalize_key_id(key_id)

        return {"key_id": key_id, "name": name, "algorithm": algorithm, "length": length}

    def normalize_identifier(self, value: str) -> str:
        return normalize_key_id(value)

    def attributes_from_payload(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        algorithm = payload.get("algorithm")
        spec = self.spec_for(algorithm)
        length = payload.get("length") if spec is not None and spec.takes_length else None
        return {
            "key_id": self.identifier_from_payload(payload),
            "name": payload.get("name"),
            "algorithm": algorithm,
            "length": length,
        }

    def computed_from_payload(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        return {
            attr: payload[api_name]
            for api_name, attr in COMPUTED_FIELDS.items()
            if payload.get(api_name) is not None
        }

    def endpoint(self, client: "FusionAuthClient") -> "RemoteResourceClient":
        return client.keys()


register_resource_type(
    SigningKeyType.name,
    SigningKeyType,
    description=SigningKeyType.description,
)
