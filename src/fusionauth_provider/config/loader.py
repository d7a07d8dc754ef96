"""
Declared resource file loading.

A resource file lists the instances the provider should manage:

    resources:
      - type: fusionauth_key
        name: access_token
        attributes:
          name: Access token signing key
          algorithm: RS256
          length: 2048
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

from fusionauth_provider.core.errors import ConfigurationError

logger = structlog.get_logger()


@dataclass(frozen=True)
class ResourceBlock:
    """One declared resource instance."""

    type: str
    name: str
    attributes: dict[str, Any] = field(default_factory=dict)

    @property
    def address(self) -> str:
        return f"{self.type}.{self.name}"


def load_resource_file(path: str | Path) -> list[ResourceBlock]:
    """
    Load declared resources from a YAML file.

    Raises:
        ConfigurationError: If the file is missing, unparsable, or a block is
            malformed or declared twice.
    """
    file_path = Path(path)
    if not file_path.exists():
        raise ConfigurationError(f"Resource file not found: {file_path}", {"path": str(file_path)})

    try:
        data = yaml.safe_load(file_path.read_text()) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {file_path}: {exc}", {"path": str(file_path)}) from exc

    if not isinstance(data, dict):
        raise ConfigurationError("Resource file must be a mapping", {"path": str(file_path)})

    raw_blocks = data.get("resources") or []
    if not isinstance(raw_blocks, list):
        raise ConfigurationError("'resources' must be a list", {"path": str(file_path)})

    blocks: list[ResourceBlock] = []
    seen: set[str] = set()
    for index, raw in enumerate(raw_blocks):
        block = _parse_block(raw, index)
        if block.address in seen:
            raise ConfigurationError(
                f"Duplicate resource address: {block.address}",
                {"path": str(file_path), "address": block.address},
            )
        seen.add(block.address)
        blocks.append(block)

    logger.debug("resource_file_loaded", path=str(file_path), count=len(blocks))
    return blocks


def _parse_block(raw: Any, index: int) -> ResourceBlock:
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Resource #{index} must be a mapping", {"index": index})
    for required in ("type", "name"):
        if not raw.get(required):
            raise ConfigurationError(
                f"Resource #{index} is missing '{required}'", {"index": index}
            )
    attributes = raw.get("attributes") or {}
    if not isinstance(attributes, dict):
        raise ConfigurationError(
            f"Resource #{index} attributes must be a mapping", {"index": index}
        )
    return ResourceBlock(type=str(raw["type"]), name=str(raw["name"]), attributes=dict(attributes))
