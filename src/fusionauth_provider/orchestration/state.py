from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

from fusionauth_provider.core.errors import ConfigurationError

DEFAULT_STATE_PATH = Path("fusionauth.state.json")
STATE_VERSION = 1


@dataclass
class TrackedResource:
    type: str
    resource_id: str
    attributes: Dict[str, Any] = field(default_factory=dict)


@dataclass
class StateFile:
    """Last-applied state of every managed instance, keyed by address."""

    resources: Dict[str, TrackedResource] = field(default_factory=dict)

    def set(self, address: str, tracked: TrackedResource) -> None:
        self.resources[address] = tracked

    def get(self, address: str) -> TrackedResource | None:
        return self.resources.get(address)

    def remove(self, address: str) -> None:
        self.resources.pop(address, None)

    def addresses(self) -> list[str]:
        return sorted(self.resources)


def load_state(path: Path | None = None) -> StateFile:
    state_path = path or DEFAULT_STATE_PATH
    if not state_path.exists():
        return StateFile()
    try:
        data = json.loads(state_path.read_text())
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"State file {state_path} is not valid JSON", {"path": str(state_path)}) from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"State file {state_path} must be a mapping", {"path": str(state_path)})
    entries = data.get("resources", {})
    if not isinstance(entries, dict):
        raise ConfigurationError(f"'resources' in {state_path} must be a mapping", {"path": str(state_path)})
    resources = {
        address: _parse_entry(address, entry, state_path) for address, entry in entries.items()
    }
    return StateFile(resources=resources)


def _parse_entry(address: str, entry: Any, state_path: Path) -> TrackedResource:
    details = {"path": str(state_path), "address": address}
    if not isinstance(entry, dict):
        raise ConfigurationError(f"State entry {address} in {state_path} must be a mapping", details)
    for required in ("type", "id"):
        if not isinstance(entry.get(required), str) or not entry[required]:
            raise ConfigurationError(
                f"State entry {address} in {state_path} is missing '{required}'", details
            )
    attributes = entry.get("attributes", {})
    if not isinstance(attributes, dict):
        raise ConfigurationError(
            f"State entry {address} in {state_path} has non-mapping 'attributes'", details
        )
    return TrackedResource(type=entry["type"], resource_id=entry["id"], attributes=dict(attributes))


def save_state(state: StateFile, path: Path | None = None) -> None:
    state_path = path or DEFAULT_STATE_PATH
    payload = {
        "version": STATE_VERSION,
        "resources": {
            address: {
                "type": tracked.type,
                "id": tracked.resource_id,
                "attributes": tracked.attributes,
            }
            for address, tracked in state.resources.items()
        },
    }
    state_path.write_text(json.dumps(payload, indent=2, sort_keys=True) + "\n")
