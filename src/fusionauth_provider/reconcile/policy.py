"""Decide whether a declared change is an in-place update or a replacement.

Each resource type describes its attributes with ``AttributeRule`` entries;
``DiffPolicy.plan`` folds the per-attribute verdicts into a single action.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, Mapping


class ChangeMode(Enum):
    IGNORE = "ignore"
    UPDATE = "update"
    REPLACE = "replace"


class PlanAction(Enum):
    NOOP = "noop"
    UPDATE = "update"
    REPLACE = "replace"


# Resolvers see both full attribute maps and return the mode for one attribute.
ModeResolver = Callable[[Mapping[str, Any], Mapping[str, Any]], ChangeMode]


@dataclass(frozen=True)
class AttributeRule:
    name: str
    mode: ChangeMode = ChangeMode.UPDATE
    resolver: ModeResolver | None = None
    computed: bool = False

    def resolve(self, old: Mapping[str, Any], new: Mapping[str, Any]) -> ChangeMode:
        if self.resolver is not None:
            return self.resolver(old, new)
        return self.mode


@dataclass(frozen=True)
class Plan:
    action: PlanAction
    changed_fields: tuple[str, ...] = ()
    replace_fields: tuple[str, ...] = ()

    @property
    def has_changes(self) -> bool:
        return self.action is not PlanAction.NOOP


@dataclass(frozen=True)
class DiffPolicy:
    rules: tuple[AttributeRule, ...] = field(default_factory=tuple)

    @classmethod
    def from_rules(cls, rules: Iterable[AttributeRule]) -> "DiffPolicy":
        return cls(rules=tuple(rules))

    def merge_computed(self, old: Mapping[str, Any], new: Mapping[str, Any]) -> dict[str, Any]:
        """Carry computed values forward where the declaration leaves them unset."""
        merged = dict(new)
        for rule in self.rules:
            if rule.computed and merged.get(rule.name) is None and old.get(rule.name) is not None:
                merged[rule.name] = old[rule.name]
        return merged

    def plan(self, old: Mapping[str, Any], new: Mapping[str, Any]) -> Plan:
        changed: list[str] = []
        replace: list[str] = []
        for rule in self.rules:
            if old.get(rule.name) == new.get(rule.name):
                continue
            mode = rule.resolve(old, new)
            if mode is ChangeMode.IGNORE:
                continue
            changed.append(rule.name)
            if mode is ChangeMode.REPLACE:
                replace.append(rule.name)

        if replace:
            action = PlanAction.REPLACE
        elif changed:
            action = PlanAction.UPDATE
        else:
            action = PlanAction.NOOP
        return Plan(action=action, changed_fields=tuple(changed), replace_fields=tuple(replace))
