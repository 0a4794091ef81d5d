"""Field ownership tables and the generic state merge.

An ownership table declares, per object kind, which field paths the operator
owns and which belong to someone else (the platform, users, an upgrade
process). ``merge`` uses the table to combine an observed object with a freshly
computed desired one:

- operator-owned fields are overwritten with the desired value (or removed if
  the desired object leaves them out)
- externally-owned fields are carried over from the observed object untouched

Paths are dotted keys into nested mappings, e.g. ``spec.template.spec.volumes``.
The most specific rule wins, so an external path nested under an operator path
(or the other way round) is honoured.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping

_MISSING = object()


class Ownership(str, Enum):
    """Who is allowed to set a field."""

    OPERATOR = "operator"
    EXTERNAL = "external"


# Identity, revision and status metadata assigned by the platform.
IDENTITY_PATHS: tuple[str, ...] = (
    "apiVersion",
    "kind",
    "metadata.name",
    "metadata.namespace",
    "metadata.uid",
    "metadata.resourceVersion",
    "metadata.generation",
    "metadata.creationTimestamp",
    "metadata.ownerReferences",
    "metadata.managedFields",
    "status",
)


@dataclass(frozen=True)
class FieldRule:
    """Ownership of a single field path."""

    path: str
    ownership: Ownership

    @property
    def parts(self) -> tuple[str, ...]:
        return tuple(self.path.split("."))


@dataclass(frozen=True)
class OwnershipTable:
    """Declarative field ownership for one object kind."""

    kind: str
    rules: tuple[FieldRule, ...] = field(default_factory=tuple)
    default: Ownership = Ownership.EXTERNAL

    @classmethod
    def build(
        cls,
        kind: str,
        operator: Iterable[str] = (),
        external: Iterable[str] = (),
        default: Ownership = Ownership.EXTERNAL,
    ) -> "OwnershipTable":
        """Build a table; identity paths are always external."""
        rules = [FieldRule(p, Ownership.EXTERNAL) for p in IDENTITY_PATHS]
        rules += [FieldRule(p, Ownership.EXTERNAL) for p in external]

        external_paths = {r.path for r in rules}
        for path in operator:
            if path in external_paths:
                raise ValueError(f"{kind}: path {path!r} declared both operator- and externally-owned")
            rules.append(FieldRule(path, Ownership.OPERATOR))

        return cls(kind=kind, rules=tuple(rules), default=default)

    def paths(self, ownership: Ownership) -> list[str]:
        """Paths explicitly tagged with ``ownership``, shallowest first."""
        return [
            r.path
            for r in sorted(self.rules, key=lambda r: len(r.parts))
            if r.ownership is ownership
        ]

    def ownership_of(self, path: str) -> Ownership:
        """Resolve the ownership of ``path`` via its most specific rule."""
        parts = tuple(path.split("."))
        best: FieldRule | None = None
        for rule in self.rules:
            rp = rule.parts
            if parts[: len(rp)] == rp and (best is None or len(rp) > len(best.parts)):
                best = rule
        return best.ownership if best else self.default


def get_path(obj: Mapping[str, Any], path: str) -> Any:
    """Return the value at ``path`` or ``_MISSING``."""
    current: Any = obj
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return _MISSING
        current = current[part]
    return current


def set_path(obj: dict[str, Any], path: str, value: Any) -> None:
    """Set ``path``, creating intermediate mappings; ``_MISSING`` deletes it."""
    parts = path.split(".")
    current = obj
    for part in parts[:-1]:
        nxt = current.get(part)
        if not isinstance(nxt, dict):
            if value is _MISSING:
                return
            nxt = {}
            current[part] = nxt
        current = nxt

    if value is _MISSING:
        current.pop(parts[-1], None)
    else:
        current[parts[-1]] = copy.deepcopy(value)


def merge(
    observed: Mapping[str, Any],
    desired: Mapping[str, Any],
    table: OwnershipTable,
) -> dict[str, Any]:
    """Merge ``desired`` into ``observed`` according to ``table``.

    Pure and deterministic: neither input is mutated and the same inputs always
    produce the same output.
    """
    if table.default is Ownership.EXTERNAL:
        reconciled = copy.deepcopy(dict(observed))
        for path in table.paths(Ownership.OPERATOR):
            set_path(reconciled, path, get_path(desired, path))
        # restore external fields nested inside operator-owned subtrees
        for path in table.paths(Ownership.EXTERNAL):
            if _has_operator_ancestor(table, path):
                set_path(reconciled, path, get_path(observed, path))
    else:
        reconciled = copy.deepcopy(dict(desired))
        for path in table.paths(Ownership.EXTERNAL):
            set_path(reconciled, path, get_path(observed, path))
        for path in table.paths(Ownership.OPERATOR):
            if _has_external_ancestor(table, path):
                set_path(reconciled, path, get_path(desired, path))

    return reconciled


def _has_operator_ancestor(table: OwnershipTable, path: str) -> bool:
    parent = path.rsplit(".", 1)[0] if "." in path else None
    return parent is not None and table.ownership_of(parent) is Ownership.OPERATOR


def _has_external_ancestor(table: OwnershipTable, path: str) -> bool:
    parent = path.rsplit(".", 1)[0] if "." in path else None
    return parent is not None and table.ownership_of(parent) is Ownership.EXTERNAL
