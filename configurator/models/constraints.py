"""Per-field constraints produced by matching rules."""

from __future__ import annotations
from enum import Enum
from typing import Any, Iterable

from pydantic import BaseModel

from .identifiers import canonical_ids


class ConstraintKind(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


class Constraint(BaseModel):
    """Either an allow-set (only these remain) or a deny-set (these are removed)."""
    kind: ConstraintKind
    ids: frozenset[str] = frozenset()

    @classmethod
    def allow(cls, ids: Iterable[Any]) -> Constraint:
        return cls(kind=ConstraintKind.ALLOW, ids=frozenset(canonical_ids(list(ids))))

    @classmethod
    def deny(cls, ids: Iterable[Any]) -> Constraint:
        return cls(kind=ConstraintKind.DENY, ids=frozenset(canonical_ids(list(ids))))

    @property
    def is_allow(self) -> bool:
        return self.kind == ConstraintKind.ALLOW

    def permits(self, value: str) -> bool:
        if self.is_allow:
            return value in self.ids
        return value not in self.ids

    def narrow(self, other: Constraint) -> Constraint:
        """Combine two constraints that must both hold (rules, ``_and``)."""
        if self.is_allow and other.is_allow:
            return Constraint(kind=ConstraintKind.ALLOW, ids=self.ids & other.ids)
        if not self.is_allow and not other.is_allow:
            return Constraint(kind=ConstraintKind.DENY, ids=self.ids | other.ids)
        allow, deny = (self, other) if self.is_allow else (other, self)
        return Constraint(kind=ConstraintKind.ALLOW, ids=allow.ids - deny.ids)

    def widen(self, other: Constraint) -> Constraint:
        """Combine two alternatives of which either is acceptable (``_or``)."""
        if self.is_allow and other.is_allow:
            return Constraint(kind=ConstraintKind.ALLOW, ids=self.ids | other.ids)
        if not self.is_allow and not other.is_allow:
            return Constraint(kind=ConstraintKind.DENY, ids=self.ids & other.ids)
        allow, deny = (self, other) if self.is_allow else (other, self)
        return Constraint(kind=ConstraintKind.DENY, ids=deny.ids - allow.ids)

    def describe(self) -> str:
        return f"{self.kind.value}({', '.join(sorted(self.ids))})"


ConstraintMap = dict[str, Constraint]


def merge_constraint_maps(base: ConstraintMap, add: ConstraintMap) -> ConstraintMap:
    """Narrow ``base`` with every field of ``add``; returns a new map."""
    out = dict(base)
    for field, constraint in add.items():
        current = out.get(field)
        out[field] = constraint if current is None else current.narrow(constraint)
    return out
