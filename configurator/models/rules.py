"""Rule models — predicate trees parsed once from the wire format.

Rule records arrive as Directus-style filter objects::

    {"name": "...", "priority": 10,
     "if_this":   {"product_line": {"_eq": 1}},
     "then_that": {"light_direction": {"_neq": 2}}}

Both trees are parsed into the tagged union ``FieldTest | And | Or | Malformed``
at the data boundary. Nothing downstream inspects raw dicts.
"""

from __future__ import annotations
import math
from enum import Enum
from typing import Annotated, Any, Iterator, Literal, Mapping, Union

from pydantic import BaseModel, Field


class Operator(str, Enum):
    EQ = "_eq"
    NEQ = "_neq"
    IN = "_in"
    NIN = "_nin"
    GT = "_gt"
    GTE = "_gte"
    LT = "_lt"
    LTE = "_lte"
    CONTAINS = "_contains"
    NCONTAINS = "_ncontains"
    EMPTY = "_empty"
    NEMPTY = "_nempty"


# Operators that may appear in a rule's then_that tree.
ALLOW_OPERATORS = frozenset({Operator.EQ, Operator.IN})
DENY_OPERATORS = frozenset({Operator.NEQ, Operator.NIN})
LIST_OPERATORS = frozenset({Operator.IN, Operator.NIN})


class FieldTest(BaseModel):
    """Leaf: one operator applied to one (possibly dotted) field."""
    kind: Literal["field"] = "field"
    field: str
    op: Operator
    value: Any = None


class And(BaseModel):
    kind: Literal["and"] = "and"
    children: list[Predicate] = []


class Or(BaseModel):
    kind: Literal["or"] = "or"
    children: list[Predicate] = []


class Malformed(BaseModel):
    """A subtree that could not be understood. Always evaluates false."""
    kind: Literal["malformed"] = "malformed"
    reason: str


Predicate = Annotated[
    Union[FieldTest, And, Or, Malformed],
    Field(discriminator="kind"),
]

And.model_rebuild()
Or.model_rebuild()


def parse_predicate(raw: Any) -> Predicate:
    """Parse a wire-format filter object into a predicate tree.

    Never raises: shape problems become ``Malformed`` nodes.
    """
    if raw is None:
        return Malformed(reason="condition is missing")
    if isinstance(raw, dict) and not raw:
        # An empty filter matches everything.
        return And(children=[])
    return _parse_node(raw, ())


def _parse_node(raw: Any, path: tuple[str, ...]) -> Predicate:
    if not isinstance(raw, dict) or not raw:
        return Malformed(
            reason=f"expected a non-empty object at {'.'.join(path) or '<root>'}, "
                   f"got {raw!r}"
        )

    parts: list[Predicate] = []
    for key, value in raw.items():
        if key in ("_and", "_or"):
            if not isinstance(value, list):
                return Malformed(reason=f"{key} expects a list, got {type(value).__name__}")
            children = [_parse_node(child, path) for child in value]
            parts.append(And(children=children) if key == "_and" else Or(children=children))
        elif key.startswith("_"):
            if not path:
                return Malformed(reason=f"operator {key!r} is not attached to a field")
            try:
                op = Operator(key)
            except ValueError:
                return Malformed(reason=f"unknown operator {key!r} on {'.'.join(path)}")
            parts.append(_field_test(".".join(path), op, value))
        elif isinstance(value, dict):
            parts.append(_parse_node(value, path + (key,)))
        else:
            # Bare value: direct equality.
            parts.append(FieldTest(field=".".join(path + (key,)), op=Operator.EQ, value=value))

    if len(parts) == 1:
        return parts[0]
    return And(children=parts)


def _field_test(field: str, op: Operator, value: Any) -> Predicate:
    if op in LIST_OPERATORS:
        if value is None or isinstance(value, dict):
            return Malformed(reason=f"{op.value} on {field} expects a list")
        if not isinstance(value, (list, tuple)):
            value = [value]
        return FieldTest(field=field, op=op, value=list(value))
    if op in (Operator.EMPTY, Operator.NEMPTY):
        return FieldTest(field=field, op=op, value=bool(value))
    if isinstance(value, (list, dict)):
        return Malformed(reason=f"{op.value} on {field} expects a scalar")
    return FieldTest(field=field, op=op, value=value)


def iter_nodes(predicate: Predicate) -> Iterator[Predicate]:
    """Depth-first walk over every node of a tree."""
    yield predicate
    if isinstance(predicate, (And, Or)):
        for child in predicate.children:
            yield from iter_nodes(child)


def malformed_reasons(predicate: Predicate) -> list[str]:
    return [n.reason for n in iter_nodes(predicate) if isinstance(n, Malformed)]


class Rule(BaseModel):
    """A business rule: when ``if_this`` holds, ``then_that`` constrains fields."""
    name: str
    priority: float | None = None
    if_this: Predicate
    then_that: Predicate
    id: str | None = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Rule:
        """Build a rule from a raw data-layer record."""
        priority = record.get("priority")
        try:
            priority_value = float(priority) if priority is not None else None
        except (TypeError, ValueError):
            priority_value = None
        rule_id = record.get("id")
        return cls(
            id=str(rule_id) if rule_id is not None else None,
            name=str(record.get("name") or rule_id or "unnamed rule"),
            priority=priority_value,
            if_this=parse_predicate(record.get("if_this")),
            then_that=parse_predicate(record.get("then_that")),
        )

    @property
    def sort_key(self) -> float:
        # Rules without a priority run last.
        return self.priority if self.priority is not None else math.inf

    @property
    def problems(self) -> list[str]:
        return malformed_reasons(self.if_this) + malformed_reasons(self.then_that)

    @property
    def is_malformed(self) -> bool:
        return bool(self.problems)


def sort_rules(rules: list[Rule]) -> list[Rule]:
    """Ascending priority; ties keep their input order."""
    return sorted(rules, key=lambda r: r.sort_key)
