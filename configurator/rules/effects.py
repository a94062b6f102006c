"""Effect interpreter — turns a rule's ``then_that`` tree into constraints.

Effects share the predicate grammar but mean something else:

- ``_eq`` / ``_in``   -> allow-set (only these stay selectable)
- ``_neq`` / ``_nin`` -> deny-set (these are removed)
- ``_and``            -> every child applies, merged per field
- ``_or``             -> any alternative is acceptable, allow-sets are unioned

The same ``_eq`` leaves also act as value assignments when rule side effects
are written back to the selection (see ``collect_assignments``).
"""

from __future__ import annotations
import logging
from typing import Any

from configurator.models.constraints import Constraint, ConstraintMap
from configurator.models.identifiers import canonical_id
from configurator.models.rules import (
    ALLOW_OPERATORS, DENY_OPERATORS, And, FieldTest, Operator, Or, Predicate, Rule,
)

logger = logging.getLogger(__name__)

SKU_OVERRIDE_FIELDS = ("sku_code", "product_line.sku_code")


def _is_sku_override(field: str) -> bool:
    return field == "sku_code" or field.endswith(".sku_code")


def _leaf_constraint(test: FieldTest) -> Constraint | None:
    values = test.value if isinstance(test.value, list) else [test.value]
    if test.op in ALLOW_OPERATORS:
        return Constraint.allow(values)
    if test.op in DENY_OPERATORS:
        return Constraint.deny(values)
    return None


def collect_constraints(effect: Predicate) -> ConstraintMap:
    """Interpret an effect tree as a per-field constraint map."""
    if isinstance(effect, FieldTest):
        if _is_sku_override(effect.field):
            return {}
        constraint = _leaf_constraint(effect)
        return {effect.field: constraint} if constraint is not None else {}

    if isinstance(effect, And):
        merged: ConstraintMap = {}
        for child in effect.children:
            for field, constraint in collect_constraints(child).items():
                current = merged.get(field)
                merged[field] = constraint if current is None else current.narrow(constraint)
        return merged

    if isinstance(effect, Or):
        alternatives = [collect_constraints(child) for child in effect.children]
        field_sets = {frozenset(a) for a in alternatives if a}
        if len(field_sets) > 1:
            logger.warning(
                "_or effect spans different fields (%s); merging per field",
                ", ".join(sorted({f for s in field_sets for f in s})),
            )
        widened: ConstraintMap = {}
        for alternative in alternatives:
            for field, constraint in alternative.items():
                current = widened.get(field)
                widened[field] = constraint if current is None else current.widen(constraint)
        return widened

    return {}


def collect_assignments(effect: Predicate) -> dict[str, Any]:
    """Values an effect forces onto the selection (``_eq`` leaves).

    Alternatives under ``_or`` force nothing: any of them is acceptable.
    """
    if isinstance(effect, FieldTest):
        if effect.op == Operator.EQ and not _is_sku_override(effect.field):
            return {effect.field: canonical_id(effect.value)}
        return {}
    if isinstance(effect, And):
        out: dict[str, Any] = {}
        for child in effect.children:
            for field, value in collect_assignments(child).items():
                out.setdefault(field, value)
        return out
    return {}


def extract_sku_override(rule: Rule) -> str | None:
    """Return the base SKU code a rule forces, if its effect carries one."""
    return _find_override(rule.then_that)


def _find_override(effect: Predicate) -> str | None:
    if isinstance(effect, FieldTest):
        if effect.field in SKU_OVERRIDE_FIELDS and effect.op == Operator.EQ and effect.value:
            return str(effect.value).strip().upper() or None
        return None
    if isinstance(effect, And):
        for child in effect.children:
            found = _find_override(child)
            if found:
                return found
    return None
