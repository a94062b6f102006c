"""Predicate evaluator — tests a parsed condition tree against a selection.

Pure and deterministic: no state is read besides the two arguments.
Missing values make positive tests (``_eq``, ``_in``) false; the caller
treats that as "rule does not apply".
"""

from __future__ import annotations
from typing import Any, Mapping

from configurator.models.identifiers import as_number, canonical_id, canonical_ids
from configurator.models.rules import And, FieldTest, Operator, Or, Predicate

SelectionContext = Mapping[str, Any]


def resolve_field(context: SelectionContext, field: str) -> Any:
    """Look up a field, walking dotted paths with a flattened-key fallback."""
    if field in context:
        return context[field]

    parts = field.split(".")
    if len(parts) == 1:
        return None

    value: Any = context
    for part in parts:
        if isinstance(value, Mapping):
            value = value.get(part)
        else:
            value = None
        if value is None:
            break
    if value is not None:
        return value
    # product_line.sku_code -> product_line_sku_code
    return context.get("_".join(parts))


def evaluate(predicate: Predicate, context: SelectionContext) -> bool:
    """Return True when ``predicate`` holds for ``context``."""
    if isinstance(predicate, FieldTest):
        return _evaluate_field(predicate, resolve_field(context, predicate.field))
    if isinstance(predicate, And):
        return all(evaluate(child, context) for child in predicate.children)
    if isinstance(predicate, Or):
        return any(evaluate(child, context) for child in predicate.children)
    # Malformed subtrees fail closed.
    return False


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, list, tuple, set, dict)):
        return len(value) == 0
    return False


def _is_multi(value: Any) -> bool:
    return isinstance(value, (list, tuple, set, frozenset))


def _equals(value: Any, expected: Any) -> bool:
    target = canonical_id(expected)
    if target is None:
        return False
    if _is_multi(value):
        return target in canonical_ids(value)
    current = canonical_id(value)
    return current is not None and current == target


def _member(value: Any, expected: Any) -> bool:
    targets = set(canonical_ids(expected))
    if _is_multi(value):
        return bool(targets.intersection(canonical_ids(value)))
    current = canonical_id(value)
    return current is not None and current in targets


def _compare(value: Any, expected: Any, op: Operator) -> bool:
    if value is None or _is_multi(value):
        return False
    left, right = as_number(value), as_number(expected)
    if left is None or right is None:
        left, right = canonical_id(value), canonical_id(expected)
        if left is None or right is None:
            return False
    if op == Operator.GT:
        return left > right
    if op == Operator.GTE:
        return left >= right
    if op == Operator.LT:
        return left < right
    return left <= right


def _evaluate_field(test: FieldTest, value: Any) -> bool:
    op = test.op
    if op == Operator.EQ:
        return _equals(value, test.value)
    if op == Operator.NEQ:
        return not _equals(value, test.value)
    if op == Operator.IN:
        return _member(value, test.value)
    if op == Operator.NIN:
        return not _member(value, test.value)
    if op in (Operator.GT, Operator.GTE, Operator.LT, Operator.LTE):
        return _compare(value, test.value, op)
    if op == Operator.CONTAINS:
        return isinstance(value, str) and str(test.value) in value
    if op == Operator.NCONTAINS:
        return not (isinstance(value, str) and str(test.value) in value)
    if op == Operator.EMPTY:
        return _is_empty(value) == test.value
    if op == Operator.NEMPTY:
        return _is_empty(value) != test.value
    return False
