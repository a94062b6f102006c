"""Constraint builder — merges the effects of matching rules per field."""

from __future__ import annotations
import logging
from typing import Any, Iterable, Mapping, Union

from configurator.core.registry import RuleRegistry
from configurator.exceptions import InvalidInputError
from configurator.models.constraints import ConstraintMap, merge_constraint_maps
from configurator.models.parameters import EvaluationConfig
from configurator.models.rules import Rule
from configurator.rules.effects import collect_constraints, extract_sku_override
from configurator.rules.predicates import SelectionContext, evaluate

logger = logging.getLogger(__name__)

RuleSource = Union[RuleRegistry, Iterable[Union[Rule, Mapping[str, Any]]]]


def active_rules(rules: RuleSource, config: EvaluationConfig | None = None) -> list[Rule]:
    """Normalize any accepted rule source to usable rules in priority order."""
    if isinstance(rules, RuleRegistry):
        return rules.get_active_rules(config)
    if not isinstance(rules, (list, tuple)):
        raise InvalidInputError(f"rules must be a list, got {type(rules).__name__}")
    parsed: list[Rule] = []
    for item in rules:
        if isinstance(item, Rule):
            parsed.append(item)
        elif isinstance(item, Mapping):
            parsed.append(Rule.from_record(item))
        else:
            raise InvalidInputError(f"rule records must be mappings, got {type(item).__name__}")
    return RuleRegistry(parsed).get_active_rules(config)


def _check_context(context: Any) -> None:
    if not isinstance(context, Mapping):
        raise InvalidInputError(f"selection context must be a mapping, got {type(context).__name__}")


def build_rule_constraints(
    rules: RuleSource,
    context: SelectionContext,
    config: EvaluationConfig | None = None,
) -> ConstraintMap:
    """
    Build the per-field constraint map for ``context``.

    Rules run in ascending priority. Later rules only narrow what earlier
    rules allowed: allow-sets intersect, deny-sets union, and an allow-set
    meeting a deny-set keeps the allow-set minus the deny-set. Fields no
    matching rule touches are absent from the result.
    """
    _check_context(context)
    constraints: ConstraintMap = {}
    for rule in active_rules(rules, config):
        if not evaluate(rule.if_this, context):
            continue
        effect = collect_constraints(rule.then_that)
        if effect:
            logger.debug(
                "Rule %r constrains %s",
                rule.name,
                ", ".join(f"{f}={c.describe()}" for f, c in effect.items()),
            )
        constraints = merge_constraint_maps(constraints, effect)
    return constraints


def find_sku_override(
    rules: RuleSource,
    context: SelectionContext,
    config: EvaluationConfig | None = None,
) -> str | None:
    """Base SKU code forced by the highest-priority matching rule, if any."""
    _check_context(context)
    for rule in active_rules(rules, config):
        if not evaluate(rule.if_this, context):
            continue
        override = extract_sku_override(rule)
        if override:
            logger.debug("SKU override %s from rule %r", override, rule.name)
            return override
    return None
