"""Rule side effects — values that matching rules force onto the selection."""

from __future__ import annotations
import logging
from typing import Any

from configurator.core.constraints import RuleSource, active_rules
from configurator.exceptions import InvalidInputError
from configurator.models.parameters import EvaluationConfig
from configurator.rules.effects import collect_assignments
from configurator.rules.predicates import SelectionContext, evaluate

logger = logging.getLogger(__name__)


def apply_rule_actions(
    rules: RuleSource,
    selection: SelectionContext,
    config: EvaluationConfig | None = None,
) -> tuple[dict[str, Any], list[str]]:
    """
    Write the ``_eq`` assignments of matching rules into a copy of ``selection``.

    Each rule is evaluated against the selection as updated by the rules
    before it. A field forced by a higher-priority rule is never overwritten
    by a lower-priority one. Returns the effective selection and the list of
    fields that were forced.
    """
    if not hasattr(selection, "items"):
        raise InvalidInputError(f"selection must be a mapping, got {type(selection).__name__}")

    effective: dict[str, Any] = dict(selection)
    forced: list[str] = []
    for rule in active_rules(rules, config):
        if not evaluate(rule.if_this, effective):
            continue
        for field, value in collect_assignments(rule.then_that).items():
            if field in forced:
                continue
            if effective.get(field) != value:
                logger.debug("Rule %r sets %s: %r -> %r", rule.name, field, effective.get(field), value)
            effective[field] = value
            forced.append(field)
    return effective, forced
