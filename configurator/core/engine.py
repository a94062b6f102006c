"""Two-phase availability engine — orchestrates rules, filtering and write-back."""

from __future__ import annotations
import logging
from typing import Any, Mapping, Sequence

from configurator.core.actions import apply_rule_actions
from configurator.core.availability import UniverseSource, apply_constraints_to_ids, unavailable_fields
from configurator.core.constraints import RuleSource, active_rules, build_rule_constraints
from configurator.core.registry import RuleRegistry
from configurator.core.validator import SelectionValidator
from configurator.exceptions import InvalidInputError
from configurator.models.context import ConfigurationContext
from configurator.models.identifiers import canonical_id, canonical_selection
from configurator.models.parameters import EvaluationConfig

logger = logging.getLogger(__name__)


class ConfiguratorEngine:
    """
    Stateless availability engine.

    Takes a raw selection plus the catalog candidates, runs both filter
    passes in order, and returns the filled ConfigurationContext:

    1. constraints from the raw selection -> provisional availability
    2. rule-forced values and selection adjustments -> effective selection
    3. constraints from the effective selection -> effective availability

    Step 3 repeats while re-validating the effective selection against its
    own pass-2 availability still moves a value, so the published selection
    never holds an id the published availability excludes.
    """

    max_settle_rounds = 5

    def __init__(self, rules: RuleSource) -> None:
        self.rules = rules if isinstance(rules, RuleRegistry) else RuleRegistry(active_rules(rules))
        self.validator = SelectionValidator()

    def evaluate(
        self,
        selection: Mapping[str, Any],
        candidates: Mapping[str, Sequence[Any]],
        universe: UniverseSource = None,
        config: EvaluationConfig | None = None,
        generation: int = 0,
    ) -> ConfigurationContext:
        if not isinstance(selection, Mapping):
            raise InvalidInputError(f"selection must be a mapping, got {type(selection).__name__}")
        if config is None:
            config = EvaluationConfig()

        context = ConfigurationContext(
            product_line=canonical_id(selection.get("product_line")),
            selection=dict(selection),
            config=config,
            generation=generation,
        )
        raw = canonical_selection(selection)

        # Pass 1: raw user selection
        context.pre_rule_constraints = build_rule_constraints(self.rules, raw, config)
        context.provisional = apply_constraints_to_ids(
            candidates, context.pre_rule_constraints, universe,
        )

        # Write-back: rule side effects, then keep selections inside availability
        effective = dict(raw)
        if config.apply_rule_actions:
            effective, context.forced_fields = apply_rule_actions(self.rules, effective, config)
        if config.adjust_selections:
            effective, adjustments = self.validator.validate(
                effective, context.provisional, protected=context.forced_fields,
            )
            context.add_adjustments(adjustments)
        context.effective_selection = effective

        # Pass 2: effective selection, the only result to publish
        self._run_pass_two(context, candidates, universe, config)

        context.unavailable_fields = unavailable_fields(candidates, context.effective)
        if context.unavailable_fields:
            logger.debug("No available options for: %s", ", ".join(context.unavailable_fields))
        return context

    def _run_pass_two(
        self,
        context: ConfigurationContext,
        candidates: Mapping[str, Sequence[Any]],
        universe: UniverseSource,
        config: EvaluationConfig,
    ) -> None:
        for _ in range(self.max_settle_rounds):
            context.post_rule_constraints = build_rule_constraints(
                self.rules, context.effective_selection, config,
            )
            context.effective = apply_constraints_to_ids(
                candidates, context.post_rule_constraints, universe,
            )
            if not config.adjust_selections:
                return
            settled, adjustments = self.validator.validate(
                context.effective_selection, context.effective, protected=context.forced_fields,
            )
            if not adjustments:
                return
            context.add_adjustments(adjustments)
            context.effective_selection = settled
        logger.warning(
            "Selection did not settle after %d rounds; publishing last availability",
            self.max_settle_rounds,
        )


def compute_effective_availability(
    raw_selection: Mapping[str, Any],
    rules: RuleSource,
    candidates: Mapping[str, Sequence[Any]],
    universe: UniverseSource = None,
    config: EvaluationConfig | None = None,
) -> tuple[dict[str, list[str]], dict[str, list[str]]]:
    """Run both passes; returns ``(provisional, effective)`` availability."""
    context = ConfiguratorEngine(rules).evaluate(raw_selection, candidates, universe, config)
    return context.provisional, context.effective
