"""Rule registry — stores and orders the loaded rule snapshot."""

from __future__ import annotations
import logging
from typing import Any, Iterable, Mapping

from configurator.models.parameters import EvaluationConfig
from configurator.models.rules import Rule, sort_rules
from configurator.rules.predicates import SelectionContext, evaluate

logger = logging.getLogger(__name__)


def rule_key(rule: Rule) -> str:
    return rule.id or rule.name


class RuleRegistry:
    """
    Central registry for the business rules of a catalog.

    Rules are registered when a catalog snapshot is loaded. During evaluation
    the registry returns the matching rules sorted by ascending priority.
    """

    def __init__(self, rules: Iterable[Rule] = ()) -> None:
        self._rules: dict[str, Rule] = {}
        for rule in rules:
            self.register(rule)

    def register(self, rule: Rule) -> None:
        """Register a rule; a second rule with the same key gets a suffix.

        Malformed rules are kept for listing but logged here, once, and never
        become active.
        """
        problems = rule.problems
        if problems:
            logger.warning("Skipping malformed rule %r: %s", rule.name, "; ".join(problems))
        key = rule_key(rule)
        if key in self._rules:
            n = 2
            while f"{key}#{n}" in self._rules:
                n += 1
            key = f"{key}#{n}"
        self._rules[key] = rule

    def unregister(self, key: str) -> None:
        """Remove a rule from the registry."""
        self._rules.pop(key, None)

    def get_rule(self, key: str) -> Rule | None:
        return self._rules.get(key)

    def list_rules(self) -> list[Rule]:
        """Return all registered rules in priority order."""
        return sort_rules(list(self._rules.values()))

    def __len__(self) -> int:
        return len(self._rules)

    def get_active_rules(self, config: EvaluationConfig | None = None) -> list[Rule]:
        """
        Rules eligible to run, in priority order.

        Respects EvaluationConfig.enabled_rules and disabled_rules and drops
        malformed rules.
        """
        config = config or EvaluationConfig()
        candidates = self.list_rules()

        if config.enabled_rules:
            enabled = set(config.enabled_rules)
            candidates = [r for r in candidates if r.name in enabled or r.id in enabled]

        if config.disabled_rules:
            disabled = set(config.disabled_rules)
            candidates = [
                r for r in candidates if r.name not in disabled and r.id not in disabled
            ]

        return [r for r in candidates if not r.is_malformed]

    def get_matching_rules(
        self,
        context: SelectionContext,
        config: EvaluationConfig | None = None,
    ) -> list[Rule]:
        """Active rules whose ``if_this`` holds for ``context``."""
        return [r for r in self.get_active_rules(config) if evaluate(r.if_this, context)]


def create_registry(records: Iterable[Mapping[str, Any] | Rule]) -> RuleRegistry:
    """Create a registry from raw rule records or parsed rules."""
    registry = RuleRegistry()
    for record in records:
        registry.register(record if isinstance(record, Rule) else Rule.from_record(record))
    return registry
