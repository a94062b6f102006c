"""Rule registry."""

import logging

from configurator.core.registry import RuleRegistry, create_registry
from configurator.models import EvaluationConfig, Rule


def make_rule(name, priority, if_this=None, then_that=None, rule_id=None):
    return Rule.from_record({
        "id": rule_id, "name": name, "priority": priority,
        "if_this": if_this if if_this is not None else {},
        "then_that": then_that if then_that is not None else {"size": {"_eq": 1}},
    })


class TestRuleRegistry:
    def test_register_and_lookup(self):
        registry = RuleRegistry()
        rule = make_rule("a", 1, rule_id=10)
        registry.register(rule)
        assert registry.get_rule("10") is rule
        registry.unregister("10")
        assert registry.get_rule("10") is None
        assert len(registry) == 0

    def test_duplicate_keys_kept(self):
        registry = RuleRegistry([make_rule("same", 1), make_rule("same", 2)])
        assert len(registry) == 2
        assert registry.get_rule("same#2").priority == 2

    def test_priority_order_is_stable(self):
        registry = create_registry([
            {"name": "c", "priority": None, "if_this": {}, "then_that": {}},
            {"name": "b", "priority": 2, "if_this": {}, "then_that": {}},
            {"name": "a1", "priority": 1, "if_this": {}, "then_that": {}},
            {"name": "a2", "priority": 1, "if_this": {}, "then_that": {}},
        ])
        assert [r.name for r in registry.list_rules()] == ["a1", "a2", "b", "c"]

    def test_enabled_and_disabled(self):
        registry = RuleRegistry([make_rule("a", 1), make_rule("b", 2, rule_id=7), make_rule("c", 3)])
        enabled = registry.get_active_rules(EvaluationConfig(enabled_rules=["a", "7"]))
        assert [r.name for r in enabled] == ["a", "b"]
        disabled = registry.get_active_rules(EvaluationConfig(disabled_rules=["7"]))
        assert [r.name for r in disabled] == ["a", "c"]

    def test_malformed_rules_not_active(self, caplog):
        with caplog.at_level(logging.WARNING):
            registry = RuleRegistry([make_rule("ok", 1), make_rule("bad", 2, if_this={"size": {"_x": 1}})])
            active = registry.get_active_rules()
            registry.get_active_rules()
            registry.get_matching_rules({"size": 1})
        assert [r.name for r in active] == ["ok"]
        assert len(registry) == 2
        warnings = [r for r in caplog.records if "Skipping malformed rule" in r.getMessage()]
        assert len(warnings) == 1
        assert "bad" in warnings[0].getMessage()

    def test_matching_rules(self):
        registry = RuleRegistry([
            make_rule("line 1", 1, {"product_line": {"_eq": 1}}),
            make_rule("line 2", 2, {"product_line": {"_eq": 2}}),
        ])
        assert [r.name for r in registry.get_matching_rules({"product_line": "1"})] == ["line 1"]
