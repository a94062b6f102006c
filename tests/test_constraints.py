"""Constraint building and merging."""

import logging

import pytest

from configurator.core.constraints import build_rule_constraints, find_sku_override
from configurator.core.registry import RuleRegistry, create_registry
from configurator.exceptions import InvalidInputError
from configurator.models import Constraint, EvaluationConfig, parse_predicate
from configurator.rules import collect_assignments, collect_constraints


def rule(name, priority, if_this, then_that):
    return {"name": name, "priority": priority, "if_this": if_this, "then_that": then_that}


# =============================================================================
# CONSTRAINT ALGEBRA
# =============================================================================

class TestConstraintMerge:
    def test_allow_allow_intersects(self):
        merged = Constraint.allow([1, 2, 3]).narrow(Constraint.allow([2, 3, 4]))
        assert merged == Constraint.allow(["2", "3"])

    def test_deny_deny_unions(self):
        merged = Constraint.deny([1]).narrow(Constraint.deny([2]))
        assert merged == Constraint.deny(["1", "2"])

    @pytest.mark.parametrize("first,second", [
        (Constraint.allow([1, 2, 3]), Constraint.deny([2])),
        (Constraint.deny([2]), Constraint.allow([1, 2, 3])),
    ])
    def test_allow_with_deny_keeps_allow_minus_deny(self, first, second):
        assert first.narrow(second) == Constraint.allow(["1", "3"])

    def test_widen(self):
        assert Constraint.allow([2]).widen(Constraint.allow([3])) == Constraint.allow(["2", "3"])
        assert Constraint.deny([1, 2]).widen(Constraint.deny([2, 3])) == Constraint.deny(["2"])
        assert Constraint.allow([1]).widen(Constraint.deny([1, 2])) == Constraint.deny(["2"])

    def test_permits(self):
        assert Constraint.allow([1]).permits("1")
        assert not Constraint.deny([1]).permits("1")


# =============================================================================
# EFFECT INTERPRETATION
# =============================================================================

class TestCollectConstraints:
    def test_and_effect(self):
        effect = parse_predicate({"light_direction": {"_in": [1, 2]}, "frame_thickness": {"_nin": [3]}})
        assert collect_constraints(effect) == {
            "light_direction": Constraint.allow([1, 2]),
            "frame_thickness": Constraint.deny([3]),
        }

    def test_or_effect_unions_allow_sets(self):
        effect = parse_predicate({"_or": [
            {"light_direction": {"_in": [2]}},
            {"light_direction": {"_in": [3]}},
        ]})
        assert collect_constraints(effect) == {"light_direction": Constraint.allow([2, 3])}

    def test_cross_field_or_warns(self, caplog):
        effect = parse_predicate({"_or": [{"size": {"_eq": 1}}, {"driver": {"_eq": 2}}]})
        with caplog.at_level(logging.WARNING):
            result = collect_constraints(effect)
        assert result == {"size": Constraint.allow([1]), "driver": Constraint.allow([2])}
        assert "spans different fields" in caplog.text

    def test_sku_override_is_not_a_constraint(self):
        effect = parse_predicate({"sku_code": {"_eq": "T02DL"}, "size": {"_eq": 3}})
        assert collect_constraints(effect) == {"size": Constraint.allow([3])}

    def test_assignments_only_from_and(self):
        effect = parse_predicate({"driver": {"_eq": 2}, "size": {"_neq": 1}})
        assert collect_assignments(effect) == {"driver": "2"}
        either = parse_predicate({"_or": [{"driver": {"_eq": 2}}, {"driver": {"_eq": 1}}]})
        assert collect_assignments(either) == {}


# =============================================================================
# RULE CONSTRAINTS
# =============================================================================

class TestBuildRuleConstraints:
    def test_allow_deny_merge_example(self, line_one_rules):
        constraints = build_rule_constraints(line_one_rules, {"product_line": 1})
        assert constraints == {
            "light_direction": Constraint.deny([2]),
            "frame_thickness": Constraint.deny([3, 4]),
        }

    def test_unmatched_rules_leave_fields_absent(self, line_one_rules):
        assert build_rule_constraints(line_one_rules, {"product_line": 2}) == {}

    def test_and_effect_rule(self):
        rules = [rule("r", 1, {"product_line": {"_eq": 1}},
                      {"light_direction": {"_in": [1, 2]}, "frame_thickness": {"_nin": [3]}})]
        constraints = build_rule_constraints(rules, {"product_line": 1})
        assert constraints["light_direction"] == Constraint.allow([1, 2])
        assert constraints["frame_thickness"] == Constraint.deny([3])

    def test_or_effect_rule(self):
        rules = [rule("r", 1, {"product_line": {"_eq": 1}}, {"_or": [
            {"light_direction": {"_in": [2]}},
            {"light_direction": {"_in": [3]}},
        ]})]
        constraints = build_rule_constraints(rules, {"product_line": 1})
        assert constraints == {"light_direction": Constraint.allow([2, 3])}

    def test_lower_priority_only_narrows(self):
        rules = [
            rule("late", 5, {}, {"size": {"_in": [2, 3, 4]}}),
            rule("early", 1, {}, {"size": {"_in": [1, 2, 3]}}),
        ]
        assert build_rule_constraints(rules, {}) == {"size": Constraint.allow([2, 3])}

    def test_conflicting_rules_leave_empty_allow(self):
        rules = [rule("a", 1, {}, {"size": {"_eq": 1}}), rule("b", 2, {}, {"size": {"_eq": 2}})]
        assert build_rule_constraints(rules, {}) == {"size": Constraint.allow([])}

    def test_malformed_rule_skipped_with_warning(self, caplog):
        rules = [
            rule("broken", 1, {"size": {"_like": "2%"}}, {"driver": {"_eq": 1}}),
            rule("fine", 2, {}, {"driver": {"_eq": 2}}),
        ]
        with caplog.at_level(logging.WARNING):
            constraints = build_rule_constraints(rules, {"size": 1})
        assert constraints == {"driver": Constraint.allow([2])}
        assert "Skipping malformed rule 'broken'" in caplog.text

    def test_disabled_rules(self, line_one_rules):
        config = EvaluationConfig(disabled_rules=["No rear light on line 1"])
        constraints = build_rule_constraints(line_one_rules, {"product_line": 1}, config)
        assert list(constraints) == ["frame_thickness"]

    def test_accepts_registry(self, line_one_rules):
        registry = create_registry(line_one_rules)
        assert isinstance(registry, RuleRegistry)
        assert len(build_rule_constraints(registry, {"product_line": "1"})) == 2

    def test_rules_must_be_a_list(self):
        with pytest.raises(InvalidInputError):
            build_rule_constraints("not rules", {})

    def test_context_must_be_a_mapping(self, line_one_rules):
        with pytest.raises(TypeError):
            build_rule_constraints(line_one_rules, ["product_line", 1])


class TestSkuOverride:
    def test_first_matching_override_wins(self):
        rules = [
            rule("nested", 1, {"size": {"_eq": 3}}, {"product_line": {"sku_code": {"_eq": "t02dl"}}}),
            rule("plain", 2, {"size": {"_eq": 3}}, {"sku_code": {"_eq": "OTHER"}}),
        ]
        assert find_sku_override(rules, {"size": 3}) == "T02DL"
        assert find_sku_override(rules, {"size": 1}) is None
