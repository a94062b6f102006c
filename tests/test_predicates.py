"""Predicate parsing and evaluation."""

import pytest

from configurator.models import And, FieldTest, Malformed, Operator, Or, Rule, parse_predicate
from configurator.rules import evaluate, resolve_field


# =============================================================================
# PARSING
# =============================================================================

class TestParsePredicate:
    def test_field_operator(self):
        node = parse_predicate({"size": {"_eq": 5}})
        assert node == FieldTest(field="size", op=Operator.EQ, value=5)

    def test_bare_value_is_equality(self):
        node = parse_predicate({"size": 5})
        assert node == FieldTest(field="size", op=Operator.EQ, value=5)

    def test_nested_objects_become_dotted_paths(self):
        node = parse_predicate({"product_line": {"sku_code": {"_eq": "T"}}})
        assert isinstance(node, FieldTest)
        assert node.field == "product_line.sku_code"

    def test_several_operators_are_implicit_and(self):
        node = parse_predicate({"size": {"_neq": 1, "_nin": [2, 3]}})
        assert isinstance(node, And)
        assert [c.op for c in node.children] == [Operator.NEQ, Operator.NIN]

    def test_several_fields_are_implicit_and(self):
        node = parse_predicate({"size": {"_eq": 1}, "driver": {"_eq": 2}})
        assert isinstance(node, And)
        assert {c.field for c in node.children} == {"size", "driver"}

    def test_logical_operators(self):
        node = parse_predicate({"_or": [{"a": {"_eq": 1}}, {"_and": [{"b": {"_eq": 2}}]}]})
        assert isinstance(node, Or)
        assert isinstance(node.children[1], And)

    def test_list_operator_wraps_scalar(self):
        node = parse_predicate({"size": {"_in": 3}})
        assert node.value == [3]

    def test_unknown_operator_is_malformed(self):
        node = parse_predicate({"size": {"_like": "24%"}})
        assert isinstance(node, Malformed)
        assert "_like" in node.reason

    def test_logical_operator_needs_list(self):
        assert isinstance(parse_predicate({"_or": {"a": 1}}), Malformed)

    def test_missing_condition_is_malformed(self):
        assert isinstance(parse_predicate(None), Malformed)

    def test_empty_filter_matches_everything(self):
        node = parse_predicate({})
        assert node == And(children=[])
        assert evaluate(node, {}) is True

    def test_malformed_nested_in_tree(self):
        rule = Rule.from_record({
            "name": "bad",
            "priority": 1,
            "if_this": {"_and": [{"size": {"_eq": 1}}, {"driver": {"_eq": [1, 2]}}]},
            "then_that": {"driver": {"_eq": 1}},
        })
        assert rule.is_malformed
        assert "expects a scalar" in rule.problems[0]


class TestRuleRecord:
    def test_priority_parsed_and_missing_sorts_last(self):
        rule = Rule.from_record({"name": "r", "priority": "3", "if_this": {}, "then_that": {}})
        assert rule.priority == 3.0
        unranked = Rule.from_record({"name": "u", "if_this": {}, "then_that": {}})
        assert unranked.sort_key > rule.sort_key

    def test_id_kept_as_string(self):
        rule = Rule.from_record({"id": 7, "if_this": {}, "then_that": {}})
        assert rule.id == "7"
        assert rule.name == "7"


# =============================================================================
# EVALUATION
# =============================================================================

class TestEvaluate:
    def test_loose_equality(self):
        node = parse_predicate({"size": {"_eq": "5"}})
        assert evaluate(node, {"size": 5})
        assert evaluate(node, {"size": "05"})
        assert evaluate(node, {"size": 5.0})
        assert evaluate(node, {"size": {"id": 5}})

    def test_missing_value_does_not_apply(self):
        assert not evaluate(parse_predicate({"size": {"_eq": 1}}), {})
        assert not evaluate(parse_predicate({"size": {"_in": [1, 2]}}), {"size": None})

    def test_negations(self):
        assert evaluate(parse_predicate({"size": {"_neq": 1}}), {"size": 2})
        assert not evaluate(parse_predicate({"size": {"_nin": [1, 2]}}), {"size": "2"})

    def test_list_valued_context(self):
        context = {"accessory": [1, 3]}
        assert evaluate(parse_predicate({"accessory": {"_eq": 3}}), context)
        assert evaluate(parse_predicate({"accessory": {"_in": [2, 3]}}), context)
        assert not evaluate(parse_predicate({"accessory": {"_nin": [3]}}), context)
        assert evaluate(parse_predicate({"accessory": {"_neq": 2}}), context)

    def test_dotted_path_and_flattened_fallback(self):
        node = parse_predicate({"product_line": {"sku_code": {"_eq": "T"}}})
        assert evaluate(node, {"product_line": {"sku_code": "T"}})
        assert evaluate(node, {"product_line_sku_code": "T"})
        assert not evaluate(node, {"product_line": 1})

    def test_resolve_field_prefers_literal_key(self):
        assert resolve_field({"a.b": 1, "a": {"b": 2}}, "a.b") == 1

    def test_comparisons_are_numeric(self):
        assert evaluate(parse_predicate({"width": {"_gt": 30}}), {"width": "36"})
        assert evaluate(parse_predicate({"width": {"_lte": 9}}), {"width": 9})
        assert not evaluate(parse_predicate({"width": {"_lt": 10}}), {"width": 100})

    def test_contains_and_empty(self):
        assert evaluate(parse_predicate({"name": {"_contains": "Round"}}), {"name": "Deco Round"})
        assert evaluate(parse_predicate({"name": {"_ncontains": "Oval"}}), {"name": "Deco Round"})
        assert evaluate(parse_predicate({"accessory": {"_empty": True}}), {"accessory": []})
        assert evaluate(parse_predicate({"accessory": {"_nempty": True}}), {"accessory": [1]})

    def test_and_or(self):
        both = parse_predicate({"_and": [{"a": {"_eq": 1}}, {"b": {"_eq": 2}}]})
        either = parse_predicate({"_or": [{"a": {"_eq": 9}}, {"b": {"_eq": 2}}]})
        context = {"a": 1, "b": 2}
        assert evaluate(both, context)
        assert evaluate(either, context)
        assert not evaluate(both, {"a": 1})

    def test_malformed_is_false(self):
        assert evaluate(Malformed(reason="x"), {"size": 1}) is False
        assert evaluate(parse_predicate({"_or": [{"size": {"_bad": 1}}]}), {"size": 1}) is False

    @pytest.mark.parametrize("context", [{"size": 1}, {"size": 2}, {}, {"size": [1, 2]}])
    def test_deterministic(self, context):
        node = parse_predicate({"_or": [{"size": {"_in": [1]}}, {"driver": {"_empty": True}}]})
        assert evaluate(node, context) == evaluate(node, context)
