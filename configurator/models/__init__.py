from .identifiers import canonical_id, canonical_ids, canonical_selection
from .rules import Operator, FieldTest, And, Or, Malformed, Predicate, Rule, parse_predicate
from .constraints import Constraint, ConstraintKind, ConstraintMap
from .catalog import OptionItem, ProductRecord, SkuSegmentOrder, Catalog
from .sku import (
    SegmentStatus, Confidence, SkuSegmentMatch, SkuSearchResult,
    BaseSkuSuggestion, SegmentSuggestion,
)
from .parameters import EvaluationConfig, SkuOverrides
from .context import SelectionAdjustment, ConfigurationContext, AvailabilitySnapshot

__all__ = [
    "canonical_id", "canonical_ids", "canonical_selection",
    "Operator", "FieldTest", "And", "Or", "Malformed", "Predicate", "Rule", "parse_predicate",
    "Constraint", "ConstraintKind", "ConstraintMap",
    "OptionItem", "ProductRecord", "SkuSegmentOrder", "Catalog",
    "SegmentStatus", "Confidence", "SkuSegmentMatch", "SkuSearchResult",
    "BaseSkuSuggestion", "SegmentSuggestion",
    "EvaluationConfig", "SkuOverrides",
    "SelectionAdjustment", "ConfigurationContext", "AvailabilitySnapshot",
]
