"""Evaluation and SKU-building parameters."""

from __future__ import annotations
from pydantic import BaseModel


class EvaluationConfig(BaseModel):
    """Controls which rules run and which pipeline steps are applied."""
    enabled_rules: list[str] = []        # Empty = every loaded rule
    disabled_rules: list[str] = []       # Explicitly disable specific rules (by name or id)
    apply_rule_actions: bool = True      # Write rule-forced values back before pass 2
    adjust_selections: bool = True       # Replace selections that fell out of availability


class SkuOverrides(BaseModel):
    """Caller-supplied replacements used when building a SKU string."""
    product_sku: str | None = None       # Replaces the base segment
    include_optional: bool = True        # False drops optional segments (accessories)
    optional_fallback: str | None = None # Used when an optional segment has no selection
    segments: dict[str, str] = {}        # table_name -> literal segment text
