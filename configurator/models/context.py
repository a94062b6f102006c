"""Configuration context — accumulates state during one selection-change cycle."""

from __future__ import annotations
from typing import Any

from pydantic import BaseModel, Field

from .constraints import Constraint
from .parameters import EvaluationConfig


class SelectionAdjustment(BaseModel):
    """A selection the engine changed, and why."""
    field: str
    previous: Any = None
    value: Any = None
    reason: str


class ConfigurationContext(BaseModel):
    """
    Holds all state of a single two-phase availability pass.

    Pass 1 fills ``pre_rule_constraints`` and ``provisional``.
    Rule side effects and selection adjustments produce ``effective_selection``.
    Pass 2 fills ``post_rule_constraints`` and ``effective``; only this last
    result is meant to be published.
    """
    # Input
    product_line: str | None = None
    selection: dict[str, Any]
    config: EvaluationConfig = Field(default_factory=EvaluationConfig)
    generation: int = 0

    # Pass 1
    pre_rule_constraints: dict[str, Constraint] = {}
    provisional: dict[str, list[str]] = {}

    # Rule write-back
    effective_selection: dict[str, Any] = {}
    forced_fields: list[str] = []
    adjustments: list[SelectionAdjustment] = []

    # Pass 2
    post_rule_constraints: dict[str, Constraint] = {}
    effective: dict[str, list[str]] = {}
    unavailable_fields: list[str] = []         # had candidates, none left after pass 2

    def add_adjustments(self, adjustments: list[SelectionAdjustment]) -> None:
        self.adjustments.extend(adjustments)


class AvailabilitySnapshot(BaseModel):
    """The last published availability of a configurator session."""
    generation: int
    product_line: str | None = None
    selection: dict[str, Any] = {}
    available: dict[str, list[str]] = {}
