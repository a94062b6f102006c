"""API request/response schemas."""

from __future__ import annotations
from typing import Any

from pydantic import BaseModel

from configurator.models import (
    EvaluationConfig, SelectionAdjustment, SkuOverrides, SkuSearchResult,
)


class AvailabilityRequest(BaseModel):
    """Request body for the /availability endpoint."""
    product_line: str | int | None = None
    selection: dict[str, Any] = {}
    candidates: dict[str, list[Any]] | None = None   # Defaults to the line's catalog
    config: EvaluationConfig = EvaluationConfig()


class AvailabilityResponse(BaseModel):
    generation: int
    published: bool
    product_line: str | None = None
    effective_selection: dict[str, Any]
    provisional: dict[str, list[str]]
    available: dict[str, list[str]]
    adjustments: list[SelectionAdjustment]
    unavailable_fields: list[str]


class ResolveRequest(BaseModel):
    """Request body for the /sku/resolve endpoint."""
    sku: str
    product_line: str | int | None = None
    selection: dict[str, Any] | None = None     # Evaluate availability for this selection
    limit: int | None = None


class ResolveResponse(BaseModel):
    query: str
    results: list[SkuSearchResult]


class BuildRequest(BaseModel):
    """Request body for the /sku/build endpoint."""
    product_id: str | int
    configuration: dict[str, Any] = {}
    overrides: SkuOverrides = SkuOverrides()


class BuildResponse(BaseModel):
    product_id: str
    sku: str


class RuleInfo(BaseModel):
    id: str | None = None
    name: str
    priority: float | None = None
    malformed: bool = False
