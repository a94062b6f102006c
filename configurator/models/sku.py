"""SKU search and autocomplete output models."""

from __future__ import annotations
from enum import Enum
from typing import Any

from pydantic import BaseModel


class SegmentStatus(str, Enum):
    EXACT = "exact"
    PARTIAL = "partial"
    AMBIGUOUS = "ambiguous"
    NOT_FOUND = "not_found"
    MISSING = "missing"
    SKIPPED = "skipped"


class Confidence(str, Enum):
    EXACT = "exact"
    PARTIAL = "partial"
    AMBIGUOUS = "ambiguous"
    INVALID = "invalid"


class SkuSegmentMatch(BaseModel):
    """How one dash-delimited token mapped onto the segment schema."""
    table_name: str
    order: int
    field: str | None = None
    segment: str | None = None
    status: SegmentStatus
    optional: bool = False
    option_ids: list[str] = []       # Ids the segment resolved to (several for accessories)
    message: str | None = None


class SkuSearchResult(BaseModel):
    id: str
    product_id: str | None = None
    product_sku: str | None = None
    product_name: str | None = None
    product_line_id: str | None = None
    confidence: Confidence
    segments: list[SkuSegmentMatch] = []
    issues: list[str] = []
    configuration: dict[str, Any] = {}

    @property
    def codes(self) -> list[str]:
        """Typed segment codes in schema order (base first), skipping blanks."""
        return [s.segment for s in self.segments if s.segment]


class BaseSkuSuggestion(BaseModel):
    """A product whose code matches what the user typed for the base segment."""
    id: str
    product_id: str
    product_sku: str
    product_name: str | None = None
    product_line_id: str | None = None


class SegmentSuggestion(BaseModel):
    id: str
    sku_code: str
    label: str
    description: str | None = None
    table_name: str
    order: int
