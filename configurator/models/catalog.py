"""Catalog models — products, option collections and the SKU segment order."""

from __future__ import annotations
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, field_validator

from .identifiers import canonical_id, canonical_ids, field_for_table
from .rules import Rule


class OptionItem(BaseModel):
    """One selectable value of an option collection (a driver, a frame color...)."""
    model_config = ConfigDict(extra="allow")

    id: str
    sku_code: str | None = None
    name: str | None = None
    description: str | None = None
    width: float | None = None       # Sizes only (inches)
    height: float | None = None      # Sizes only (inches)
    product_lines: list[str] = []    # Empty = offered on every product line
    active: bool = True

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, value: Any) -> str:
        cid = canonical_id(value)
        if cid is None:
            raise ValueError("option id is required")
        return cid

    @field_validator("product_lines", mode="before")
    @classmethod
    def _normalize_lines(cls, value: Any) -> list[str]:
        return canonical_ids(value)

    def code(self, code_field: str = "sku_code") -> str | None:
        """The SKU code stored under ``code_field`` (upper-cased)."""
        if code_field == "sku_code":
            raw = self.sku_code
        else:
            raw = getattr(self, code_field, None)
            if raw is None and self.model_extra:
                raw = self.model_extra.get(code_field)
        if raw is None:
            return None
        text = str(raw).strip().upper()
        return text or None

    def available_in(self, product_line: str | None) -> bool:
        if not self.active:
            return False
        if product_line is None or not self.product_lines:
            return True
        return product_line in self.product_lines


class ProductRecord(BaseModel):
    """A base product; its SKU code is the first SKU segment."""
    id: str
    sku_code: str
    name: str | None = None
    product_line: str | None = None
    active: bool = True
    options: dict[str, Any] = {}     # Selection values implied by the base code

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, value: Any) -> str:
        cid = canonical_id(value)
        if cid is None:
            raise ValueError("product id is required")
        return cid

    @field_validator("product_line", mode="before")
    @classmethod
    def _normalize_line(cls, value: Any) -> str | None:
        return canonical_id(value)

    @field_validator("sku_code", mode="before")
    @classmethod
    def _normalize_code(cls, value: Any) -> str:
        return str(value or "").strip().upper()


class SkuSegmentOrder(BaseModel):
    """Which collection occupies which dash-delimited SKU position."""
    order: int
    table_name: str
    sku_code_field: str = "sku_code"
    field: str | None = None         # Selection key; derived from table_name if unset
    optional: bool = False           # Missing input is "skipped", not "missing"
    in_base: bool = False            # Encoded inside the base segment
    multiple: bool = False           # Several "+"-joined codes (accessories)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> SkuSegmentOrder:
        """Accept both the data-layer shape ``{order, sku_code_item}`` and our own."""
        data = dict(record)
        if "table_name" not in data:
            data["table_name"] = data.pop("sku_code_item", None) or "products"
        else:
            data.pop("sku_code_item", None)
        data.pop("id", None)
        return cls.model_validate(data)

    @property
    def is_base(self) -> bool:
        return self.order == 0

    @property
    def selection_field(self) -> str:
        return self.field or field_for_table(self.table_name)


class Catalog(BaseModel):
    """Immutable snapshot handed to the engine by the data collaborator."""
    products: list[ProductRecord] = []
    collections: dict[str, list[OptionItem]] = {}
    segment_order: list[SkuSegmentOrder] = []
    rules: list[Rule] = []

    @classmethod
    def from_records(cls, data: Mapping[str, Any]) -> Catalog:
        return cls(
            products=[ProductRecord.model_validate(p) for p in data.get("products", [])],
            collections={
                table: [OptionItem.model_validate(o) for o in options]
                for table, options in (data.get("collections") or {}).items()
            },
            segment_order=[
                SkuSegmentOrder.from_record(r) for r in data.get("segment_order", [])
            ],
            rules=[Rule.from_record(r) for r in data.get("rules", [])],
        )

    def sorted_segments(self) -> list[SkuSegmentOrder]:
        return sorted(self.segment_order, key=lambda s: s.order)

    def get_product(self, product_id: Any) -> ProductRecord | None:
        pid = canonical_id(product_id)
        for p in self.products:
            if p.id == pid:
                return p
        return None

    def field_tables(self) -> dict[str, str]:
        """Map selection field -> collection table."""
        mapping = {field_for_table(table): table for table in self.collections}
        for seg in self.segment_order:
            if seg.table_name in self.collections:
                mapping.pop(field_for_table(seg.table_name), None)
                mapping[seg.selection_field] = seg.table_name
        return mapping

    def options_for(self, table_name: str, product_line: Any = None) -> list[OptionItem]:
        line = canonical_id(product_line)
        return [
            o for o in self.collections.get(table_name, [])
            if o.available_in(line)
        ]

    def universe(self, product_line: Any = None) -> dict[str, list[str]]:
        """Every catalog-valid id per selection field for a product line."""
        return {
            field: [o.id for o in self.options_for(table, product_line)]
            for field, table in self.field_tables().items()
        }
