"""SKU autocomplete — base-code suggestions and position-aware segment suggestions.

Typing a SKU happens in two stages. While the first segment is typed,
`fetch_base_sku_suggestions` offers matching products. Once a base is
picked, `create_sku_autocomplete_context` loads the segment order and the
product line's options once, and `get_segment_suggestions` answers each
later keystroke from that context without touching the provider.
"""

from __future__ import annotations
import logging
from typing import TYPE_CHECKING, Any, Mapping, Sequence

from pydantic import BaseModel

from configurator.core.sku_resolver import SEGMENT_SEPARATOR, split_sku_input
from configurator.exceptions import CatalogError
from configurator.models.catalog import OptionItem, ProductRecord, SkuSegmentOrder
from configurator.models.identifiers import canonical_ids
from configurator.models.sku import BaseSkuSuggestion, SegmentSuggestion

if TYPE_CHECKING:
    from configurator.services.catalog_provider import CatalogProvider

logger = logging.getLogger(__name__)

MAX_SEGMENT_SUGGESTIONS = 20
MAX_BASE_SUGGESTIONS = 8


class SkuAutocompleteContext(BaseModel):
    """Everything needed to suggest segments after one recognized base."""
    base: BaseSkuSuggestion
    segment_order: list[SkuSegmentOrder]
    options: dict[str, list[OptionItem]]            # table_name -> line options
    availability: dict[str, list[str]] | None = None

    def segment_at(self, segment_index: int) -> SkuSegmentOrder | None:
        if 0 <= segment_index < len(self.segment_order):
            return self.segment_order[segment_index]
        return None

    def is_stale(self, raw_input: str) -> bool:
        """True once the typed base no longer matches the context's product."""
        tokens = split_sku_input(raw_input or "")
        typed = tokens[0] if tokens else ""
        return typed != self.base.product_sku.upper()


def product_suggestion(product: ProductRecord) -> BaseSkuSuggestion:
    return BaseSkuSuggestion(
        id=f"product-{product.id}",
        product_id=product.id,
        product_sku=product.sku_code,
        product_name=product.name,
        product_line_id=product.product_line,
    )


async def fetch_base_sku_suggestions(
    query: str,
    provider: CatalogProvider,
    limit: int = MAX_BASE_SUGGESTIONS,
) -> list[BaseSkuSuggestion]:
    """Active products whose code starts with ``query``, sorted by code."""
    normalized = (query or "").strip().upper().split(SEGMENT_SEPARATOR)[0]
    if not normalized:
        return []
    products = await provider.fetch_products()
    matches = sorted(
        (p for p in products if p.active and p.sku_code.startswith(normalized)),
        key=lambda p: (p.sku_code, p.id),
    )
    return [product_suggestion(p) for p in matches[:limit]]


async def create_sku_autocomplete_context(
    base: BaseSkuSuggestion,
    provider: CatalogProvider,
    availability: Mapping[str, Sequence[Any]] | None = None,
) -> SkuAutocompleteContext:
    """
    Load segment order and line options for ``base``.

    Raises CatalogError when the product has no product line. The segment
    order keeps only positions that can be typed: the base, positions encoded
    in the base and tables without options for the line are dropped.
    """
    if base.product_line_id is None:
        raise CatalogError("Selected product is missing a product line association.")

    segment_order = await provider.fetch_segment_order()
    options = await provider.fetch_product_options(base.product_line_id)

    typed = [
        seg for seg in segment_order
        if not seg.is_base and not seg.in_base and options.get(seg.table_name)
    ]
    logger.debug(
        "Autocomplete context for %s: %s",
        base.product_sku, " ".join(s.table_name for s in typed),
    )
    return SkuAutocompleteContext(
        base=base,
        segment_order=typed,
        options={seg.table_name: options[seg.table_name] for seg in typed},
        availability=(
            {field: canonical_ids(list(ids)) for field, ids in availability.items()}
            if availability is not None else None
        ),
    )


def _inches(value: float | None) -> str | None:
    if not value:
        return None
    number = int(value) if float(value).is_integer() else value
    return f'{number}"'


def build_label(table_name: str, option: OptionItem, code: str) -> str:
    if table_name == "sizes":
        width, height = _inches(option.width), _inches(option.height)
        if width and height:
            return f"{code} · {width} × {height}"
    return code


def build_description(table_name: str, option: OptionItem, code: str) -> str | None:
    if table_name == "sizes":
        width, height = _inches(option.width), _inches(option.height)
        if width and height:
            return f"{width} × {height}"
    if option.name and option.name.upper() != code:
        return option.name
    return option.description


def get_segment_suggestions(
    context: SkuAutocompleteContext,
    segment_index: int,
    partial_query: str,
    limit: int = MAX_SEGMENT_SUGGESTIONS,
) -> list[SegmentSuggestion]:
    """
    Suggest codes for the ``segment_index``-th typed segment after the base.

    Options outside the context's availability are left out. Codes starting
    with the query come first, then codes merely containing it; an empty
    query lists every option in catalog order.
    """
    seg = context.segment_at(segment_index)
    if seg is None:
        return []

    options = context.options.get(seg.table_name, [])
    if context.availability is not None and seg.selection_field in context.availability:
        allowed = set(context.availability[seg.selection_field])
        options = [o for o in options if o.id in allowed]

    query = (partial_query or "").strip().upper()
    prefix: list[tuple[OptionItem, str]] = []
    contains: list[tuple[OptionItem, str]] = []
    for option in options:
        code = option.code(seg.sku_code_field)
        if not code:
            continue
        if not query or code.startswith(query):
            prefix.append((option, code))
        elif query in code:
            contains.append((option, code))

    return [
        SegmentSuggestion(
            id=f"{seg.table_name}-{option.id}",
            sku_code=code,
            label=build_label(seg.table_name, option, code),
            description=build_description(seg.table_name, option, code),
            table_name=seg.table_name,
            order=seg.order,
        )
        for option, code in (prefix + contains)[:limit]
    ]
