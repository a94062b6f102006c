"""SKU builder — turns a configuration back into a dash-delimited SKU.

The builder walks the same schema positions as the resolver so that a
rule-consistent configuration survives a build/resolve round trip:

- the base segment is the product code (or a rule/caller override)
- positions encoded in the base, or with no options on the product line,
  contribute nothing
- multi-valued positions join their codes with ``+``
- an unselected optional position becomes ``NA`` when later positions
  follow, and is dropped when it is trailing
"""

from __future__ import annotations
import logging
from typing import Any, Mapping

from configurator.core.sku_resolver import BASE_TABLE, MULTI_SEPARATOR, NO_SELECTION, SEGMENT_SEPARATOR
from configurator.models.catalog import Catalog, ProductRecord, SkuSegmentOrder
from configurator.models.identifiers import canonical_ids
from configurator.models.parameters import SkuOverrides

logger = logging.getLogger(__name__)


def build_sku_parts(
    configuration: Mapping[str, Any],
    schema: list[SkuSegmentOrder],
    catalog: Catalog,
    product: ProductRecord,
    overrides: SkuOverrides | None = None,
) -> list[tuple[str, str]]:
    """Return ``(table_name, text)`` pairs in SKU order, base first."""
    overrides = overrides or SkuOverrides()
    parts: list[tuple[str, str]] = [(BASE_TABLE, overrides.product_sku or product.sku_code)]
    pending: list[tuple[str, str]] = []

    for seg in sorted(schema, key=lambda s: s.order):
        if seg.is_base or seg.in_base:
            continue
        options = catalog.options_for(seg.table_name, product.product_line)
        if not options:
            continue
        if seg.optional and not overrides.include_optional:
            continue

        text = overrides.segments.get(seg.table_name)
        if text is None:
            text = _segment_text(seg, configuration.get(seg.selection_field), options)
        if text is None and seg.optional:
            text = overrides.optional_fallback

        if text:
            parts.extend(pending)
            pending = []
            parts.append((seg.table_name, text))
        elif seg.optional:
            pending.append((seg.table_name, NO_SELECTION))
        else:
            logger.debug("No %s selected; SKU stops before order %d", seg.table_name, seg.order)
            break

    return parts


def _segment_text(seg: SkuSegmentOrder, value: Any, options: list) -> str | None:
    by_id = {o.id: o for o in options}
    codes: list[str] = []
    for oid in canonical_ids(value):
        option = by_id.get(oid)
        code = option.code(seg.sku_code_field) if option is not None else None
        if code:
            codes.append(code)
    if not codes:
        return None
    return MULTI_SEPARATOR.join(codes if seg.multiple else codes[:1])


def build_sku(
    configuration: Mapping[str, Any],
    schema: list[SkuSegmentOrder],
    catalog: Catalog,
    product: ProductRecord,
    overrides: SkuOverrides | None = None,
) -> str:
    """Build the upper-case SKU string for a configuration."""
    parts = build_sku_parts(configuration, schema, catalog, product, overrides)
    return SEGMENT_SEPARATOR.join(text for _, text in parts).upper()
