"""SKU segment resolver — maps a typed SKU onto products and option codes.

A SKU is upper-case and dash-delimited. Segment 0 is the base product code;
the remaining segments follow the schema sorted by ``order``. Every position
gets a status, and the whole match gets a confidence:

- ``invalid``    the base (or any segment) matched nothing
- ``ambiguous``  a segment matched several records equally well
- ``partial``    a required segment is missing or only matched outside the
                 currently available options
- ``exact``      everything else
"""

from __future__ import annotations
import logging
from typing import Any, Iterable, Mapping, Sequence

from configurator.exceptions import InvalidInputError
from configurator.models.catalog import Catalog, OptionItem, ProductRecord, SkuSegmentOrder
from configurator.models.identifiers import canonical_id, canonical_ids
from configurator.models.rules import And, FieldTest, Operator, Predicate, Rule
from configurator.models.sku import Confidence, SegmentStatus, SkuSearchResult, SkuSegmentMatch
from configurator.rules.effects import extract_sku_override

logger = logging.getLogger(__name__)

BASE_TABLE = "products"
UNKNOWN_TABLE = "unknown"
SEGMENT_SEPARATOR = "-"
MULTI_SEPARATOR = "+"
NO_SELECTION = "NA"

Availability = Mapping[str, Sequence[Any]]

# Worst status wins when a composite segment combines several codes.
_SEVERITY = {
    SegmentStatus.EXACT: 0,
    SegmentStatus.PARTIAL: 1,
    SegmentStatus.AMBIGUOUS: 2,
    SegmentStatus.NOT_FOUND: 3,
}


def split_sku_input(raw_sku: str) -> list[str]:
    text = raw_sku.strip()
    if not text:
        return []
    return [segment.strip().upper() for segment in text.split(SEGMENT_SEPARATOR)]


def describe_table(table_name: str) -> str:
    return table_name.replace("_", " ")


def compute_confidence(segments: list[SkuSegmentMatch]) -> Confidence:
    if any(s.status == SegmentStatus.NOT_FOUND for s in segments):
        return Confidence.INVALID
    if any(s.status == SegmentStatus.AMBIGUOUS for s in segments):
        return Confidence.AMBIGUOUS
    if any(
        not s.optional and s.status in (SegmentStatus.PARTIAL, SegmentStatus.MISSING)
        for s in segments
    ):
        return Confidence.PARTIAL
    return Confidence.EXACT


def _pinned_products(predicate: Predicate) -> list[str]:
    """Product ids a condition pins with ``product`` ``_eq`` / ``_in``."""
    if isinstance(predicate, FieldTest):
        if predicate.field in ("product", "product.id") and predicate.op in (Operator.EQ, Operator.IN):
            return canonical_ids(predicate.value)
        return []
    if isinstance(predicate, And):
        for child in predicate.children:
            ids = _pinned_products(child)
            if ids:
                return ids
    return []


def override_targets(
    rules: Iterable[Rule], products: Sequence[ProductRecord],
) -> dict[str, list[str]]:
    """
    Map each base code a rule can force onto the product ids it stands for.

    The products come from the rule's condition. A rule that pins no product
    falls back to the products with the longest code the override starts with.
    """
    targets: dict[str, list[str]] = {}
    for rule in rules:
        if rule.is_malformed:
            continue
        code = extract_sku_override(rule)
        if not code:
            continue
        ids = _pinned_products(rule.if_this)
        if not ids:
            prefixed = [p for p in products if p.sku_code and code.startswith(p.sku_code)]
            longest = max((len(p.sku_code) for p in prefixed), default=0)
            ids = [p.id for p in prefixed if len(p.sku_code) == longest]
        known = targets.setdefault(code, [])
        known.extend(i for i in ids if i not in known)
    return targets


def match_base(
    code: str,
    products: list[ProductRecord],
    product_line: Any = None,
    overrides: Mapping[str, Sequence[str]] | None = None,
) -> tuple[list[ProductRecord], SegmentStatus]:
    """
    Match a base code: exact first, then prefix, then substring.

    A code some rule forces in place of a product's own code (see
    ``override_targets``) is an exact match for that product. Only the best
    non-empty tier counts. Returns the matching products (sorted by code) and
    the base segment status.
    """
    line = canonical_id(product_line)
    pool = [
        p for p in products
        if p.active and p.sku_code and (line is None or p.product_line == line)
    ]
    forced = set((overrides or {}).get(code, ()))
    tiers = (
        [p for p in pool if p.sku_code == code or p.id in forced],
        [p for p in pool if p.sku_code.startswith(code)],
        [p for p in pool if code in p.sku_code],
    )
    for rank, matches in enumerate(tiers):
        if not matches:
            continue
        matches = sorted(matches, key=lambda p: (p.sku_code, p.id))
        if len(matches) > 1:
            return matches, SegmentStatus.AMBIGUOUS
        return matches, SegmentStatus.EXACT if rank == 0 else SegmentStatus.PARTIAL
    return [], SegmentStatus.NOT_FOUND


class SkuResolver:
    """Resolves raw SKU strings against one catalog snapshot and segment schema."""

    def __init__(
        self,
        catalog: Catalog,
        schema: list[SkuSegmentOrder] | None = None,
        product_line: Any = None,
    ) -> None:
        self.catalog = catalog
        self.schema = sorted(
            schema if schema is not None else catalog.segment_order, key=lambda s: s.order,
        )
        self.product_line = product_line
        self.overrides = override_targets(catalog.rules, catalog.products)

    def resolve(self, raw_sku: str, availability: Availability | None = None) -> SkuSearchResult:
        """Resolve to a single result; an ambiguous base yields one ambiguous result."""
        tokens = self._tokens(raw_sku)
        base = tokens[0] if tokens else ""
        if not base:
            return self._unmatched(base, "SKU must include a product base segment.")

        products, status = match_base(base, self.catalog.products, self.product_line, self.overrides)
        if status == SegmentStatus.NOT_FOUND:
            return self._unmatched(base, f'No products found matching base segment "{base}".')
        if status == SegmentStatus.AMBIGUOUS:
            return self._ambiguous(base, products)
        return self._resolve_product(tokens, products[0], status, availability)

    def resolve_candidates(
        self,
        raw_sku: str,
        availability: Availability | None = None,
        limit: int | None = None,
    ) -> list[SkuSearchResult]:
        """One result per product the base segment could refer to."""
        tokens = self._tokens(raw_sku)
        base = tokens[0] if tokens else ""
        if not base:
            return [self._unmatched(base, "SKU must include a product base segment.")]

        products, status = match_base(base, self.catalog.products, self.product_line, self.overrides)
        if status == SegmentStatus.NOT_FOUND:
            return [self._unmatched(base, f'No products found matching base segment "{base}".')]
        ambiguity = self._ambiguity_issue(base, products) if status == SegmentStatus.AMBIGUOUS else None
        if limit is not None:
            products = products[:limit]

        results = []
        for product in products:
            result = self._resolve_product(tokens, product, status, availability)
            if ambiguity:
                result.issues.insert(0, ambiguity)
            results.append(result)
        return results

    # ------------------------------------------------------------------

    def _tokens(self, raw_sku: Any) -> list[str]:
        if not isinstance(raw_sku, str):
            raise InvalidInputError(f"SKU must be a string, got {type(raw_sku).__name__}")
        return split_sku_input(raw_sku)

    def _base_match(
        self, base: str, status: SegmentStatus, products: list[ProductRecord], message: str | None,
    ) -> SkuSegmentMatch:
        return SkuSegmentMatch(
            table_name=BASE_TABLE,
            order=0,
            field="product",
            segment=base or None,
            status=status,
            option_ids=[p.id for p in products],
            message=message,
        )

    def _unmatched(self, base: str, issue: str) -> SkuSearchResult:
        segment = self._base_match(base, SegmentStatus.NOT_FOUND, [], issue)
        return SkuSearchResult(
            id=f"sku-{base or 'empty'}",
            confidence=Confidence.INVALID,
            segments=[segment],
            issues=[issue],
        )

    def _ambiguity_issue(self, base: str, products: list[ProductRecord]) -> str:
        codes = ", ".join(p.sku_code for p in products)
        return f'Multiple products match base code "{base}": {codes}.'

    def _ambiguous(self, base: str, products: list[ProductRecord]) -> SkuSearchResult:
        issue = self._ambiguity_issue(base, products)
        segment = self._base_match(base, SegmentStatus.AMBIGUOUS, products, issue)
        return SkuSearchResult(
            id=f"sku-{base}",
            confidence=Confidence.AMBIGUOUS,
            segments=[segment],
            issues=[issue],
        )

    def _resolve_product(
        self,
        tokens: list[str],
        product: ProductRecord,
        base_status: SegmentStatus,
        availability: Availability | None,
    ) -> SkuSearchResult:
        base = tokens[0]
        issues: list[str] = []
        base_message = None
        if base_status == SegmentStatus.PARTIAL:
            base_message = (
                f'Product base "{base}" matched {product.sku_code} partially; '
                "full code recommended."
            )
            issues.append(base_message)
        segments = [self._base_match(base, base_status, [product], base_message)]

        configuration: dict[str, Any] = {"product_line": product.product_line}
        for field, value in product.options.items():
            ids = canonical_ids(value)
            configuration[field] = ids if isinstance(value, (list, tuple)) else (ids[0] if ids else None)

        index = 1
        last_order = 0
        for seg in self.schema:
            if seg.is_base:
                continue
            last_order = seg.order
            match, consumed = self._resolve_position(seg, tokens, index, product, availability)
            index += consumed
            segments.append(match)
            if match.status not in (SegmentStatus.EXACT, SegmentStatus.SKIPPED) and match.message:
                issues.append(match.message)
            if match.status == SegmentStatus.EXACT:
                if seg.multiple:
                    configuration[seg.selection_field] = list(match.option_ids)
                elif match.option_ids:
                    configuration[seg.selection_field] = match.option_ids[0]

        for extra in tokens[index:]:
            last_order += 1
            message = f'Input contains more segments than expected ("{extra}").'
            segments.append(SkuSegmentMatch(
                table_name=UNKNOWN_TABLE, order=last_order, segment=extra or None,
                status=SegmentStatus.SKIPPED, message=message,
            ))
            issues.append(message)

        confidence = compute_confidence(segments)
        logger.debug("Resolved %s to product %s (%s)", "-".join(tokens), product.sku_code, confidence.value)
        return SkuSearchResult(
            id=f"product-{product.id}",
            product_id=product.id,
            product_sku=product.sku_code,
            product_name=product.name,
            product_line_id=product.product_line,
            confidence=confidence,
            segments=segments,
            issues=issues,
            configuration=configuration,
        )

    def _resolve_position(
        self,
        seg: SkuSegmentOrder,
        tokens: list[str],
        index: int,
        product: ProductRecord,
        availability: Availability | None,
    ) -> tuple[SkuSegmentMatch, int]:
        """Match one schema position; returns the match and tokens consumed."""
        field = seg.selection_field
        label = describe_table(seg.table_name)

        def result(status: SegmentStatus, segment: str | None = None,
                   ids: list[str] | None = None, message: str | None = None) -> SkuSegmentMatch:
            return SkuSegmentMatch(
                table_name=seg.table_name, order=seg.order, field=field, segment=segment,
                status=status, optional=seg.optional, option_ids=ids or [], message=message,
            )

        if seg.in_base:
            return result(SegmentStatus.SKIPPED, message=f"{label} is encoded in the product base."), 0

        line_options = self.catalog.options_for(seg.table_name, product.product_line)
        if not line_options:
            return result(SegmentStatus.SKIPPED, message=f"{label} is not offered for this product line."), 0

        token = tokens[index] if index < len(tokens) else None
        consumed = 1 if token is not None else 0
        if not token:
            if seg.optional:
                return result(SegmentStatus.SKIPPED, message=f"No {label} given."), consumed
            return result(SegmentStatus.MISSING, message=f"{label} segment is missing."), consumed

        if token == NO_SELECTION and seg.optional:
            return result(SegmentStatus.EXACT, token, [], f"No {label} selected."), consumed

        allowed = None
        if availability is not None and field in availability:
            allowed = set(canonical_ids(list(availability[field])))
        available_pool = [o for o in line_options if allowed is None or o.id in allowed]
        catalog_pool = self.catalog.collections.get(seg.table_name, [])

        codes = token.split(MULTI_SEPARATOR) if seg.multiple else [token]
        status = SegmentStatus.EXACT
        ids: list[str] = []
        messages: list[str] = []
        for code in codes:
            code_status, code_ids, message = self._match_code(
                code, seg, label, available_pool, catalog_pool,
            )
            if _SEVERITY[code_status] > _SEVERITY[status]:
                status = code_status
            ids.extend(code_ids)
            if message:
                messages.append(message)

        return result(status, token, ids, " ".join(messages) or None), consumed

    def _match_code(
        self,
        code: str,
        seg: SkuSegmentOrder,
        label: str,
        available_pool: list[OptionItem],
        catalog_pool: list[OptionItem],
    ) -> tuple[SegmentStatus, list[str], str | None]:
        available = [o for o in available_pool if o.code(seg.sku_code_field) == code]
        if len(available) == 1:
            return SegmentStatus.EXACT, [available[0].id], None
        if len(available) > 1:
            return (
                SegmentStatus.AMBIGUOUS,
                [o.id for o in available],
                f'Multiple {label} options share code "{code}".',
            )
        elsewhere = [o for o in catalog_pool if o.code(seg.sku_code_field) == code]
        if elsewhere:
            return (
                SegmentStatus.PARTIAL,
                [o.id for o in elsewhere],
                f'{label} "{code}" exists but is not available for this configuration.',
            )
        return SegmentStatus.NOT_FOUND, [], f'No {label} option matches "{code}".'


def resolve_sku(
    raw_sku: str,
    schema: list[SkuSegmentOrder],
    availability: Availability | None,
    catalog: Catalog,
    product_line: Any = None,
) -> SkuSearchResult:
    """Resolve ``raw_sku`` into one confidence-scored result."""
    return SkuResolver(catalog, schema, product_line).resolve(raw_sku, availability)


def resolve_sku_candidates(
    raw_sku: str,
    schema: list[SkuSegmentOrder],
    availability: Availability | None,
    catalog: Catalog,
    product_line: Any = None,
    limit: int | None = None,
) -> list[SkuSearchResult]:
    """Resolve ``raw_sku`` once per candidate product of its base segment."""
    return SkuResolver(catalog, schema, product_line).resolve_candidates(raw_sku, availability, limit)
