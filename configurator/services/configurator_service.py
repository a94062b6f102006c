"""High-level configurator service — facade for the API layer."""

from __future__ import annotations
import logging
import threading
from typing import Any, Mapping, Sequence

from configurator.core.autocomplete import (
    create_sku_autocomplete_context, fetch_base_sku_suggestions,
    get_segment_suggestions, product_suggestion,
)
from configurator.core.config import settings
from configurator.core.constraints import find_sku_override
from configurator.core.engine import ConfiguratorEngine
from configurator.core.registry import RuleRegistry, create_registry
from configurator.core.sku_builder import build_sku
from configurator.core.sku_resolver import SkuResolver, split_sku_input
from configurator.exceptions import CatalogError
from configurator.models import (
    AvailabilitySnapshot, BaseSkuSuggestion, Catalog, ConfigurationContext,
    EvaluationConfig, SegmentSuggestion, SkuOverrides, SkuSearchResult,
)
from configurator.models.identifiers import canonical_id
from configurator.services.catalog_provider import CatalogProvider, JsonCatalogProvider

logger = logging.getLogger(__name__)


class ConfiguratorService:
    """
    Loads the catalog, delegates to the engine, and publishes availability.

    Every selection change takes a generation token before computing. A
    result is published only while its token is still the newest one, so a
    slow evaluation never overwrites the result of a later change.
    """

    def __init__(self, provider: CatalogProvider | None = None) -> None:
        self.provider = provider or JsonCatalogProvider(settings.CATALOG_PATH or None)
        self._lock = threading.Lock()
        self._generation = 0
        self._published: AvailabilitySnapshot | None = None
        self._registry: RuleRegistry | None = None
        self._registry_source: Catalog | None = None

    # -- rules ------------------------------------------------------------

    async def registry(self) -> RuleRegistry:
        catalog = await self.provider.load_catalog()
        if self._registry is None or self._registry_source is not catalog:
            self._registry = create_registry(catalog.rules)
            self._registry_source = catalog
        return self._registry

    async def list_rules(self) -> list[dict[str, Any]]:
        registry = await self.registry()
        return [
            {"id": r.id, "name": r.name, "priority": r.priority, "malformed": r.is_malformed}
            for r in registry.list_rules()
        ]

    # -- availability -----------------------------------------------------

    def begin_change(self) -> int:
        """Take the generation token for a new selection change."""
        with self._lock:
            self._generation += 1
            return self._generation

    def publish(self, generation: int, context: ConfigurationContext) -> bool:
        """Store ``context`` unless a newer change has started since."""
        with self._lock:
            if generation != self._generation:
                logger.debug(
                    "Dropping stale availability (generation %d, latest %d)",
                    generation, self._generation,
                )
                return False
            self._published = AvailabilitySnapshot(
                generation=generation,
                product_line=context.product_line,
                selection=context.effective_selection,
                available=context.effective,
            )
            return True

    @property
    def published(self) -> AvailabilitySnapshot | None:
        with self._lock:
            return self._published

    async def compute(
        self,
        product_line: Any,
        selection: Mapping[str, Any] | None = None,
        candidates: Mapping[str, Sequence[Any]] | None = None,
        config: EvaluationConfig | None = None,
        generation: int = 0,
    ) -> ConfigurationContext:
        """Run both availability passes without publishing."""
        catalog = await self.provider.load_catalog()
        line = canonical_id(product_line)
        raw = dict(selection or {})
        if line is not None:
            raw["product_line"] = line
        universe = catalog.universe(line)
        if candidates is None:
            candidates = universe
        engine = ConfiguratorEngine(await self.registry())
        return engine.evaluate(raw, candidates, universe, config, generation)

    async def evaluate(
        self,
        product_line: Any,
        selection: Mapping[str, Any] | None = None,
        candidates: Mapping[str, Sequence[Any]] | None = None,
        config: EvaluationConfig | None = None,
    ) -> tuple[ConfigurationContext, bool]:
        """Handle one selection change; returns the context and whether it was published."""
        generation = self.begin_change()
        context = await self.compute(product_line, selection, candidates, config, generation)
        return context, self.publish(generation, context)

    # -- SKUs -------------------------------------------------------------

    async def _availability_for(
        self, product_line: Any, selection: Mapping[str, Any] | None,
    ) -> dict[str, list[str]] | None:
        if selection is not None:
            context = await self.compute(product_line, selection)
            return context.effective
        snapshot = self.published
        if snapshot is None or product_line is None:
            return None
        if snapshot.product_line != canonical_id(product_line):
            return None
        return snapshot.available

    async def resolve_sku(
        self,
        sku: str,
        product_line: Any = None,
        selection: Mapping[str, Any] | None = None,
        limit: int | None = None,
    ) -> list[SkuSearchResult]:
        """Resolve typed SKU text; one result per candidate base product."""
        catalog = await self.provider.load_catalog()
        if selection is not None and product_line is None:
            product_line = selection.get("product_line")
        availability = await self._availability_for(product_line, selection)
        resolver = SkuResolver(catalog, product_line=product_line)
        results = resolver.resolve_candidates(
            sku, availability, limit or settings.SKU_RESULT_LIMIT,
        )
        logger.info(
            "Resolved SKU %r: %s",
            sku, ", ".join(f"{r.product_sku or '-'}={r.confidence.value}" for r in results),
        )
        return results

    async def build_sku(
        self,
        product_id: Any,
        configuration: Mapping[str, Any],
        overrides: SkuOverrides | None = None,
    ) -> str:
        catalog = await self.provider.load_catalog()
        product = await self.provider.fetch_product(product_id)
        overrides = overrides or SkuOverrides()
        if overrides.product_sku is None:
            context = {"product": product.id, "product_line": product.product_line, **configuration}
            forced = find_sku_override(await self.registry(), context)
            if forced:
                overrides = overrides.model_copy(update={"product_sku": forced})
        return build_sku(configuration, catalog.sorted_segments(), catalog, product, overrides)

    async def base_suggestions(
        self, query: str, limit: int | None = None,
    ) -> list[BaseSkuSuggestion]:
        return await fetch_base_sku_suggestions(
            query, self.provider, limit or settings.BASE_SUGGESTION_LIMIT,
        )

    async def segment_suggestions(
        self,
        base: str,
        segment_index: int,
        query: str = "",
        limit: int | None = None,
    ) -> list[SegmentSuggestion]:
        """Suggestions for one segment after the product code ``base``."""
        tokens = split_sku_input(base or "")
        code = tokens[0] if tokens else ""
        products = await self.provider.fetch_products()
        product = next((p for p in products if p.active and p.sku_code == code), None)
        if product is None:
            raise CatalogError(f"Unknown product code {code!r}")

        snapshot = self.published
        availability = None
        if snapshot is not None and snapshot.product_line == product.product_line:
            availability = snapshot.available
        context = await create_sku_autocomplete_context(
            product_suggestion(product), self.provider, availability,
        )
        return get_segment_suggestions(
            context, segment_index, query, limit or settings.SEGMENT_SUGGESTION_LIMIT,
        )
