"""Catalog providers — the data collaborator the engine reads records from.

Providers are asynchronous so that a network-backed implementation can be
dropped in. Every provider implements `load_catalog()`; the query helpers
are built on top of it.
"""

from __future__ import annotations
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from configurator.exceptions import CatalogError
from configurator.models.catalog import Catalog, OptionItem, ProductRecord, SkuSegmentOrder
from configurator.models.identifiers import canonical_id

logger = logging.getLogger(__name__)

SAMPLE_CATALOG_PATH = Path(__file__).resolve().parent.parent / "data" / "sample_catalog.json"


class CatalogProvider(ABC):
    """Base class for catalog sources."""

    @abstractmethod
    async def load_catalog(self) -> Catalog:
        """Return the current catalog snapshot."""
        ...

    async def fetch_segment_order(self) -> list[SkuSegmentOrder]:
        catalog = await self.load_catalog()
        return catalog.sorted_segments()

    async def fetch_product_options(self, product_line: Any) -> dict[str, list[OptionItem]]:
        """Options per collection table that are offered on ``product_line``."""
        catalog = await self.load_catalog()
        return {
            table: catalog.options_for(table, product_line)
            for table in catalog.collections
        }

    async def fetch_products(self) -> list[ProductRecord]:
        catalog = await self.load_catalog()
        return list(catalog.products)

    async def fetch_product(self, product_id: Any) -> ProductRecord:
        catalog = await self.load_catalog()
        product = catalog.get_product(product_id)
        if product is None:
            raise CatalogError(f"Unknown product {canonical_id(product_id)!r}")
        return product


class StaticCatalogProvider(CatalogProvider):
    """Serves an in-memory catalog (tests, embedding)."""

    def __init__(self, catalog: Catalog) -> None:
        self.catalog = catalog

    async def load_catalog(self) -> Catalog:
        return self.catalog


class JsonCatalogProvider(CatalogProvider):
    """
    Loads a catalog from a JSON file.

    The file holds ``products``, ``collections``, ``segment_order`` and
    ``rules`` in their record shapes. It is parsed once per provider
    instance; call `reload()` to pick up changes.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path else SAMPLE_CATALOG_PATH
        self._catalog: Catalog | None = None

    async def load_catalog(self) -> Catalog:
        if self._catalog is None:
            self._catalog = self.read()
        return self._catalog

    def read(self) -> Catalog:
        """Parse the file synchronously (startup and tests)."""
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise CatalogError(f"Catalog file not found: {self.path}") from exc
        except json.JSONDecodeError as exc:
            raise CatalogError(f"Catalog file {self.path} is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise CatalogError(f"Catalog file {self.path} must contain an object")

        try:
            catalog = Catalog.from_records(data)
        except ValidationError as exc:
            raise CatalogError(f"Catalog file {self.path} has invalid records: {exc}") from exc
        logger.info(
            "Loaded catalog %s: %d products, %d collections, %d rules",
            self.path.name, len(catalog.products), len(catalog.collections), len(catalog.rules),
        )
        return catalog

    def reload(self) -> None:
        self._catalog = None
