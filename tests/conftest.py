"""Shared fixtures for the configurator test suite.

Loads the packaged sample catalog (configurator/data/sample_catalog.json)
into memory; every test gets its own parsed copy.
"""

import json

import pytest

from configurator.models import Catalog
from configurator.services.catalog_provider import SAMPLE_CATALOG_PATH, StaticCatalogProvider
from configurator.services.configurator_service import ConfiguratorService


# =============================================================================
# CATALOG FIXTURES
# =============================================================================

@pytest.fixture
def catalog_records():
    """Raw records exactly as the data layer would hand them over."""
    return json.loads(SAMPLE_CATALOG_PATH.read_text(encoding="utf-8"))


@pytest.fixture
def catalog(catalog_records):
    return Catalog.from_records(catalog_records)


@pytest.fixture
def schema(catalog):
    return catalog.sorted_segments()


@pytest.fixture
def deco_round(catalog):
    """T01D, product line 1."""
    return catalog.get_product(1)


@pytest.fixture
def provider(catalog):
    return StaticCatalogProvider(catalog)


@pytest.fixture
def service(provider):
    return ConfiguratorService(provider)


# =============================================================================
# RULE FIXTURES
# =============================================================================

@pytest.fixture
def line_one_rules():
    """Two deny rules on product line 1."""
    return [
        {
            "name": "No rear light on line 1",
            "priority": 1,
            "if_this": {"product_line": {"_eq": 1}},
            "then_that": {"light_direction": {"_neq": 2}},
        },
        {
            "name": "No thick frames on line 1",
            "priority": 2,
            "if_this": {"product_line": {"_eq": 1}},
            "then_that": {"frame_thickness": {"_nin": [3, 4]}},
        },
    ]
