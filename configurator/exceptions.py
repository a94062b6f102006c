"""Exceptions raised by the configurator.

Data-shape problems that fit the engine's result types (bad rules, unknown
SKU segments, empty availability) are reported through those results instead.
"""

from __future__ import annotations


class ConfiguratorError(Exception):
    """Base class for configurator errors."""


class InvalidInputError(ConfiguratorError, TypeError):
    """Programming error: the engine was called with the wrong argument types."""


class CatalogError(ConfiguratorError):
    """The data collaborator could not supply a product, rule or option record."""
