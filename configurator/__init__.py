"""Mirror configurator: rule-driven option availability and SKU resolution."""

__version__ = "0.1.0"
