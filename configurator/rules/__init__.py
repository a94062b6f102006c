from .predicates import evaluate, resolve_field
from .effects import (
    collect_assignments, collect_constraints, extract_sku_override,
)

__all__ = [
    "evaluate", "resolve_field",
    "collect_assignments", "collect_constraints", "extract_sku_override",
]
