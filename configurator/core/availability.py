"""Availability filter — applies a constraint map to candidate id sets."""

from __future__ import annotations
import logging
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from configurator.exceptions import InvalidInputError
from configurator.models.constraints import ConstraintMap
from configurator.models.identifiers import canonical_ids

logger = logging.getLogger(__name__)

UniverseSource = Union[
    Mapping[str, Sequence[Any]],
    Callable[[str], Optional[Sequence[Any]]],
    None,
]


def universe_lookup(universe: UniverseSource) -> Callable[[str], Optional[set[str]]]:
    """Turn any accepted universe into ``field -> set of ids | None``."""
    if universe is None:
        return lambda field: None
    if isinstance(universe, Mapping):
        getter: Callable[[str], Optional[Sequence[Any]]] = universe.get
    elif callable(universe):
        getter = universe
    else:
        raise InvalidInputError(f"universe must be a mapping or callable, got {type(universe).__name__}")

    def lookup(field: str) -> Optional[set[str]]:
        ids = getter(field)
        return None if ids is None else set(canonical_ids(list(ids)))

    return lookup


def apply_constraints_to_ids(
    candidate_ids: Mapping[str, Sequence[Any]],
    constraints: ConstraintMap,
    universe: UniverseSource = None,
) -> dict[str, list[str]]:
    """
    Filter each field's candidates through its constraint.

    - no constraint: candidates pass through
    - Allow(S): candidates in S and in the field's universe
    - Deny(S): candidates not in S, bounded by the universe

    Only fields present in ``candidate_ids`` are returned, in candidate
    order. A field never gains ids.
    """
    if not isinstance(candidate_ids, Mapping):
        raise InvalidInputError(f"candidate ids must be a mapping, got {type(candidate_ids).__name__}")
    lookup = universe_lookup(universe)

    out: dict[str, list[str]] = {}
    for field, raw in candidate_ids.items():
        candidates = canonical_ids(list(raw) if raw is not None else [])
        constraint = constraints.get(field)
        if constraint is None:
            out[field] = candidates
            continue

        bound = lookup(field)
        kept = [
            c for c in candidates
            if constraint.permits(c) and (bound is None or c in bound)
        ]
        if candidates and not kept:
            logger.debug("Field %s has no available options under %s", field, constraint.describe())
        out[field] = kept
    return out


def unavailable_fields(
    before: Mapping[str, Sequence[Any]],
    after: Mapping[str, Sequence[Any]],
) -> list[str]:
    """Fields that had candidates before filtering and none after."""
    return [f for f, ids in after.items() if not ids and before.get(f)]
