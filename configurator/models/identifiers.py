"""Identifier primitives shared by the whole engine.

Catalogs mix numeric and string identifiers (``5``, ``"5"``, ``5.0`` or an
expanded relation ``{"id": 5}``). Every comparison in the engine goes through
``canonical_id`` so all of those compare equal.
"""

from __future__ import annotations
import re
from typing import Any, Iterable, Mapping

_INT_RE = re.compile(r"^[+-]?\d+$")


def canonical_id(value: Any) -> str | None:
    """Normalize an identifier to its canonical string form (None if absent)."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, dict):
        for key in ("id", "key"):
            if key in value:
                return canonical_id(value[key])
        return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if _INT_RE.match(text):
            return str(int(text))
        return text
    inner = getattr(value, "id", None)
    if inner is not None:
        return canonical_id(inner)
    return str(value)


def canonical_ids(values: Any) -> list[str]:
    """Canonicalize a scalar or a collection, dropping empties, keeping order."""
    if values is None:
        return []
    if isinstance(values, (list, tuple, set, frozenset)):
        items: Iterable[Any] = values
    else:
        items = [values]
    out: list[str] = []
    seen: set[str] = set()
    for item in items:
        cid = canonical_id(item)
        if cid is None or cid in seen:
            continue
        seen.add(cid)
        out.append(cid)
    return out


def canonical_selection(selection: Mapping[str, Any]) -> dict[str, Any]:
    """Canonicalize every id-valued entry of a selection.

    Scalars become canonical strings and collections become canonical id
    lists. Nested mappings other than ``{id: ..}`` relations are kept as
    given, since dotted rule fields read through them.
    """
    out: dict[str, Any] = {}
    for field, value in selection.items():
        if isinstance(value, (list, tuple, set, frozenset)):
            out[field] = canonical_ids(value)
        elif isinstance(value, dict) and "id" not in value and "key" not in value:
            out[field] = value
        else:
            out[field] = canonical_id(value)
    return out


def as_number(value: Any) -> float | None:
    """Best-effort numeric view of a value, used by ordering operators."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, dict):
        return as_number(canonical_id(value))
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def field_for_table(table_name: str) -> str:
    """Derive the selection field name from a catalog table name.

    ``light_outputs`` -> ``light_output``, ``accessories`` -> ``accessory``,
    ``frame_thicknesses`` -> ``frame_thickness``.
    """
    name = table_name.strip()
    if name.endswith("ies"):
        return name[:-3] + "y"
    if name.endswith("sses"):
        return name[:-2]
    if name.endswith("s") and not name.endswith("ss"):
        return name[:-1]
    return name
