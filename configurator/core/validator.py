"""Selection validation — keeps selections inside the available sets."""

from __future__ import annotations
from typing import Any, Mapping, Sequence

from configurator.models.context import SelectionAdjustment
from configurator.models.identifiers import canonical_id, canonical_ids


class SelectionValidator:
    """Replaces selected ids that availability no longer offers."""

    def validate(
        self,
        selection: Mapping[str, Any],
        availability: Mapping[str, Sequence[str]],
        protected: Sequence[str] = (),
    ) -> tuple[dict[str, Any], list[SelectionAdjustment]]:
        """
        Return the adjusted selection and one adjustment per changed field.

        Fields absent from ``availability`` are unconstrained and left alone,
        as are ``protected`` fields (values forced by rules).
        """
        adjusted = dict(selection)
        adjustments: list[SelectionAdjustment] = []

        for field, value in selection.items():
            if field in protected or field not in availability:
                continue
            available = canonical_ids(list(availability[field]))
            if isinstance(value, (list, tuple, set)):
                change = self._validate_many(field, value, available)
            else:
                change = self._validate_one(field, value, available)
            if change is not None:
                adjusted[field] = change.value
                adjustments.append(change)

        return adjusted, adjustments

    def _validate_one(
        self, field: str, value: Any, available: list[str],
    ) -> SelectionAdjustment | None:
        current = canonical_id(value)
        if current is None or current in available:
            return None
        if available:
            return SelectionAdjustment(
                field=field, previous=current, value=available[0],
                reason=f"{current} is not available; switched to {available[0]}",
            )
        return SelectionAdjustment(
            field=field, previous=current, value=None,
            reason=f"{current} is not available and no alternative exists",
        )

    def _validate_many(
        self, field: str, values: Any, available: list[str],
    ) -> SelectionAdjustment | None:
        current = canonical_ids(list(values))
        kept = [v for v in current if v in available]
        if kept == current:
            return None
        dropped = [v for v in current if v not in kept]
        return SelectionAdjustment(
            field=field, previous=current, value=kept,
            reason=f"removed unavailable values {', '.join(dropped)}",
        )


def validate_selections(
    selection: Mapping[str, Any],
    availability: Mapping[str, Sequence[str]],
) -> tuple[dict[str, Any], list[SelectionAdjustment]]:
    return SelectionValidator().validate(selection, availability)
