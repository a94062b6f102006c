"""FastAPI route definitions."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query

from configurator.api.schemas import (
    AvailabilityRequest, AvailabilityResponse, BuildRequest, BuildResponse,
    ResolveRequest, ResolveResponse, RuleInfo,
)
from configurator.exceptions import CatalogError, InvalidInputError
from configurator.models import BaseSkuSuggestion, SegmentSuggestion
from configurator.models.identifiers import canonical_id
from configurator.services.configurator_service import ConfiguratorService

router = APIRouter()

# Shared service instance
_service = ConfiguratorService()


@router.post("/availability", response_model=AvailabilityResponse)
async def evaluate_availability(request: AvailabilityRequest) -> AvailabilityResponse:
    """Recompute availability after a selection change."""
    try:
        context, published = await _service.evaluate(
            request.product_line, request.selection, request.candidates, request.config,
        )
    except InvalidInputError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except CatalogError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    return AvailabilityResponse(
        generation=context.generation,
        published=published,
        product_line=context.product_line,
        effective_selection=context.effective_selection,
        provisional=context.provisional,
        available=context.effective,
        adjustments=context.adjustments,
        unavailable_fields=context.unavailable_fields,
    )


@router.post("/sku/resolve", response_model=ResolveResponse)
async def resolve_sku(request: ResolveRequest) -> ResolveResponse:
    """Resolve typed or pasted SKU text into confidence-scored configurations."""
    try:
        results = await _service.resolve_sku(
            request.sku, request.product_line, request.selection, request.limit,
        )
    except InvalidInputError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except CatalogError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return ResolveResponse(query=request.sku, results=results)


@router.post("/sku/build", response_model=BuildResponse)
async def build_sku(request: BuildRequest) -> BuildResponse:
    """Build the SKU string of a configuration."""
    try:
        sku = await _service.build_sku(request.product_id, request.configuration, request.overrides)
    except CatalogError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return BuildResponse(product_id=canonical_id(request.product_id) or "", sku=sku)


@router.get("/sku/suggestions", response_model=list[BaseSkuSuggestion])
async def base_suggestions(
    q: str = Query(""),
    limit: int | None = Query(None, ge=1),
) -> list[BaseSkuSuggestion]:
    """Products whose code starts with the typed base."""
    return await _service.base_suggestions(q, limit)


@router.get("/sku/segments", response_model=list[SegmentSuggestion])
async def segment_suggestions(
    base: str,
    index: int = Query(0, ge=0),
    q: str = Query(""),
    limit: int | None = Query(None, ge=1),
) -> list[SegmentSuggestion]:
    """Codes for the ``index``-th segment after ``base``."""
    try:
        return await _service.segment_suggestions(base, index, q, limit)
    except CatalogError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.get("/rules", response_model=list[RuleInfo])
async def list_rules() -> list[RuleInfo]:
    """List the loaded business rules in priority order."""
    try:
        rules = await _service.list_rules()
    except CatalogError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return [RuleInfo(**r) for r in rules]


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
