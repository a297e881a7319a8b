"""Plaque filtering endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status
from shapely.geometry import mapping

from ...schemas.plaques import (
    FilterOptionsRequest,
    FilterOptionsResponse,
    FilterRequest,
    FilterResponse,
    PlaqueModel,
    RadiusCountRequest,
    RadiusCountResponse,
)
from ...services.filtering.engine import apply_filters, available_values, count_within_radius
from ...services.filtering.models import SetMembership
from ...services.geospatial import circle_polygon

router = APIRouter(prefix="/plaques", tags=["plaques"])


@router.post("/filter", response_model=FilterResponse, status_code=status.HTTP_200_OK)
def filter_plaques(payload: FilterRequest) -> FilterResponse:
    try:
        plaques = [item.to_domain() for item in payload.plaques]
        membership = SetMembership(payload.visited_ids, payload.favorite_ids)
        visible = apply_filters(plaques, payload.criteria.to_domain(), membership)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error filtering plaques: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to filter plaques: {str(exc)}"
        ) from exc
    return FilterResponse(
        count=len(visible),
        total=len(plaques),
        plaques=[PlaqueModel.from_domain(plaque) for plaque in visible],
    )


@router.post("/filter-options", response_model=FilterOptionsResponse, status_code=status.HTTP_200_OK)
def filter_options(payload: FilterOptionsRequest) -> FilterOptionsResponse:
    """Distinct colours, postcodes and professions to offer as filter choices."""
    values = available_values(item.to_domain() for item in payload.plaques)
    return FilterOptionsResponse(**values)


@router.post("/within-radius", response_model=RadiusCountResponse, status_code=status.HTTP_200_OK)
def within_radius(payload: RadiusCountRequest) -> RadiusCountResponse:
    try:
        plaques = [item.to_domain() for item in payload.plaques]
        count = count_within_radius(plaques, payload.center, payload.radius_km)
        circle = mapping(circle_polygon(payload.center, payload.radius_km))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return RadiusCountResponse(count=count, radius_km=payload.radius_km, circle=circle)
