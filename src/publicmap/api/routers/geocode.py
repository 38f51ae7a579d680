"""
Geocoding Router
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from src.publicmap.api.dependencies import get_geocode_cache
from src.publicmap.api.schemas import ERROR_RESPONSES, ErrorResponse, GeocodeResponse
from src.publicmap.geocoding.cache import GeocodeCache

router = APIRouter(
    prefix="/geocode",
    tags=["geocoding"],
    responses={**ERROR_RESPONSES, 502: {"model": ErrorResponse, "description": "Geocoding provider failed"}},
)


@router.get("", response_model=GeocodeResponse)
def geocode(
    address: Optional[str] = Query(None, description="Free-text address"),
    cache: GeocodeCache = Depends(get_geocode_cache),
):
    """
    Resolve an address to a coordinate, serving repeated lookups from cache.
    """
    result = cache.resolve(address)
    return GeocodeResponse(**result.to_dict())
