"""
Public Map Router

Paginated reads of the daily public snapshot.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from src.publicmap.api.dependencies import get_public_map_service
from src.publicmap.api.schemas import ERROR_RESPONSES, MapPointDetail, MapPointItem, MapPointPage
from src.publicmap.db.models import PublicMapSnapshot
from src.publicmap.models.bounds import Bounds
from src.publicmap.models.filters import parse_timestamp
from src.publicmap.services.public_map import PublicMapService

router = APIRouter(prefix="/map", tags=["map"], responses=ERROR_RESPONSES)


def _parse_limit(raw: Optional[str]) -> Optional[int]:
    """Non-numeric limits fall back to the default page size."""
    if raw is None:
        return None
    try:
        return int(float(raw))
    except (TypeError, ValueError, OverflowError):
        return None


def _to_item(row: PublicMapSnapshot) -> MapPointItem:
    return MapPointItem(
        id=row.point_id,
        public_lat=row.public_lat,
        public_lng=row.public_lng,
        precision=row.precision,
        status=row.status,
        updated_at=row.refreshed_at,
        public_note=row.public_note,
        region=row.region,
        residents=row.residents,
    )


@router.get("/points", response_model=MapPointPage)
def list_points(
    bbox: Optional[str] = Query(None, description="west,south,east,north in decimal degrees"),
    limit: Optional[str] = Query(None, description="Page size (1-500, default 200)"),
    cursor: Optional[str] = Query(None, description="Opaque cursor from a previous page"),
    status: Optional[str] = Query(None, description="active or inactive"),
    precision: Optional[str] = Query(None, description="approx or exact"),
    updated_since: Optional[str] = Query(None, description="ISO-8601 timestamp"),
    service: PublicMapService = Depends(get_public_map_service),
):
    """
    List today's snapshot rows inside a bounding box.

    Returns:
        Page of items, cursor for the next page (null at the end) and the
        time of the last refresh
    """
    bounds = Bounds.parse_bbox(bbox)
    page = service.list_points(
        bounds=bounds,
        limit=_parse_limit(limit),
        cursor=cursor,
        status=status or None,
        precision=precision or None,
        updated_since=parse_timestamp(updated_since, "updated_since"),
    )
    return MapPointPage(
        items=[_to_item(row) for row in page.items],
        next_cursor=page.next_cursor,
        last_sync_at=page.last_sync_at,
    )


@router.get("/points/{point_id}", response_model=MapPointDetail)
def get_point(
    point_id: str,
    service: PublicMapService = Depends(get_public_map_service),
):
    """
    Latest snapshot row for one point.

    Raises:
        NotFound: point absent from every snapshot
    """
    row = service.get_point(point_id)
    return MapPointDetail(
        **_to_item(row).model_dump(),
        snapshot_date=row.snapshot_date,
    )
