"""
Points Router

Write path for map points. The public coordinate is computed here, once,
and stored with the point.
"""
import uuid

from fastapi import APIRouter, Depends

from src.publicmap.api.dependencies import get_actor_id, get_point_service
from src.publicmap.api.schemas import ERROR_RESPONSES, OkResponse, PointCreate, PointOut, PointUpdate
from src.publicmap.errors import NotFound
from src.publicmap.services.points import PointService

router = APIRouter(prefix="/points", tags=["points"], responses=ERROR_RESPONSES)


def _point_id(raw: str) -> uuid.UUID:
    try:
        return uuid.UUID(raw)
    except ValueError:
        raise NotFound("Point not found")


@router.post("", response_model=PointOut)
def create_point(
    body: PointCreate,
    service: PointService = Depends(get_point_service),
    actor_id: uuid.UUID = Depends(get_actor_id),
):
    """Create a point; approximate points get a jittered public coordinate."""
    return service.create(body.model_dump(), actor_id)


@router.put("/{point_id}", response_model=OkResponse)
def update_point(
    point_id: str,
    body: PointUpdate,
    service: PointService = Depends(get_point_service),
    actor_id: uuid.UUID = Depends(get_actor_id),
):
    """Partial update; coordinate changes recompute the public coordinate."""
    service.update(_point_id(point_id), body.model_dump(exclude_unset=True), actor_id)
    return OkResponse(ok=True)


@router.delete("/{point_id}", response_model=OkResponse)
def delete_point(
    point_id: str,
    service: PointService = Depends(get_point_service),
    actor_id: uuid.UUID = Depends(get_actor_id),
):
    service.delete(_point_id(point_id), actor_id)
    return OkResponse(ok=True)
