"""
Assignments Router

Exclusive resident/point links.
"""
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query

from src.publicmap.api.dependencies import get_actor_id, get_assignment_manager
from src.publicmap.api.schemas import ERROR_RESPONSES, AssignmentOut, AssignmentRequest, OkResponse
from src.publicmap.errors import ValidationError
from src.publicmap.services.assignments import AssignmentManager

router = APIRouter(prefix="/assignments", tags=["assignments"], responses=ERROR_RESPONSES)


@router.post("", response_model=OkResponse)
def create_assignment(
    body: AssignmentRequest,
    manager: AssignmentManager = Depends(get_assignment_manager),
    actor_id: uuid.UUID = Depends(get_actor_id),
):
    """
    Make the resident the only active occupant of the point.

    Any earlier active assignment of the resident or of the point is closed
    in the same transaction.
    """
    if body.resident_id is None or body.point_id is None:
        raise ValidationError("resident_id and point_id are required")
    manager.assign(body.resident_id, body.point_id, actor_id)
    return OkResponse(ok=True)


@router.get("/active", response_model=Optional[AssignmentOut])
def get_active_assignment(
    resident_id: Optional[uuid.UUID] = Query(None),
    point_id: Optional[uuid.UUID] = Query(None),
    manager: AssignmentManager = Depends(get_assignment_manager),
):
    """Current active assignment for a resident or a point, or null."""
    if resident_id is not None:
        return manager.active_for_resident(resident_id)
    if point_id is not None:
        return manager.active_for_point(point_id)
    raise ValidationError("resident_id or point_id is required")
