"""
Residents Router
"""
import uuid

from fastapi import APIRouter, Depends

from src.publicmap.api.dependencies import get_actor_id, get_resident_service
from src.publicmap.api.schemas import ERROR_RESPONSES, IdResponse, OkResponse, ResidentCreate, ResidentUpdate
from src.publicmap.errors import NotFound
from src.publicmap.services.residents import ResidentService

router = APIRouter(prefix="/residents", tags=["residents"], responses=ERROR_RESPONSES)


@router.post("", response_model=IdResponse)
def create_resident(
    body: ResidentCreate,
    service: ResidentService = Depends(get_resident_service),
    actor_id: uuid.UUID = Depends(get_actor_id),
):
    resident = service.create(body.model_dump(), actor_id)
    return IdResponse(id=resident.id)


@router.put("/{resident_id}", response_model=OkResponse)
def update_resident(
    resident_id: str,
    body: ResidentUpdate,
    service: ResidentService = Depends(get_resident_service),
    actor_id: uuid.UUID = Depends(get_actor_id),
):
    try:
        key = uuid.UUID(resident_id)
    except ValueError:
        raise NotFound("Resident not found")
    service.update(key, body.model_dump(exclude_unset=True), actor_id)
    return OkResponse(ok=True)
