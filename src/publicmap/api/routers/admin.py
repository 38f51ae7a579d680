"""
Admin Router

Manual snapshot refresh. No debounce is applied here; rate limiting of
manual triggers belongs to whatever sits in front of this service.
"""
from fastapi import APIRouter, Depends

from src.publicmap.api.dependencies import get_refresh_task
from src.publicmap.api.schemas import ERROR_RESPONSES, OkResponse, RefreshStatus
from src.publicmap.errors import NotFound, TransactionFailure
from src.publicmap.services.refresh_task import FAILED, RefreshTask

router = APIRouter(prefix="/admin", tags=["admin"], responses=ERROR_RESPONSES)


@router.post("/sync/public-map", response_model=OkResponse)
def sync_public_map(task: RefreshTask = Depends(get_refresh_task)):
    """
    Rebuild today's snapshot now and wait for the outcome.

    Raises:
        TransactionFailure: refresh rolled back (500 INTERNAL)
    """
    observation = task.run(trigger="manual")
    if observation.status == FAILED:
        raise TransactionFailure("Snapshot refresh failed and was rolled back")
    return OkResponse(ok=True)


@router.post("/sync/public-map/background", response_model=OkResponse, status_code=202)
def sync_public_map_background(task: RefreshTask = Depends(get_refresh_task)):
    """Start a refresh without waiting; poll the status endpoint for the outcome."""
    task.start_background(trigger="manual")
    return OkResponse(ok=True)


@router.get("/sync/public-map/status", response_model=RefreshStatus)
def refresh_status(task: RefreshTask = Depends(get_refresh_task)):
    """Outcome of the last refresh run by this process's refresh task."""
    observation = task.last_observation
    if observation is None:
        raise NotFound("No refresh has run yet")
    return observation.to_dict()
