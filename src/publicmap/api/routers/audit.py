"""
Audit Router

Read-only view over the audit log.
"""
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query

from src.publicmap.api.dependencies import get_audit_query
from src.publicmap.api.schemas import ERROR_RESPONSES, AuditEntryOut, AuditPage
from src.publicmap.models.filters import parse_timestamp
from src.publicmap.services.reporting import AuditQuery

router = APIRouter(prefix="/audit", tags=["audit"], responses=ERROR_RESPONSES)


@router.get("", response_model=AuditPage)
def list_audit_entries(
    actor_user_id: Optional[uuid.UUID] = Query(None),
    entity_type: Optional[str] = Query(None),
    from_: Optional[str] = Query(None, alias="from", description="ISO-8601 lower bound"),
    to: Optional[str] = Query(None, description="ISO-8601 upper bound"),
    limit: Optional[int] = Query(None, description="1-500, default 100"),
    query: AuditQuery = Depends(get_audit_query),
):
    """Audit entries, newest first."""
    entries = query.search(
        actor_id=actor_user_id,
        entity_type=entity_type,
        created_from=parse_timestamp(from_, "from"),
        created_to=parse_timestamp(to, "to"),
        limit=limit,
    )
    return AuditPage(items=[AuditEntryOut.model_validate(entry) for entry in entries])
