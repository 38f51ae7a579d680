"""
Reports Router

Stateless preview and export over the current public snapshot.
"""
from fastapi import APIRouter, Depends

from src.publicmap.api.dependencies import get_reporting_engine
from src.publicmap.api.schemas import (
    ERROR_RESPONSES,
    ReportExportRequest,
    ReportExportResponse,
    ReportFiltersIn,
    ReportPreviewResponse,
)
from src.publicmap.errors import ValidationError
from src.publicmap.models.bounds import Bounds
from src.publicmap.models.filters import SnapshotFilters, parse_timestamp
from src.publicmap.services.reporting import ReportInclude, ReportingEngine

router = APIRouter(prefix="/reports", tags=["reports"], responses=ERROR_RESPONSES)


def _filters(body: ReportFiltersIn, engine: ReportingEngine) -> SnapshotFilters:
    if body.bounds is None:
        raise ValidationError("bounds is required")
    return engine.build_filters(
        bounds=Bounds(**body.bounds.model_dump()),
        status=body.status,
        precision=body.precision,
        region=body.region,
        updated_from=parse_timestamp(body.updated_from, "updated_from"),
        updated_to=parse_timestamp(body.updated_to, "updated_to"),
    )


@router.post("/preview", response_model=ReportPreviewResponse)
def preview_report(
    body: ReportFiltersIn,
    engine: ReportingEngine = Depends(get_reporting_engine),
):
    """
    Scalar summary (points, residents, last update) for the given bounds.

    The returned report_id is informational only; it is not stored.
    """
    return engine.preview(_filters(body, engine))


@router.post(
    "/export",
    response_model=ReportExportResponse,
    response_model_exclude_none=True,
)
def export_report(
    body: ReportExportRequest,
    engine: ReportingEngine = Depends(get_reporting_engine),
):
    """
    Export matching records as JSON, CSV or PDF (base64).
    """
    if body.bounds is None or not body.format:
        raise ValidationError("bounds and format are required")
    include = ReportInclude(**body.include.model_dump()) if body.include else None
    return engine.export(_filters(body, engine), body.format, include)
