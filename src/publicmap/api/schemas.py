"""
Pydantic Schemas for API Request/Response Models

These schemas define the JSON structure for API endpoints.
"""
import uuid
from typing import Optional, List, Literal
from datetime import datetime, date
from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    """Shared error envelope."""
    error: ErrorDetail


ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Validation error"},
    404: {"model": ErrorResponse, "description": "Not found"},
    500: {"model": ErrorResponse, "description": "Internal or configuration error"},
}


class OkResponse(BaseModel):
    ok: bool = True


class IdResponse(BaseModel):
    id: uuid.UUID


# Public map

class MapPointItem(BaseModel):
    """Snapshot row as listed on the public map."""
    id: uuid.UUID
    public_lat: float
    public_lng: float
    precision: str
    status: str
    updated_at: datetime
    public_note: Optional[str] = None
    region: Optional[str] = None
    residents: int = 0


class MapPointPage(BaseModel):
    items: List[MapPointItem]
    next_cursor: Optional[str] = None
    last_sync_at: Optional[datetime] = None


class MapPointDetail(MapPointItem):
    """Latest snapshot row for one point."""
    snapshot_date: date


# Geocoding

class GeocodeResponse(BaseModel):
    lat: float
    lng: float
    formatted_address: Optional[str] = None


# Reports

class BoundsIn(BaseModel):
    west: float
    south: float
    east: float
    north: float


class ReportIncludeIn(BaseModel):
    indicators: bool = False
    points: bool = True


class ReportFiltersIn(BaseModel):
    """Bounds plus optional attribute filters."""
    bounds: Optional[BoundsIn] = None
    status: Optional[Literal["active", "inactive"]] = None
    precision: Optional[Literal["approx", "exact"]] = None
    region: Optional[str] = None
    updated_from: Optional[datetime] = None
    updated_to: Optional[datetime] = None
    include: Optional[ReportIncludeIn] = None


class ReportExportRequest(ReportFiltersIn):
    format: Optional[str] = Field(None, description="JSON, CSV or PDF")


class ReportSummary(BaseModel):
    points: int
    residents: int
    last_updated: Optional[datetime] = None


class ReportPreviewResponse(BaseModel):
    report_id: str
    summary: ReportSummary


class ReportExportResponse(BaseModel):
    content: Optional[str] = None
    content_base64: Optional[str] = None
    content_type: str
    filename: str


# Assignments

class AssignmentRequest(BaseModel):
    resident_id: Optional[uuid.UUID] = None
    point_id: Optional[uuid.UUID] = None


class AssignmentOut(BaseModel):
    id: uuid.UUID
    resident_id: uuid.UUID
    point_id: uuid.UUID
    active: bool
    assigned_at: datetime
    unassigned_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Points

class PointCreate(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    accuracy_m: Optional[int] = Field(None, ge=0, description="Accuracy radius in meters")
    status: Literal["active", "inactive"]
    precision: Literal["approx", "exact"]
    category: Optional[str] = None
    public_note: Optional[str] = None
    region: Optional[str] = None


class PointUpdate(BaseModel):
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)
    accuracy_m: Optional[int] = Field(None, ge=0)
    status: Optional[Literal["active", "inactive"]] = None
    precision: Optional[Literal["approx", "exact"]] = None
    category: Optional[str] = None
    public_note: Optional[str] = None
    region: Optional[str] = None


class PointOut(BaseModel):
    id: uuid.UUID
    public_lat: float
    public_lng: float
    precision: str

    class Config:
        from_attributes = True


# Residents

class ResidentCreate(BaseModel):
    full_name: str = Field(..., min_length=1)
    status: Literal["active", "inactive"]
    doc_id: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None


class ResidentUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1)
    status: Optional[Literal["active", "inactive"]] = None
    doc_id: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None


# Audit

class AuditEntryOut(BaseModel):
    id: uuid.UUID
    actor_user_id: uuid.UUID
    action: str
    entity_type: str
    entity_id: uuid.UUID
    details: Optional[dict] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AuditPage(BaseModel):
    items: List[AuditEntryOut]


# Admin / health

class RefreshStatus(BaseModel):
    trigger: str
    status: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    snapshot_date: Optional[date] = None
    rows_written: Optional[int] = None
    error: Optional[str] = None


class HealthCheck(BaseModel):
    """Health check response."""
    status: str
    version: str
    database: str
    timestamp: datetime
