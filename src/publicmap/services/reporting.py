"""
Aggregate Reporting Engine

Bounds- and attribute-scoped summaries and exports over today's public
snapshot, plus audit log queries.

Report ids are generated per preview call and are not persisted; export
always recomputes from the filters it is given.
"""
import base64
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import sessionmaker

from config.settings import settings
from src.publicmap.db.models import AuditLogEntry
from src.publicmap.db.repository import AuditLogRepository, SnapshotRepository
from src.publicmap.db.session import read_session
from src.publicmap.errors import ValidationError
from src.publicmap.models.bounds import Bounds
from src.publicmap.models.filters import SnapshotFilters
from src.publicmap.reports.renderers import (
    render_csv,
    render_json,
    render_pdf,
    snapshot_record,
)
from src.publicmap.utils.clock import Clock, utcnow
from src.publicmap.utils.logger import get_logger

logger = get_logger(__name__)

EXPORT_FORMATS = ("JSON", "CSV", "PDF")


@dataclass(frozen=True)
class ReportInclude:
    indicators: bool = False
    points: bool = True


class ReportingEngine:
    """Summaries and exports over the current snapshot."""

    def __init__(self, session_factory: sessionmaker, clock: Optional[Clock] = None):
        self.session_factory = session_factory
        self.clock = clock or utcnow
        self.snapshots = SnapshotRepository()

    def build_filters(
        self,
        bounds: Optional[Bounds] = None,
        status: Optional[str] = None,
        precision: Optional[str] = None,
        region: Optional[str] = None,
        updated_from: Optional[datetime] = None,
        updated_to: Optional[datetime] = None
    ) -> SnapshotFilters:
        """Filters over today's snapshot."""
        return SnapshotFilters(
            snapshot_date=self.clock().date(),
            bounds=bounds,
            status=status,
            precision=precision,
            region=region,
            updated_from=updated_from,
            updated_to=updated_to,
        )

    def summarize(self, filters: SnapshotFilters) -> Dict[str, Any]:
        """Point count, resident total and most recent update for matching rows."""
        with read_session(self.session_factory) as session:
            return self.snapshots.summarize(session, filters)

    def preview(self, filters: SnapshotFilters) -> Dict[str, Any]:
        summary = self.summarize(filters)
        report_id = f"rep_{uuid.uuid4()}"
        logger.info("report_preview_generated", report_id=report_id, points=summary["points"])
        return {"report_id": report_id, "summary": summary}

    def records(self, filters: SnapshotFilters) -> List[Dict[str, Any]]:
        with read_session(self.session_factory) as session:
            rows = self.snapshots.matching(session, filters)
        return [snapshot_record(row) for row in rows]

    def export(
        self,
        filters: SnapshotFilters,
        export_format: str,
        include: Optional[ReportInclude] = None
    ) -> Dict[str, Any]:
        """
        Render matching records in the requested format.

        Returns:
            {content, content_type, filename} for JSON and CSV,
            {content_base64, content_type, filename} for PDF

        Raises:
            ValidationError: missing or unknown format
        """
        if not export_format:
            raise ValidationError("format is required")
        fmt = export_format.upper()
        if fmt not in EXPORT_FORMATS:
            raise ValidationError(f"format must be one of {', '.join(EXPORT_FORMATS)}")

        include = include or ReportInclude()
        records = self.records(filters) if include.points else []
        stamp = self.clock().strftime("%Y%m%d%H%M%S")
        logger.info("report_export_generated", format=fmt, records=len(records))

        if fmt == "JSON":
            summary = self.summarize(filters) if include.indicators else None
            return {
                "content": render_json(records, summary),
                "content_type": "application/json",
                "filename": f"public-report-{stamp}.json",
            }

        if fmt == "CSV":
            return {
                "content": render_csv(records),
                "content_type": "text/csv",
                "filename": f"public-report-{stamp}.csv",
            }

        pdf_bytes = render_pdf(records)
        return {
            "content_base64": base64.b64encode(pdf_bytes).decode("ascii"),
            "content_type": "application/pdf",
            "filename": f"public-report-{stamp}.pdf",
        }


class AuditQuery:
    """Read-only access to the audit log written by write handlers."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory
        self.audit = AuditLogRepository()

    def search(
        self,
        actor_id: Optional[uuid.UUID] = None,
        entity_type: Optional[str] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
        limit: Optional[int] = None
    ) -> List[AuditLogEntry]:
        if limit is None:
            limit = settings.audit_default_limit
        limit = min(max(1, int(limit)), settings.audit_max_limit)
        with read_session(self.session_factory) as session:
            return self.audit.search(
                session,
                actor_id=actor_id,
                entity_type=entity_type,
                created_from=created_from,
                created_to=created_to,
                limit=limit,
            )
