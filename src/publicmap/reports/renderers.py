"""
Report Renderers

Turn snapshot records into export payloads: pretty-printed JSON, CSV with
every non-null value quoted, and a paginated PDF document.
"""
import io
import json
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from src.publicmap.db.models import PublicMapSnapshot

EXPORT_FIELDS = [
    "id",
    "public_lat",
    "public_lng",
    "status",
    "precision",
    "region",
    "residents",
    "public_note",
    "updated_at",
]

PDF_TITLE = "Public report"
PDF_MARGIN = 50
PDF_LINE_HEIGHT = 14


def _format_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def snapshot_record(row: PublicMapSnapshot) -> Dict[str, Any]:
    """Flatten a snapshot row into the exported record shape."""
    return {
        "id": str(row.point_id),
        "public_lat": row.public_lat,
        "public_lng": row.public_lng,
        "status": row.status,
        "precision": row.precision,
        "region": row.region,
        "residents": row.residents,
        "public_note": row.public_note,
        "updated_at": _format_value(row.refreshed_at),
    }


def render_json(records: List[Dict[str, Any]], summary: Optional[Dict[str, Any]] = None) -> str:
    document: Dict[str, Any] = {"items": records}
    if summary is not None:
        document["summary"] = {key: _format_value(value) for key, value in summary.items()}
    return json.dumps(document, indent=2, ensure_ascii=False)


def csv_cell(value: Any) -> str:
    """Quote a value, doubling embedded quotes; null becomes an empty cell."""
    if value is None:
        return ""
    text = str(_format_value(value)).replace('"', '""')
    return f'"{text}"'


def render_csv(records: Iterable[Dict[str, Any]], fields: List[str] = EXPORT_FIELDS) -> str:
    lines = [",".join(fields)]
    for record in records:
        lines.append(",".join(csv_cell(record.get(field)) for field in fields))
    return "\n".join(lines)


def _record_line(record: Dict[str, Any]) -> str:
    parts = [
        record["id"],
        f"{record['public_lat']:.5f}, {record['public_lng']:.5f}",
        record["status"],
        record["precision"],
        f"residents: {record['residents']}",
    ]
    if record.get("region"):
        parts.append(record["region"])
    return " | ".join(str(part) for part in parts)


def render_pdf(records: List[Dict[str, Any]], title: str = PDF_TITLE) -> bytes:
    """
    Render a human-readable document.

    First page carries the title and the total count line; one line per
    record follows, continuing onto new pages as needed.
    """
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4, invariant=1)
    pdf.setTitle(title)
    width, height = A4

    pdf.setFont("Helvetica", 18)
    pdf.drawString(PDF_MARGIN, height - 70, title)
    pdf.setFont("Helvetica", 12)
    pdf.drawString(PDF_MARGIN, height - 100, f"Total points: {len(records)}")

    pdf.setFont("Helvetica", 9)
    y = height - 130
    for record in records:
        if y < PDF_MARGIN:
            pdf.showPage()
            pdf.setFont("Helvetica", 9)
            y = height - PDF_MARGIN
        pdf.drawString(PDF_MARGIN, y, _record_line(record))
        y -= PDF_LINE_HEIGHT

    pdf.showPage()
    pdf.save()
    return buffer.getvalue()
