"""
SQLAlchemy ORM Models

Raw field data (points, residents, assignments), the materialized daily
public snapshot, the geocode cache and the audit log.
"""
import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    String, Integer, Float, Date, DateTime, Boolean, Text, Uuid,
    ForeignKey, CheckConstraint, UniqueConstraint, Index, text, func
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import JSONB

from src.publicmap.db.base import (
    Base, UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin
)


PRECISION_VALUES = ("approx", "exact")
STATUS_VALUES = ("active", "inactive")


class AppUser(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Identity that owns records and appears as actor in the audit log."""
    __tablename__ = "app_users"

    subject: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        comment="External identity subject ('system' for the fallback actor)"
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")

    __table_args__ = (
        CheckConstraint("role IN ('admin', 'employee', 'user')", name="check_app_user_role"),
        CheckConstraint("status IN ('active', 'disabled')", name="check_app_user_status"),
    )

    def __repr__(self) -> str:
        return f"<AppUser(id={self.id}, subject={self.subject})>"


class Resident(Base, UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin):
    """Person tied to at most one point through an active assignment."""
    __tablename__ = "residents"

    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    doc_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    created_by: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("app_users.id"),
        nullable=False,
        comment="Owner reference"
    )

    assignments: Mapped[list["ResidentPointAssignment"]] = relationship(
        "ResidentPointAssignment",
        back_populates="resident",
    )

    __table_args__ = (
        CheckConstraint("status IN ('active', 'inactive')", name="check_resident_status"),
        Index("idx_residents_status", "status"),
        Index("idx_residents_updated_at", "updated_at"),
        Index("idx_residents_deleted_at", "deleted_at"),
    )

    def __repr__(self) -> str:
        return f"<Resident(id={self.id}, status={self.status})>"


class MapPoint(Base, UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin):
    """
    Field-collected location.

    public_lat/public_lng are derived from lat/lng, precision and accuracy_m
    when the point is written and are never recomputed on read.
    """
    __tablename__ = "map_points"

    lat: Mapped[float] = mapped_column(Float, nullable=False, comment="Precise latitude")
    lng: Mapped[float] = mapped_column(Float, nullable=False, comment="Precise longitude")
    public_lat: Mapped[float] = mapped_column(Float, nullable=False, comment="Published latitude")
    public_lng: Mapped[float] = mapped_column(Float, nullable=False, comment="Published longitude")
    accuracy_m: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Accuracy radius in meters"
    )
    precision: Mapped[str] = mapped_column(String(10), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    public_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    region: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_by: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("app_users.id"),
        nullable=False,
        comment="Owner reference"
    )

    assignments: Mapped[list["ResidentPointAssignment"]] = relationship(
        "ResidentPointAssignment",
        back_populates="point",
    )

    __table_args__ = (
        CheckConstraint("lat >= -90 AND lat <= 90", name="check_point_lat_range"),
        CheckConstraint("lng >= -180 AND lng <= 180", name="check_point_lng_range"),
        CheckConstraint("precision IN ('approx', 'exact')", name="check_point_precision"),
        CheckConstraint("status IN ('active', 'inactive')", name="check_point_status"),
        Index("idx_map_points_status", "status"),
        Index("idx_map_points_updated_at", "updated_at"),
        Index("idx_map_points_deleted_at", "deleted_at"),
    )

    def __repr__(self) -> str:
        return f"<MapPoint(id={self.id}, precision={self.precision}, status={self.status})>"


class ResidentPointAssignment(Base, UUIDPrimaryKeyMixin):
    """
    Bridge row linking one resident to one point.

    At most one active row per resident and one active row per point;
    inactive rows are kept as history.
    """
    __tablename__ = "resident_point_assignments"

    resident_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("residents.id"),
        nullable=False
    )
    point_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("map_points.id"),
        nullable=False
    )
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    unassigned_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )

    resident: Mapped["Resident"] = relationship("Resident", back_populates="assignments")
    point: Mapped["MapPoint"] = relationship("MapPoint", back_populates="assignments")

    __table_args__ = (
        Index(
            "uq_assignments_active_resident",
            "resident_id",
            unique=True,
            postgresql_where=text("active = true"),
            sqlite_where=text("active = 1"),
        ),
        Index(
            "uq_assignments_active_point",
            "point_id",
            unique=True,
            postgresql_where=text("active = true"),
            sqlite_where=text("active = 1"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<ResidentPointAssignment(resident={self.resident_id}, "
            f"point={self.point_id}, active={self.active})>"
        )


class PublicMapSnapshot(Base, UUIDPrimaryKeyMixin):
    """
    One published row per point per calendar day.

    Rebuilt per date by the snapshot builder; never updated in place.
    """
    __tablename__ = "public_map_snapshots"

    point_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("map_points.id"),
        nullable=False
    )
    public_lat: Mapped[float] = mapped_column(Float, nullable=False)
    public_lng: Mapped[float] = mapped_column(Float, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    precision: Mapped[str] = mapped_column(String(10), nullable=False)
    region: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    residents: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Active assignments targeting the point at refresh time"
    )
    public_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    snapshot_date: Mapped[date] = mapped_column(Date, nullable=False)
    refreshed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="Refresh timestamp shared by all rows of one rebuild"
    )

    __table_args__ = (
        UniqueConstraint("point_id", "snapshot_date", name="uq_public_map_snapshot_point_date"),
        CheckConstraint("precision IN ('approx', 'exact')", name="check_snapshot_precision"),
        CheckConstraint("status IN ('active', 'inactive')", name="check_snapshot_status"),
        Index("idx_public_map_snapshots_snapshot_date", "snapshot_date"),
        Index("idx_public_map_snapshots_public_coords", "public_lat", "public_lng"),
    )

    def __repr__(self) -> str:
        return f"<PublicMapSnapshot(point={self.point_id}, date={self.snapshot_date})>"


class GeocodeCacheEntry(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Successful geocoding lookups keyed by normalized query text."""
    __tablename__ = "geocode_cache"

    address_query: Mapped[str] = mapped_column(Text, nullable=False, comment="Original query")
    normalized_query: Mapped[str] = mapped_column(
        Text,
        unique=True,
        nullable=False,
        comment="Trimmed, lowercased, whitespace-collapsed query"
    )
    lat: Mapped[float] = mapped_column(Float, nullable=False)
    lng: Mapped[float] = mapped_column(Float, nullable=False)
    formatted_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    provider: Mapped[str] = mapped_column(String(50), nullable=False, default="google")

    __table_args__ = (
        Index("idx_geocode_cache_updated_at", "updated_at"),
    )

    def __repr__(self) -> str:
        return f"<GeocodeCacheEntry(query={self.normalized_query})>"


class AuditLogEntry(Base, UUIDPrimaryKeyMixin):
    """Who did what to which entity."""
    __tablename__ = "audit_log"

    actor_user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("app_users.id"),
        nullable=False
    )
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    details: Mapped[Optional[dict]] = mapped_column(
        "metadata",
        JSONB,
        nullable=True,
        comment="Structured change data"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    __table_args__ = (
        Index("idx_audit_log_created_at", "created_at"),
        Index("idx_audit_log_entity", "entity_type", "entity_id"),
    )

    def __repr__(self) -> str:
        return f"<AuditLogEntry(action={self.action}, entity={self.entity_type}:{self.entity_id})>"
