"""initial_schema

Revision ID: 000000000000
Revises:
Create Date: 2026-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from geoalchemy2 import Geography

# revision identifiers, used by Alembic.
revision: str = '000000000000'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    ]


def upgrade() -> None:
    # Enable PostGIS extension
    op.execute("CREATE EXTENSION IF NOT EXISTS postgis")

    # Create app_users table
    op.create_table(
        'app_users',
        sa.Column('id', sa.Uuid(), nullable=False, comment='Record identity'),
        sa.Column('subject', sa.String(length=255), nullable=False, comment="External identity subject ('system' for the fallback actor)"),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('subject'),
        sa.CheckConstraint("role IN ('admin', 'employee', 'user')", name='check_app_user_role'),
        sa.CheckConstraint("status IN ('active', 'disabled')", name='check_app_user_status'),
    )

    # Create residents table
    op.create_table(
        'residents',
        sa.Column('id', sa.Uuid(), nullable=False, comment='Record identity'),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('doc_id', sa.String(length=64), nullable=True),
        sa.Column('phone', sa.String(length=64), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('created_by', sa.Uuid(), nullable=False, comment='Owner reference'),
        *_timestamps(),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['created_by'], ['app_users.id']),
        sa.CheckConstraint("status IN ('active', 'inactive')", name='check_resident_status'),
    )
    op.create_index('idx_residents_status', 'residents', ['status'], unique=False)
    op.create_index('idx_residents_updated_at', 'residents', ['updated_at'], unique=False)
    op.create_index('idx_residents_deleted_at', 'residents', ['deleted_at'], unique=False)

    # Create map_points table
    op.create_table(
        'map_points',
        sa.Column('id', sa.Uuid(), nullable=False, comment='Record identity'),
        sa.Column('lat', sa.Float(), nullable=False, comment='Precise latitude'),
        sa.Column('lng', sa.Float(), nullable=False, comment='Precise longitude'),
        sa.Column('public_lat', sa.Float(), nullable=False, comment='Published latitude'),
        sa.Column('public_lng', sa.Float(), nullable=False, comment='Published longitude'),
        sa.Column('accuracy_m', sa.Integer(), nullable=True, comment='Accuracy radius in meters'),
        sa.Column('precision', sa.String(length=10), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('category', sa.String(length=100), nullable=True),
        sa.Column('public_note', sa.Text(), nullable=True),
        sa.Column('region', sa.String(length=255), nullable=True),
        sa.Column('created_by', sa.Uuid(), nullable=False, comment='Owner reference'),
        *_timestamps(),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['created_by'], ['app_users.id']),
        sa.CheckConstraint('lat >= -90 AND lat <= 90', name='check_point_lat_range'),
        sa.CheckConstraint('lng >= -180 AND lng <= 180', name='check_point_lng_range'),
        sa.CheckConstraint("precision IN ('approx', 'exact')", name='check_point_precision'),
        sa.CheckConstraint("status IN ('active', 'inactive')", name='check_point_status'),
    )
    op.create_index('idx_map_points_status', 'map_points', ['status'], unique=False)
    op.create_index('idx_map_points_updated_at', 'map_points', ['updated_at'], unique=False)
    op.create_index('idx_map_points_deleted_at', 'map_points', ['deleted_at'], unique=False)

    # Create resident_point_assignments table
    op.create_table(
        'resident_point_assignments',
        sa.Column('id', sa.Uuid(), nullable=False, comment='Record identity'),
        sa.Column('resident_id', sa.Uuid(), nullable=False),
        sa.Column('point_id', sa.Uuid(), nullable=False),
        sa.Column('active', sa.Boolean(), server_default=sa.text('TRUE'), nullable=False),
        sa.Column('assigned_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('unassigned_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['resident_id'], ['residents.id']),
        sa.ForeignKeyConstraint(['point_id'], ['map_points.id']),
    )
    # One active assignment per resident and per point
    op.create_index(
        'uq_assignments_active_resident', 'resident_point_assignments', ['resident_id'],
        unique=True, postgresql_where=sa.text('active = true'),
    )
    op.create_index(
        'uq_assignments_active_point', 'resident_point_assignments', ['point_id'],
        unique=True, postgresql_where=sa.text('active = true'),
    )

    # Create public_map_snapshots table
    op.create_table(
        'public_map_snapshots',
        sa.Column('id', sa.Uuid(), nullable=False, comment='Record identity'),
        sa.Column('point_id', sa.Uuid(), nullable=False),
        sa.Column('public_lat', sa.Float(), nullable=False),
        sa.Column('public_lng', sa.Float(), nullable=False),
        sa.Column(
            'geog',
            Geography(geometry_type='POINT', srid=4326, spatial_index=False),
            sa.Computed('ST_SetSRID(ST_MakePoint(public_lng, public_lat), 4326)::geography', persisted=True),
            nullable=True,
            comment='Published location for spatial queries',
        ),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('precision', sa.String(length=10), nullable=False),
        sa.Column('region', sa.String(length=255), nullable=True),
        sa.Column('residents', sa.Integer(), server_default=sa.text('0'), nullable=False, comment='Active assignments targeting the point at refresh time'),
        sa.Column('public_note', sa.Text(), nullable=True),
        sa.Column('snapshot_date', sa.Date(), nullable=False),
        sa.Column('refreshed_at', sa.DateTime(timezone=True), nullable=False, comment='Refresh timestamp shared by all rows of one rebuild'),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['point_id'], ['map_points.id']),
        sa.UniqueConstraint('point_id', 'snapshot_date', name='uq_public_map_snapshot_point_date'),
        sa.CheckConstraint("precision IN ('approx', 'exact')", name='check_snapshot_precision'),
        sa.CheckConstraint("status IN ('active', 'inactive')", name='check_snapshot_status'),
    )
    op.create_index('idx_public_map_snapshots_snapshot_date', 'public_map_snapshots', ['snapshot_date'], unique=False)
    op.create_index('idx_public_map_snapshots_public_coords', 'public_map_snapshots', ['public_lat', 'public_lng'], unique=False)
    op.create_index('idx_public_map_snapshots_geog', 'public_map_snapshots', ['geog'], unique=False, postgresql_using='gist')

    # Create geocode_cache table
    op.create_table(
        'geocode_cache',
        sa.Column('id', sa.Uuid(), nullable=False, comment='Record identity'),
        sa.Column('address_query', sa.Text(), nullable=False, comment='Original query'),
        sa.Column('normalized_query', sa.Text(), nullable=False, comment='Trimmed, lowercased, whitespace-collapsed query'),
        sa.Column('lat', sa.Float(), nullable=False),
        sa.Column('lng', sa.Float(), nullable=False),
        sa.Column('formatted_address', sa.Text(), nullable=True),
        sa.Column('provider', sa.String(length=50), server_default=sa.text("'google'"), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('normalized_query'),
    )
    op.create_index('idx_geocode_cache_updated_at', 'geocode_cache', ['updated_at'], unique=False)

    # Create audit_log table
    op.create_table(
        'audit_log',
        sa.Column('id', sa.Uuid(), nullable=False, comment='Record identity'),
        sa.Column('actor_user_id', sa.Uuid(), nullable=False),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('entity_type', sa.String(length=50), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=False),
        sa.Column('metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=True, comment='Structured change data'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['actor_user_id'], ['app_users.id']),
    )
    op.create_index('idx_audit_log_created_at', 'audit_log', ['created_at'], unique=False)
    op.create_index('idx_audit_log_entity', 'audit_log', ['entity_type', 'entity_id'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_audit_log_entity', table_name='audit_log')
    op.drop_index('idx_audit_log_created_at', table_name='audit_log')
    op.drop_table('audit_log')

    op.drop_index('idx_geocode_cache_updated_at', table_name='geocode_cache')
    op.drop_table('geocode_cache')

    op.drop_index('idx_public_map_snapshots_geog', table_name='public_map_snapshots')
    op.drop_index('idx_public_map_snapshots_public_coords', table_name='public_map_snapshots')
    op.drop_index('idx_public_map_snapshots_snapshot_date', table_name='public_map_snapshots')
    op.drop_table('public_map_snapshots')

    op.drop_index('uq_assignments_active_point', table_name='resident_point_assignments')
    op.drop_index('uq_assignments_active_resident', table_name='resident_point_assignments')
    op.drop_table('resident_point_assignments')

    op.drop_index('idx_map_points_deleted_at', table_name='map_points')
    op.drop_index('idx_map_points_updated_at', table_name='map_points')
    op.drop_index('idx_map_points_status', table_name='map_points')
    op.drop_table('map_points')

    op.drop_index('idx_residents_deleted_at', table_name='residents')
    op.drop_index('idx_residents_updated_at', table_name='residents')
    op.drop_index('idx_residents_status', table_name='residents')
    op.drop_table('residents')

    op.drop_table('app_users')
