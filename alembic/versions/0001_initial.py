"""initial spotwise schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("user_name", sa.String(length=120), nullable=False),
        sa.Column("email", sa.String(length=254), nullable=False, unique=True),
        sa.Column("contact_number", sa.String(length=10), nullable=True),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("password_hash", sa.String(length=256), nullable=False),
        sa.Column("address_json", sa.JSON(), nullable=False),
        sa.Column("skills", sa.JSON(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default=sa.text("'offline'")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_users_role_status", "users", ["role", "status"])
    op.create_index("ix_users_lat_lon", "users", ["latitude", "longitude"])

    op.create_table(
        "provider_locations",
        sa.Column(
            "provider_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
            nullable=False,
        ),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_provider_locations_lat_lon", "provider_locations", ["latitude", "longitude"])

    op.create_table(
        "service_requests",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("seeker_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("category", sa.String(length=64), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("contact_number", sa.String(length=32), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("additional_details", sa.Text(), nullable=True),
        sa.Column("provider_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("pin", sa.String(length=6), nullable=True),
        sa.Column("pin_generated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("pin_failed_attempts", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expiration_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("duration_minutes > 0", name="ck_service_requests_duration_positive"),
        sa.CheckConstraint(
            "status IN ('pending','in-progress','completed','cancelled','expired')",
            name="ck_service_requests_status_valid",
        ),
    )
    op.create_index(
        "ix_service_requests_status_expiration", "service_requests", ["status", "expiration_time"]
    )
    op.create_index("ix_service_requests_lat_lon", "service_requests", ["latitude", "longitude"])
    op.create_index("ix_service_requests_seeker", "service_requests", ["seeker_id", "created_at"])
    op.create_index("ix_service_requests_provider", "service_requests", ["provider_id", "status"])

    op.create_table(
        "request_history",
        sa.Column("seq", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "request_id",
            sa.Uuid(),
            sa.ForeignKey("service_requests.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("actor_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("kind", sa.String(length=16), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_request_history_request", "request_history", ["request_id", "seq"])
    op.create_index("ix_request_history_actor", "request_history", ["actor_id"])


def downgrade():
    op.drop_index("ix_request_history_actor", table_name="request_history")
    op.drop_index("ix_request_history_request", table_name="request_history")
    op.drop_table("request_history")

    op.drop_index("ix_service_requests_provider", table_name="service_requests")
    op.drop_index("ix_service_requests_seeker", table_name="service_requests")
    op.drop_index("ix_service_requests_lat_lon", table_name="service_requests")
    op.drop_index("ix_service_requests_status_expiration", table_name="service_requests")
    op.drop_table("service_requests")

    op.drop_index("ix_provider_locations_lat_lon", table_name="provider_locations")
    op.drop_table("provider_locations")

    op.drop_index("ix_users_lat_lon", table_name="users")
    op.drop_index("ix_users_role_status", table_name="users")
    op.drop_table("users")
