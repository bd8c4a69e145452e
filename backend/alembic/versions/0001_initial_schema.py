"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Creates all tables for Film Night:
users, films, events, event_films, invitations, feature_requests.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- users ---
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(120), nullable=True),
        sa.Column("email", sa.String(320), nullable=True, unique=True),
        sa.Column("email_verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("role", sa.String(10), nullable=False, server_default="GUEST"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- films ---
    op.create_table(
        "films",
        sa.Column("film_id", sa.String(36), primary_key=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("reference_url", sa.String(500), nullable=False, unique=True),
        sa.Column("synopsis", sa.Text, nullable=True),
        sa.Column("runtime_minutes", sa.Integer, nullable=True),
        sa.Column("release_year", sa.Integer, nullable=True),
        sa.Column("poster_image", sa.String(1000), nullable=True),
        sa.Column("director", sa.String(120), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- events ---
    op.create_table(
        "events",
        sa.Column("event_id", sa.String(36), primary_key=True),
        sa.Column("slug", sa.String(200), nullable=False, unique=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("door_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("hero_image", sa.String(1000), nullable=True),
        sa.Column("is_published", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_archived", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column(
            "created_by_id", sa.String(36),
            sa.ForeignKey("users.user_id", ondelete="RESTRICT"), nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- event_films ---
    op.create_table(
        "event_films",
        sa.Column("event_film_id", sa.String(36), primary_key=True),
        sa.Column(
            "event_id", sa.String(36),
            sa.ForeignKey("events.event_id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "film_id", sa.String(36),
            sa.ForeignKey("films.film_id", ondelete="RESTRICT"), nullable=False,
        ),
        sa.Column("slot_order", sa.Integer, nullable=False, server_default="0"),
        sa.Column("note", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("event_id", "film_id", name="uq_event_films_event_film"),
    )
    op.create_index("ix_event_films_event_id", "event_films", ["event_id"])

    # --- invitations ---
    op.create_table(
        "invitations",
        sa.Column("invitation_id", sa.String(36), primary_key=True),
        sa.Column(
            "event_id", sa.String(36),
            sa.ForeignKey("events.event_id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "user_id", sa.String(36),
            sa.ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("invitee_name", sa.String(120), nullable=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("status", sa.String(10), nullable=False, server_default="PENDING"),
        sa.Column("rsvp_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("note", sa.String(500), nullable=True),
        sa.Column("token", sa.String(64), nullable=False, unique=True),
        sa.Column("plus_ones", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("event_id", "email", name="uq_invitations_event_email"),
        sa.CheckConstraint("plus_ones >= 0", name="ck_invitations_plus_ones_non_negative"),
    )
    op.create_index("ix_invitations_event_id", "invitations", ["event_id"])

    # --- feature_requests ---
    op.create_table(
        "feature_requests",
        sa.Column("request_id", sa.String(36), primary_key=True),
        sa.Column(
            "event_id", sa.String(36),
            sa.ForeignKey("events.event_id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column(
            "film_id", sa.String(36),
            sa.ForeignKey("films.film_id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column(
            "submitted_by_id", sa.String(36),
            sa.ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("submitted_email", sa.String(320), nullable=False),
        sa.Column("submitter_name", sa.String(120), nullable=True),
        sa.Column("film_title", sa.String(200), nullable=False),
        sa.Column("letterboxd_url", sa.String(500), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("status", sa.String(10), nullable=False, server_default="PENDING"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("feature_requests")
    op.drop_index("ix_invitations_event_id", table_name="invitations")
    op.drop_table("invitations")
    op.drop_index("ix_event_films_event_id", table_name="event_films")
    op.drop_table("event_films")
    op.drop_table("events")
    op.drop_table("films")
    op.drop_table("users")
