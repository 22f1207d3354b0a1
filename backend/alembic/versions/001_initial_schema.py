"""Initial schema: events and the registration ledger.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Events table: ids are assigned by the event-management side
    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("registration_open", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("capacity > 0", name="check_event_capacity_positive"),
    )

    # Registrations table: append-only ledger, status changes in place
    op.create_table(
        "registrations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("participant_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("requested_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("checked_in", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "status IN ('WAITLISTED', 'CONFIRMED', 'CANCELLED', 'ATTENDED', 'NO_SHOW')",
            name="check_registration_status",
        ),
    )
    op.create_index("ix_registrations_participant_id", "registrations", ["participant_id"])
    # One live registration per (event, participant); cancelled rows stay as history.
    # Backstop for the per-event lock: a second process that skipped the lock
    # fails here instead of double-registering.
    op.create_index(
        "uq_active_registration",
        "registrations",
        ["event_id", "participant_id"],
        unique=True,
        postgresql_where=sa.text("status <> 'CANCELLED'"),
    )
    # Covers both hot queries inside the event lock:
    #   SELECT count(*) ... WHERE event_id = ? AND status = 'CONFIRMED'
    #   ... WHERE event_id = ? AND status = 'WAITLISTED' ORDER BY requested_at, id LIMIT 1
    op.create_index(
        "ix_registrations_event_status_order",
        "registrations",
        ["event_id", "status", "requested_at", "id"],
    )


def downgrade() -> None:
    op.drop_table("registrations")
    op.drop_table("events")
