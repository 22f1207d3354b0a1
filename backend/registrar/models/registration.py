"""
Registration ledger rows.

Key design decisions:
- Rows are never deleted; CANCELLED is a terminal status
- Partial unique index allows one non-cancelled registration per
  (event, participant) while keeping cancelled history
- (event_id, status, requested_at, id) index serves both the confirmed
  count and the oldest-waitlisted lookup
"""

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import relationship

from registrar.db.base import Base, TimestampMixin

STATUS_VALUES = ("WAITLISTED", "CONFIRMED", "CANCELLED", "ATTENDED", "NO_SHOW")


class Registration(Base, TimestampMixin):
    __tablename__ = "registrations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False)
    participant_id = Column(Integer, nullable=False, index=True)
    status = Column(String(20), nullable=False)
    requested_at = Column(DateTime(timezone=True), nullable=False)
    checked_in = Column(Boolean, nullable=False, default=False)

    event = relationship("Event", back_populates="registrations", lazy="raise")

    __table_args__ = (
        Index(
            "uq_active_registration",
            "event_id",
            "participant_id",
            unique=True,
            postgresql_where=text("status <> 'CANCELLED'"),
            sqlite_where=text("status <> 'CANCELLED'"),
        ),
        Index("ix_registrations_event_status_order", "event_id", "status", "requested_at", "id"),
        CheckConstraint(
            "status IN ({})".format(", ".join(f"'{s}'" for s in STATUS_VALUES)),
            name="check_registration_status",
        ),
    )

    def __repr__(self) -> str:
        return f"<Registration(id={self.id}, event={self.event_id}, participant={self.participant_id}, status={self.status})>"
