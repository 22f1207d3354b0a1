"""
Event facts needed for admission decisions.

Key design decisions:
- `id` comes from the event-management collaborator, not a sequence
- No confirmed/available counter column: the confirmed count is always
  recounted from registrations inside the event's locked transaction
- The row doubles as the per-event lock target (SELECT ... FOR UPDATE)
"""

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer
from sqlalchemy.orm import relationship

from registrar.db.base import Base, TimestampMixin


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, autoincrement=False)
    capacity = Column(Integer, nullable=False)
    registration_open = Column(Boolean, nullable=False, default=True)
    starts_at = Column(DateTime(timezone=True), nullable=True)

    registrations = relationship("Registration", back_populates="event", lazy="raise")

    __table_args__ = (
        CheckConstraint("capacity > 0", name="check_event_capacity_positive"),
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, capacity={self.capacity}, open={self.registration_open})>"
