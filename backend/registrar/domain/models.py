"""Storage-agnostic registration records.

ORM rows live in registrar/models; ledgers convert them to these frozen
dataclasses so services never hold a live database object.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes; aware ones are converted to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class RegistrationStatus(str, Enum):
    WAITLISTED = "WAITLISTED"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    ATTENDED = "ATTENDED"
    NO_SHOW = "NO_SHOW"

    @property
    def is_active(self) -> bool:
        """Everything except CANCELLED blocks a second registration."""
        return self is not RegistrationStatus.CANCELLED


@dataclass(frozen=True)
class EventRecord:
    """Event facts as published by the event-management collaborator."""

    id: int
    capacity: int
    registration_open: bool = True
    starts_at: Optional[datetime] = None

    def has_started(self, now: datetime) -> bool:
        return self.starts_at is not None and self.starts_at <= now


@dataclass(frozen=True)
class Registration:
    id: int
    event_id: int
    participant_id: int
    status: RegistrationStatus
    requested_at: datetime
    checked_in: bool = False
    updated_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status.is_active

    @property
    def waitlist_key(self) -> tuple[datetime, int]:
        # Arrival order; id breaks ties between identical timestamps
        return (self.requested_at, self.id)


@dataclass(frozen=True)
class CapacitySummary:
    event_id: int
    capacity: int
    confirmed: int
    waitlisted: int

    @property
    def available(self) -> int:
        return max(self.capacity - self.confirmed, 0)
