"""Outcome events handed to the notification dispatcher after commit."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from registrar.domain.models import Registration


class NotificationKind(str, Enum):
    CONFIRMED = "RegistrationConfirmed"
    WAITLISTED = "RegistrationWaitlisted"
    PROMOTED = "RegistrationPromoted"
    CANCELLED = "RegistrationCancelled"
    NO_SHOW = "MarkedNoShow"


@dataclass(frozen=True)
class RegistrationNotification:
    kind: NotificationKind
    event_id: int
    participant_id: int
    registration_id: int
    timestamp: datetime

    @classmethod
    def for_registration(cls, kind: NotificationKind, registration: Registration,
                         timestamp: datetime) -> "RegistrationNotification":
        return cls(
            kind=kind,
            event_id=registration.event_id,
            participant_id=registration.participant_id,
            registration_id=registration.id,
            timestamp=timestamp,
        )

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "event_id": self.event_id,
            "participant_id": self.participant_id,
            "registration_id": self.registration_id,
            "timestamp": self.timestamp.isoformat(),
        }
