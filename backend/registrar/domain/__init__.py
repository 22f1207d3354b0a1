from registrar.domain.models import CapacitySummary, EventRecord, Registration, RegistrationStatus
from registrar.domain.notifications import NotificationKind, RegistrationNotification
from registrar.domain.status_machine import Trigger

__all__ = [
    "CapacitySummary",
    "EventRecord",
    "Registration",
    "RegistrationStatus",
    "NotificationKind",
    "RegistrationNotification",
    "Trigger",
]
