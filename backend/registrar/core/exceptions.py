"""
Typed errors raised by the registration core.

Three families:
  - RegistrationValidationError: caller error, never retried.
  - ContentionError: the per-event critical section could not be entered
    or the store reported a serialization conflict. Safe to retry the
    whole operation.
  - LedgerUnavailableError: the record store failed. Fatal for the call;
    nothing was applied.
"""

from enum import Enum


class ErrorCode(str, Enum):
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    PARTICIPANT_NOT_FOUND = "PARTICIPANT_NOT_FOUND"
    REGISTRATION_NOT_FOUND = "REGISTRATION_NOT_FOUND"
    EVENT_NOT_OPEN = "EVENT_NOT_OPEN"
    EVENT_NOT_STARTED = "EVENT_NOT_STARTED"
    DUPLICATE_ACTIVE_REGISTRATION = "DUPLICATE_ACTIVE_REGISTRATION"
    ILLEGAL_STATUS_TRANSITION = "ILLEGAL_STATUS_TRANSITION"
    INVALID_CAPACITY = "INVALID_CAPACITY"
    CONTENTION = "CONTENTION"
    LEDGER_UNAVAILABLE = "LEDGER_UNAVAILABLE"


class RegistrarError(Exception):
    """Base error with a stable code and a user-safe message."""

    code: ErrorCode
    retriable: bool = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class RegistrationValidationError(RegistrarError):
    """Caller error; retrying the same request will fail the same way."""


class EventNotFoundError(RegistrationValidationError):
    code = ErrorCode.EVENT_NOT_FOUND

    def __init__(self, event_id: int) -> None:
        super().__init__(f"Event {event_id} not found")
        self.event_id = event_id


class ParticipantNotFoundError(RegistrationValidationError):
    code = ErrorCode.PARTICIPANT_NOT_FOUND

    def __init__(self, participant_id: int) -> None:
        super().__init__(f"Participant {participant_id} not found")
        self.participant_id = participant_id


class RegistrationNotFoundError(RegistrationValidationError):
    code = ErrorCode.REGISTRATION_NOT_FOUND

    def __init__(self, registration_id: int | None = None, *, event_id: int | None = None,
                 participant_id: int | None = None) -> None:
        if registration_id is not None:
            message = f"Registration {registration_id} not found"
        else:
            message = f"No active registration for participant {participant_id} on event {event_id}"
        super().__init__(message)
        self.registration_id = registration_id
        self.event_id = event_id
        self.participant_id = participant_id


class EventNotOpenError(RegistrationValidationError):
    code = ErrorCode.EVENT_NOT_OPEN

    def __init__(self, event_id: int) -> None:
        super().__init__(f"Event {event_id} is not accepting registrations")
        self.event_id = event_id


class EventNotStartedError(RegistrationValidationError):
    code = ErrorCode.EVENT_NOT_STARTED

    def __init__(self, event_id: int) -> None:
        super().__init__(f"Event {event_id} has not started yet")
        self.event_id = event_id


class DuplicateActiveRegistrationError(RegistrationValidationError):
    code = ErrorCode.DUPLICATE_ACTIVE_REGISTRATION

    def __init__(self, event_id: int, participant_id: int, existing_id: int) -> None:
        super().__init__(
            f"Participant {participant_id} already holds registration {existing_id} for event {event_id}"
        )
        self.event_id = event_id
        self.participant_id = participant_id
        self.existing_id = existing_id


class IllegalStatusTransitionError(RegistrationValidationError):
    code = ErrorCode.ILLEGAL_STATUS_TRANSITION

    def __init__(self, current, requested) -> None:
        super().__init__(f"Cannot move registration from {current.value} to {requested.value}")
        self.current = current
        self.requested = requested


class InvalidCapacityError(RegistrationValidationError):
    code = ErrorCode.INVALID_CAPACITY

    def __init__(self, event_id: int, reason: str) -> None:
        super().__init__(f"Invalid capacity for event {event_id}: {reason}")
        self.event_id = event_id
        self.reason = reason


class ContentionError(RegistrarError):
    code = ErrorCode.CONTENTION
    retriable = True

    def __init__(self, event_id: int, reason: str = "lock_timeout") -> None:
        super().__init__(f"Event {event_id} is busy ({reason}), please retry")
        self.event_id = event_id
        self.reason = reason


class LedgerUnavailableError(RegistrarError):
    code = ErrorCode.LEDGER_UNAVAILABLE

    def __init__(self, detail: str) -> None:
        super().__init__(f"Registration ledger unavailable: {detail}")
        self.detail = detail
