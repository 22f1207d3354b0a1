"""
Registration ledger interface.
Allows swapping the record store (in-memory, SQL) without touching the
admission, promotion or state machine logic.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Optional

from registrar.domain.models import EventRecord, Registration, RegistrationStatus


class LedgerTransaction(ABC):
    """
    Unit of work scoped to a single event.

    Only obtainable through RegistrationLedger.transaction(event_id), which
    holds that event's critical section for the lifetime of the object.
    Writes are applied when the transaction block exits cleanly and
    discarded if it raises.
    """

    event_id: int

    @abstractmethod
    async def get_event(self) -> Optional[EventRecord]:
        pass

    @abstractmethod
    async def save_event(self, event: EventRecord) -> None:
        """Insert or replace the event facts (capacity, open flag, start time)."""
        pass

    @abstractmethod
    async def has_registrations(self) -> bool:
        pass

    @abstractmethod
    async def get_registration(self, registration_id: int) -> Optional[Registration]:
        """Return the registration if it belongs to this event."""
        pass

    @abstractmethod
    async def find_active(self, participant_id: int) -> Optional[Registration]:
        """Return the participant's non-cancelled registration, if any."""
        pass

    @abstractmethod
    async def count_by_status(self, status: RegistrationStatus) -> int:
        pass

    @abstractmethod
    async def oldest_waitlisted(self) -> Optional[Registration]:
        """Return the WAITLISTED registration with the smallest (requested_at, id)."""
        pass

    @abstractmethod
    async def latest_requested_at(self) -> Optional[datetime]:
        """Largest requested_at among this event's registrations, any status."""
        pass

    @abstractmethod
    async def add(self, participant_id: int, status: RegistrationStatus,
                  requested_at: datetime) -> Registration:
        """Create a registration and return it with its ledger-assigned id."""
        pass

    @abstractmethod
    async def update(self, registration: Registration) -> None:
        """Persist status, checked_in and updated_at of an existing registration."""
        pass


class RegistrationLedger(ABC):
    """
    Durable store of registrations and the event facts they depend on.

    Reads outside transaction() see the latest committed state.
    """

    @abstractmethod
    def transaction(self, event_id: int) -> AbstractAsyncContextManager[LedgerTransaction]:
        """
        Enter the event's critical section.

        Raises:
            ContentionError: the section could not be entered in time.
            LedgerUnavailableError: the store failed; nothing was applied.
        """
        pass

    @abstractmethod
    async def get_event(self, event_id: int) -> Optional[EventRecord]:
        pass

    @abstractmethod
    async def get_registration(self, registration_id: int) -> Optional[Registration]:
        pass

    @abstractmethod
    async def list_for_event(self, event_id: int,
                             status: Optional[RegistrationStatus] = None) -> list[Registration]:
        """Registrations for an event ordered by (requested_at, id)."""
        pass

    @abstractmethod
    async def list_for_participant(self, participant_id: int) -> list[Registration]:
        """Registrations for a participant, most recent first."""
        pass

    @abstractmethod
    async def count_by_status(self, event_id: int, status: RegistrationStatus) -> int:
        pass

    async def close(self) -> None:
        """Release connections. No-op by default."""
        pass
