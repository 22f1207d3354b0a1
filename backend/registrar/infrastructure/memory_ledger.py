"""
In-process registration ledger.

Used for development, tests and the contention experiments. Each
transaction works on a private copy of one event's rows and swaps it in
only when the block exits cleanly, so a failure half-way through an
operation leaves the committed state untouched.
"""

import asyncio
import itertools
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import datetime
from typing import AsyncIterator, Optional

from registrar.domain.models import EventRecord, Registration, RegistrationStatus
from registrar.infrastructure.locks import EventLockRegistry
from registrar.services.interfaces.ledger import LedgerTransaction, RegistrationLedger


class InMemoryTransaction(LedgerTransaction):

    def __init__(self, ledger: "InMemoryLedger", event_id: int) -> None:
        self.event_id = event_id
        self._ledger = ledger
        self._event = ledger._events.get(event_id)
        self._rows: dict[int, Registration] = dict(ledger._by_event.get(event_id, {}))

    async def _io(self) -> None:
        # Give other tasks a chance to run, like a real round-trip would
        await asyncio.sleep(self._ledger.simulated_latency)

    async def get_event(self) -> Optional[EventRecord]:
        await self._io()
        return self._event

    async def save_event(self, event: EventRecord) -> None:
        await self._io()
        self._event = event

    async def has_registrations(self) -> bool:
        await self._io()
        return bool(self._rows)

    async def get_registration(self, registration_id: int) -> Optional[Registration]:
        await self._io()
        return self._rows.get(registration_id)

    async def find_active(self, participant_id: int) -> Optional[Registration]:
        await self._io()
        for registration in self._rows.values():
            if registration.participant_id == participant_id and registration.is_active:
                return registration
        return None

    async def count_by_status(self, status: RegistrationStatus) -> int:
        await self._io()
        return sum(1 for r in self._rows.values() if r.status is status)

    async def oldest_waitlisted(self) -> Optional[Registration]:
        await self._io()
        waiting = [r for r in self._rows.values() if r.status is RegistrationStatus.WAITLISTED]
        if not waiting:
            return None
        return min(waiting, key=lambda r: r.waitlist_key)

    async def latest_requested_at(self) -> Optional[datetime]:
        await self._io()
        return max((r.requested_at for r in self._rows.values()), default=None)

    async def add(self, participant_id: int, status: RegistrationStatus,
                  requested_at: datetime) -> Registration:
        await self._io()
        registration = Registration(
            id=next(self._ledger._ids),
            event_id=self.event_id,
            participant_id=participant_id,
            status=status,
            requested_at=requested_at,
            checked_in=False,
            updated_at=requested_at,
        )
        self._rows[registration.id] = registration
        return registration

    async def update(self, registration: Registration) -> None:
        await self._io()
        current = self._rows.get(registration.id)
        if current is None:
            raise KeyError(f"registration {registration.id} is not part of event {self.event_id}")
        self._rows[registration.id] = replace(
            current,
            status=registration.status,
            checked_in=registration.checked_in,
            updated_at=registration.updated_at,
        )


class InMemoryLedger(RegistrationLedger):
    """
    Dict-backed ledger with per-event asyncio locks.

    simulated_latency adds an await to every transactional read/write so
    concurrent callers actually interleave (see experiments/).
    """

    def __init__(self, lock_timeout: float = 5.0, simulated_latency: float = 0.0) -> None:
        self.simulated_latency = simulated_latency
        self._locks = EventLockRegistry(lock_timeout)
        self._events: dict[int, EventRecord] = {}
        self._by_event: dict[int, dict[int, Registration]] = {}
        self._event_of: dict[int, int] = {}
        self._ids = itertools.count(1)

    @asynccontextmanager
    async def transaction(self, event_id: int) -> AsyncIterator[InMemoryTransaction]:
        async with self._locks.hold(event_id):
            tx = InMemoryTransaction(self, event_id)
            yield tx
            self._commit(tx)

    def _commit(self, tx: InMemoryTransaction) -> None:
        if tx._event is not None:
            self._events[tx.event_id] = tx._event
        self._by_event[tx.event_id] = tx._rows
        for registration_id in tx._rows:
            self._event_of[registration_id] = tx.event_id

    async def get_event(self, event_id: int) -> Optional[EventRecord]:
        return self._events.get(event_id)

    async def get_registration(self, registration_id: int) -> Optional[Registration]:
        event_id = self._event_of.get(registration_id)
        if event_id is None:
            return None
        return self._by_event[event_id].get(registration_id)

    async def list_for_event(self, event_id: int,
                             status: Optional[RegistrationStatus] = None) -> list[Registration]:
        rows = self._by_event.get(event_id, {}).values()
        if status is not None:
            rows = [r for r in rows if r.status is status]
        return sorted(rows, key=lambda r: r.waitlist_key)

    async def list_for_participant(self, participant_id: int) -> list[Registration]:
        rows = [
            r
            for registrations in self._by_event.values()
            for r in registrations.values()
            if r.participant_id == participant_id
        ]
        return sorted(rows, key=lambda r: r.waitlist_key, reverse=True)

    async def count_by_status(self, event_id: int, status: RegistrationStatus) -> int:
        return sum(1 for r in self._by_event.get(event_id, {}).values() if r.status is status)
