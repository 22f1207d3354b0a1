"""
Concurrency scenarios: many simultaneous requests against one event.

The in-memory ledger is given a small simulated latency so that every
read and write inside a transaction yields to the event loop, which is
what makes an unprotected check-then-act race observable.
"""

import asyncio

import pytest

from registrar.core.exceptions import ContentionError, DuplicateActiveRegistrationError
from registrar.domain.models import RegistrationStatus
from registrar.infrastructure.locks import EventLockRegistry
from registrar.infrastructure.memory_ledger import InMemoryLedger
from registrar.services.registration_service import RegistrationService

from conftest import EVENT_ID, RecordingDispatcher


@pytest.fixture
def slow_service(clock) -> RegistrationService:
    ledger = InMemoryLedger(lock_timeout=5.0, simulated_latency=0.001)
    return RegistrationService(ledger, dispatcher=RecordingDispatcher(), clock=clock)


@pytest.mark.asyncio
async def test_concurrent_requests_never_overbook(slow_service):
    """50 participants race for 5 slots: exactly 5 confirmed, 45 waitlisted."""
    await slow_service.upsert_event(EVENT_ID, capacity=5)

    results = await asyncio.gather(
        *(slow_service.request_registration(pid, EVENT_ID) for pid in range(1, 51))
    )

    statuses = [r.status for r in results]
    assert statuses.count(RegistrationStatus.CONFIRMED) == 5
    assert statuses.count(RegistrationStatus.WAITLISTED) == 45
    assert len({r.id for r in results}) == 50

    summary = await slow_service.capacity_summary(EVENT_ID)
    assert (summary.confirmed, summary.waitlisted) == (5, 45)


@pytest.mark.asyncio
async def test_two_way_race_for_last_slot(slow_service):
    await slow_service.upsert_event(EVENT_ID, capacity=1)

    first, second = await asyncio.gather(
        slow_service.request_registration(1, EVENT_ID),
        slow_service.request_registration(2, EVENT_ID),
    )

    assert sorted([first.status.value, second.status.value]) == ["CONFIRMED", "WAITLISTED"]


@pytest.mark.asyncio
async def test_concurrent_duplicates_admit_once(slow_service):
    await slow_service.upsert_event(EVENT_ID, capacity=5)

    results = await asyncio.gather(
        *(slow_service.request_registration(7, EVENT_ID) for _ in range(10)),
        return_exceptions=True,
    )

    admitted = [r for r in results if not isinstance(r, Exception)]
    rejected = [r for r in results if isinstance(r, DuplicateActiveRegistrationError)]
    assert len(admitted) == 1
    assert len(rejected) == 9


@pytest.mark.asyncio
async def test_cancel_racing_new_request(slow_service, clock):
    """A freed slot goes to the waitlist head, not to a request arriving at the same moment."""
    await slow_service.upsert_event(EVENT_ID, capacity=1)
    holder = await slow_service.request_registration(1, EVENT_ID)
    clock.advance(seconds=1)
    waiting = await slow_service.request_registration(2, EVENT_ID)
    clock.advance(seconds=1)

    _, newcomer = await asyncio.gather(
        slow_service.cancel_registration(holder.id),
        slow_service.request_registration(3, EVENT_ID),
    )

    assert (await slow_service.get_registration(waiting.id)).status is RegistrationStatus.CONFIRMED
    assert newcomer.status is RegistrationStatus.WAITLISTED
    assert (await slow_service.capacity_summary(EVENT_ID)).confirmed == 1


@pytest.mark.asyncio
async def test_concurrent_capacity_increase_and_requests(slow_service):
    await slow_service.upsert_event(EVENT_ID, capacity=2)
    for pid in range(1, 6):
        await slow_service.request_registration(pid, EVENT_ID)

    await asyncio.gather(
        slow_service.increase_capacity(EVENT_ID, 3),
        *(slow_service.request_registration(pid, EVENT_ID) for pid in range(6, 11)),
    )

    summary = await slow_service.capacity_summary(EVENT_ID)
    assert summary.capacity == 5
    assert summary.confirmed == 5
    assert summary.waitlisted == 5


@pytest.mark.asyncio
async def test_lock_timeout_raises_contention_after_retries(clock):
    ledger = InMemoryLedger(lock_timeout=0.05)
    service = RegistrationService(ledger, clock=clock, retry_attempts=2)
    await service.upsert_event(EVENT_ID, capacity=5)

    async with ledger.transaction(EVENT_ID):
        with pytest.raises(ContentionError) as exc_info:
            await service.request_registration(1, EVENT_ID)

    assert exc_info.value.retriable is True
    assert await service.registrations_for_event(EVENT_ID) == []


@pytest.mark.asyncio
async def test_different_events_do_not_contend(clock):
    ledger = InMemoryLedger(lock_timeout=0.05)
    service = RegistrationService(ledger, clock=clock)
    await service.upsert_event(1, capacity=5)
    await service.upsert_event(2, capacity=5)

    async with ledger.transaction(1):
        registration = await service.request_registration(1, 2)

    assert registration.status is RegistrationStatus.CONFIRMED


@pytest.mark.asyncio
async def test_timed_out_waiters_never_keep_the_lock():
    """Waiters whose timeout expires as the holder releases must not leave the lock taken."""
    locks = EventLockRegistry(timeout=0.01)
    outcomes = []

    async def holder():
        async with locks.hold(EVENT_ID):
            await asyncio.sleep(0.01)

    async def waiter():
        try:
            async with locks.hold(EVENT_ID):
                outcomes.append("entered")
        except ContentionError:
            outcomes.append("timed_out")

    await asyncio.gather(holder(), *(waiter() for _ in range(25)))

    assert len(outcomes) == 25
    assert not locks.is_locked(EVENT_ID)
    async with locks.hold(EVENT_ID):
        assert locks.is_locked(EVENT_ID)
