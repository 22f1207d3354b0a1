"""
Tests for admission decisions: confirmed vs waitlisted and rejections.
"""

import pytest

from registrar.core.exceptions import (
    DuplicateActiveRegistrationError,
    EventNotFoundError,
    EventNotOpenError,
    ParticipantNotFoundError,
)
from registrar.domain.models import RegistrationStatus
from registrar.domain.notifications import NotificationKind
from registrar.infrastructure.memory_ledger import InMemoryLedger
from registrar.services.registration_service import RegistrationService

from conftest import EVENT_ID, START, RecordingDispatcher, StaticParticipantDirectory


@pytest.mark.asyncio
async def test_confirms_until_capacity_then_waitlists(service, small_event, dispatcher):
    first = await service.request_registration(101, EVENT_ID)
    second = await service.request_registration(102, EVENT_ID)
    third = await service.request_registration(103, EVENT_ID)

    assert first.status is RegistrationStatus.CONFIRMED
    assert second.status is RegistrationStatus.CONFIRMED
    assert third.status is RegistrationStatus.WAITLISTED
    assert third.checked_in is False
    assert dispatcher.kinds() == [
        NotificationKind.CONFIRMED,
        NotificationKind.CONFIRMED,
        NotificationKind.WAITLISTED,
    ]


@pytest.mark.asyncio
async def test_requested_at_comes_from_clock(service, small_event, clock):
    clock.advance(minutes=5)
    registration = await service.request_registration(101, EVENT_ID)
    assert registration.requested_at == clock.now
    assert registration.event_id == EVENT_ID
    assert registration.participant_id == 101


@pytest.mark.asyncio
async def test_requested_at_never_moves_backwards(service, small_event, clock):
    clock.advance(seconds=10)
    first = await service.request_registration(101, EVENT_ID)
    clock.advance(seconds=-5)
    second = await service.request_registration(102, EVENT_ID)
    third = await service.request_registration(103, EVENT_ID, requested_at=START)

    assert second.requested_at == first.requested_at
    assert third.requested_at == first.requested_at
    ordered = await service.registrations_for_event(EVENT_ID)
    assert [r.participant_id for r in ordered] == [101, 102, 103]


@pytest.mark.asyncio
async def test_unknown_event_rejected(service):
    with pytest.raises(EventNotFoundError):
        await service.request_registration(101, 999)


@pytest.mark.asyncio
async def test_closed_event_rejected(service):
    await service.upsert_event(EVENT_ID, capacity=10, registration_open=False)

    with pytest.raises(EventNotOpenError):
        await service.request_registration(101, EVENT_ID)
    assert await service.registrations_for_event(EVENT_ID) == []


@pytest.mark.asyncio
async def test_duplicate_active_registration_rejected(service, small_event, dispatcher):
    original = await service.request_registration(101, EVENT_ID)

    with pytest.raises(DuplicateActiveRegistrationError) as exc_info:
        await service.request_registration(101, EVENT_ID)

    assert exc_info.value.existing_id == original.id
    assert len(await service.registrations_for_event(EVENT_ID)) == 1
    assert len(dispatcher.sent) == 1


@pytest.mark.asyncio
async def test_duplicate_of_waitlisted_registration_rejected(service):
    await service.upsert_event(EVENT_ID, capacity=1)
    await service.request_registration(101, EVENT_ID)
    await service.request_registration(102, EVENT_ID)

    with pytest.raises(DuplicateActiveRegistrationError):
        await service.request_registration(102, EVENT_ID)


@pytest.mark.asyncio
async def test_reregistration_after_cancel_creates_new_record(service, small_event):
    first = await service.request_registration(101, EVENT_ID)
    await service.cancel_registration(first.id)

    second = await service.request_registration(101, EVENT_ID)

    assert second.id != first.id
    assert second.status is RegistrationStatus.CONFIRMED
    assert (await service.get_registration(first.id)).status is RegistrationStatus.CANCELLED


@pytest.mark.asyncio
async def test_attended_registration_blocks_reregistration(service, small_event):
    registration = await service.request_registration(101, EVENT_ID)
    await service.check_in(registration.id)

    with pytest.raises(DuplicateActiveRegistrationError):
        await service.request_registration(101, EVENT_ID)


@pytest.mark.asyncio
async def test_unknown_participant_rejected(clock):
    dispatcher = RecordingDispatcher()
    service = RegistrationService(
        InMemoryLedger(),
        dispatcher=dispatcher,
        participants=StaticParticipantDirectory({101}),
        clock=clock,
    )
    await service.upsert_event(EVENT_ID, capacity=5)

    with pytest.raises(ParticipantNotFoundError):
        await service.request_registration(202, EVENT_ID)

    accepted = await service.request_registration(101, EVENT_ID)
    assert accepted.status is RegistrationStatus.CONFIRMED
    assert dispatcher.participants(NotificationKind.CONFIRMED) == [101]


@pytest.mark.asyncio
async def test_is_registered(service, small_event):
    assert await service.is_registered(EVENT_ID, 101) is False

    registration = await service.request_registration(101, EVENT_ID)
    assert await service.is_registered(EVENT_ID, 101) is True

    await service.cancel_registration(registration.id)
    assert await service.is_registered(EVENT_ID, 101) is False


@pytest.mark.asyncio
async def test_participant_history_most_recent_first(service, clock):
    await service.upsert_event(1, capacity=5, starts_at=START)
    await service.upsert_event(2, capacity=5, starts_at=START)

    older = await service.request_registration(101, 1)
    clock.advance(hours=1)
    newer = await service.request_registration(101, 2)

    history = await service.registrations_for_participant(101)
    assert [r.id for r in history] == [newer.id, older.id]
