"""
Tests for waitlist promotion, cancellation, check-in and no-show.
"""

from datetime import datetime, timedelta, timezone

import pytest

from registrar.core.exceptions import (
    EventNotStartedError,
    IllegalStatusTransitionError,
    RegistrationNotFoundError,
)
from registrar.domain.models import RegistrationStatus
from registrar.domain.notifications import NotificationKind

from conftest import EVENT_ID, START


async def fill_event(service, clock, capacity: int, participants: list[int]):
    await service.upsert_event(EVENT_ID, capacity=capacity, starts_at=START + timedelta(hours=2))
    registrations = []
    for participant_id in participants:
        registrations.append(await service.request_registration(participant_id, EVENT_ID))
        clock.advance(seconds=1)
    return registrations


@pytest.mark.asyncio
async def test_cancel_confirmed_promotes_oldest_waitlisted(service, clock, dispatcher):
    a, b, c = await fill_event(service, clock, 1, [1, 2, 3])
    assert [r.status for r in (a, b, c)] == [
        RegistrationStatus.CONFIRMED,
        RegistrationStatus.WAITLISTED,
        RegistrationStatus.WAITLISTED,
    ]

    cancelled = await service.cancel_registration(a.id)

    assert cancelled.status is RegistrationStatus.CANCELLED
    assert (await service.get_registration(b.id)).status is RegistrationStatus.CONFIRMED
    assert (await service.get_registration(c.id)).status is RegistrationStatus.WAITLISTED
    assert dispatcher.participants(NotificationKind.CANCELLED) == [1]
    assert dispatcher.participants(NotificationKind.PROMOTED) == [2]


@pytest.mark.asyncio
async def test_promotion_follows_arrival_order(service, clock):
    registrations = await fill_event(service, clock, 1, [10, 20, 30, 40])

    promoted_order = []
    for _ in range(3):
        confirmed = await service.registrations_for_event(EVENT_ID, RegistrationStatus.CONFIRMED)
        await service.cancel_registration(confirmed[0].id)
        promoted = await service.registrations_for_event(EVENT_ID, RegistrationStatus.CONFIRMED)
        promoted_order.append(promoted[0].participant_id)

    assert promoted_order == [20, 30, 40]
    assert registrations[0].participant_id == 10


@pytest.mark.asyncio
async def test_identical_timestamps_promote_lower_id_first(service, clock):
    await service.upsert_event(EVENT_ID, capacity=1)
    holder = await service.request_registration(1, EVENT_ID)
    first = await service.request_registration(2, EVENT_ID)
    second = await service.request_registration(3, EVENT_ID)
    assert first.requested_at == second.requested_at

    await service.cancel_registration(holder.id)

    assert (await service.get_registration(first.id)).status is RegistrationStatus.CONFIRMED
    assert (await service.get_registration(second.id)).status is RegistrationStatus.WAITLISTED


@pytest.mark.asyncio
async def test_cancel_waitlisted_does_not_promote(service, clock, dispatcher):
    a, b, c = await fill_event(service, clock, 1, [1, 2, 3])

    await service.cancel_registration(b.id)

    assert dispatcher.participants(NotificationKind.PROMOTED) == []
    assert (await service.get_registration(a.id)).status is RegistrationStatus.CONFIRMED
    assert (await service.get_registration(c.id)).status is RegistrationStatus.WAITLISTED


@pytest.mark.asyncio
async def test_cancel_twice_is_illegal(service, clock):
    (a,) = await fill_event(service, clock, 1, [1])
    await service.cancel_registration(a.id)

    with pytest.raises(IllegalStatusTransitionError):
        await service.cancel_registration(a.id)


@pytest.mark.asyncio
async def test_cancel_unknown_registration(service, small_event):
    with pytest.raises(RegistrationNotFoundError):
        await service.cancel_registration(12345)


@pytest.mark.asyncio
async def test_cancel_for_participant(service, clock, dispatcher):
    a, b = await fill_event(service, clock, 1, [1, 2])

    cancelled = await service.cancel_for_participant(EVENT_ID, 1)

    assert cancelled.id == a.id
    assert (await service.get_registration(b.id)).status is RegistrationStatus.CONFIRMED

    with pytest.raises(RegistrationNotFoundError):
        await service.cancel_for_participant(EVENT_ID, 1)


@pytest.mark.asyncio
async def test_increase_capacity_promotes_several(service, clock, dispatcher):
    await fill_event(service, clock, 1, [1, 2, 3, 4])

    promoted = await service.increase_capacity(EVENT_ID, 2)

    assert [r.participant_id for r in promoted] == [2, 3]
    assert all(r.status is RegistrationStatus.CONFIRMED for r in promoted)
    summary = await service.capacity_summary(EVENT_ID)
    assert (summary.capacity, summary.confirmed, summary.waitlisted) == (3, 3, 1)
    assert dispatcher.participants(NotificationKind.PROMOTED) == [2, 3]


@pytest.mark.asyncio
async def test_increase_capacity_beyond_waitlist(service, clock):
    await fill_event(service, clock, 1, [1, 2])

    promoted = await service.increase_capacity(EVENT_ID, 10)

    assert [r.participant_id for r in promoted] == [2]
    assert (await service.capacity_summary(EVENT_ID)).available == 9


@pytest.mark.asyncio
async def test_promote_if_possible_with_nothing_to_do(service, clock):
    await fill_event(service, clock, 2, [1])
    assert await service.promote_if_possible(EVENT_ID) == []


@pytest.mark.asyncio
async def test_check_in(service, clock, dispatcher):
    a, b = await fill_event(service, clock, 1, [1, 2])

    attended = await service.check_in(a.id)

    assert attended.status is RegistrationStatus.ATTENDED
    assert attended.checked_in is True
    # Attendance keeps the slot
    assert (await service.get_registration(b.id)).status is RegistrationStatus.WAITLISTED
    assert (await service.capacity_summary(EVENT_ID)).confirmed == 0

    with pytest.raises(IllegalStatusTransitionError):
        await service.cancel_registration(a.id)


@pytest.mark.asyncio
async def test_check_in_waitlisted_is_illegal(service, clock):
    _, b = await fill_event(service, clock, 1, [1, 2])

    with pytest.raises(IllegalStatusTransitionError):
        await service.check_in(b.id)


@pytest.mark.asyncio
async def test_no_show_before_start_is_rejected(service, clock):
    (a,) = await fill_event(service, clock, 1, [1])

    with pytest.raises(EventNotStartedError):
        await service.mark_no_show(a.id)
    assert (await service.get_registration(a.id)).status is RegistrationStatus.CONFIRMED


@pytest.mark.asyncio
async def test_no_show_after_start_promotes(service, clock, dispatcher):
    a, b = await fill_event(service, clock, 1, [1, 2])
    clock.advance(hours=3)

    absent = await service.mark_no_show(a.id)

    assert absent.status is RegistrationStatus.NO_SHOW
    assert absent.checked_in is False
    assert (await service.get_registration(b.id)).status is RegistrationStatus.CONFIRMED
    assert dispatcher.participants(NotificationKind.NO_SHOW) == [1]
    assert dispatcher.participants(NotificationKind.PROMOTED) == [2]


@pytest.mark.asyncio
async def test_no_show_of_waitlisted_is_illegal(service, clock):
    _, b = await fill_event(service, clock, 1, [1, 2])
    clock.advance(hours=3)

    with pytest.raises(IllegalStatusTransitionError):
        await service.mark_no_show(b.id)


@pytest.mark.asyncio
async def test_end_to_end_lifecycle(service, clock, dispatcher):
    """Capacity 1: A confirmed, B and C waitlisted; cancel A, B no-show, C ends up attending."""
    a, b, c = await fill_event(service, clock, 1, [1, 2, 3])

    await service.cancel_registration(a.id)
    clock.advance(hours=3)
    await service.mark_no_show(b.id)
    attended = await service.check_in(c.id)

    assert attended.status is RegistrationStatus.ATTENDED
    statuses = {r.participant_id: r.status for r in await service.registrations_for_event(EVENT_ID)}
    assert statuses == {
        1: RegistrationStatus.CANCELLED,
        2: RegistrationStatus.NO_SHOW,
        3: RegistrationStatus.ATTENDED,
    }
    assert dispatcher.kinds() == [
        NotificationKind.CONFIRMED,
        NotificationKind.WAITLISTED,
        NotificationKind.WAITLISTED,
        NotificationKind.CANCELLED,
        NotificationKind.PROMOTED,
        NotificationKind.NO_SHOW,
        NotificationKind.PROMOTED,
    ]


@pytest.mark.asyncio
async def test_clock_stepping_back_does_not_reorder_waitlist(service, clock):
    await service.upsert_event(EVENT_ID, capacity=1)
    holder = await service.request_registration(1, EVENT_ID)
    clock.advance(seconds=10)
    earlier = await service.request_registration(2, EVENT_ID)
    clock.advance(seconds=-5)
    later = await service.request_registration(3, EVENT_ID)

    await service.cancel_registration(holder.id)

    assert (await service.get_registration(earlier.id)).status is RegistrationStatus.CONFIRMED
    assert (await service.get_registration(later.id)).status is RegistrationStatus.WAITLISTED


@pytest.mark.asyncio
async def test_naive_start_time_is_treated_as_utc(service, clock):
    await service.upsert_event(EVENT_ID, capacity=1, starts_at=datetime(2026, 3, 1, 8, 0))
    holder = await service.request_registration(1, EVENT_ID)

    event = await service.get_event(EVENT_ID)
    absent = await service.mark_no_show(holder.id)

    assert event.starts_at == datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)
    assert absent.status is RegistrationStatus.NO_SHOW


@pytest.mark.asyncio
async def test_start_time_in_other_zone_is_converted(service, clock):
    paris = timezone(timedelta(hours=1))
    await service.upsert_event(EVENT_ID, capacity=1, starts_at=datetime(2026, 3, 1, 10, 30, tzinfo=paris))
    holder = await service.request_registration(1, EVENT_ID)

    # 10:30 in UTC+1 is 09:30 UTC, still ahead of the clock
    with pytest.raises(EventNotStartedError):
        await service.mark_no_show(holder.id)
    assert (await service.get_event(EVENT_ID)).starts_at.utcoffset() == timedelta(0)
