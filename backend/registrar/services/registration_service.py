"""
Registration service - the public entry point of the admission core.

Every state-changing operation:
  1. enters the event's critical section (ledger.transaction)
  2. reads, decides and writes through the admission controller, the
     status machine and the promotion engine
  3. commits, then publishes the notifications collected on the way

A ContentionError while entering the critical section is retried up to
`retry_attempts` times; every attempt re-runs the whole read-decide-write
sequence. Validation errors are raised straight away.

The service keeps no per-request state, so one instance can be shared
by any number of concurrent callers.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, TypeVar

from registrar.core.exceptions import (
    ContentionError,
    EventNotFoundError,
    EventNotStartedError,
    IllegalStatusTransitionError,
    InvalidCapacityError,
    ParticipantNotFoundError,
    RegistrationNotFoundError,
    RegistrationValidationError,
)
from registrar.core.logging import event_context, get_logger
from registrar.core.metrics import (
    record_admission,
    record_contention_retry,
    record_promotion,
    record_transition,
)
from registrar.domain.models import CapacitySummary, EventRecord, Registration, RegistrationStatus, as_utc
from registrar.domain.notifications import NotificationKind, RegistrationNotification
from registrar.domain.status_machine import Trigger, can_transition, frees_slot, transition
from registrar.services.admission_controller import AdmissionController
from registrar.services.capacity_tracker import CapacityTracker
from registrar.services.interfaces.directory import ParticipantDirectory
from registrar.services.interfaces.ledger import LedgerTransaction, RegistrationLedger
from registrar.services.interfaces.notifier import NotificationDispatcher
from registrar.services.notification_service import LoggingDispatcher, NotificationPublisher
from registrar.services.promotion_engine import WaitlistPromotionEngine

logger = get_logger(__name__)

T = TypeVar("T")
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Outbox:
    """Effects of one attempt that only count once the ledger has committed."""

    notifications: list[RegistrationNotification] = field(default_factory=list)
    moves: list[tuple[RegistrationStatus, RegistrationStatus]] = field(default_factory=list)

    def notify(self, kind: NotificationKind, registration: Registration, at: datetime) -> None:
        self.notifications.append(RegistrationNotification.for_registration(kind, registration, at))

    def moved(self, before: Registration, after: Registration) -> None:
        self.moves.append((before.status, after.status))

    def record_metrics(self) -> None:
        for source, target in self.moves:
            record_transition(source.value, target.value)
            if source is RegistrationStatus.WAITLISTED and target is RegistrationStatus.CONFIRMED:
                record_promotion()


class RegistrationService:

    def __init__(
        self,
        ledger: RegistrationLedger,
        dispatcher: Optional[NotificationDispatcher] = None,
        participants: Optional[ParticipantDirectory] = None,
        clock: Clock = utc_now,
        retry_attempts: int = 3,
    ) -> None:
        self._ledger = ledger
        self._publisher = NotificationPublisher(dispatcher or LoggingDispatcher())
        self._participants = participants
        self._clock = clock
        self._retry_attempts = max(retry_attempts, 1)
        self._tracker = CapacityTracker()
        self._admission = AdmissionController(self._tracker)
        self._promotion = WaitlistPromotionEngine(self._tracker)

    # ------------------------------------------------------------------
    # critical section plumbing

    async def _atomic(self, event_id: int,
                      operation: Callable[[LedgerTransaction, Outbox], Awaitable[T]]) -> T:
        with event_context(event_id, operation.__name__):
            attempt = 1
            while True:
                outbox = Outbox()
                try:
                    async with self._ledger.transaction(event_id) as tx:
                        result = await operation(tx, outbox)
                    break
                except ContentionError as e:
                    if attempt >= self._retry_attempts:
                        logger.warning("contention_exhausted", attempts=attempt, reason=e.reason)
                        raise
                    record_contention_retry()
                    logger.info("contention_retry", attempt=attempt, reason=e.reason)
                    attempt += 1

            outbox.record_metrics()
            await self._publisher.publish(outbox.notifications)
            return result

    async def _event_of(self, registration_id: int) -> int:
        registration = await self._ledger.get_registration(registration_id)
        if registration is None:
            raise RegistrationNotFoundError(registration_id)
        return registration.event_id

    @staticmethod
    async def _load(tx: LedgerTransaction, registration_id: int) -> Registration:
        registration = await tx.get_registration(registration_id)
        if registration is None:
            raise RegistrationNotFoundError(registration_id)
        return registration

    async def _promote(self, tx: LedgerTransaction, outbox: Outbox, at: datetime) -> list[Registration]:
        event = await tx.get_event()
        if event is None:
            return []
        promoted = await self._promotion.promote_if_possible(tx, event, at)
        for registration in promoted:
            outbox.moves.append((RegistrationStatus.WAITLISTED, RegistrationStatus.CONFIRMED))
            outbox.notify(NotificationKind.PROMOTED, registration, at)
        return promoted

    async def _cancel(self, tx: LedgerTransaction, registration: Registration, outbox: Outbox) -> Registration:
        now = self._clock()
        cancelled = transition(registration, RegistrationStatus.CANCELLED, trigger=Trigger.ACTOR, at=now)
        await tx.update(cancelled)
        outbox.moved(registration, cancelled)
        outbox.notify(NotificationKind.CANCELLED, cancelled, now)
        logger.info(
            "registration_cancelled",
            registration_id=cancelled.id,
            event_id=cancelled.event_id,
            participant_id=cancelled.participant_id,
            previous_status=registration.status.value,
        )
        if frees_slot(registration.status, cancelled.status):
            await self._promote(tx, outbox, now)
        return cancelled

    # ------------------------------------------------------------------
    # commands

    async def request_registration(self, participant_id: int, event_id: int,
                                   requested_at: Optional[datetime] = None) -> Registration:
        """
        Admit a participant to an event as CONFIRMED or WAITLISTED.

        requested_at defaults to the service clock read inside the event's
        critical section.

        Raises:
            ParticipantNotFoundError, EventNotFoundError, EventNotOpenError,
            DuplicateActiveRegistrationError, ContentionError
        """
        if self._participants is not None and not await self._participants.participant_exists(participant_id):
            record_admission("rejected")
            raise ParticipantNotFoundError(participant_id)

        async def admit(tx: LedgerTransaction, outbox: Outbox) -> Registration:
            stamp = as_utc(requested_at) or self._clock()
            latest = await tx.latest_requested_at()
            if latest is not None and stamp < latest:
                # Clock stepped back; never sort ahead of an earlier arrival
                stamp = latest
            registration = await self._admission.admit(tx, participant_id, stamp)
            kind = (
                NotificationKind.CONFIRMED
                if registration.status is RegistrationStatus.CONFIRMED
                else NotificationKind.WAITLISTED
            )
            outbox.notify(kind, registration, self._clock())
            return registration

        try:
            registration = await self._atomic(event_id, admit)
        except RegistrationValidationError:
            record_admission("rejected")
            raise

        record_admission(registration.status.value.lower())
        return registration

    async def cancel_registration(self, registration_id: int) -> Registration:
        """Cancel a WAITLISTED or CONFIRMED registration; a freed slot is promoted."""
        event_id = await self._event_of(registration_id)

        async def cancel(tx: LedgerTransaction, outbox: Outbox) -> Registration:
            return await self._cancel(tx, await self._load(tx, registration_id), outbox)

        return await self._atomic(event_id, cancel)

    async def cancel_for_participant(self, event_id: int, participant_id: int) -> Registration:
        """Cancel the participant's active registration for the event."""

        async def cancel(tx: LedgerTransaction, outbox: Outbox) -> Registration:
            registration = await tx.find_active(participant_id)
            if registration is None:
                raise RegistrationNotFoundError(event_id=event_id, participant_id=participant_id)
            return await self._cancel(tx, registration, outbox)

        return await self._atomic(event_id, cancel)

    async def check_in(self, registration_id: int) -> Registration:
        """CONFIRMED -> ATTENDED with checked_in set."""
        event_id = await self._event_of(registration_id)

        async def check_in(tx: LedgerTransaction, outbox: Outbox) -> Registration:
            registration = await self._load(tx, registration_id)
            attended = transition(registration, RegistrationStatus.ATTENDED, trigger=Trigger.ACTOR, at=self._clock())
            await tx.update(attended)
            outbox.moved(registration, attended)
            logger.info(
                "registration_checked_in",
                registration_id=attended.id,
                event_id=attended.event_id,
                participant_id=attended.participant_id,
            )
            return attended

        return await self._atomic(event_id, check_in)

    async def mark_no_show(self, registration_id: int) -> Registration:
        """
        CONFIRMED -> NO_SHOW once the event has started; the slot is promoted.

        Raises:
            IllegalStatusTransitionError: registration is not CONFIRMED.
            EventNotStartedError: the event start time is still ahead.
        """
        event_id = await self._event_of(registration_id)

        async def no_show(tx: LedgerTransaction, outbox: Outbox) -> Registration:
            registration = await self._load(tx, registration_id)
            if not can_transition(registration.status, RegistrationStatus.NO_SHOW):
                raise IllegalStatusTransitionError(registration.status, RegistrationStatus.NO_SHOW)

            now = self._clock()
            event = await tx.get_event()
            if event is None:
                raise EventNotFoundError(event_id)
            if not event.has_started(now):
                raise EventNotStartedError(event_id)

            absent = transition(registration, RegistrationStatus.NO_SHOW, trigger=Trigger.ACTOR, at=now)
            await tx.update(absent)
            outbox.moved(registration, absent)
            outbox.notify(NotificationKind.NO_SHOW, absent, now)
            logger.info(
                "registration_marked_no_show",
                registration_id=absent.id,
                event_id=absent.event_id,
                participant_id=absent.participant_id,
            )
            await self._promote(tx, outbox, now)
            return absent

        return await self._atomic(event_id, no_show)

    async def increase_capacity(self, event_id: int, additional: int) -> list[Registration]:
        """
        Raise an event's capacity and promote into the new slots.

        Returns the promoted registrations in arrival order.
        """
        if additional <= 0:
            raise InvalidCapacityError(event_id, "increase must be a positive number of slots")

        async def increase(tx: LedgerTransaction, outbox: Outbox) -> list[Registration]:
            event = await tx.get_event()
            if event is None:
                raise EventNotFoundError(event_id)
            grown = replace(event, capacity=event.capacity + additional)
            await tx.save_event(grown)
            logger.info("capacity_increased", event_id=event_id, old=event.capacity, new=grown.capacity)
            return await self._promote(tx, outbox, self._clock())

        return await self._atomic(event_id, increase)

    async def upsert_event(self, event_id: int, capacity: int, registration_open: bool = True,
                           starts_at: Optional[datetime] = None) -> EventRecord:
        """
        Store event facts published by the event-management side.

        Capacity can be set freely until the first registration exists;
        after that it may only grow (and growing promotes).
        """
        if capacity <= 0:
            raise InvalidCapacityError(event_id, "capacity must be positive")

        async def upsert(tx: LedgerTransaction, outbox: Outbox) -> EventRecord:
            current = await tx.get_event()
            updated = EventRecord(
                id=event_id,
                capacity=capacity,
                registration_open=registration_open,
                starts_at=as_utc(starts_at),
            )
            if current is not None and capacity < current.capacity and await tx.has_registrations():
                raise InvalidCapacityError(event_id, "capacity cannot shrink once registrations exist")

            await tx.save_event(updated)
            logger.info(
                "event_facts_saved",
                event_id=event_id,
                capacity=capacity,
                registration_open=registration_open,
                created=current is None,
            )
            if current is not None and capacity > current.capacity:
                await self._promote(tx, outbox, self._clock())
            return updated

        return await self._atomic(event_id, upsert)

    async def promote_if_possible(self, event_id: int) -> list[Registration]:
        """Fill any free slots from the waitlist (reconciliation entry point)."""

        async def promote(tx: LedgerTransaction, outbox: Outbox) -> list[Registration]:
            if await tx.get_event() is None:
                raise EventNotFoundError(event_id)
            return await self._promote(tx, outbox, self._clock())

        return await self._atomic(event_id, promote)

    # ------------------------------------------------------------------
    # queries (latest committed state)

    async def get_event(self, event_id: int) -> EventRecord:
        event = await self._ledger.get_event(event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    async def get_registration(self, registration_id: int) -> Registration:
        registration = await self._ledger.get_registration(registration_id)
        if registration is None:
            raise RegistrationNotFoundError(registration_id)
        return registration

    async def registrations_for_event(self, event_id: int,
                                      status: Optional[RegistrationStatus] = None) -> list[Registration]:
        await self.get_event(event_id)
        return await self._ledger.list_for_event(event_id, status)

    async def registrations_for_participant(self, participant_id: int) -> list[Registration]:
        return await self._ledger.list_for_participant(participant_id)

    async def capacity_summary(self, event_id: int) -> CapacitySummary:
        return await self._tracker.summary(self._ledger, event_id)

    async def is_registered(self, event_id: int, participant_id: int) -> bool:
        registrations = await self._ledger.list_for_participant(participant_id)
        return any(r.event_id == event_id and r.is_active for r in registrations)
