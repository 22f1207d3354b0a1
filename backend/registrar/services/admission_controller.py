"""
Admission controller.

Decides CONFIRMED vs WAITLISTED for a new request. Must be called inside
the event's transaction: the slot count it reads and the row it writes
are covered by the same lock, so two requests for the last slot can
never both be confirmed.
"""

from datetime import datetime

from registrar.core.exceptions import DuplicateActiveRegistrationError, EventNotFoundError, EventNotOpenError
from registrar.core.logging import get_logger
from registrar.domain.models import Registration, RegistrationStatus
from registrar.services.capacity_tracker import CapacityTracker
from registrar.services.interfaces.ledger import LedgerTransaction

logger = get_logger(__name__)


class AdmissionController:

    def __init__(self, tracker: CapacityTracker) -> None:
        self._tracker = tracker

    async def admit(self, tx: LedgerTransaction, participant_id: int,
                    requested_at: datetime) -> Registration:
        """
        Create the participant's registration for tx.event_id.

        Raises:
            EventNotFoundError: no facts for the event.
            EventNotOpenError: the event does not accept registrations.
            DuplicateActiveRegistrationError: participant already holds a
                non-cancelled registration for the event.
        """
        event = await tx.get_event()
        if event is None:
            raise EventNotFoundError(tx.event_id)
        if not event.registration_open:
            raise EventNotOpenError(event.id)

        existing = await tx.find_active(participant_id)
        if existing is not None:
            logger.warning(
                "registration_rejected_duplicate",
                event_id=event.id,
                participant_id=participant_id,
                existing_id=existing.id,
                existing_status=existing.status.value,
            )
            raise DuplicateActiveRegistrationError(event.id, participant_id, existing.id)

        available = await self._tracker.available_slots(tx, event)
        status = RegistrationStatus.CONFIRMED if available > 0 else RegistrationStatus.WAITLISTED

        registration = await tx.add(participant_id, status, requested_at)
        logger.info(
            "registration_confirmed" if status is RegistrationStatus.CONFIRMED else "registration_waitlisted",
            registration_id=registration.id,
            event_id=event.id,
            participant_id=participant_id,
            available_before=available,
        )
        return registration
