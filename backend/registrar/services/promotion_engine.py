"""
Waitlist promotion engine.

Runs inside the caller's event transaction, so the slot check, the
oldest-waitlisted lookup and the status write happen under the same lock.
Loops until either no slot or no waiting registration is left, which
covers a capacity increase freeing several slots at once.
"""

from datetime import datetime

from registrar.core.logging import get_logger
from registrar.domain.models import EventRecord, Registration, RegistrationStatus
from registrar.domain.status_machine import Trigger, transition
from registrar.services.capacity_tracker import CapacityTracker
from registrar.services.interfaces.ledger import LedgerTransaction

logger = get_logger(__name__)


class WaitlistPromotionEngine:

    def __init__(self, tracker: CapacityTracker) -> None:
        self._tracker = tracker

    async def promote_if_possible(self, tx: LedgerTransaction, event: EventRecord,
                                  at: datetime) -> list[Registration]:
        """Promote waitlisted registrations in arrival order while slots are free.

        Returns the promoted registrations, earliest arrival first.
        """
        promoted: list[Registration] = []
        while await self._tracker.available_slots(tx, event) > 0:
            candidate = await tx.oldest_waitlisted()
            if candidate is None:
                break
            confirmed = transition(candidate, RegistrationStatus.CONFIRMED, trigger=Trigger.PROMOTION, at=at)
            await tx.update(confirmed)
            promoted.append(confirmed)
            logger.info(
                "registration_promoted",
                registration_id=confirmed.id,
                event_id=confirmed.event_id,
                participant_id=confirmed.participant_id,
                requested_at=confirmed.requested_at.isoformat(),
            )
        return promoted
