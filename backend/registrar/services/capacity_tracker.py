"""
Capacity tracker.

The confirmed count is never stored: it is recounted from the ledger each
time. Called with a LedgerTransaction the answer is consistent with the
writes the caller is about to make; called with the ledger it reflects the
latest committed state.
"""

from registrar.core.exceptions import EventNotFoundError
from registrar.domain.models import CapacitySummary, EventRecord, RegistrationStatus
from registrar.services.interfaces.ledger import LedgerTransaction, RegistrationLedger


class CapacityTracker:

    async def confirmed_count(self, tx: LedgerTransaction) -> int:
        return await tx.count_by_status(RegistrationStatus.CONFIRMED)

    async def available_slots(self, tx: LedgerTransaction, event: EventRecord) -> int:
        return event.capacity - await self.confirmed_count(tx)

    async def summary(self, ledger: RegistrationLedger, event_id: int) -> CapacitySummary:
        """Committed capacity figures for an event.

        Raises:
            EventNotFoundError: If the ledger has no facts for the event.
        """
        event = await ledger.get_event(event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        return CapacitySummary(
            event_id=event_id,
            capacity=event.capacity,
            confirmed=await ledger.count_by_status(event_id, RegistrationStatus.CONFIRMED),
            waitlisted=await ledger.count_by_status(event_id, RegistrationStatus.WAITLISTED),
        )
