"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .directory import ParticipantDirectory
from .ledger import LedgerTransaction, RegistrationLedger
from .notifier import NotificationDispatcher

__all__ = ['LedgerTransaction', 'NotificationDispatcher', 'ParticipantDirectory', 'RegistrationLedger']
