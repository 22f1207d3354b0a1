"""
Registration lifecycle as an explicit transition table.

    WAITLISTED --promotion--> CONFIRMED
    WAITLISTED --actor------> CANCELLED
    CONFIRMED  --actor------> CANCELLED   (frees a slot)
    CONFIRMED  --actor------> ATTENDED
    CONFIRMED  --actor------> NO_SHOW     (frees a slot)

CANCELLED, ATTENDED and NO_SHOW are terminal. Every status change in the
codebase goes through transition(); callers never assign .status directly.
"""

from dataclasses import replace
from datetime import datetime
from enum import Enum

from registrar.core.exceptions import IllegalStatusTransitionError
from registrar.domain.models import Registration, RegistrationStatus

S = RegistrationStatus


class Trigger(str, Enum):
    ACTOR = "actor"          # participant or organizer action
    PROMOTION = "promotion"  # waitlist promotion engine


INITIAL_STATES = frozenset({S.WAITLISTED, S.CONFIRMED})
TERMINAL_STATES = frozenset({S.CANCELLED, S.ATTENDED, S.NO_SHOW})

TRANSITIONS: dict[tuple[RegistrationStatus, RegistrationStatus], frozenset[Trigger]] = {
    (S.WAITLISTED, S.CONFIRMED): frozenset({Trigger.PROMOTION}),
    (S.WAITLISTED, S.CANCELLED): frozenset({Trigger.ACTOR}),
    (S.CONFIRMED, S.CANCELLED): frozenset({Trigger.ACTOR}),
    (S.CONFIRMED, S.ATTENDED): frozenset({Trigger.ACTOR}),
    (S.CONFIRMED, S.NO_SHOW): frozenset({Trigger.ACTOR}),
}


def can_transition(current: RegistrationStatus, target: RegistrationStatus,
                   trigger: Trigger = Trigger.ACTOR) -> bool:
    return trigger in TRANSITIONS.get((current, target), frozenset())


def frees_slot(current: RegistrationStatus, target: RegistrationStatus) -> bool:
    """True when the move releases a confirmed slot and must trigger promotion."""
    return current is S.CONFIRMED and target in (S.CANCELLED, S.NO_SHOW)


def transition(registration: Registration, target: RegistrationStatus, *,
               trigger: Trigger, at: datetime) -> Registration:
    """Return a copy of registration moved to target.

    Raises:
        IllegalStatusTransitionError: if the table does not allow the move
            for this trigger.
    """
    current = registration.status
    if not can_transition(current, target, trigger):
        raise IllegalStatusTransitionError(current, target)

    checked_in = registration.checked_in
    if target is S.ATTENDED:
        checked_in = True
    elif target not in (S.CONFIRMED, S.ATTENDED):
        checked_in = False

    return replace(registration, status=target, checked_in=checked_in, updated_at=at)
