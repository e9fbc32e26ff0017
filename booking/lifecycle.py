"""Booking state machine."""

from .exceptions import InvalidTransition
from .models import BookingStatus

PENDING = BookingStatus.PENDING.value
CONFIRMED = BookingStatus.CONFIRMED.value
CANCELLED = BookingStatus.CANCELLED.value
REJECTED = BookingStatus.REJECTED.value
COMPLETED = BookingStatus.COMPLETED.value

TRANSITIONS = {
    PENDING: {CONFIRMED, REJECTED},
    CONFIRMED: {CANCELLED, COMPLETED},
    CANCELLED: set(),
    REJECTED: set(),
    COMPLETED: set(),
}

EVENTS = {
    "approve": (PENDING, CONFIRMED),
    "reject": (PENDING, REJECTED),
    "cancel": (CONFIRMED, CANCELLED),
    "complete": (CONFIRMED, COMPLETED),
}

PAST_TENSE = {"approve": "approved", "reject": "rejected", "cancel": "cancelled", "complete": "completed"}


def initial_status(created_by_admin):
    return CONFIRMED if created_by_admin else PENDING


def is_terminal(status):
    return not TRANSITIONS.get(str(status))


def can_transition(current, target):
    return str(target) in TRANSITIONS.get(str(current), set())


def assert_transition(current, target):
    if not can_transition(current, target):
        raise InvalidTransition(str(current), str(target))


def next_status(current, event):
    """Status reached by applying ``event`` to a booking in ``current``."""
    try:
        source, target = EVENTS[event]
    except KeyError:
        raise ValueError(f"Unknown booking event: {event}") from None
    if str(current) != source:
        raise InvalidTransition(str(current), target, f"Only {source} bookings can be {PAST_TENSE[event]}.")
    return target
