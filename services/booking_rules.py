"""
Booking status state machine.

    pending -> confirmed -> completed
    pending -> cancelled, confirmed -> cancelled

cancelled and completed are terminal. Which requester may take which edge
is read from TRANSITIONS, keyed by (current status, target status), and
compared against the requester's relations to the booking.
"""
import enum

from errors import Conflict, Forbidden, InvalidInput
from models import BookingStatus, UserRole


class Actor(enum.Enum):
    """ How a requester relates to one booking. A user can hold several. """
    guest = 'guest'
    host = 'host'
    admin = 'admin'


TRANSITIONS = {
    (BookingStatus.pending, BookingStatus.confirmed): frozenset({Actor.host, Actor.admin}),
    (BookingStatus.pending, BookingStatus.cancelled): frozenset({Actor.guest, Actor.host, Actor.admin}),
    (BookingStatus.confirmed, BookingStatus.cancelled): frozenset({Actor.host, Actor.admin}),
    (BookingStatus.confirmed, BookingStatus.completed): frozenset({Actor.host, Actor.admin}),
}

_FORBIDDEN_TARGET = {
    BookingStatus.confirmed: 'only the host can confirm bookings',
    BookingStatus.cancelled: 'unauthorized to cancel this booking',
    BookingStatus.completed: 'only the host can mark bookings as completed',
}

_ALREADY_CANCELLED = 'booking is already cancelled'
_ALREADY_COMPLETED = 'cannot cancel completed booking'


def coerce_role(role):
    if isinstance(role, UserRole):
        return role
    try:
        return UserRole(role)
    except ValueError:
        raise Forbidden('unknown role')


def actor_relations(requester_id, role, guest_id, host_id):
    relations = set()
    if requester_id == guest_id:
        relations.add(Actor.guest)
    if requester_id == host_id:
        relations.add(Actor.host)
    if coerce_role(role) is UserRole.admin:
        relations.add(Actor.admin)
    return frozenset(relations)


def parse_status(value):
    if isinstance(value, BookingStatus):
        return value
    try:
        return BookingStatus(value)
    except ValueError:
        raise InvalidInput('invalid booking status')


def _wrong_state(current, target):
    if target is BookingStatus.confirmed:
        return 'only pending bookings can be confirmed'
    if target is BookingStatus.completed:
        return 'only confirmed bookings can be marked as completed'
    if current is BookingStatus.cancelled:
        return _ALREADY_CANCELLED
    return _ALREADY_COMPLETED


def check_transition(current, target, relations, today, check_out):
    """
    Raises the first violated rule for moving a booking from `current` to
    `target`; returns the target status when the move is allowed.
    """
    target = parse_status(target)
    if target not in _FORBIDDEN_TARGET:
        raise InvalidInput('invalid booking status')

    reachable_by = set()
    for (_, to), actors in TRANSITIONS.items():
        if to is target:
            reachable_by |= actors
    if not relations & reachable_by:
        raise Forbidden(_FORBIDDEN_TARGET[target])

    allowed = TRANSITIONS.get((current, target))
    if allowed is None:
        raise Conflict(_wrong_state(current, target))
    if not relations & allowed:
        raise Forbidden(_FORBIDDEN_TARGET[target])

    if target is BookingStatus.completed and today < check_out:
        raise Conflict('booking cannot be completed before check-out date')
    return target


def check_cancellation(current, relations):
    """
    Rules of the dedicated cancel operation: any party to the booking may
    cancel it as long as it has not reached a terminal status.
    """
    if not relations:
        raise Forbidden(_FORBIDDEN_TARGET[BookingStatus.cancelled])
    if current is BookingStatus.cancelled:
        raise Conflict(_ALREADY_CANCELLED)
    if current is BookingStatus.completed:
        raise Conflict(_ALREADY_COMPLETED)
