from sqlalchemy import exists, not_, or_

from errors import InvalidInput
from models import ACTIVE_BOOKING_STATUSES, Booking


def count_nights(check_in, check_out):
    """ Whole nights in the half-open stay [check_in, check_out). """
    return (check_out - check_in).days


def validate_stay_dates(check_in, check_out, today=None):
    """
    Rejects inverted or zero-length stays and, when `today` is given,
    stays that start in the past. Runs before any availability lookup.
    """
    if check_out <= check_in:
        raise InvalidInput('check-out date must be after check-in date')
    if today is not None and check_in < today:
        raise InvalidInput('check-in date cannot be in the past')


def _overlapping(check_in, check_out):
    # Two stays collide unless one ends on or before the day the other starts.
    return not_(or_(Booking.check_out <= check_in, Booking.check_in >= check_out))


def _holding_dates():
    return (
        Booking.status.in_(ACTIVE_BOOKING_STATUSES),
        Booking.deleted_at.is_(None),
    )


def find_conflicting_bookings(db, property_id, check_in, check_out, exclude_booking_id=None):
    """
    Returns the pending/confirmed bookings of a property whose stay overlaps
    [check_in, check_out). `exclude_booking_id` drops the booking being edited
    so it never conflicts with itself.
    """
    query = db.query(Booking).filter(
        Booking.property_id == property_id,
        _overlapping(check_in, check_out),
        *_holding_dates()
    )
    if exclude_booking_id is not None:
        query = query.filter(Booking.id != exclude_booking_id)
    return query.order_by(Booking.check_in).all()


def overlaps(db, property_id, check_in, check_out, exclude_booking_id=None):
    return bool(find_conflicting_bookings(db, property_id, check_in, check_out, exclude_booking_id))


def availability_clause(property_id_column, check_in, check_out):
    """ The same overlap test as a correlated NOT EXISTS, for filtering property queries. """
    return ~exists().where(
        Booking.property_id == property_id_column,
        _overlapping(check_in, check_out),
        *_holding_dates()
    )
