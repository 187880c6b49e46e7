import logging
from datetime import date
from decimal import Decimal

from database import get_db
from errors import Conflict, Forbidden, InvalidInput, NotFound
from models import Booking, BookingStatus, PropertyStatus
from repositories.bookings import UNAVAILABLE_DATES, BookingRepository
from repositories.properties import PropertyRepository
from services.booking_rules import (
    Actor, actor_relations, check_cancellation, check_transition,
)
from utils.availability import count_nights, validate_stay_dates
from utils.pagination import normalize_paging
from utils.validation import parse_date, parse_int, parse_string


CENTS = Decimal('0.01')
MAX_NOTES_LENGTH = 1000


def _total_price(price_per_night, nights):
    return (Decimal(price_per_night) * nights).quantize(CENTS)


def _parse_notes(value):
    if value is None:
        return ''
    return parse_string(value, 'notes', max_length=MAX_NOTES_LENGTH)


class BookingService:
    """
    Booking lifecycle: creation with conflict detection and pricing, the
    status state machine, and who may see or change a booking.
    """

    def __init__(self, session_factory, logger=None, clock=None):
        self.session_factory = session_factory
        self.log = logger or logging.getLogger('stayhub.bookings')
        self.clock = clock or date.today

    def _check_capacity(self, guests, prop):
        if guests < 1:
            raise InvalidInput('number of guests must be at least 1')
        if guests > prop.max_guests:
            raise InvalidInput(f'number of guests ({guests}) exceeds property maximum ({prop.max_guests})')

    def create_booking(self, guest_id, property_id, check_in, check_out, guests, notes=''):
        validate_stay_dates(check_in, check_out, today=self.clock())
        notes = _parse_notes(notes)
        if guests < 1:
            raise InvalidInput('number of guests must be at least 1')

        with get_db(self.session_factory) as db:
            properties = PropertyRepository(db, self.log)
            bookings = BookingRepository(db, self.log)

            # Locking the property serializes concurrent bookings on it; SQLite
            # transactions already hold the write lock from BEGIN IMMEDIATE.
            prop = properties.get_by_id(property_id, lock=True)
            if prop is None:
                raise NotFound('property not found')
            if prop.status is not PropertyStatus.active:
                raise Conflict('property is not available for booking')

            self._check_capacity(guests, prop)

            if bookings.has_conflict(property_id, check_in, check_out):
                raise Conflict(UNAVAILABLE_DATES)

            nights = count_nights(check_in, check_out)
            if nights <= 0:
                raise InvalidInput('booking must be for at least one night')

            booking = Booking(
                property_id=prop.id,
                guest_id=guest_id,
                check_in=check_in,
                check_out=check_out,
                guests=guests,
                total_price=_total_price(prop.price_per_night, nights),
                currency=prop.currency,
                status=BookingStatus.pending,
                notes=notes,
            )
            bookings.create(booking)
            booking = bookings.get_by_id(booking.id)
            self.log.info('booking %s created for property %s by guest %s (%s to %s)',
                          booking.id, property_id, guest_id, check_in, check_out)
            return booking.to_dict()

    def _load(self, bookings, booking_id):
        booking = bookings.get_by_id(booking_id)
        if booking is None:
            raise NotFound('booking not found')
        return booking

    def get_booking(self, booking_id, requester_id, requester_role):
        with get_db(self.session_factory) as db:
            booking = self._load(BookingRepository(db, self.log), booking_id)
            relations = actor_relations(requester_id, requester_role, booking.guest_id, booking.property.host_id)
            if not relations:
                raise Forbidden('unauthorized: you can only view your own bookings')
            return booking.to_dict()

    def update_booking(self, booking_id, requester_id, requester_role, patch):
        """
        Applies the keys present in `patch` (check_in, check_out, guests,
        status, notes). Every rule is checked before anything is assigned.
        """
        with get_db(self.session_factory) as db:
            properties = PropertyRepository(db, self.log)
            bookings = BookingRepository(db, self.log)

            booking = self._load(bookings, booking_id)
            relations = actor_relations(requester_id, requester_role, booking.guest_id, booking.property.host_id)
            if not relations:
                raise Forbidden('unauthorized: you can only update your own bookings')

            changes = {}
            may_edit_stay = bool(relations & {Actor.guest, Actor.admin})

            if patch.get('check_in') is not None or patch.get('check_out') is not None:
                if booking.status is not BookingStatus.pending:
                    raise Conflict('cannot modify dates for confirmed or completed bookings')
                if not may_edit_stay:
                    raise Forbidden('only the guest can modify booking dates')

                check_in = booking.check_in
                check_out = booking.check_out
                if patch.get('check_in') is not None:
                    check_in = parse_date(patch['check_in'], 'check-in date')
                if patch.get('check_out') is not None:
                    check_out = parse_date(patch['check_out'], 'check-out date')
                validate_stay_dates(check_in, check_out, today=self.clock())

                prop = properties.get_by_id(booking.property_id, lock=True)
                if prop is None:
                    raise NotFound('property not found')
                if bookings.has_conflict(booking.property_id, check_in, check_out, exclude_booking_id=booking.id):
                    raise Conflict(UNAVAILABLE_DATES)

                changes['check_in'] = check_in
                changes['check_out'] = check_out
                changes['total_price'] = _total_price(prop.price_per_night, count_nights(check_in, check_out))

            if 'guests' in patch:
                if booking.status is not BookingStatus.pending:
                    raise Conflict('cannot modify guest count for confirmed or completed bookings')
                if not may_edit_stay:
                    raise Forbidden('only the guest can modify guest count')
                guests = parse_int(patch['guests'], 'guests')
                self._check_capacity(guests, booking.property)
                changes['guests'] = guests

            if 'status' in patch:
                changes['status'] = check_transition(
                    booking.status, patch['status'], relations,
                    today=self.clock(), check_out=changes.get('check_out', booking.check_out),
                )

            if 'notes' in patch:
                changes['notes'] = _parse_notes(patch['notes'])

            previous = booking.status
            for field, value in changes.items():
                setattr(booking, field, value)
            bookings.update(booking)

            if booking.status is not previous:
                self.log.info('booking %s moved from %s to %s by user %s',
                              booking.id, previous.value, booking.status.value, requester_id)
            return booking.to_dict()

    def cancel_booking(self, booking_id, requester_id, requester_role):
        with get_db(self.session_factory) as db:
            bookings = BookingRepository(db, self.log)
            booking = self._load(bookings, booking_id)
            relations = actor_relations(requester_id, requester_role, booking.guest_id, booking.property.host_id)
            check_cancellation(booking.status, relations)

            booking.status = BookingStatus.cancelled
            bookings.update(booking)
            self.log.info('booking %s cancelled by user %s', booking.id, requester_id)
            return booking.to_dict()

    def get_user_bookings(self, user_id, page=None, limit=None):
        page, limit, offset = normalize_paging(page, limit)
        with get_db(self.session_factory) as db:
            items = BookingRepository(db, self.log).list_by_guest(user_id, offset, limit)
            return {'bookings': [b.to_dict() for b in items], 'page': page, 'limit': limit}

    def get_property_bookings(self, property_id, requester_id, page=None, limit=None):
        page, limit, offset = normalize_paging(page, limit)
        with get_db(self.session_factory) as db:
            prop = PropertyRepository(db, self.log).get_by_id(property_id)
            if prop is None:
                raise NotFound('property not found')
            if prop.host_id != requester_id:
                raise Forbidden('unauthorized: you can only view bookings for your own properties')
            items = BookingRepository(db, self.log).list_by_property(property_id, offset, limit)
            return {'bookings': [b.to_dict() for b in items], 'page': page, 'limit': limit}
