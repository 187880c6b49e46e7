from sqlalchemy.orm import joinedload

from models import Booking
from repositories.base import Repository, store_operation
from utils.availability import find_conflicting_bookings


UNAVAILABLE_DATES = 'property is not available for the selected dates'


class BookingRepository(Repository):
    model = Booking

    def _hydrated(self):
        return self._live(joinedload(Booking.property), joinedload(Booking.guest))

    def create(self, booking):
        # The PostgreSQL exclusion constraint reports a lost race as an IntegrityError.
        return self._add(booking, 'create booking', conflict_message=UNAVAILABLE_DATES)

    def get_by_id(self, booking_id):
        return self._first(self._hydrated().filter(Booking.id == booking_id), 'get booking')

    def list_by_guest(self, guest_id, offset, limit):
        query = (
            self._hydrated()
            .filter(Booking.guest_id == guest_id)
            .order_by(Booking.created_at.desc(), Booking.id.desc())
        )
        return self._page(query, offset, limit, 'get user bookings')

    def list_by_property(self, property_id, offset, limit):
        query = (
            self._hydrated()
            .filter(Booking.property_id == property_id)
            .order_by(Booking.created_at.desc(), Booking.id.desc())
        )
        return self._page(query, offset, limit, 'get property bookings')

    def update(self, booking):
        return self._save(booking, 'update booking', conflict_message=UNAVAILABLE_DATES)

    def get_conflicting(self, property_id, check_in, check_out, exclude_booking_id=None):
        with store_operation('check for conflicting bookings', self.log):
            return find_conflicting_bookings(self.db, property_id, check_in, check_out, exclude_booking_id)

    def has_conflict(self, property_id, check_in, check_out, exclude_booking_id=None):
        return bool(self.get_conflicting(property_id, check_in, check_out, exclude_booking_id))
