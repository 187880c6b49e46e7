import json

from sqlalchemy import String, cast, func
from sqlalchemy.orm import joinedload

from models import Property, PropertyStatus
from repositories.base import Repository, store_operation
from utils.availability import availability_clause, overlaps


class PropertyRepository(Repository):
    model = Property

    def create(self, prop):
        return self._add(prop, 'create property')

    def get_by_id(self, property_id, lock=False):
        """
        With lock=True the row is read FOR UPDATE, which serializes the
        check-then-insert of concurrent bookings on the same property.
        """
        if lock:
            query = self._live().filter(Property.id == property_id).with_for_update()
        else:
            query = self._live(joinedload(Property.host)).filter(Property.id == property_id)
        return self._first(query, 'get property')

    def update(self, prop):
        return self._save(prop, 'update property')

    def soft_delete(self, prop):
        return self._soft_delete(prop, 'delete property')

    def list_active(self, offset, limit):
        query = (
            self._live(joinedload(Property.host))
            .filter(Property.status == PropertyStatus.active)
            .order_by(Property.created_at.desc(), Property.id.desc())
        )
        return self._page(query, offset, limit, 'list properties')

    def list_by_host(self, host_id, offset, limit):
        query = (
            self._live()
            .filter(Property.host_id == host_id)
            .order_by(Property.created_at.desc(), Property.id.desc())
        )
        return self._page(query, offset, limit, 'list properties by host')

    def search(self, filters, offset, limit):
        """
        Active properties matching every supplied filter.
        :return: (properties for the page, total number of matches)
        """
        conditions = [Property.status == PropertyStatus.active]

        for field in ('city', 'state', 'country'):
            needle = filters.get(field)
            if needle:
                column = getattr(Property, field)
                conditions.append(func.lower(column).contains(needle.lower(), autoescape=True))

        if filters.get('guests'):
            conditions.append(Property.max_guests >= filters['guests'])
        if filters.get('min_price') is not None:
            conditions.append(Property.price_per_night >= filters['min_price'])
        if filters.get('max_price') is not None:
            conditions.append(Property.price_per_night <= filters['max_price'])
        if filters.get('type') is not None:
            conditions.append(Property.type == filters['type'])

        # Amenities are a JSON array; match each requested one as a quoted element.
        for amenity in filters.get('amenities') or []:
            token = json.dumps(amenity, ensure_ascii=False)
            conditions.append(cast(Property.amenities, String).contains(token, autoescape=True))

        if filters.get('check_in') and filters.get('check_out'):
            conditions.append(availability_clause(Property.id, filters['check_in'], filters['check_out']))

        with store_operation('search properties', self.log):
            total = self._live().filter(*conditions).count()
            properties = (
                self._live(joinedload(Property.host))
                .filter(*conditions)
                .order_by(Property.created_at.desc(), Property.id.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
        return properties, total

    def check_availability(self, property_id, check_in, check_out):
        """ True when no pending/confirmed booking overlaps the stay. """
        with store_operation('check availability', self.log):
            return not overlaps(self.db, property_id, check_in, check_out)
