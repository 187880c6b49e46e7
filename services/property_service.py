import logging

from database import get_db
from errors import Conflict, Forbidden, InvalidInput, NotFound
from models import Property, PropertyStatus, PropertyType, UserRole
from repositories.properties import PropertyRepository
from services.booking_rules import coerce_role
from utils.availability import validate_stay_dates
from utils.cache import NullCache
from utils.pagination import count_pages, normalize_paging
from utils.validation import (
    parse_decimal, parse_enum, parse_float, parse_int, parse_string, parse_string_list, parse_time,
)


def _parse_currency(value, field):
    return parse_string(value, field, min_length=3, max_length=3).upper()


# Field name -> parser applied on creation and on every present patch key.
_FIELD_PARSERS = {
    'title': lambda v: parse_string(v, 'title', min_length=10, max_length=100),
    'description': lambda v: parse_string(v, 'description', min_length=50),
    'type': lambda v: parse_enum(PropertyType, v, 'property type'),
    'price_per_night': lambda v: parse_decimal(v, 'price_per_night', minimum=1),
    'currency': lambda v: _parse_currency(v, 'currency'),
    'max_guests': lambda v: parse_int(v, 'max_guests', minimum=1, maximum=20),
    'bedrooms': lambda v: parse_int(v, 'bedrooms', minimum=0, maximum=20),
    'bathrooms': lambda v: parse_int(v, 'bathrooms', minimum=1, maximum=20),
    'address': lambda v: parse_string(v, 'address', min_length=1),
    'city': lambda v: parse_string(v, 'city', min_length=1),
    'state': lambda v: parse_string(v, 'state', min_length=1),
    'country': lambda v: parse_string(v, 'country', min_length=1),
    'zip_code': lambda v: parse_string(v, 'zip_code', min_length=1, max_length=20),
    'latitude': lambda v: parse_float(v, 'latitude', minimum=-90, maximum=90),
    'longitude': lambda v: parse_float(v, 'longitude', minimum=-180, maximum=180),
    'amenities': lambda v: parse_string_list(v, 'amenities'),
    'images': lambda v: parse_string_list(v, 'images'),
    'rules': lambda v: parse_string_list(v, 'rules'),
    'check_in_time': lambda v: parse_time(v, 'check_in_time'),
    'check_out_time': lambda v: parse_time(v, 'check_out_time'),
}

REQUIRED_FIELDS = (
    'title', 'description', 'type', 'price_per_night', 'max_guests', 'bedrooms', 'bathrooms',
    'address', 'city', 'state', 'country', 'zip_code',
)


def _cache_key(property_id):
    return f'property:{property_id}'


class PropertyService:
    """
    Listings: ownership checks, admin approval, availability queries and
    search. Single-property reads go through the lookaside cache.
    """

    def __init__(self, session_factory, cache=None, logger=None):
        self.session_factory = session_factory
        self.cache = cache or NullCache()
        self.log = logger or logging.getLogger('stayhub.properties')

    def _cache_get(self, key):
        try:
            return self.cache.get(key)
        except Exception as exc:
            self.log.warning('cache read %s failed, falling back to the store: %s', key, exc)
            return None

    def _cache_set(self, key, value):
        try:
            self.cache.set(key, value)
        except Exception as exc:
            self.log.warning('cache write %s failed: %s', key, exc)

    def _invalidate(self, property_id):
        try:
            self.cache.invalidate(_cache_key(property_id))
        except Exception as exc:
            self.log.warning('cache invalidate %s failed: %s', _cache_key(property_id), exc)

    def _load(self, repo, property_id):
        prop = repo.get_by_id(property_id)
        if prop is None:
            raise NotFound('property not found')
        return prop

    def create_property(self, host_id, role, data):
        if coerce_role(role) not in (UserRole.host, UserRole.admin):
            raise Forbidden('only hosts can create properties')

        missing = [field for field in REQUIRED_FIELDS if data.get(field) in (None, '')]
        if missing:
            raise InvalidInput(f'{missing[0]} is required')

        values = {field: parser(data[field]) for field, parser in _FIELD_PARSERS.items() if field in data}
        values.setdefault('currency', 'USD')

        with get_db(self.session_factory) as db:
            repo = PropertyRepository(db, self.log)
            prop = Property(host_id=host_id, status=PropertyStatus.pending, **values)
            repo.create(prop)
            prop = repo.get_by_id(prop.id)
            self.log.info('property %s created by host %s', prop.id, host_id)
            return prop.to_dict()

    def get_property(self, property_id):
        key = _cache_key(property_id)
        cached = self._cache_get(key)
        if cached is not None:
            return cached

        with get_db(self.session_factory) as db:
            data = self._load(PropertyRepository(db, self.log), property_id).to_dict()
        self._cache_set(key, data)
        return data

    def update_property(self, property_id, requester_id, patch):
        with get_db(self.session_factory) as db:
            repo = PropertyRepository(db, self.log)
            prop = self._load(repo, property_id)
            if prop.host_id != requester_id:
                raise Forbidden('unauthorized: you can only update your own properties')

            changes = {}
            for field, parser in _FIELD_PARSERS.items():
                if field in patch:
                    changes[field] = parser(patch[field])

            if 'status' in patch:
                status = parse_enum(PropertyStatus, patch['status'], 'property status')
                if status is PropertyStatus.active:
                    raise Forbidden('only admins can activate properties')
                changes['status'] = status

            for field, value in changes.items():
                setattr(prop, field, value)
            repo.update(prop)
            data = prop.to_dict()

        self._invalidate(property_id)
        return data

    def delete_property(self, property_id, requester_id):
        with get_db(self.session_factory) as db:
            repo = PropertyRepository(db, self.log)
            prop = self._load(repo, property_id)
            if prop.host_id != requester_id:
                raise Forbidden('unauthorized: you can only delete your own properties')
            repo.soft_delete(prop)
            self.log.info('property %s deleted by host %s', property_id, requester_id)

        self._invalidate(property_id)

    def approve_property(self, property_id, role):
        if coerce_role(role) is not UserRole.admin:
            raise Forbidden('only admins can approve properties')

        with get_db(self.session_factory) as db:
            repo = PropertyRepository(db, self.log)
            prop = self._load(repo, property_id)
            prop.status = PropertyStatus.active
            repo.update(prop)
            data = prop.to_dict()
            self.log.info('property %s approved', property_id)

        self._invalidate(property_id)
        return data

    def check_availability(self, property_id, check_in, check_out):
        """ True when the property is active and no booking holds any of the nights. """
        validate_stay_dates(check_in, check_out)
        with get_db(self.session_factory) as db:
            repo = PropertyRepository(db, self.log)
            prop = self._load(repo, property_id)
            if prop.status is not PropertyStatus.active:
                raise Conflict('property is not available for booking')
            return repo.check_availability(property_id, check_in, check_out)

    def list_properties(self, page=None, limit=None):
        page, limit, offset = normalize_paging(page, limit)
        with get_db(self.session_factory) as db:
            items = PropertyRepository(db, self.log).list_active(offset, limit)
            return {'properties': [p.to_dict() for p in items], 'page': page, 'limit': limit}

    def search_properties(self, filters, page=None, limit=None):
        """
        filters: city, state, country, guests, min_price, max_price, type,
        amenities, check_in, check_out. Missing or empty filters are ignored.
        """
        page, limit, offset = normalize_paging(page, limit)
        if filters.get('check_in') and filters.get('check_out'):
            validate_stay_dates(filters['check_in'], filters['check_out'])

        with get_db(self.session_factory) as db:
            items, total = PropertyRepository(db, self.log).search(filters, offset, limit)
            return {
                'properties': [p.to_dict() for p in items],
                'total': total,
                'page': page,
                'limit': limit,
                'total_pages': count_pages(total, limit),
            }

    def get_properties_by_host(self, host_id, page=None, limit=None):
        page, limit, offset = normalize_paging(page, limit)
        with get_db(self.session_factory) as db:
            items = PropertyRepository(db, self.log).list_by_host(host_id, offset, limit)
            return {'properties': [p.to_dict(include_host=False) for p in items], 'page': page, 'limit': limit}
