from decimal import Decimal

import pytest

from errors import Conflict, Forbidden, InvalidInput, NotFound
from models import BookingStatus, PropertyStatus, PropertyType, UserRole
from conftest import day


def listing_data(**overrides):
    data = {
        'title': 'Cabin in the pines',
        'description': 'Quiet wooden cabin with a fireplace, a hot tub and a view over the lake.',
        'type': 'cabin',
        'price_per_night': '85.00',
        'max_guests': 3,
        'bedrooms': 1,
        'bathrooms': 1,
        'address': '7 Forest Road',
        'city': 'Lake Tahoe',
        'state': 'CA',
        'country': 'USA',
        'zip_code': '96150',
        'amenities': ['wifi', 'fireplace'],
        'check_in_time': '15:00',
    }
    data.update(overrides)
    return data


@pytest.fixture
def host(make_user):
    return make_user(UserRole.host)


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.admin)


class TestCreateProperty:

    def test_created_pending_with_default_currency(self, property_service, host):
        prop = property_service.create_property(host.id, UserRole.host, listing_data())

        assert prop['status'] == 'pending'
        assert prop['currency'] == 'USD'
        assert prop['price_per_night'] == 85.0
        assert prop['check_in_time'] == '15:00'
        assert prop['host']['id'] == host.id

    def test_status_in_payload_is_ignored(self, property_service, host):
        prop = property_service.create_property(host.id, UserRole.host, listing_data(status='active'))
        assert prop['status'] == 'pending'

    def test_guests_cannot_create(self, property_service, make_user):
        guest = make_user()
        with pytest.raises(Forbidden, match='only hosts can create properties'):
            property_service.create_property(guest.id, UserRole.guest, listing_data())

    @pytest.mark.parametrize('overrides', [
        {'title': 'Too short'},
        {'description': 'Not nearly long enough.'},
        {'price_per_night': '0.50'},
        {'max_guests': 21},
        {'bedrooms': -1},
        {'bathrooms': 0},
        {'type': 'castle'},
        {'city': '   '},
        {'zip_code': None},
    ])
    def test_field_validation(self, property_service, host, overrides):
        with pytest.raises(InvalidInput):
            property_service.create_property(host.id, UserRole.host, listing_data(**overrides))


class TestOwnership:

    @pytest.fixture
    def prop(self, property_service, host):
        return property_service.create_property(host.id, UserRole.host, listing_data())

    def test_owner_updates_present_fields_only(self, property_service, host, prop):
        updated = property_service.update_property(prop['id'], host.id, {'price_per_night': 99, 'amenities': []})
        assert updated['price_per_night'] == 99.0
        assert updated['amenities'] == []
        assert updated['title'] == prop['title']

    def test_update_validates_fields(self, property_service, host, prop):
        with pytest.raises(InvalidInput):
            property_service.update_property(prop['id'], host.id, {'max_guests': 0})

    def test_non_owner_cannot_update_or_delete(self, property_service, make_user, admin, prop):
        other_host = make_user(UserRole.host)
        for user in (other_host, admin):
            with pytest.raises(Forbidden, match='unauthorized: you can only update your own properties'):
                property_service.update_property(prop['id'], user.id, {'title': 'A brand new title'})
            with pytest.raises(Forbidden, match='unauthorized: you can only delete your own properties'):
                property_service.delete_property(prop['id'], user.id)
        assert property_service.get_property(prop['id'])['title'] == prop['title']

    def test_host_cannot_self_activate(self, property_service, host, prop):
        with pytest.raises(Forbidden, match='only admins can activate properties'):
            property_service.update_property(prop['id'], host.id, {'status': 'active'})
        assert property_service.update_property(prop['id'], host.id, {'status': 'inactive'})['status'] == 'inactive'

    def test_delete_is_soft_and_hides_property(self, property_service, host, prop):
        property_service.delete_property(prop['id'], host.id)
        with pytest.raises(NotFound, match='property not found'):
            property_service.get_property(prop['id'])

    def test_approve(self, property_service, host, admin, prop):
        with pytest.raises(Forbidden, match='only admins can approve properties'):
            property_service.approve_property(prop['id'], UserRole.host)
        assert property_service.approve_property(prop['id'], admin.role)['status'] == 'active'
        with pytest.raises(NotFound):
            property_service.approve_property(999, UserRole.admin)


class TestCache:

    def test_get_populates_and_writes_invalidate(self, property_service, cache, host, admin):
        prop = property_service.create_property(host.id, UserRole.host, listing_data())
        key = f"property:{prop['id']}"

        property_service.get_property(prop['id'])
        assert key in cache.data
        property_service.get_property(prop['id'])
        assert cache.hits == 1

        property_service.approve_property(prop['id'], admin.role)
        assert key not in cache.data
        assert property_service.get_property(prop['id'])['status'] == 'active'

    def test_broken_cache_falls_back_to_store(self, session_factory, host, make_property, logger):
        from services.property_service import PropertyService

        class BrokenCache:
            def get(self, key):
                raise ConnectionError('cache down')

            def set(self, key, value):
                raise ConnectionError('cache down')

            def invalidate(self, key):
                raise ConnectionError('cache down')

        prop = make_property(host)
        service = PropertyService(session_factory, cache=BrokenCache(), logger=logger)
        assert service.get_property(prop.id)['id'] == prop.id
        service.delete_property(prop.id, host.id)


class TestAvailabilityAndSearch:

    def test_check_availability(self, property_service, host, make_user, make_property, make_booking):
        prop = make_property(host)
        make_booking(prop, make_user(), day(10), day(15), status=BookingStatus.confirmed)

        assert property_service.check_availability(prop.id, day(15), day(17)) is True
        assert property_service.check_availability(prop.id, day(12), day(13)) is False
        with pytest.raises(InvalidInput):
            property_service.check_availability(prop.id, day(5), day(5))
        with pytest.raises(NotFound):
            property_service.check_availability(999, day(1), day(2))

    def test_check_availability_requires_active(self, property_service, host, make_property):
        prop = make_property(host, status=PropertyStatus.inactive)
        with pytest.raises(Conflict, match='property is not available for booking'):
            property_service.check_availability(prop.id, day(1), day(2))

    def test_list_only_active(self, property_service, host, make_property):
        active = make_property(host)
        make_property(host, status=PropertyStatus.pending)

        result = property_service.list_properties()
        assert [p['id'] for p in result['properties']] == [active.id]

    def test_properties_by_host_include_every_status(self, property_service, host, make_property, make_user):
        make_property(host)
        make_property(host, status=PropertyStatus.pending)
        make_property(make_user(UserRole.host))

        assert len(property_service.get_properties_by_host(host.id)['properties']) == 2

    def test_search_filters(self, property_service, host, make_property, make_user, make_booking):
        miami = make_property(host, city='Miami', price_per_night=Decimal('100'), max_guests=4,
                              amenities=['wifi', 'pool'])
        boston = make_property(host, city='Boston', state='MA', price_per_night=Decimal('250'),
                               max_guests=8, type=PropertyType.house, amenities=['wifi'])
        make_property(host, city='Miami Beach', status=PropertyStatus.pending)
        make_booking(boston, make_user(), day(10), day(12), status=BookingStatus.pending)

        def ids(**filters):
            return [p['id'] for p in property_service.search_properties(filters)['properties']]

        assert ids(city='miami') == [miami.id]
        assert ids(state='ma') == [boston.id]
        assert ids(guests=5) == [boston.id]
        assert ids(min_price=Decimal('150')) == [boston.id]
        assert ids(max_price=Decimal('150')) == [miami.id]
        assert ids(type=PropertyType.house) == [boston.id]
        assert ids(amenities=['wifi', 'pool']) == [miami.id]
        assert sorted(ids(amenities=['wifi'])) == sorted([miami.id, boston.id])
        assert ids(check_in=day(11), check_out=day(13)) == [miami.id]
        assert sorted(ids(check_in=day(12), check_out=day(13))) == sorted([miami.id, boston.id])

    def test_search_paging(self, property_service, host, make_property):
        for _ in range(5):
            make_property(host)

        result = property_service.search_properties({}, page=2, limit=2)
        assert result['total'] == 5
        assert result['total_pages'] == 3
        assert len(result['properties']) == 2
        assert (result['page'], result['limit']) == (2, 2)
