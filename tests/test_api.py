from decimal import Decimal

import pytest

from models import PropertyStatus, UserRole
from conftest import day


@pytest.fixture
def host(make_user):
    return make_user(UserRole.host)


@pytest.fixture
def guest(make_user):
    return make_user()


@pytest.fixture
def listing(host, make_property):
    return make_property(host, price_per_night=Decimal('100'), max_guests=4)


def book(client, headers, prop, check_in, check_out, guests=2):
    return client.post('/api/v1/bookings', headers=headers, json={
        'property_id': prop.id,
        'check_in': check_in.isoformat(),
        'check_out': check_out.isoformat(),
        'guests': guests,
    })


def test_health(client):
    response = client.get('/health')
    assert response.status_code == 200


def test_register_login_refresh(client):
    response = client.post('/api/v1/auth/register', json={
        'email': 'grace@example.com',
        'password': 'hopper1906',
        'first_name': 'Grace',
        'last_name': 'Hopper',
        'role': 'host',
    })
    assert response.status_code == 201
    assert response.get_json()['user']['role'] == 'host'

    response = client.post('/api/v1/auth/login', json={'email': 'grace@example.com', 'password': 'hopper1906'})
    assert response.status_code == 200
    tokens = response.get_json()

    response = client.post('/api/v1/auth/refresh', headers={'Authorization': f"Bearer {tokens['refresh_token']}"})
    assert response.status_code == 200
    assert 'access_token' in response.get_json()

    profile = client.get('/api/v1/profile', headers={'Authorization': f"Bearer {tokens['access_token']}"})
    assert profile.get_json()['email'] == 'grace@example.com'


def test_bad_login_is_401(client, guest):
    response = client.post('/api/v1/auth/login', json={'email': guest.email, 'password': 'nope nope'})
    assert response.status_code == 401
    assert response.get_json() == {'error': 'invalid email or password'}


def test_booking_requires_token(client, listing):
    response = client.post('/api/v1/bookings', json={'property_id': listing.id})
    assert response.status_code == 401


def test_create_and_overlap(client, login, guest, make_user, listing):
    # A 100/night property booked for four nights costs 400.
    response = book(client, login(guest), listing, day(92), day(96))
    assert response.status_code == 201
    booking = response.get_json()['booking']
    assert booking['status'] == 'pending'
    assert booking['total_price'] == 400.0

    other = make_user()
    response = book(client, login(other), listing, day(94), day(98))
    assert response.status_code == 409
    assert response.get_json() == {'error': 'property is not available for the selected dates'}


def test_zero_night_booking_is_400(client, login, guest, listing):
    response = book(client, login(guest), listing, day(10), day(10))
    assert response.status_code == 400
    assert response.get_json() == {'error': 'check-out date must be after check-in date'}


def test_malformed_date_is_400(client, login, guest, listing):
    response = client.post('/api/v1/bookings', headers=login(guest), json={
        'property_id': listing.id, 'check_in': '01/06/2030', 'check_out': '2030-06-05', 'guests': 1,
    })
    assert response.status_code == 400


def test_non_text_notes_are_400(client, login, guest, listing):
    response = client.post('/api/v1/bookings', headers=login(guest), json={
        'property_id': listing.id, 'check_in': day(2).isoformat(), 'check_out': day(4).isoformat(),
        'guests': 1, 'notes': ['late', 'arrival'],
    })
    assert response.status_code == 400
    assert response.get_json() == {'error': 'notes must be a string'}


def test_host_confirms_once(client, login, guest, host, listing):
    booking = book(client, login(guest), listing, day(5), day(8)).get_json()['booking']
    host_headers = login(host)

    response = client.put(f"/api/v1/bookings/{booking['id']}", headers=host_headers, json={'status': 'confirmed'})
    assert response.status_code == 200
    assert response.get_json()['booking']['status'] == 'confirmed'

    response = client.put(f"/api/v1/bookings/{booking['id']}", headers=host_headers, json={'status': 'confirmed'})
    assert response.status_code == 409
    assert response.get_json() == {'error': 'only pending bookings can be confirmed'}


def test_guest_cannot_complete(client, login, guest, listing):
    headers = login(guest)
    booking = book(client, headers, listing, day(5), day(8)).get_json()['booking']

    response = client.put(f"/api/v1/bookings/{booking['id']}", headers=headers, json={'status': 'completed'})
    assert response.status_code == 403
    assert response.get_json() == {'error': 'only the host can mark bookings as completed'}


def test_review_after_completed_stay(client, login, guest, host, listing, clock):
    guest_headers = login(guest)
    host_headers = login(host)
    booking = book(client, guest_headers, listing, day(1), day(3)).get_json()['booking']
    url = f"/api/v1/bookings/{booking['id']}"

    assert client.put(url, headers=host_headers, json={'status': 'confirmed'}).status_code == 200
    clock.advance(3)
    assert client.put(url, headers=host_headers, json={'status': 'completed'}).status_code == 200

    review = {'booking_id': booking['id'], 'rating': 5, 'comment': 'Great host, great place.'}
    response = client.post('/api/v1/reviews', headers=guest_headers, json=review)
    assert response.status_code == 201

    response = client.post('/api/v1/reviews', headers=guest_headers, json=review)
    assert response.status_code == 409
    assert response.get_json() == {'error': 'review already exists for this booking'}

    rating = client.get(f'/api/v1/properties/{listing.id}/rating').get_json()
    assert rating == {'property_id': listing.id, 'average_rating': 5.0, 'review_count': 1}


def test_cancel_twice(client, login, guest, listing):
    headers = login(guest)
    booking = book(client, headers, listing, day(5), day(8)).get_json()['booking']

    assert client.post(f"/api/v1/bookings/{booking['id']}/cancel", headers=headers).status_code == 200
    response = client.post(f"/api/v1/bookings/{booking['id']}/cancel", headers=headers)
    assert response.status_code == 409
    assert response.get_json() == {'error': 'booking is already cancelled'}


def test_property_flow(client, login, host, make_user):
    host_headers = login(host)
    payload = {
        'title': 'Loft above the old bakery',
        'description': 'Open-plan loft with exposed brick, a big kitchen and a rooftop terrace.',
        'type': 'apartment',
        'price_per_night': 140,
        'max_guests': 2,
        'bedrooms': 1,
        'bathrooms': 1,
        'address': '3 Baker Street',
        'city': 'Portland',
        'state': 'OR',
        'country': 'USA',
        'zip_code': '97205',
        'amenities': ['wifi', 'terrace'],
    }
    response = client.post('/api/v1/properties', headers=host_headers, json=payload)
    assert response.status_code == 201
    prop = response.get_json()['property']
    assert prop['status'] == 'pending'

    # Pending listings stay out of search until approved.
    assert client.get('/api/v1/properties/search?city=portland').get_json()['total'] == 0

    response = client.post(f"/api/v1/properties/{prop['id']}/approve", headers=host_headers)
    assert response.status_code == 403

    admin = make_user(UserRole.admin)
    response = client.post(f"/api/v1/properties/{prop['id']}/approve", headers=login(admin))
    assert response.status_code == 200

    result = client.get('/api/v1/properties/search?city=portland&amenities=wifi&amenities=terrace').get_json()
    assert [p['id'] for p in result['properties']] == [prop['id']]
    assert result['total_pages'] == 1

    response = client.get(
        f"/api/v1/properties/{prop['id']}/availability?check_in={day(1).isoformat()}&check_out={day(3).isoformat()}")
    assert response.get_json()['available'] is True

    response = client.delete(f"/api/v1/properties/{prop['id']}", headers=login(make_user(UserRole.host)))
    assert response.status_code == 403


def test_unknown_property_is_404(client):
    response = client.get('/api/v1/properties/12345')
    assert response.status_code == 404
    assert response.get_json() == {'error': 'property not found'}


def test_all_reviews_admin_only(client, login, guest, make_user):
    assert client.get('/api/v1/reviews', headers=login(guest)).status_code == 403
    assert client.get('/api/v1/reviews', headers=login(make_user(UserRole.admin))).status_code == 200


def test_inactive_listing_cannot_be_booked(client, login, guest, host, make_property):
    prop = make_property(host, status=PropertyStatus.inactive)
    response = book(client, login(guest), prop, day(1), day(2))
    assert response.status_code == 409
