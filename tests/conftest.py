import logging
from datetime import date, timedelta
from decimal import Decimal

import pytest

from app import create_app
from config import Config
from database import get_db, init_db, make_engine, make_session_factory
from models import Booking, BookingStatus, Property, PropertyStatus, PropertyType, User, UserRole
from services.booking_service import BookingService
from services.property_service import PropertyService
from services.review_service import ReviewService
from services.user_service import UserService
from utils.security import hash_password


PASSWORD = 'password123'
PASSWORD_HASH = hash_password(PASSWORD)
TODAY = date(2030, 3, 1)


class FixedClock:
    """ date.today stand-in the tests can move forward. """

    def __init__(self, today):
        self.today = today

    def __call__(self):
        return self.today

    def advance(self, days):
        self.today += timedelta(days=days)


class DictCache:
    """ In-memory lookaside cache recording hits. """

    def __init__(self):
        self.data = {}
        self.hits = 0

    def get(self, key):
        if key in self.data:
            self.hits += 1
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value

    def invalidate(self, key):
        self.data.pop(key, None)


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret-key-that-is-long-enough-for-hs256'
    JWT_SECRET_KEY = SECRET_KEY
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    REDIS_URL = ''
    LOG_DIR = ''
    LOG_LEVEL = 'WARNING'


def day(offset):
    """ A date `offset` days after the test clock's start. """
    return TODAY + timedelta(days=offset)


@pytest.fixture
def session_factory():
    engine = make_engine('sqlite://')
    init_db(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def clock():
    return FixedClock(TODAY)


@pytest.fixture
def cache():
    return DictCache()


@pytest.fixture
def logger():
    return logging.getLogger('stayhub.tests')


@pytest.fixture
def booking_service(session_factory, clock, logger):
    return BookingService(session_factory, logger=logger, clock=clock)


@pytest.fixture
def property_service(session_factory, cache, logger):
    return PropertyService(session_factory, cache=cache, logger=logger)


@pytest.fixture
def review_service(session_factory, logger):
    return ReviewService(session_factory, logger=logger)


@pytest.fixture
def user_service(session_factory, logger):
    return UserService(session_factory, logger=logger)


@pytest.fixture
def make_user(session_factory):
    counter = {'n': 0}

    def _make(role=UserRole.guest, **overrides):
        counter['n'] += 1
        values = {
            'email': f"{role.value}{counter['n']}@example.com",
            'password_hash': PASSWORD_HASH,
            'role': role,
            'first_name': 'Test',
            'last_name': 'User',
        }
        values.update(overrides)
        with get_db(session_factory) as db:
            user = User(**values)
            db.add(user)
        return user

    return _make


@pytest.fixture
def make_property(session_factory):
    def _make(host, status=PropertyStatus.active, **overrides):
        values = {
            'host_id': host.id,
            'title': 'Sunny flat near the beach',
            'description': 'A bright two bedroom flat five minutes from the beach, with a balcony.',
            'type': PropertyType.apartment,
            'status': status,
            'price_per_night': Decimal('100.00'),
            'currency': 'USD',
            'max_guests': 4,
            'bedrooms': 2,
            'bathrooms': 1,
            'address': '1 Ocean Drive',
            'city': 'Miami',
            'state': 'FL',
            'country': 'USA',
            'zip_code': '33139',
            'amenities': ['wifi', 'kitchen'],
        }
        values.update(overrides)
        with get_db(session_factory) as db:
            prop = Property(**values)
            db.add(prop)
        return prop

    return _make


@pytest.fixture
def make_booking(session_factory):
    """ Inserts a booking directly, bypassing the lifecycle rules. """
    def _make(prop, guest, check_in, check_out, status=BookingStatus.pending, guests=2):
        with get_db(session_factory) as db:
            booking = Booking(
                property_id=prop.id,
                guest_id=guest.id,
                check_in=check_in,
                check_out=check_out,
                guests=guests,
                total_price=prop.price_per_night * (check_out - check_in).days,
                currency=prop.currency,
                status=status,
            )
            db.add(booking)
        return booking

    return _make


@pytest.fixture
def app(session_factory, cache, clock):
    app = create_app(TestConfig, session_factory=session_factory, cache=cache, clock=clock)
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login(client):
    """ Logs a user in through the API and returns the Authorization header. """
    def _login(user):
        response = client.post('/api/v1/auth/login', json={'email': user.email, 'password': PASSWORD})
        assert response.status_code == 200, response.get_json()
        return {'Authorization': f"Bearer {response.get_json()['access_token']}"}

    return _login
