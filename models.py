import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Column, Integer, String, Text, DateTime, Date, Time, ForeignKey, Boolean, Enum, Numeric, Float, JSON,
    Index, CheckConstraint, func, text,
)
from sqlalchemy.dialects.postgresql import ExcludeConstraint
from sqlalchemy.orm import declarative_base, relationship


Base = declarative_base()


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value is not None else None


class UserRole(enum.Enum):
    """ The three roles a user can hold. """
    guest = 'guest'
    host = 'host'
    admin = 'admin'


class PropertyType(enum.Enum):
    apartment = 'apartment'
    house = 'house'
    condo = 'condo'
    villa = 'villa'
    cabin = 'cabin'
    studio = 'studio'


class PropertyStatus(enum.Enum):
    """ New listings start as pending and only an admin makes them active. """
    pending = 'pending'
    active = 'active'
    inactive = 'inactive'


class BookingStatus(enum.Enum):
    """ It holds the names of the four reservation modes. """
    pending = 'pending'
    confirmed = 'confirmed'
    cancelled = 'cancelled'
    completed = 'completed'


# Bookings in these states hold their dates.
ACTIVE_BOOKING_STATUSES = (BookingStatus.pending, BookingStatus.confirmed)


class User(Base):
    """
    This class defines the structure of the users table. Each user has exactly one role.
    Users are never hard-deleted.
    """
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.guest)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    phone = Column(String(32))
    avatar = Column(String)
    bio = Column(Text)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)
    deleted_at = Column(DateTime)

    # ONE TO MANY: A user can own multiple properties (if they are a host).
    properties = relationship('Property', back_populates='host')

    # ONE TO MANY: A user (as a guest) can have multiple bookings.
    bookings = relationship('Booking', back_populates='guest')

    # ONE TO MANY: A user can write one review per completed booking.
    reviews = relationship('Review', back_populates='reviewer')

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'phone': self.phone,
            'avatar': self.avatar,
            'bio': self.bio,
            'role': self.role.value,
            'is_active': self.is_active,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }


class Property(Base):
    """ This class defines the structure of the properties table. """
    __tablename__ = 'properties'

    id = Column(Integer, primary_key=True)
    host_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    type = Column(Enum(PropertyType), nullable=False)
    status = Column(Enum(PropertyStatus), nullable=False, default=PropertyStatus.pending, index=True)
    price_per_night = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default='USD')
    max_guests = Column(Integer, nullable=False)
    bedrooms = Column(Integer, nullable=False)
    bathrooms = Column(Integer, nullable=False)
    address = Column(String, nullable=False)
    city = Column(String, nullable=False)
    state = Column(String, nullable=False)
    country = Column(String, nullable=False)
    zip_code = Column(String(20), nullable=False)
    latitude = Column(Float)
    longitude = Column(Float)
    amenities = Column(JSON, nullable=False, default=list)
    images = Column(JSON, nullable=False, default=list)
    rules = Column(JSON, nullable=False, default=list)
    check_in_time = Column(Time)
    check_out_time = Column(Time)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)
    deleted_at = Column(DateTime)

    __table_args__ = (
        Index('ix_properties_location', 'city', 'state', 'country'),
    )

    # MANY TO ONE: Each property is owned by one host (user).
    host = relationship('User', back_populates='properties')

    # ONE TO MANY: A property can be booked multiple times.
    bookings = relationship('Booking', back_populates='property')

    def to_dict(self, include_host=True):
        data = {
            'id': self.id,
            'host_id': self.host_id,
            'title': self.title,
            'description': self.description,
            'type': self.type.value,
            'status': self.status.value,
            'price_per_night': float(self.price_per_night),
            'currency': self.currency,
            'max_guests': self.max_guests,
            'bedrooms': self.bedrooms,
            'bathrooms': self.bathrooms,
            'address': self.address,
            'city': self.city,
            'state': self.state,
            'country': self.country,
            'zip_code': self.zip_code,
            'latitude': self.latitude,
            'longitude': self.longitude,
            'amenities': list(self.amenities or []),
            'images': list(self.images or []),
            'rules': list(self.rules or []),
            'check_in_time': self.check_in_time.strftime('%H:%M') if self.check_in_time else None,
            'check_out_time': self.check_out_time.strftime('%H:%M') if self.check_out_time else None,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }
        if include_host and self.host is not None:
            data['host'] = self.host.to_dict()
        return data


class Booking(Base):
    """
    This class defines the structure of the bookings table.
    The stay is the half-open range [check_in, check_out).
    """
    __tablename__ = 'bookings'

    id = Column(Integer, primary_key=True)
    property_id = Column(Integer, ForeignKey('properties.id'), nullable=False, index=True)
    guest_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    check_in = Column(Date, nullable=False)
    check_out = Column(Date, nullable=False)
    guests = Column(Integer, nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default='USD')
    status = Column(Enum(BookingStatus), nullable=False, default=BookingStatus.pending, index=True)
    notes = Column(Text, nullable=False, default='')
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)
    deleted_at = Column(DateTime)

    __table_args__ = (
        CheckConstraint('check_out > check_in', name='ck_bookings_date_order'),
        Index('ix_bookings_dates', 'check_in', 'check_out'),
    )

    # MANY TO ONE: Each booking is made by one user.
    guest = relationship('User', back_populates='bookings')

    # MANY TO ONE: Each booking is for one property.
    property = relationship('Property', back_populates='bookings')

    def to_dict(self):
        data = {
            'id': self.id,
            'property_id': self.property_id,
            'guest_id': self.guest_id,
            'check_in': self.check_in.isoformat(),
            'check_out': self.check_out.isoformat(),
            'nights': (self.check_out - self.check_in).days,
            'guests': self.guests,
            'total_price': float(self.total_price),
            'currency': self.currency,
            'status': self.status.value,
            'notes': self.notes,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }
        if self.property is not None:
            data['property'] = self.property.to_dict(include_host=False)
        if self.guest is not None:
            data['guest'] = self.guest.to_dict()
        return data


# Storage-level guard against double booking: a race that slips past the
# row lock still fails with an IntegrityError instead of overlapping.
# Needs the btree_gist extension, so it is only emitted on PostgreSQL.
Booking.__table__.append_constraint(
    ExcludeConstraint(
        (Booking.__table__.c.property_id, '='),
        (func.daterange(Booking.__table__.c.check_in, Booking.__table__.c.check_out), '&&'),
        name='ex_bookings_no_overlap',
        using='gist',
        where=text("status IN ('pending', 'confirmed') AND deleted_at IS NULL"),
    ).ddl_if(dialect='postgresql')
)


class Review(Base):
    """ One review per completed booking, written by that booking's guest. """
    __tablename__ = 'reviews'

    id = Column(Integer, primary_key=True)
    property_id = Column(Integer, ForeignKey('properties.id'), nullable=False, index=True)
    booking_id = Column(Integer, ForeignKey('bookings.id'), nullable=False)
    reviewer_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=False)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)
    deleted_at = Column(DateTime)

    __table_args__ = (
        CheckConstraint('rating BETWEEN 1 AND 5', name='ck_reviews_rating'),
        # Prevent a second live review for the same booking
        Index(
            'uq_reviews_booking_live', 'booking_id', unique=True,
            sqlite_where=text('deleted_at IS NULL'),
            postgresql_where=text('deleted_at IS NULL'),
        ),
    )

    property = relationship('Property')
    booking = relationship('Booking')
    reviewer = relationship('User', back_populates='reviews')

    def to_dict(self):
        data = {
            'id': self.id,
            'property_id': self.property_id,
            'booking_id': self.booking_id,
            'reviewer_id': self.reviewer_id,
            'rating': self.rating,
            'comment': self.comment,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }
        if self.property is not None:
            data['property'] = self.property.to_dict(include_host=False)
        if self.reviewer is not None:
            data['reviewer'] = self.reviewer.to_dict()
        return data
