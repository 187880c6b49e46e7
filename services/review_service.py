import logging

from database import get_db
from errors import Conflict, Forbidden, NotFound
from models import BookingStatus, Review, UserRole
from repositories.bookings import BookingRepository
from repositories.properties import PropertyRepository
from repositories.reviews import DUPLICATE_REVIEW, ReviewRepository
from services.booking_rules import coerce_role
from utils.pagination import normalize_paging
from utils.validation import parse_int, parse_string


def _parse_rating(value):
    return parse_int(value, 'rating', minimum=1, maximum=5)


def _parse_comment(value):
    return parse_string(value, 'comment', min_length=10, max_length=1000)


class ReviewService:
    """ A guest may review a booking once, after the stay is completed. """

    def __init__(self, session_factory, logger=None):
        self.session_factory = session_factory
        self.log = logger or logging.getLogger('stayhub.reviews')

    def _load(self, reviews, review_id):
        review = reviews.get_by_id(review_id)
        if review is None:
            raise NotFound('review not found')
        return review

    def create_review(self, reviewer_id, booking_id, rating, comment):
        rating = _parse_rating(rating)
        comment = _parse_comment(comment)

        with get_db(self.session_factory) as db:
            reviews = ReviewRepository(db, self.log)

            booking = BookingRepository(db, self.log).get_by_id(booking_id)
            if booking is None:
                raise NotFound('booking not found')
            if booking.guest_id != reviewer_id:
                raise Forbidden('only the guest may review their own booking')
            if booking.status is not BookingStatus.completed:
                raise Forbidden('you can only review completed bookings')
            if reviews.get_by_booking(booking_id) is not None:
                raise Conflict(DUPLICATE_REVIEW)

            review = Review(
                property_id=booking.property_id,
                booking_id=booking.id,
                reviewer_id=reviewer_id,
                rating=rating,
                comment=comment,
            )
            reviews.create(review)
            review = reviews.get_by_id(review.id)
            self.log.info('review %s created for booking %s', review.id, booking_id)
            return review.to_dict()

    def get_review(self, review_id):
        with get_db(self.session_factory) as db:
            return self._load(ReviewRepository(db, self.log), review_id).to_dict()

    def update_review(self, review_id, reviewer_id, patch):
        with get_db(self.session_factory) as db:
            reviews = ReviewRepository(db, self.log)
            review = self._load(reviews, review_id)
            if review.reviewer_id != reviewer_id:
                raise Forbidden('you can only update your own reviews')

            changes = {}
            if 'rating' in patch:
                changes['rating'] = _parse_rating(patch['rating'])
            if 'comment' in patch:
                changes['comment'] = _parse_comment(patch['comment'])

            for field, value in changes.items():
                setattr(review, field, value)
            reviews.update(review)
            return review.to_dict()

    def delete_review(self, review_id, requester_id, role):
        with get_db(self.session_factory) as db:
            reviews = ReviewRepository(db, self.log)
            review = self._load(reviews, review_id)
            if review.reviewer_id != requester_id and coerce_role(role) is not UserRole.admin:
                raise Forbidden('you can only delete your own reviews')
            reviews.soft_delete(review)
            self.log.info('review %s deleted by user %s', review_id, requester_id)

    def get_property_reviews(self, property_id, page=None, limit=None):
        page, limit, offset = normalize_paging(page, limit)
        with get_db(self.session_factory) as db:
            items = ReviewRepository(db, self.log).list_by_property(property_id, offset, limit)
            return {'reviews': [r.to_dict() for r in items], 'page': page, 'limit': limit}

    def get_user_reviews(self, user_id, page=None, limit=None):
        page, limit, offset = normalize_paging(page, limit)
        with get_db(self.session_factory) as db:
            items = ReviewRepository(db, self.log).list_by_reviewer(user_id, offset, limit)
            return {'reviews': [r.to_dict() for r in items], 'page': page, 'limit': limit}

    def get_all_reviews(self, role, page=None, limit=None):
        if coerce_role(role) is not UserRole.admin:
            raise Forbidden('only admins can list all reviews')
        page, limit, offset = normalize_paging(page, limit)
        with get_db(self.session_factory) as db:
            items = ReviewRepository(db, self.log).list_all(offset, limit)
            return {'reviews': [r.to_dict() for r in items], 'page': page, 'limit': limit}

    def get_property_rating(self, property_id):
        with get_db(self.session_factory) as db:
            if PropertyRepository(db, self.log).get_by_id(property_id) is None:
                raise NotFound('property not found')
            average, count = ReviewRepository(db, self.log).average_rating(property_id)
        return {'property_id': property_id, 'average_rating': round(average, 2), 'review_count': count}
