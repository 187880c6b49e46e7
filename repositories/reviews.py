from sqlalchemy import func
from sqlalchemy.orm import joinedload

from models import Review
from repositories.base import Repository, store_operation


DUPLICATE_REVIEW = 'review already exists for this booking'


class ReviewRepository(Repository):
    model = Review

    def _hydrated(self):
        return self._live(joinedload(Review.property), joinedload(Review.reviewer))

    def create(self, review):
        # The partial unique index on booking_id catches a concurrent duplicate.
        return self._add(review, 'create review', conflict_message=DUPLICATE_REVIEW)

    def get_by_id(self, review_id):
        return self._first(self._hydrated().filter(Review.id == review_id), 'get review')

    def get_by_booking(self, booking_id):
        return self._first(self._live().filter(Review.booking_id == booking_id), 'check existing review')

    def list_by_property(self, property_id, offset, limit):
        query = (
            self._live(joinedload(Review.reviewer))
            .filter(Review.property_id == property_id)
            .order_by(Review.created_at.desc(), Review.id.desc())
        )
        return self._page(query, offset, limit, 'get property reviews')

    def list_by_reviewer(self, reviewer_id, offset, limit):
        query = (
            self._live(joinedload(Review.property))
            .filter(Review.reviewer_id == reviewer_id)
            .order_by(Review.created_at.desc(), Review.id.desc())
        )
        return self._page(query, offset, limit, 'get user reviews')

    def list_all(self, offset, limit):
        query = self._hydrated().order_by(Review.created_at.desc(), Review.id.desc())
        return self._page(query, offset, limit, 'get all reviews')

    def update(self, review):
        return self._save(review, 'update review')

    def soft_delete(self, review):
        return self._soft_delete(review, 'delete review')

    def average_rating(self, property_id):
        """ :return: (average of live ratings or 0.0, number of live reviews) """
        with store_operation('get average rating', self.log):
            average, count = (
                self.db.query(func.coalesce(func.avg(Review.rating), 0), func.count(Review.id))
                .filter(Review.property_id == property_id, Review.deleted_at.is_(None))
                .one()
            )
        return float(average), int(count)
