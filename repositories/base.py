import logging
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from errors import Conflict, Unavailable


@contextmanager
def store_operation(operation, logger, conflict_message=None):
    """
    Wraps one store call: constraint violations become Conflict, any other
    database failure becomes Unavailable. The message names the operation.
    """
    try:
        yield
    except IntegrityError as exc:
        logger.warning('failed to %s: %s', operation, exc.orig)
        raise Conflict(conflict_message or f'failed to {operation}: constraint violation') from exc
    except SQLAlchemyError as exc:
        logger.error('failed to %s: %s', operation, exc)
        raise Unavailable(f'failed to {operation}') from exc


class Repository:
    """ Common plumbing for the per-entity stores; `model` must define deleted_at. """
    model = None

    def __init__(self, db, logger=None):
        self.db = db
        self.log = logger or logging.getLogger('stayhub.store')

    def _live(self, *options):
        query = self.db.query(self.model)
        if options:
            query = query.options(*options)
        return query.filter(self.model.deleted_at.is_(None))

    def _add(self, entity, operation, conflict_message=None):
        with store_operation(operation, self.log, conflict_message):
            self.db.add(entity)
            self.db.flush()
        return entity

    def _save(self, entity, operation, conflict_message=None):
        with store_operation(operation, self.log, conflict_message):
            self.db.flush()
        return entity

    def _soft_delete(self, entity, operation):
        entity.deleted_at = datetime.now(timezone.utc)
        return self._save(entity, operation)

    def _first(self, query, operation):
        with store_operation(operation, self.log):
            return query.first()

    def _page(self, query, offset, limit, operation):
        with store_operation(operation, self.log):
            return query.offset(offset).limit(limit).all()
