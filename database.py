import json
import logging
from contextlib import contextmanager

from sqlalchemy import DDL, create_engine, event, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from errors import Conflict, Unavailable
from models import Base, Booking


log = logging.getLogger('stayhub.store')

# SQLite has no exclusion constraints: these triggers refuse a pending or
# confirmed booking whose stay overlaps another one on the same property.
_OVERLAP_GUARD = """
CREATE TRIGGER IF NOT EXISTS {name} BEFORE {event} ON bookings
WHEN NEW.status IN ('pending', 'confirmed') AND NEW.deleted_at IS NULL
BEGIN
    SELECT RAISE(ABORT, 'property is not available for the selected dates')
    WHERE EXISTS (
        SELECT 1 FROM bookings AS b
        WHERE b.property_id = NEW.property_id
          AND b.id IS NOT NEW.id
          AND b.status IN ('pending', 'confirmed')
          AND b.deleted_at IS NULL
          AND NOT (b.check_out <= NEW.check_in OR b.check_in >= NEW.check_out)
    );
END
"""

for _name, _event in (('trg_bookings_no_overlap_insert', 'INSERT'), ('trg_bookings_no_overlap_update', 'UPDATE')):
    event.listen(
        Booking.__table__, 'after_create',
        DDL(_OVERLAP_GUARD.format(name=_name, event=_event)).execute_if(dialect='sqlite'),
    )


def _json_serializer(value):
    # Keep non-ASCII amenities readable so LIKE-based containment matches them.
    return json.dumps(value, ensure_ascii=False)


def _serialize_sqlite_writes(engine):
    """
    pysqlite defers BEGIN until the first write, so a read-check-insert is
    not atomic. Every transaction starts with BEGIN IMMEDIATE instead, which
    takes the database write lock up front; concurrent units of work queue
    on it (up to the driver's busy timeout).
    """
    @event.listens_for(engine, 'connect')
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, 'begin')
    def _begin_immediate(conn):
        conn.exec_driver_sql('BEGIN IMMEDIATE')


def make_engine(database_uri, echo=False):
    """ It creates the SQLAlchemy engine for the given database URI. """
    kwargs = {'echo': echo, 'json_serializer': _json_serializer}
    if database_uri.startswith('sqlite'):
        kwargs['connect_args'] = {'check_same_thread': False, 'timeout': 30}
        if ':memory:' in database_uri or database_uri in ('sqlite://', 'sqlite:///'):
            # One shared connection, otherwise every session sees an empty database.
            kwargs['poolclass'] = StaticPool
    engine = create_engine(database_uri, **kwargs)
    if engine.dialect.name == 'sqlite':
        _serialize_sqlite_writes(engine)
    return engine


def make_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_db(engine):
    """ It Creates the database. """
    if engine.dialect.name == 'postgresql':
        with engine.begin() as conn:
            conn.execute(text('CREATE EXTENSION IF NOT EXISTS btree_gist'))
    Base.metadata.create_all(bind=engine)


@contextmanager
def get_db(session_factory):
    """
    It opens a new session for one unit of work and yields it.
    The work is committed when the block exits normally and rolled back
    on any exception, so a failed operation never leaves partial writes.
    """
    db = session_factory()
    try:
        yield db
        try:
            db.commit()
        except IntegrityError as exc:
            log.warning('failed to commit transaction: %s', exc.orig)
            raise Conflict('failed to commit transaction') from exc
        except SQLAlchemyError as exc:
            log.error('failed to commit transaction: %s', exc)
            raise Unavailable('failed to commit transaction') from exc
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
