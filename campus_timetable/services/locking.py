# File: campus_timetable/services/locking.py
"""Row locks scoped to a scheduling key.

``acquire`` must run inside the caller's transaction: the version bump takes a
row lock (``SELECT ... FOR UPDATE`` on PostgreSQL, the database write lock on
SQLite) that is held until the caller commits or rolls back, so concurrent
writers on the same key run one after another.
"""
import logging
from sqlalchemy.exc import IntegrityError
from campus_timetable import db
from campus_timetable.models.lock import ScheduleLock

logger = logging.getLogger(__name__)

VENUE_SCOPE = 'venue'
IMPORT_SCOPE = 'import'

def venue_slot_key(venue_id, day_of_week, term, week) -> str:
    return f'{venue_id}:{day_of_week}:{term or "-"}:{week if week is not None else "-"}'

def import_key(department, term) -> str:
    return f'{department}:{term or "-"}'

def acquire(scope: str, key: str) -> ScheduleLock:
    """Take the lock row for (scope, key), creating it on first use."""
    lock = _locked_row(scope, key)
    if lock is None:
        try:
            with db.session.begin_nested():
                db.session.add(ScheduleLock(scope=scope, key=key, version=0))
        except IntegrityError:
            logger.debug('Lock row %s:%s created concurrently', scope, key)
        lock = _locked_row(scope, key)

    lock.version += 1
    db.session.flush()
    return lock

def _locked_row(scope: str, key: str):
    return (
        ScheduleLock.query
        .filter_by(scope=scope, key=key)
        .with_for_update()
        .first()
    )
