# File: campus_timetable/services/venue_service.py
"""Venue booking: conflict detection, suggestions and assignment."""
import logging
from datetime import time
from typing import List, Optional, Set

from campus_timetable import db, event_bus
from campus_timetable.models.course import Course
from campus_timetable.models.timetable import TimetableEntry
from campus_timetable.models.venue import Venue
from campus_timetable.services import locking
from campus_timetable.services.schedule_expander import normalize_day
from campus_timetable.utils.errors import NotFoundError, VenueConflictError
from campus_timetable.utils.validators import ValidationError, Validator

logger = logging.getLogger(__name__)

def intervals_overlap(start1: time, end1: time, start2: time, end2: time) -> bool:
    """Half-open [start, end) overlap; touching boundaries do not overlap."""
    return start1 < end2 and start2 < end1

class VenueConflictDetector:
    """Finds bookings that collide with a candidate venue slot."""

    @staticmethod
    def _overlapping(day_of_week: str, start_time: time, end_time: time,
                     term: Optional[str], week: Optional[int],
                     exclude_id: Optional[int] = None):
        query = TimetableEntry.query.filter(
            TimetableEntry.venue_id.isnot(None),
            TimetableEntry.day_of_week == day_of_week,
            TimetableEntry.term == term,
            TimetableEntry.week == week,
            TimetableEntry.start_time < end_time,
            TimetableEntry.end_time > start_time
        )
        if exclude_id is not None:
            query = query.filter(TimetableEntry.id != exclude_id)
        return query

    @classmethod
    def find_conflict(cls, venue_id: int, day_of_week: str, start_time: time, end_time: time,
                      term: Optional[str], week: Optional[int],
                      exclude_id: Optional[int] = None) -> Optional[TimetableEntry]:
        """First booking of `venue_id` overlapping the candidate slot, if any."""
        if venue_id is None:
            return None
        return (
            cls._overlapping(day_of_week, start_time, end_time, term, week, exclude_id)
            .filter(TimetableEntry.venue_id == venue_id)
            .order_by(TimetableEntry.start_time)
            .first()
        )

    @classmethod
    def booked_venue_ids(cls, day_of_week: str, start_time: time, end_time: time,
                         term: Optional[str], week: Optional[int],
                         exclude_id: Optional[int] = None) -> Set[int]:
        rows = (
            cls._overlapping(day_of_week, start_time, end_time, term, week, exclude_id)
            .with_entities(TimetableEntry.venue_id)
            .distinct()
            .all()
        )
        return {row.venue_id for row in rows}

    @classmethod
    def suggest_venues(cls, day_of_week: str, start_time: time, end_time: time,
                       term: Optional[str], week: Optional[int], min_capacity: int = 0,
                       exclude_id: Optional[int] = None) -> List[Venue]:
        """Available venues free for the slot and large enough for the class."""
        booked = cls.booked_venue_ids(day_of_week, start_time, end_time, term, week, exclude_id)
        query = Venue.query.filter(
            Venue.is_available.is_(True),
            Venue.capacity >= (min_capacity or 0)
        )
        if booked:
            query = query.filter(Venue.id.notin_(booked))
        return query.order_by(Venue.capacity, Venue.name).all()

class VenueService:
    """Service for venue management and assignment."""

    @staticmethod
    def create_venue(name: str, location: str = None, capacity: int = None,
                     is_available: bool = True) -> Venue:
        name = (name or '').strip()
        if not name:
            raise ValidationError('Venue name is required')
        if Venue.query.filter_by(name=name).first():
            raise ValidationError(f'Venue {name} already exists')
        if capacity is not None and int(capacity) < 0:
            raise ValidationError('Capacity cannot be negative')

        venue = Venue(
            name=name,
            location=location,
            capacity=int(capacity) if capacity is not None else None,
            is_available=bool(is_available)
        )
        return venue.save()

    @staticmethod
    def update_venue(venue_id: int, **changes) -> Venue:
        venue = db.session.get(Venue, venue_id)
        if not venue:
            raise NotFoundError('Venue not found')

        name = changes.get('name')
        if name and name.strip() != venue.name:
            if Venue.query.filter_by(name=name.strip()).first():
                raise ValidationError(f'Venue {name} already exists')
            venue.name = name.strip()
        if changes.get('location') is not None:
            venue.location = changes['location']
        if changes.get('capacity') is not None:
            venue.capacity = int(changes['capacity'])
        if changes.get('is_available') is not None:
            venue.is_available = bool(changes['is_available'])

        db.session.commit()
        return venue

    @staticmethod
    def delete_venue(venue_id: int) -> int:
        """Remove a venue; entries booked into it become unassigned.

        Returns how many entries lost their venue.
        """
        venue = db.session.get(Venue, venue_id)
        if not venue:
            raise NotFoundError('Venue not found')

        try:
            released = TimetableEntry.query.filter_by(venue_id=venue.id).update(
                {TimetableEntry.venue_id: None}, synchronize_session=False
            )
            venue.delete()
        except Exception:
            db.session.rollback()
            raise

        logger.info('Deleted venue %s, unassigned %s entries', venue_id, released)
        return released

    @staticmethod
    def enrolled_count_for_entry(entry: TimetableEntry) -> int:
        course = Course.query.filter_by(name=entry.subject, department=entry.department).first()
        return course.enrolled_count if course else 0

    @staticmethod
    def list_available_venues(day_of_week, start_time, end_time, term=None, week=None,
                              course_id: int = None) -> List[Venue]:
        """Venues with no overlapping booking and room for the class."""
        day = normalize_day(day_of_week)
        if day is None:
            raise ValidationError(f'Invalid day of week: {day_of_week}')
        start = Validator.require_clock(start_time, 'start_time')
        end = Validator.require_clock(end_time, 'end_time')
        if start >= end:
            raise ValidationError('End time must be after start time')

        enrolled = 0
        if course_id is not None:
            course = db.session.get(Course, course_id)
            enrolled = course.enrolled_count if course else 0

        return VenueConflictDetector.suggest_venues(
            day, start, end, term, Validator.parse_int(week, 'week'), min_capacity=enrolled
        )

    @staticmethod
    def assign_venue(entry_id: int, venue_id: int) -> TimetableEntry:
        """Book `venue_id` for the entry, or raise VenueConflictError with suggestions.

        The overlap check and the write share one transaction holding the
        venue slot lock, so two overlapping assignments cannot both commit.
        """
        entry = db.session.get(TimetableEntry, entry_id)
        if not entry:
            raise NotFoundError('Timetable entry not found')
        venue = db.session.get(Venue, venue_id)
        if not venue:
            raise NotFoundError('Venue not found')

        try:
            locking.acquire(
                locking.VENUE_SCOPE,
                locking.venue_slot_key(venue.id, entry.day_of_week, entry.term, entry.week)
            )

            conflict = VenueConflictDetector.find_conflict(
                venue.id, entry.day_of_week, entry.start_time, entry.end_time,
                entry.term, entry.week, exclude_id=entry.id
            )
            if conflict:
                suggestions = VenueConflictDetector.suggest_venues(
                    entry.day_of_week, entry.start_time, entry.end_time,
                    entry.term, entry.week,
                    min_capacity=VenueService.enrolled_count_for_entry(entry),
                    exclude_id=entry.id
                )
                message = (
                    f'Booking conflict: Venue "{venue.name}" is already booked from '
                    f'{conflict.start_time.strftime("%H:%M")} to {conflict.end_time.strftime("%H:%M")} '
                    f'on {entry.day_of_week}.'
                )
                logger.info('Venue conflict for entry %s: %s', entry.id, message)
                db.session.rollback()
                raise VenueConflictError(message, conflict, suggestions)

            entry.venue_id = venue.id
            db.session.commit()
        except VenueConflictError:
            raise
        except Exception:
            db.session.rollback()
            raise

        event_bus.publish('venue_updated', {'entry_id': entry.id, 'venue_id': venue.id})
        return entry
