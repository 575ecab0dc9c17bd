# File: campus_timetable/services/timetable_service.py
"""Read-side timetable queries and housekeeping."""
import logging
from collections import OrderedDict
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy import or_

from campus_timetable import db
from campus_timetable.models.course import Course
from campus_timetable.models.timetable import TimetableEntry, WEEKDAY_KEYS, weekday_key
from campus_timetable.models.user import User
from campus_timetable.services.schedule_expander import normalize_day
from campus_timetable.utils import clock
from campus_timetable.utils.errors import NotFoundError
from campus_timetable.utils.validators import ValidationError

logger = logging.getLogger(__name__)

def group_by_day(entries: List[dict]) -> Dict[str, List[dict]]:
    """Entries keyed by day (week order), each day sorted by start time."""
    grouped: Dict[str, List[dict]] = OrderedDict()
    for day in WEEKDAY_KEYS:
        day_entries = [entry for entry in entries if entry['day_of_week'] == day]
        if day_entries:
            grouped[day] = sorted(day_entries, key=lambda entry: entry['start_time'])
    return grouped

class TimetableService:
    """Service for timetable lookups."""

    @staticmethod
    def list_entries(department: str = None, term: str = None, week: int = None,
                     day: str = None, teacher_id: int = None, venue_id: int = None,
                     subject: str = None, include_archived: bool = True) -> List[TimetableEntry]:
        query = TimetableEntry.query

        if department:
            query = query.filter_by(department=department)
        if term:
            query = query.filter_by(term=term)
        if week is not None:
            query = query.filter_by(week=week)
        if day:
            normalized = normalize_day(day)
            if normalized is None:
                raise ValidationError(f'Invalid day of week: {day}')
            query = query.filter_by(day_of_week=normalized)
        if teacher_id is not None:
            query = query.filter(or_(
                TimetableEntry.teacher_id == teacher_id,
                TimetableEntry.replacement_teacher_id == teacher_id
            ))
        if venue_id is not None:
            query = query.filter_by(venue_id=venue_id)
        if subject:
            query = query.filter_by(subject=subject)
        if not include_archived:
            query = query.filter_by(archived=False)

        return query.order_by(
            TimetableEntry.week, TimetableEntry.start_date, TimetableEntry.start_time
        ).all()

    @staticmethod
    def current_week(today: date = None, department: str = None, teacher_id: int = None) -> int:
        """Week of an entry whose date range covers today, defaulting to 1."""
        today = today or clock.local_today()
        query = TimetableEntry.query.filter(
            TimetableEntry.start_date <= today,
            TimetableEntry.end_date >= today,
            TimetableEntry.week.isnot(None)
        )
        if department:
            query = query.filter_by(department=department)
        if teacher_id is not None:
            query = query.filter(or_(
                TimetableEntry.teacher_id == teacher_id,
                TimetableEntry.replacement_teacher_id == teacher_id
            ))
        entry = query.first()
        return entry.week if entry else 1

    @classmethod
    def teacher_week(cls, teacher: User, week: Optional[int] = None) -> Dict:
        """A teacher's week: canonical classes plus occurrences they cover."""
        if week is None:
            week = cls.current_week(teacher_id=teacher.id)

        primary = TimetableEntry.teacher_id == teacher.id
        if teacher.department:
            primary = db.and_(primary, TimetableEntry.department == teacher.department)

        entries = TimetableEntry.query.filter(
            TimetableEntry.week == week,
            or_(primary, TimetableEntry.replacement_teacher_id == teacher.id)
        ).all()

        rows = []
        for entry in entries:
            data = entry.to_dict()
            data['is_primary_assignment'] = entry.teacher_id == teacher.id
            data['is_replacement_assignment'] = (
                entry.replacement_teacher_id == teacher.id and not data['is_primary_assignment']
            )
            data['is_teaching'] = entry.is_taught_by(teacher.id)
            rows.append(data)

        return {
            'timetable': group_by_day(rows),
            'total_entries': len(rows),
            'week': week
        }

    @classmethod
    def student_week(cls, student: User, week: Optional[int] = None, today: date = None) -> Dict:
        """A student's week for their enrolled classes.

        Without a week the current one is used. A requested week with no
        sessions falls back to the week active today, if there is one.
        """
        today = today or clock.local_today()
        requested = week
        if week is None:
            week = cls.current_week(today=today, department=student.department)

        department_classes = Course.query.filter_by(department=student.department).all()
        enrolled = student.enrolled_courses.filter_by(department=student.department).all()
        subjects = [course.name.strip() for course in enrolled if course.name]

        def week_entries(number):
            if not subjects:
                return []
            return TimetableEntry.query.filter(
                TimetableEntry.department == student.department,
                TimetableEntry.week == number,
                TimetableEntry.subject.in_(subjects)
            ).all()

        entries = week_entries(week)
        if not entries and subjects and requested is not None:
            active = TimetableEntry.query.filter(
                TimetableEntry.department == student.department,
                TimetableEntry.subject.in_(subjects),
                TimetableEntry.start_date <= today,
                TimetableEntry.end_date >= today
            ).first()
            if active and active.week and active.week != week:
                week = active.week
                entries = week_entries(week)

        return {
            'timetable': group_by_day([entry.to_dict() for entry in entries]),
            'department_classes': [course.to_dict() for course in department_classes],
            'enrolled_classes': [course.id for course in enrolled],
            'total_entries': len(entries),
            'week': week
        }

    @staticmethod
    def entries_for_course(course_id: int, week: Optional[int] = None) -> List[TimetableEntry]:
        course = db.session.get(Course, course_id)
        if not course:
            raise NotFoundError('Class not found')

        query = TimetableEntry.query.filter_by(subject=course.name, department=course.department)
        if week is not None:
            query = query.filter_by(week=week)
        return query.order_by(TimetableEntry.week, TimetableEntry.start_time).all()

    @classmethod
    def today_for_student(cls, student: User, today: date = None) -> List[TimetableEntry]:
        """Today's entries for the student's enrolled classes."""
        today = today or clock.local_today()
        week = cls.current_week(today=today, department=student.department)
        subjects = [course.name for course in student.enrolled_courses]
        if not subjects:
            return []

        query = TimetableEntry.query.filter(
            TimetableEntry.subject.in_(subjects),
            TimetableEntry.day_of_week == weekday_key(today),
            TimetableEntry.week == week
        )
        if student.department:
            query = query.filter(TimetableEntry.department == student.department)
        return query.order_by(TimetableEntry.start_time).all()

    @staticmethod
    def archive_past_entries(today: date = None) -> int:
        """Flag entries whose week ended before today."""
        today = today or clock.local_today()
        archived = TimetableEntry.query.filter(
            TimetableEntry.archived.is_(False),
            TimetableEntry.end_date < today
        ).update({TimetableEntry.archived: True}, synchronize_session=False)
        db.session.commit()
        logger.info('Archived %s timetable entries', archived)
        return archived
