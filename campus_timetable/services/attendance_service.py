# File: campus_timetable/services/attendance_service.py
"""Attendance window checks and per-day attendance upserts."""
import logging
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Tuple

from flask import current_app, has_app_context
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from campus_timetable import db
from campus_timetable.models.attendance import AttendanceRecord, AttendanceStatus
from campus_timetable.models.course import Course
from campus_timetable.models.timetable import TimetableEntry, weekday_key
from campus_timetable.models.user import User
from campus_timetable.utils import clock
from campus_timetable.utils.errors import NotFoundError
from campus_timetable.utils.validators import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_GRACE_MINUTES = 30

class AttendanceWindowValidator:
    """Decides whether attendance may be recorded right now.

    The session runs on its calendar date in the institution timezone; marking
    is allowed from `grace` before the scheduled start until `grace` after the
    scheduled end, both ends inclusive.
    """

    def __init__(self, grace: timedelta = None):
        if grace is None:
            minutes = DEFAULT_GRACE_MINUTES
            if has_app_context():
                minutes = current_app.config.get('ATTENDANCE_GRACE_MINUTES', DEFAULT_GRACE_MINUTES)
            grace = timedelta(minutes=minutes)
        self.grace = grace

    def window(self, entry: TimetableEntry, on_date: date) -> Tuple[datetime, datetime]:
        tz = clock.institution_tz()
        start = datetime.combine(on_date, entry.start_time, tzinfo=tz)
        end = datetime.combine(on_date, entry.end_time, tzinfo=tz)
        return start - self.grace, end + self.grace

    def is_within_window(self, entry: TimetableEntry, on_date: date, now: datetime) -> bool:
        window_start, window_end = self.window(entry, on_date)
        return window_start <= clock.to_local(now) <= window_end

    @staticmethod
    def session_day_of(entry: TimetableEntry) -> Optional[date]:
        """The date inside the entry's week that falls on its day of week."""
        for offset in range(7):
            day = entry.start_date + timedelta(days=offset)
            if weekday_key(day) == entry.day_of_week:
                return day
        return None

    def is_open(self, entry: TimetableEntry, now: datetime = None) -> bool:
        """Whether attendance may be recorded against this occurrence now."""
        session_day = self.session_day_of(entry)
        if session_day is None:
            return False
        return self.is_within_window(entry, session_day, now or clock.local_now())

    @staticmethod
    def applicable_entries(teacher_id: int, course: Course, on_date: date) -> List[TimetableEntry]:
        """Entries of `course` on `on_date` that `teacher_id` actually teaches."""
        candidates = TimetableEntry.query.filter(
            TimetableEntry.subject == course.name,
            TimetableEntry.department == course.department,
            TimetableEntry.day_of_week == weekday_key(on_date),
            TimetableEntry.start_date <= on_date,
            or_(TimetableEntry.end_date.is_(None), TimetableEntry.end_date >= on_date)
        ).order_by(TimetableEntry.start_time).all()
        return [entry for entry in candidates if entry.is_taught_by(teacher_id)]

    def can_mark_attendance(self, teacher_id: int, course_id: int, on_date, now: datetime = None) -> bool:
        """False only when an applicable entry exists and `now` is outside every window."""
        course = db.session.get(Course, course_id)
        if not course:
            raise NotFoundError('Class not found.')

        session_day = clock.session_date(on_date)
        entries = self.applicable_entries(teacher_id, course, session_day)
        if not entries:
            return True

        now = now or clock.local_now()
        return any(self.is_within_window(entry, session_day, now) for entry in entries)

class AttendanceService:
    """Service for recording attendance."""

    @staticmethod
    def parse_status(value) -> AttendanceStatus:
        try:
            return AttendanceStatus(str(value).strip().lower())
        except ValueError:
            raise ValidationError(f'Invalid status: {value}')

    @staticmethod
    def default_teacher_id(course: Course, session_day: date, marked_by: int = None) -> Optional[int]:
        """Teacher of the day's first session (substitute first), else the course teacher.

        A cover recorded by name only has no user id, so such a session is
        skipped and the credit falls through to the course's own teacher.
        """
        entries = TimetableEntry.query.filter(
            TimetableEntry.subject == course.name,
            TimetableEntry.department == course.department,
            TimetableEntry.day_of_week == weekday_key(session_day),
            TimetableEntry.start_date <= session_day,
            or_(TimetableEntry.end_date.is_(None), TimetableEntry.end_date >= session_day)
        ).order_by(TimetableEntry.start_time).all()
        for entry in entries:
            if entry.effective_teacher_id is not None:
                return entry.effective_teacher_id
        return course.teacher_id or marked_by

    @staticmethod
    def _apply(record: AttendanceRecord, status: AttendanceStatus, teacher_id, department, marked_by) -> None:
        record.status = status
        record.teacher_id = teacher_id
        record.department = department or record.department or 'General'
        record.marked_by = marked_by
        if status == AttendanceStatus.ABSENT and not record.notes:
            record.notes = 'Marked absent by teacher'

    @classmethod
    def upsert(cls, course: Course, student_id: int, session_day: date, status: AttendanceStatus,
               marked_by: int = None, teacher_id: int = None) -> Tuple[AttendanceRecord, bool]:
        """Insert or update the single record for (course, student, day). Caller commits."""
        lookup = dict(course_id=course.id, student_id=student_id, session_date=session_day)

        record = AttendanceRecord.query.filter_by(**lookup).first()
        if record is not None:
            cls._apply(record, status, teacher_id, course.department, marked_by)
            return record, False

        if db.session.get(User, student_id) is None:
            raise NotFoundError('Student not found')

        record = AttendanceRecord(**lookup)
        cls._apply(record, status, teacher_id, course.department, marked_by)
        try:
            with db.session.begin_nested():
                db.session.add(record)
        except IntegrityError:
            existing = AttendanceRecord.query.filter_by(**lookup).first()
            if existing is None:
                raise
            # A concurrent submission won the insert; update theirs
            logger.info('Attendance for %s already recorded, updating', lookup)
            cls._apply(existing, status, teacher_id, course.department, marked_by)
            return existing, False
        return record, True

    @classmethod
    def record_attendance(cls, course_id: int, student_id: int, on_date, status,
                          marked_by: int = None) -> Tuple[AttendanceRecord, bool]:
        course = db.session.get(Course, course_id)
        if not course:
            raise NotFoundError('Class not found.')
        session_day = clock.session_date(on_date)
        status = cls.parse_status(status)
        teacher_id = cls.default_teacher_id(course, session_day, marked_by)

        try:
            record, created = cls.upsert(course, int(student_id), session_day, status, marked_by, teacher_id)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return record, created

    @classmethod
    def bulk_record_attendance(cls, course_id: int, on_date, items: List[Dict],
                               marked_by: int = None) -> Dict:
        course = db.session.get(Course, course_id)
        if not course:
            raise NotFoundError('Class not found.')
        session_day = clock.session_date(on_date)
        teacher_id = cls.default_teacher_id(course, session_day, marked_by)

        results = {'created': 0, 'updated': 0, 'errors': []}
        for item in items:
            student_id = item.get('student_id')
            if not student_id or not item.get('status'):
                results['errors'].append({'item': item, 'message': 'Missing student_id or status'})
                continue
            try:
                status = cls.parse_status(item['status'])
                _, created = cls.upsert(course, int(student_id), session_day, status, marked_by, teacher_id)
                results['created' if created else 'updated'] += 1
            except (ValidationError, NotFoundError, ValueError) as e:
                results['errors'].append({'item': item, 'message': str(e)})
            except IntegrityError as e:
                logger.warning('Attendance item %s rejected: %s', item, e.orig)
                results['errors'].append({'item': item, 'message': 'Attendance could not be recorded'})

        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return results
