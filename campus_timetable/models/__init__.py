"""Models package with all models."""
from .base import BaseModel
from .user import User, UserRole
from .venue import Venue
from .course import Course, course_enrollments
from .timetable import TimetableEntry, ReplacementRecord, WEEKDAY_KEYS, weekday_key
from .attendance import AttendanceRecord, AttendanceStatus
from .lock import ScheduleLock
from .notification import Announcement, Notification

__all__ = [
    'BaseModel', 'User', 'UserRole', 'Venue',
    'Course', 'course_enrollments',
    'TimetableEntry', 'ReplacementRecord', 'WEEKDAY_KEYS', 'weekday_key',
    'AttendanceRecord', 'AttendanceStatus', 'ScheduleLock',
    'Announcement', 'Notification'
]
