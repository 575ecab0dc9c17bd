# File: campus_timetable/services/course_generator.py
"""Derive course records from a department's representative weekly pattern."""
import logging
from collections import OrderedDict
from typing import Iterable, List

from campus_timetable import db
from campus_timetable.models.course import Course
from campus_timetable.models.timetable import WEEKDAY_KEYS
from campus_timetable.models.user import User, UserRole
from campus_timetable.services.schedule_expander import WeeklyPattern

logger = logging.getLogger(__name__)

def credits_for(patterns: Iterable[WeeklyPattern]) -> int:
    """Credit weight is the number of distinct teaching days in a week."""
    return len({pattern.day_of_week for pattern in patterns})

def representative_timetable(patterns: Iterable[WeeklyPattern]) -> List[dict]:
    slots = sorted(
        {(p.day_of_week, p.start_time, p.end_time) for p in patterns},
        key=lambda slot: (WEEKDAY_KEYS.index(slot[0]), slot[1])
    )
    return [
        {'day': day, 'start_time': start.strftime('%H:%M'), 'end_time': end.strftime('%H:%M')}
        for day, start, end in slots
    ]

class CourseGenerator:
    """Upserts one auto-generated course per subject after a timetable import.

    Runs against the deduplicated weekly pattern only, never the expanded
    per-week entries, so credits do not depend on the term length. The caller
    owns the transaction.
    """

    def __init__(self, department: str):
        self.department = department

    def group_by_subject(self, patterns: Iterable[WeeklyPattern]) -> 'OrderedDict[str, List[WeeklyPattern]]':
        grouped: 'OrderedDict[str, List[WeeklyPattern]]' = OrderedDict()
        for pattern in patterns:
            if pattern.teacher_id is None:
                continue
            grouped.setdefault(pattern.subject, []).append(pattern)
        return grouped

    def sync(self, patterns: Iterable[WeeklyPattern]) -> List[Course]:
        courses = []
        hod = User.query.filter_by(role=UserRole.HOD, department=self.department).first()

        for subject, subject_patterns in self.group_by_subject(patterns).items():
            teacher_id = subject_patterns[0].teacher_id
            credits = credits_for(subject_patterns)
            timetable = representative_timetable(subject_patterns)

            course = Course.query.filter_by(
                name=subject,
                department=self.department,
                teacher_id=teacher_id
            ).first()

            if course:
                course.timetable = timetable
                course.credits_required = credits
                logger.info('Updated existing class: %s', subject)
            else:
                course = Course(
                    name=subject,
                    description=f'Auto-generated class for {subject} in {self.department} department.',
                    teacher_id=teacher_id,
                    department=self.department,
                    hod_id=hod.id if hod else None,
                    credits_required=credits,
                    timetable=timetable,
                    auto_generated=True
                )
                db.session.add(course)
                logger.info('Created new class: %s (%s credits)', subject, credits)
            courses.append(course)

        db.session.flush()
        logger.info('Auto-generated/updated %s classes from timetable', len(courses))
        return courses
