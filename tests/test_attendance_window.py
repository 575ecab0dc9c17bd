"""Tests for the attendance window and attendance upserts."""
from datetime import date, datetime, time, timedelta, timezone

import pytest
from sqlalchemy import text

from campus_timetable import db
from campus_timetable.models.attendance import AttendanceRecord, AttendanceStatus
from campus_timetable.models.user import UserRole
from campus_timetable.services.attendance_service import (
    AttendanceService, AttendanceWindowValidator
)
from campus_timetable.services.replacement_service import ReplacementService
from campus_timetable.utils.errors import NotFoundError
from campus_timetable.utils.validators import ValidationError

from conftest import make_entry, make_user

MONDAY = date(2025, 1, 6)

@pytest.fixture
def monday_entry(app, teacher, course):
    return make_entry(teacher.id, day='monday', start=time(9, 0), end=time(10, 0))

@pytest.fixture
def validator(app):
    return AttendanceWindowValidator(grace=timedelta(minutes=30))

@pytest.mark.parametrize('clock_time, expected', [
    (time(8, 29), False),
    (time(8, 30), True),
    (time(8, 31), True),
    (time(10, 30), True),
    (time(10, 31), False),
])
def test_window_boundaries(validator, teacher, course, monday_entry, clock_time, expected):
    now = datetime.combine(MONDAY, clock_time)
    assert validator.can_mark_attendance(teacher.id, course.id, MONDAY, now=now) is expected

def test_no_scheduled_session_allows_marking(validator, teacher, course, monday_entry):
    tuesday = MONDAY + timedelta(days=1)
    now = datetime.combine(tuesday, time(23, 0))
    assert validator.can_mark_attendance(teacher.id, course.id, tuesday, now=now) is True

def test_session_outside_entry_dates_is_not_applicable(validator, teacher, course, monday_entry):
    later_monday = MONDAY + timedelta(weeks=3)
    now = datetime.combine(later_monday, time(6, 0))
    assert validator.can_mark_attendance(teacher.id, course.id, later_monday, now=now) is True

def test_substitute_is_checked_instead_of_canonical_teacher(validator, teacher, other_teacher,
                                                           course, monday_entry):
    ReplacementService().assign_replacement(monday_entry.id, substitute_id=other_teacher.id)
    late = datetime.combine(MONDAY, time(12, 0))

    assert validator.can_mark_attendance(other_teacher.id, course.id, MONDAY, now=late) is False
    assert validator.can_mark_attendance(teacher.id, course.id, MONDAY, now=late) is True

def test_aware_instant_is_converted_to_institution_zone(app, validator, teacher, course, monday_entry):
    app.config['INSTITUTION_TIMEZONE'] = 'Asia/Baghdad'
    # 05:45 UTC is 08:45 in Baghdad
    now = datetime(2025, 1, 6, 5, 45, tzinfo=timezone.utc)
    assert validator.can_mark_attendance(teacher.id, course.id, '2025-01-06', now=now) is True

def test_grace_defaults_to_config(app):
    app.config['ATTENDANCE_GRACE_MINUTES'] = 10
    assert AttendanceWindowValidator().grace == timedelta(minutes=10)

def test_is_open_uses_entry_session_day(validator, monday_entry):
    assert validator.session_day_of(monday_entry) == MONDAY
    assert validator.is_open(monday_entry, now=datetime.combine(MONDAY, time(9, 15)))
    assert not validator.is_open(monday_entry, now=datetime.combine(MONDAY, time(11, 0)))

def test_unknown_course(validator, teacher):
    with pytest.raises(NotFoundError):
        validator.can_mark_attendance(teacher.id, 999, MONDAY)

def test_invalid_date(validator, teacher, course):
    with pytest.raises(ValidationError):
        validator.can_mark_attendance(teacher.id, course.id, 'not-a-date')

def test_record_attendance_upserts_one_record_per_day(app, teacher, student, course, monday_entry):
    record, created = AttendanceService.record_attendance(
        course.id, student.id, '2025-01-06', 'present', marked_by=teacher.id
    )
    assert created is True
    assert record.teacher_id == teacher.id

    record, created = AttendanceService.record_attendance(
        course.id, student.id, '2025-01-06T09:40:00', 'absent', marked_by=teacher.id
    )
    assert created is False
    assert record.status == AttendanceStatus.ABSENT
    assert record.notes == 'Marked absent by teacher'
    assert AttendanceRecord.query.count() == 1

def test_record_attendance_credits_substitute(app, teacher, other_teacher, student, course, monday_entry):
    ReplacementService().assign_replacement(monday_entry.id, substitute_id=other_teacher.id)
    record, _ = AttendanceService.record_attendance(course.id, student.id, MONDAY, 'present')
    assert record.teacher_id == other_teacher.id

def test_record_attendance_rejects_unknown_status(app, student, course):
    with pytest.raises(ValidationError):
        AttendanceService.record_attendance(course.id, student.id, MONDAY, 'sleeping')

def test_bulk_attendance_counts_and_errors(app, teacher, student, course, monday_entry):
    classmate = make_user('classmate@campus.edu', UserRole.STUDENT)
    AttendanceService.record_attendance(course.id, student.id, MONDAY, 'present')

    results = AttendanceService.bulk_record_attendance(course.id, MONDAY, [
        {'student_id': student.id, 'status': 'late'},
        {'student_id': classmate.id, 'status': 'present'},
        {'student_id': classmate.id, 'status': 'unknown'},
        {'status': 'present'},
    ], marked_by=teacher.id)

    assert results['created'] == 1
    assert results['updated'] == 1
    assert len(results['errors']) == 2
    assert AttendanceRecord.query.count() == 2

@pytest.fixture
def foreign_keys(app):
    """SQLite enforcing foreign keys for the duration of a test."""
    db.session.commit()
    db.session.execute(text('PRAGMA foreign_keys=ON'))
    yield
    db.session.rollback()
    db.session.execute(text('PRAGMA foreign_keys=OFF'))

def test_bulk_attendance_keeps_valid_items_when_student_is_unknown(foreign_keys, teacher, student,
                                                                   course, monday_entry):
    results = AttendanceService.bulk_record_attendance(course.id, MONDAY, [
        {'student_id': student.id, 'status': 'present'},
        {'student_id': 99999, 'status': 'present'},
    ], marked_by=teacher.id)

    assert results['created'] == 1
    assert results['updated'] == 0
    assert [error['message'] for error in results['errors']] == ['Student not found']
    assert AttendanceRecord.query.count() == 1

def test_record_attendance_for_unknown_student(foreign_keys, teacher, course):
    with pytest.raises(NotFoundError):
        AttendanceService.record_attendance(course.id, 99999, MONDAY, 'present', marked_by=teacher.id)
    assert AttendanceRecord.query.count() == 0

def test_name_only_cover_credits_course_teacher(app, teacher, student, course, monday_entry):
    ReplacementService().assign_replacement(monday_entry.id, substitute_name='Guest Lecturer')

    record, _ = AttendanceService.record_attendance(course.id, student.id, MONDAY, 'present')

    assert monday_entry.effective_teacher_id is None
    assert record.teacher_id == teacher.id
