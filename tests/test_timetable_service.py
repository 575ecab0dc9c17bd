"""Tests for timetable lookups."""
from datetime import date, time

import pytest

from campus_timetable import db
from campus_timetable.models.course import Course
from campus_timetable.models.timetable import TimetableEntry
from campus_timetable.services.timetable_service import TimetableService

from conftest import TERM_START, make_entry

WEEK_2_START = date(2025, 1, 12)

@pytest.fixture
def enrolled(app, student, course):
    course.enrolled_students.append(student)
    db.session.commit()
    return course

@pytest.fixture
def two_weeks(app, teacher, enrolled):
    return {
        1: [
            make_entry(teacher.id, day='monday', start=time(11, 0), end=time(12, 0)),
            make_entry(teacher.id, day='monday', start=time(9, 0), end=time(10, 0)),
            make_entry(teacher.id, subject='Databases', day='tuesday'),
        ],
        2: [
            make_entry(teacher.id, day='wednesday', week=2, start_date=WEEK_2_START),
        ],
    }

def test_current_week_follows_entry_dates(app, teacher):
    make_entry(teacher.id, week=1)
    make_entry(teacher.id, week=2, start_date=WEEK_2_START)

    assert TimetableService.current_week(today=date(2025, 1, 14)) == 2
    assert TimetableService.current_week(today=date(2025, 6, 1)) == 1

def test_student_week_lists_enrolled_classes_by_day(student, enrolled, two_weeks):
    result = TimetableService.student_week(student, 1, today=TERM_START)

    assert result['week'] == 1
    assert result['total_entries'] == 2
    assert list(result['timetable']) == ['monday']
    assert [entry['start_time'] for entry in result['timetable']['monday']] == ['09:00', '11:00']
    assert result['enrolled_classes'] == [enrolled.id]

def test_student_week_reports_department_classes(teacher, student, enrolled):
    Course(name='Networks', department='Physics', teacher_id=teacher.id).save()
    Course(name='Compilers', department=enrolled.department, teacher_id=teacher.id).save()

    result = TimetableService.student_week(student, 1, today=TERM_START)

    assert sorted(course['name'] for course in result['department_classes']) == ['Algorithms', 'Compilers']
    assert result['enrolled_classes'] == [enrolled.id]
    assert result['total_entries'] == 0

def test_student_week_defaults_to_current_week(student, two_weeks):
    result = TimetableService.student_week(student, today=date(2025, 1, 14))

    assert result['week'] == 2
    assert list(result['timetable']) == ['wednesday']

def test_empty_requested_week_falls_back_to_active_week(student, two_weeks):
    result = TimetableService.student_week(student, 5, today=date(2025, 1, 14))

    assert result['week'] == 2
    assert result['total_entries'] == 1

def test_empty_requested_week_without_active_week(student, two_weeks):
    result = TimetableService.student_week(student, 5, today=date(2025, 6, 1))

    assert result['week'] == 5
    assert result['total_entries'] == 0
    assert result['timetable'] == {}

def test_student_without_enrollments_sees_nothing(teacher, student, course):
    make_entry(teacher.id)

    result = TimetableService.student_week(student, 1, today=TERM_START)

    assert result['enrolled_classes'] == []
    assert result['total_entries'] == 0

def test_today_for_student(student, two_weeks):
    entries = TimetableService.today_for_student(student, today=date(2025, 1, 6))
    assert [entry.start_time for entry in entries] == [time(9, 0), time(11, 0)]

def test_archive_past_entries(two_weeks):
    archived = TimetableService.archive_past_entries(today=WEEK_2_START)

    assert archived == 3
    assert TimetableEntry.query.filter_by(archived=False).count() == 1
