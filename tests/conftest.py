"""Shared fixtures for the timetable tests."""
from datetime import date, time

import pytest
from flask_jwt_extended import create_access_token

from campus_timetable import create_app, db, event_bus
from campus_timetable.models.course import Course
from campus_timetable.models.timetable import TimetableEntry
from campus_timetable.models.user import User, UserRole
from campus_timetable.models.venue import Venue

DEPARTMENT = 'Computer Science'

# Sunday 5 January 2025; week 1 runs Sun 5 .. Sat 11
TERM_START = date(2025, 1, 5)
TERM_END = date(2025, 3, 16)

@pytest.fixture
def app():
    """Create test app."""
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()

@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()

def make_user(email, role, name=None, department=DEPARTMENT, is_active=True):
    user = User(
        email=email,
        name=name or email.split('@')[0].title(),
        role=role,
        department=department,
        is_active=is_active
    )
    user.set_password('password123')
    return user.save()

@pytest.fixture
def hod(app):
    return make_user('hod@campus.edu', UserRole.HOD, 'Head Of Department')

@pytest.fixture
def teacher(app):
    return make_user('alan@campus.edu', UserRole.TEACHER, 'Alan Turing')

@pytest.fixture
def other_teacher(app):
    return make_user('ada@campus.edu', UserRole.TEACHER, 'Ada Lovelace')

@pytest.fixture
def student(app):
    return make_user('student@campus.edu', UserRole.STUDENT, 'Sam Student')

@pytest.fixture
def venues(app):
    hall = Venue(name='Hall A', location='Main Building', capacity=100).save()
    lab = Venue(name='Lab 1', location='Computing Block', capacity=30).save()
    closed = Venue(name='Old Annex', capacity=200, is_available=False).save()
    return {'hall': hall, 'lab': lab, 'closed': closed}

@pytest.fixture
def course(app, teacher):
    return Course(
        name='Algorithms',
        department=DEPARTMENT,
        teacher_id=teacher.id,
        credits_required=2,
        timetable=[]
    ).save()

def make_entry(teacher_id=None, subject='Algorithms', day='monday', start=time(9, 0), end=time(10, 0),
               week=1, term='2025-T1', venue_id=None, start_date=TERM_START, end_date=None):
    return TimetableEntry(
        subject=subject,
        department=DEPARTMENT,
        teacher_id=teacher_id,
        venue_id=venue_id,
        day_of_week=day,
        start_time=start,
        end_time=end,
        term=term,
        week=week,
        start_date=start_date,
        end_date=end_date or date.fromordinal(start_date.toordinal() + 6)
    ).save()

def auth_headers(user):
    token = create_access_token(identity=str(user.id))
    return {'Authorization': f'Bearer {token}'}

@pytest.fixture
def events(app):
    """Events published during the test, drained in order."""
    event_bus.drain()
    return event_bus
