# File: campus_timetable/services/seed_service.py
"""Database seeding service for test data."""
import logging

from campus_timetable import db
from campus_timetable.models.user import User, UserRole
from campus_timetable.models.venue import Venue

logger = logging.getLogger(__name__)

DEPARTMENT = 'Computer Science'

class SeedService:
    """Service to seed database with test data."""

    @staticmethod
    def seed_all():
        """Seed all test data."""
        SeedService.seed_venues()
        SeedService.seed_staff()
        SeedService.seed_students()

    @staticmethod
    def _ensure_user(email, name, role, password, department=DEPARTMENT):
        user = User.query.filter_by(email=email).first()
        if user:
            return user
        user = User(email=email, name=name, role=role, department=department)
        user.set_password(password)
        db.session.add(user)
        return user

    @staticmethod
    def seed_venues():
        """Seed lecture halls and labs."""
        venues = [
            ('Hall A', 'Main Building', 120),
            ('Hall B', 'Main Building', 80),
            ('Lab 1', 'Computing Block', 30),
            ('Lab 2', 'Computing Block', 30),
            ('Seminar Room', 'Library', 20),
        ]
        for name, location, capacity in venues:
            if not Venue.query.filter_by(name=name).first():
                db.session.add(Venue(name=name, location=location, capacity=capacity))

        db.session.commit()
        logger.info('Seeded %s venues', Venue.query.count())

    @staticmethod
    def seed_staff():
        """Seed a head of department and teachers."""
        SeedService._ensure_user('hod.cs@campus.edu', 'Dr. Grace Hopper', UserRole.HOD, 'hod123456')

        teachers = [
            ('alan.turing', 'Dr. Alan Turing'),
            ('ada.lovelace', 'Dr. Ada Lovelace'),
            ('edsger.dijkstra', 'Dr. Edsger Dijkstra'),
        ]
        for username, name in teachers:
            SeedService._ensure_user(f'{username}@campus.edu', name, UserRole.TEACHER, 'teacher123')

        db.session.commit()
        logger.info('Seeded %s teachers', User.query.filter_by(role=UserRole.TEACHER).count())

    @staticmethod
    def seed_students(count=20):
        """Seed test students."""
        for index in range(1, count + 1):
            SeedService._ensure_user(
                f'student{index:03d}@campus.edu', f'Student {index:03d}',
                UserRole.STUDENT, 'student123'
            )

        db.session.commit()
        logger.info('Seeded %s students', User.query.filter_by(role=UserRole.STUDENT).count())
