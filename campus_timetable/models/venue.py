"""Venue model for bookable teaching spaces."""
from campus_timetable import db
from campus_timetable.models.base import BaseModel

class Venue(BaseModel):
    """A physical room that timetable entries can be booked into."""

    __tablename__ = 'venues'

    name = db.Column(db.String(100), nullable=False, unique=True)
    location = db.Column(db.String(255), nullable=True)
    capacity = db.Column(db.Integer, nullable=True)
    is_available = db.Column(db.Boolean, default=True, nullable=False)

    # Relationships
    entries = db.relationship('TimetableEntry', backref='venue', lazy='dynamic')

    def to_dict(self):
        """Convert to dictionary."""
        return {
            'id': self.id,
            'name': self.name,
            'location': self.location,
            'capacity': self.capacity,
            'is_available': self.is_available
        }

    def __repr__(self):
        return f'<Venue {self.name}>'
