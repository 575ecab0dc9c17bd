"""Timetable entry model: one dated occurrence of a class meeting."""
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional
from campus_timetable import db
from campus_timetable.models.base import BaseModel

# Stable day keys, Sunday first
WEEKDAY_KEYS = (
    'sunday', 'monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday'
)

def weekday_key(day: date) -> str:
    """Day key for a calendar date."""
    return WEEKDAY_KEYS[(day.weekday() + 1) % 7]

@dataclass
class ReplacementRecord:
    """Substitute teacher overlay for a single entry."""
    teacher_id: Optional[int] = None
    teacher_name: Optional[str] = None
    reason: Optional[str] = None
    assigned_by: Optional[int] = None
    assigned_at: Optional[datetime] = None

    def to_dict(self):
        return {
            'teacher_id': self.teacher_id,
            'teacher_name': self.teacher_name,
            'reason': self.reason,
            'assigned_by': self.assigned_by,
            'assigned_at': self.assigned_at.isoformat() if self.assigned_at else None
        }

class TimetableEntry(BaseModel):
    """Timetable entry for one subject meeting in one week of a term."""

    __tablename__ = 'timetable_entries'

    # Basic Info
    subject = db.Column(db.String(255), nullable=False)
    department = db.Column(db.String(100), nullable=False, index=True)

    # Relations
    teacher_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    venue_id = db.Column(db.Integer, db.ForeignKey('venues.id'), nullable=True)

    # Time Info
    day_of_week = db.Column(db.String(10), nullable=False)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)

    # Term Info
    term = db.Column(db.String(50), nullable=True)
    week = db.Column(db.Integer, nullable=True)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=True)

    # Replacement overlay
    replacement_teacher_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    replacement_teacher_name = db.Column(db.String(255), nullable=True)
    replacement_reason = db.Column(db.Text, nullable=True)
    replacement_assigned_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    replacement_assigned_at = db.Column(db.DateTime, nullable=True)

    # Status
    reminder_sent = db.Column(db.Boolean, default=False, nullable=False)
    archived = db.Column(db.Boolean, default=False, nullable=False)

    # Relationships
    teacher = db.relationship('User', foreign_keys=[teacher_id])
    replacement_teacher = db.relationship('User', foreign_keys=[replacement_teacher_id])

    __table_args__ = (
        db.UniqueConstraint(
            'department', 'term', 'week', 'subject', 'day_of_week', 'start_time',
            name='uq_timetable_entry_slot'
        ),
        db.Index('ix_timetable_venue_slot', 'venue_id', 'day_of_week', 'term', 'week'),
        db.CheckConstraint('start_time < end_time', name='ck_timetable_time_order'),
    )

    @property
    def replacement(self) -> Optional[ReplacementRecord]:
        """Current substitution, or None when the canonical teacher teaches."""
        if self.replacement_teacher_id is None and not self.replacement_teacher_name:
            return None
        return ReplacementRecord(
            teacher_id=self.replacement_teacher_id,
            teacher_name=self.replacement_teacher_name,
            reason=self.replacement_reason,
            assigned_by=self.replacement_assigned_by,
            assigned_at=self.replacement_assigned_at
        )

    @replacement.setter
    def replacement(self, record: Optional[ReplacementRecord]) -> None:
        record = record or ReplacementRecord()
        self.replacement_teacher_id = record.teacher_id
        self.replacement_teacher_name = record.teacher_name
        self.replacement_reason = record.reason
        self.replacement_assigned_by = record.assigned_by
        self.replacement_assigned_at = record.assigned_at

    @property
    def effective_teacher_id(self) -> Optional[int]:
        """Who actually teaches this occurrence.

        None when the cover is recorded by name only.
        """
        replacement = self.replacement
        if replacement is not None:
            return replacement.teacher_id
        return self.teacher_id

    def is_taught_by(self, user_id: int) -> bool:
        return user_id is not None and self.effective_teacher_id == int(user_id)

    def to_dict(self):
        """Convert to dictionary."""
        replacement = self.replacement
        return {
            'id': self.id,
            'subject': self.subject,
            'department': self.department,
            'teacher_id': self.teacher_id,
            'teacher': self.teacher.name if self.teacher else None,
            'venue_id': self.venue_id,
            'venue': self.venue.name if self.venue else None,
            'day_of_week': self.day_of_week,
            'start_time': self.start_time.strftime('%H:%M') if self.start_time else None,
            'end_time': self.end_time.strftime('%H:%M') if self.end_time else None,
            'term': self.term,
            'week': self.week,
            'start_date': self.start_date.isoformat() if self.start_date else None,
            'end_date': self.end_date.isoformat() if self.end_date else None,
            'replacement': replacement.to_dict() if replacement else None,
            'effective_teacher_id': self.effective_teacher_id,
            'reminder_sent': self.reminder_sent,
            'archived': self.archived
        }

    def __repr__(self):
        return f'<TimetableEntry {self.subject} {self.day_of_week} w{self.week}>'
