"""Announcements and per-user notifications written by the dispatcher."""
from datetime import datetime
from campus_timetable import db
from campus_timetable.models.base import BaseModel

class Announcement(BaseModel):
    """Department-wide announcement."""

    __tablename__ = 'announcements'

    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    department = db.Column(db.String(100), nullable=True, index=True)
    target_roles = db.Column(db.JSON, nullable=False, default=list)
    course_id = db.Column(db.Integer, db.ForeignKey('courses.id'), nullable=True)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    is_active = db.Column(db.Boolean, default=True)
    start_date = db.Column(db.DateTime, default=datetime.utcnow)

class Notification(BaseModel):
    """Notification addressed to a single user."""

    __tablename__ = 'notifications'

    recipient_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    type = db.Column(db.String(50), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    data = db.Column(db.JSON, nullable=True)
    read_at = db.Column(db.DateTime, nullable=True)
