"""Lock rows that serialize writers sharing a scheduling scope."""
from campus_timetable import db
from campus_timetable.models.base import BaseModel

class ScheduleLock(BaseModel):
    """One row per lock key; writers bump `version` inside their transaction."""

    __tablename__ = 'schedule_locks'

    scope = db.Column(db.String(20), nullable=False)
    key = db.Column(db.String(255), nullable=False)
    version = db.Column(db.Integer, default=0, nullable=False)

    __table_args__ = (
        db.UniqueConstraint('scope', 'key', name='uq_schedule_lock'),
    )

    def __repr__(self):
        return f'<ScheduleLock {self.scope}:{self.key}>'
