"""Attendance record keyed by course, student and session date."""
from enum import Enum
from campus_timetable import db
from campus_timetable.models.base import BaseModel

class AttendanceStatus(Enum):
    """Attendance statuses."""
    PRESENT = 'present'
    ABSENT = 'absent'
    LATE = 'late'
    EXCUSED = 'excused'

class AttendanceRecord(BaseModel):
    """One student's attendance for one course on one calendar day."""

    __tablename__ = 'attendance_records'

    course_id = db.Column(db.Integer, db.ForeignKey('courses.id'), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    teacher_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    department = db.Column(db.String(100), nullable=True)

    # Calendar day in the institution timezone
    session_date = db.Column(db.Date, nullable=False)
    status = db.Column(db.Enum(AttendanceStatus), nullable=False, default=AttendanceStatus.PRESENT)

    marked_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    __table_args__ = (
        db.UniqueConstraint('course_id', 'student_id', 'session_date', name='uq_attendance_session'),
    )

    def to_dict(self, exclude: list = None):
        """Convert to dictionary."""
        result = super().to_dict(exclude=exclude)
        result['status'] = self.status.value if self.status else None
        return result

    def __repr__(self):
        return f'<AttendanceRecord {self.course_id}-{self.student_id} {self.session_date}>'
