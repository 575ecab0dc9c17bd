"""Course model, including classes generated from an imported timetable."""
from campus_timetable import db
from campus_timetable.models.base import BaseModel

course_enrollments = db.Table(
    'course_enrollments',
    db.Column('course_id', db.Integer, db.ForeignKey('courses.id'), primary_key=True),
    db.Column('student_id', db.Integer, db.ForeignKey('users.id'), primary_key=True)
)

class Course(BaseModel):
    """A class taught by one teacher within a department."""

    __tablename__ = 'courses'

    name = db.Column(db.String(255), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    department = db.Column(db.String(100), nullable=False, index=True)

    teacher_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    hod_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)

    credits_required = db.Column(db.Integer, default=0, nullable=False)
    # Representative weekly pattern: [{day, start_time, end_time}, ...]
    timetable = db.Column(db.JSON, nullable=False, default=list)
    auto_generated = db.Column(db.Boolean, default=False, nullable=False)

    # Relationships
    teacher = db.relationship('User', foreign_keys=[teacher_id])
    hod = db.relationship('User', foreign_keys=[hod_id])
    enrolled_students = db.relationship(
        'User', secondary=course_enrollments, lazy='dynamic',
        backref=db.backref('enrolled_courses', lazy='dynamic')
    )

    @property
    def enrolled_count(self) -> int:
        return self.enrolled_students.count()

    def to_dict(self):
        """Convert to dictionary."""
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'department': self.department,
            'teacher_id': self.teacher_id,
            'teacher': self.teacher.name if self.teacher else None,
            'hod_id': self.hod_id,
            'credits_required': self.credits_required,
            'timetable': self.timetable or [],
            'auto_generated': self.auto_generated,
            'enrolled_count': self.enrolled_count
        }

    def __repr__(self):
        return f'<Course {self.name} ({self.department})>'
