"""User model for identity resolution."""
from enum import Enum
from werkzeug.security import generate_password_hash
from campus_timetable import db
from campus_timetable.models.base import BaseModel

class UserRole(Enum):
    """User roles enumeration."""
    STUDENT = 'student'
    TEACHER = 'teacher'
    HOD = 'hod'
    ADMIN = 'admin'

class User(BaseModel):
    """User model for all system users."""

    __tablename__ = 'users'

    # Basic Information
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(255), nullable=False)

    # Role and Department
    role = db.Column(db.Enum(UserRole), nullable=False, default=UserRole.STUDENT)
    department = db.Column(db.String(100), nullable=True, index=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    def set_password(self, password: str) -> None:
        """Set user password with hashing."""
        self.password_hash = generate_password_hash(password)

    def is_teacher(self) -> bool:
        """Check if user can teach a class."""
        return self.role in [UserRole.TEACHER, UserRole.HOD, UserRole.ADMIN]

    def is_student(self) -> bool:
        """Check if user is a student."""
        return self.role == UserRole.STUDENT

    def can_manage_timetable(self) -> bool:
        """HODs and admins own timetable uploads and substitutions."""
        return self.role in [UserRole.HOD, UserRole.ADMIN]

    def to_dict(self, exclude: list = None) -> dict:
        """Convert to dictionary excluding sensitive data."""
        default_exclude = ['password_hash']
        exclude = (exclude or []) + default_exclude

        result = super().to_dict(exclude=exclude)
        result['role'] = self.role.value if self.role else None

        return result

    def __repr__(self) -> str:
        return f'<User {self.email}>'
