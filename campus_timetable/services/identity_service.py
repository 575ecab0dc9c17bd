# File: campus_timetable/services/identity_service.py
"""Teacher identity lookups used by imports and substitutions."""
from typing import Dict, Optional
from campus_timetable import db
from campus_timetable.models.user import User

class IdentityDirectory:
    """Resolve teacher references; "not found" is a normal None result."""

    def __init__(self):
        self._cache: Dict[str, Optional[User]] = {}

    def find_teacher(self, reference) -> Optional[User]:
        """Look a teacher up by user id or by email address."""
        if reference is None:
            return None
        key = str(reference).strip().lower()
        if not key:
            return None
        if key in self._cache:
            return self._cache[key]

        if '@' in key:
            user = User.query.filter(db.func.lower(User.email) == key).first()
        elif key.isdigit():
            user = db.session.get(User, int(key))
        else:
            user = None

        if user is not None and (not user.is_active or not user.is_teacher()):
            user = None

        self._cache[key] = user
        return user

    @staticmethod
    def department_members(department: str, roles) -> list:
        return User.query.filter(
            User.department == department,
            User.role.in_(roles),
            User.is_active.is_(True)
        ).all()
