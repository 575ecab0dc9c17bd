# File: campus_timetable/utils/decorators.py
"""Custom decorators for authorization."""
from functools import wraps
from flask_jwt_extended import get_jwt_identity
from campus_timetable import db
from campus_timetable.models.user import User, UserRole
from campus_timetable.utils.helpers import error_response

def current_user():
    """User behind the request's JWT identity."""
    identity = get_jwt_identity()
    if identity is None:
        return None
    return db.session.get(User, int(identity))

def admin_required(f):
    """Decorator to require admin role."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = current_user()

        if not user:
            return error_response("User not found", 404)

        if user.role != UserRole.ADMIN:
            return error_response("Admin access required", 403)

        return f(*args, **kwargs)
    return decorated_function

def manager_required(f):
    """Decorator to require HOD or admin role."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = current_user()

        if not user:
            return error_response("User not found", 404)

        if not user.can_manage_timetable():
            return error_response("HOD or admin access required", 403)

        return f(*args, **kwargs)
    return decorated_function

def teacher_required(f):
    """Decorator to require teacher role or higher."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = current_user()

        if not user:
            return error_response("User not found", 404)

        if not user.is_teacher():
            return error_response("Teacher access required", 403)

        return f(*args, **kwargs)
    return decorated_function
