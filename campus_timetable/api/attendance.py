# File: campus_timetable/api/attendance.py
"""Attendance API endpoints gated by the timetable window."""
from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from campus_timetable.services.attendance_service import (
    AttendanceService, AttendanceWindowValidator
)
from campus_timetable.utils import clock
from campus_timetable.utils.decorators import current_user, teacher_required
from campus_timetable.utils.errors import ScheduleError
from campus_timetable.utils.helpers import error_response, success_response
from campus_timetable.utils.validators import ValidationError, Validator

attendance_bp = Blueprint('attendance', __name__)

OUTSIDE_WINDOW_MESSAGE = 'Attendance can only be marked within the scheduled session time window.'

@attendance_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return success_response(message='Attendance service is running')

@attendance_bp.route('/can-mark', methods=['GET'])
@jwt_required()
@teacher_required
def can_mark():
    """Whether the caller may record attendance for a class right now."""
    try:
        course_id = Validator.parse_int(request.args.get('course_id'), 'course_id')
        if course_id is None:
            return error_response("course_id is required", 400)

        on_date = request.args.get('date') or clock.local_today()
        allowed = AttendanceWindowValidator().can_mark_attendance(
            current_user().id, course_id, on_date
        )
        return success_response(data={
            'course_id': course_id,
            'date': clock.session_date(on_date).isoformat(),
            'can_mark': allowed
        })

    except (ValidationError, ScheduleError):
        raise
    except Exception as e:
        return error_response(f"Error checking attendance window: {str(e)}", 500)

@attendance_bp.route('/mark', methods=['POST'])
@jwt_required()
@teacher_required
def mark_attendance():
    """Record (or overwrite) one student's attendance for a session day."""
    data = request.get_json(silent=True) or {}

    validation = Validator.validate_required_fields(data, ['course_id', 'student_id', 'date', 'status'])
    if not validation['is_valid']:
        return error_response(', '.join(validation['errors']), 400)

    user = current_user()
    course_id = Validator.parse_int(data['course_id'], 'course_id')

    if not AttendanceWindowValidator().can_mark_attendance(user.id, course_id, data['date']):
        return error_response(OUTSIDE_WINDOW_MESSAGE, 403)

    record, created = AttendanceService.record_attendance(
        course_id, data['student_id'], data['date'], data['status'], marked_by=user.id
    )

    if created:
        return success_response(data=record.to_dict(), message='Attendance marked successfully'), 201
    return success_response(data=record.to_dict(), message='Attendance updated successfully')

@attendance_bp.route('/bulk', methods=['POST'])
@jwt_required()
@teacher_required
def bulk_mark_attendance():
    """Record attendance for many students of one session day."""
    data = request.get_json(silent=True) or {}

    validation = Validator.validate_required_fields(data, ['course_id', 'date', 'attendance'])
    if not validation['is_valid']:
        return error_response(', '.join(validation['errors']), 400)
    if not isinstance(data['attendance'], list):
        return error_response("attendance must be a list", 400)

    user = current_user()
    course_id = Validator.parse_int(data['course_id'], 'course_id')

    if not AttendanceWindowValidator().can_mark_attendance(user.id, course_id, data['date']):
        return error_response(OUTSIDE_WINDOW_MESSAGE, 403)

    results = AttendanceService.bulk_record_attendance(
        course_id, data['date'], data['attendance'], marked_by=user.id
    )
    return success_response(
        data=results,
        message=f"Recorded {results['created'] + results['updated']} attendance records"
    )
