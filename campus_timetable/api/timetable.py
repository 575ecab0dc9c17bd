# File: campus_timetable/api/timetable.py
"""Timetable API - term import, schedule views and substitutes."""
import logging

from flask import Blueprint, current_app, request
from flask_jwt_extended import jwt_required

from campus_timetable import limiter
from campus_timetable.models.user import UserRole
from campus_timetable.services.replacement_service import ReplacementService
from campus_timetable.services.timetable_import import TermImportService
from campus_timetable.services.timetable_service import TimetableService, group_by_day
from campus_timetable.utils.decorators import current_user, manager_required, teacher_required
from campus_timetable.utils.errors import ScheduleError
from campus_timetable.utils.helpers import allowed_file, error_response, success_response
from campus_timetable.utils.spreadsheet import read_workbook
from campus_timetable.utils.validators import ValidationError, Validator

logger = logging.getLogger(__name__)

timetable_bp = Blueprint('timetable', __name__)

def _uploaded_sheets():
    """Parsed workbook from the request, or an error response tuple."""
    if 'file' not in request.files:
        return None, error_response("No file uploaded.", 400)

    file = request.files['file']
    if file.filename == '':
        return None, error_response("No file selected", 400)

    if not allowed_file(file.filename, current_app.config.get('ALLOWED_EXTENSIONS', {'xlsx', 'xls'})):
        return None, error_response("Invalid file format. Use Excel (.xlsx or .xls)", 400)

    try:
        return read_workbook(file.stream), None
    except Exception as e:
        logger.warning('Unreadable timetable upload %s: %s', file.filename, e)
        return None, error_response(f"Error reading file: {str(e)}", 400)

@timetable_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return success_response(message='Timetable service is running')

@timetable_bp.route('/preview', methods=['POST'])
@jwt_required()
@manager_required
def preview_timetable():
    """Validate a workbook without writing anything."""
    sheets, error = _uploaded_sheets()
    if error:
        return error

    return success_response(
        data=TermImportService.preview_import(sheets),
        message='Timetable preview generated'
    )

@timetable_bp.route('/upload', methods=['POST'])
@jwt_required()
@manager_required
@limiter.limit("5 per hour")
def upload_timetable():
    """Replace the department's term schedule with an uploaded workbook."""
    user = current_user()

    term_start = request.form.get('term_start_date')
    term_end = request.form.get('term_end_date')
    if not term_start or not term_end:
        return error_response("Term start and end dates are required.", 400)

    sheets, error = _uploaded_sheets()
    if error:
        return error

    department = request.form.get('department') if user.role == UserRole.ADMIN else None
    department = department or user.department
    if not department:
        return error_response("User department not found.", 400)

    result = TermImportService().import_term(
        department=department,
        term=request.form.get('term') or None,
        term_start=term_start,
        term_end=term_end,
        sheets=sheets,
        uploaded_by=user.email
    )

    return success_response(
        data=result.to_dict(),
        message='Timetable uploaded and processed successfully.'
    ), 201

@timetable_bp.route('/', methods=['GET'])
@jwt_required()
def get_timetable():
    """List entries with filters; defaults to the caller's department."""
    try:
        user = current_user()
        if not user:
            return error_response("User not found", 404)

        department = request.args.get('department') or user.department
        if user.role != UserRole.ADMIN:
            department = user.department

        entries = TimetableService.list_entries(
            department=department,
            term=request.args.get('term'),
            week=Validator.parse_int(request.args.get('week'), 'week'),
            day=request.args.get('day'),
            teacher_id=Validator.parse_int(request.args.get('teacher_id'), 'teacher_id'),
            venue_id=Validator.parse_int(request.args.get('venue_id'), 'venue_id'),
            subject=request.args.get('subject'),
            include_archived=request.args.get('include_archived', 'true') != 'false'
        )

        return success_response(data=[entry.to_dict() for entry in entries])

    except (ValidationError, ScheduleError):
        raise
    except Exception as e:
        return error_response(f"Error fetching timetable: {str(e)}", 500)

@timetable_bp.route('/teacher', methods=['GET'])
@jwt_required()
@teacher_required
def get_teacher_timetable():
    """The caller's week, including classes they cover as substitute."""
    try:
        week = Validator.parse_int(request.args.get('week'), 'week')
        return success_response(data=TimetableService.teacher_week(current_user(), week))

    except (ValidationError, ScheduleError):
        raise
    except Exception as e:
        return error_response(f"Error fetching teacher timetable: {str(e)}", 500)

@timetable_bp.route('/student', methods=['GET'])
@jwt_required()
def get_student_timetable():
    """The caller's week for their enrolled classes, grouped by day."""
    try:
        user = current_user()
        if not user:
            return error_response("User not found", 404)

        if user.role != UserRole.STUDENT:
            return error_response("Only students have an enrolled timetable", 403)

        week = Validator.parse_int(request.args.get('week'), 'week')
        return success_response(data=TimetableService.student_week(user, week))

    except (ValidationError, ScheduleError):
        raise
    except Exception as e:
        return error_response(f"Error fetching student timetable: {str(e)}", 500)

@timetable_bp.route('/today', methods=['GET'])
@jwt_required()
def get_today_timetable():
    """Today's sessions for the caller's enrolled classes."""
    try:
        user = current_user()
        if not user:
            return error_response("User not found", 404)

        if user.role != UserRole.STUDENT:
            return error_response("Only students have an enrolled timetable", 403)

        entries = [entry.to_dict() for entry in TimetableService.today_for_student(user)]
        return success_response(data=entries)

    except (ValidationError, ScheduleError):
        raise
    except Exception as e:
        return error_response(f"Error fetching today's timetable: {str(e)}", 500)

@timetable_bp.route('/class/<int:course_id>', methods=['GET'])
@jwt_required()
def get_class_timetable(course_id):
    """Entries of one class, grouped by day."""
    try:
        week = Validator.parse_int(request.args.get('week'), 'week')
        entries = TimetableService.entries_for_course(course_id, week)
        return success_response(data={
            'course_id': course_id,
            'timetable': group_by_day([entry.to_dict() for entry in entries]),
            'total_entries': len(entries)
        })

    except (ValidationError, ScheduleError):
        raise
    except Exception as e:
        return error_response(f"Error fetching class timetable: {str(e)}", 500)

@timetable_bp.route('/<int:entry_id>/replacement', methods=['POST'])
@jwt_required()
@manager_required
def assign_replacement(entry_id):
    """Set or clear the substitute teacher of one entry."""
    data = request.get_json(silent=True) or {}

    entry = ReplacementService().assign_replacement(
        entry_id,
        substitute_id=data.get('teacher_id'),
        substitute_name=data.get('teacher_name'),
        reason=data.get('reason'),
        assigned_by=current_user().id
    )

    message = 'Replacement teacher assigned successfully'
    if entry.replacement is None:
        message = 'Replacement teacher cleared successfully'
    return success_response(data=entry.to_dict(), message=message)
