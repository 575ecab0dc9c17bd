# File: campus_timetable/api/venues.py
"""Venue Management API."""
from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from campus_timetable.models.venue import Venue
from campus_timetable.services.venue_service import VenueService
from campus_timetable.utils.decorators import admin_required, manager_required
from campus_timetable.utils.errors import ScheduleError
from campus_timetable.utils.helpers import error_response, success_response
from campus_timetable.utils.validators import ValidationError, Validator

venues_bp = Blueprint('venues', __name__)

@venues_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return success_response(message='Venues service is running')

@venues_bp.route('/', methods=['GET'])
@jwt_required()
def get_venues():
    """Get all venues."""
    try:
        query = Venue.query

        is_available = request.args.get('is_available')
        if is_available is not None:
            query = query.filter_by(is_available=is_available.lower() == 'true')

        venues = query.order_by(Venue.name).all()
        return success_response(data=[venue.to_dict() for venue in venues])

    except Exception as e:
        return error_response(f"Error fetching venues: {str(e)}", 500)

@venues_bp.route('/', methods=['POST'])
@jwt_required()
@manager_required
def create_venue():
    """Create new venue."""
    data = request.get_json(silent=True) or {}

    validation = Validator.validate_required_fields(data, ['name'])
    if not validation['is_valid']:
        return error_response(', '.join(validation['errors']), 400)

    venue = VenueService.create_venue(
        name=data['name'],
        location=data.get('location'),
        capacity=Validator.parse_int(data.get('capacity'), 'capacity'),
        is_available=data.get('is_available', True)
    )
    return success_response(data=venue.to_dict(), message='Venue created successfully'), 201

@venues_bp.route('/<int:venue_id>', methods=['PUT'])
@jwt_required()
@manager_required
def update_venue(venue_id):
    """Update venue details."""
    data = request.get_json(silent=True) or {}

    venue = VenueService.update_venue(
        venue_id,
        name=data.get('name'),
        location=data.get('location'),
        capacity=Validator.parse_int(data.get('capacity'), 'capacity'),
        is_available=data.get('is_available')
    )
    return success_response(data=venue.to_dict(), message='Venue updated successfully')

@venues_bp.route('/<int:venue_id>', methods=['DELETE'])
@jwt_required()
@admin_required
def delete_venue(venue_id):
    """Delete a venue; its bookings are released."""
    released = VenueService.delete_venue(venue_id)
    return success_response(
        data={'id': venue_id, 'unassigned_entries': released},
        message='Venue deleted successfully'
    )

@venues_bp.route('/available', methods=['GET'])
@jwt_required()
def get_available_venues():
    """Venues free for a slot with enough capacity for the class."""
    try:
        required = ['day', 'start_time', 'end_time']
        missing = [field for field in required if not request.args.get(field)]
        if missing:
            return error_response(f"Missing required parameters: {', '.join(missing)}", 400)

        venues = VenueService.list_available_venues(
            request.args['day'],
            request.args['start_time'],
            request.args['end_time'],
            term=request.args.get('term'),
            week=request.args.get('week'),
            course_id=Validator.parse_int(request.args.get('course_id'), 'course_id')
        )
        return success_response(data=[venue.to_dict() for venue in venues])

    except (ValidationError, ScheduleError):
        raise
    except Exception as e:
        return error_response(f"Error fetching available venues: {str(e)}", 500)

@venues_bp.route('/assign', methods=['POST'])
@jwt_required()
@manager_required
def assign_venue():
    """Book a venue for a timetable entry; 409 with suggestions on overlap."""
    data = request.get_json(silent=True) or {}

    validation = Validator.validate_required_fields(data, ['entry_id', 'venue_id'])
    if not validation['is_valid']:
        return error_response(', '.join(validation['errors']), 400)

    entry = VenueService.assign_venue(
        Validator.parse_int(data['entry_id'], 'entry_id'),
        Validator.parse_int(data['venue_id'], 'venue_id')
    )
    return success_response(data=entry.to_dict(), message='Venue assigned successfully.')
