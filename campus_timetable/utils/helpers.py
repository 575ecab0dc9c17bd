"""Helper functions for the application."""
from flask import jsonify
from typing import Any

def handle_error(error, status_code: int):
    """Handle application errors with consistent format."""
    return jsonify({
        'error': True,
        'message': str(error),
        'status_code': status_code
    }), status_code

def success_response(data: Any = None, message: str = "Success", **extra):
    """Return consistent success response."""
    response = {
        'error': False,
        'message': message
    }

    if data is not None:
        response['data'] = data
    response.update(extra)

    return jsonify(response)

def error_response(message: str, status_code: int = 400, **extra):
    """Return consistent error response."""
    response = {
        'error': True,
        'message': message,
        'status_code': status_code
    }
    response.update(extra)
    return jsonify(response), status_code

def allowed_file(filename: str, allowed_extensions) -> bool:
    """Check an upload's extension against the configured set."""
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in allowed_extensions
