"""Validation utilities for the application."""
import re
from datetime import date, datetime, time
from typing import Dict, List, Any, Optional

class ValidationError(Exception):
    """Custom validation error."""
    pass

CLOCK_PATTERN = re.compile(r'^(\d{1,2}):(\d{2})(?::(\d{2}))?$')

class Validator:
    """Validation helper class."""

    @staticmethod
    def validate_required_fields(data: Dict, required_fields: List[str]) -> Dict[str, Any]:
        """Validate required fields in data."""
        errors = []

        for field in required_fields:
            if field not in data or data[field] in (None, ''):
                errors.append(f"{field} is required")

        return {
            "is_valid": len(errors) == 0,
            "errors": errors
        }

    @staticmethod
    def parse_clock(value: Any) -> Optional[time]:
        """Parse 'H:MM', 'HH:MM' or 'HH:MM:SS' (or a time object) to hour:minute.

        Returns None when the value is not a wall-clock time.
        """
        if value is None:
            return None
        if isinstance(value, datetime):
            return value.time().replace(second=0, microsecond=0)
        if isinstance(value, time):
            return value.replace(second=0, microsecond=0)

        match = CLOCK_PATTERN.match(str(value).strip())
        if not match:
            return None
        hour, minute = int(match.group(1)), int(match.group(2))
        if hour > 23 or minute > 59:
            return None
        return time(hour, minute)

    @staticmethod
    def require_clock(value: Any, field: str) -> time:
        parsed = Validator.parse_clock(value)
        if parsed is None:
            raise ValidationError(f"Invalid {field}: expected HH:MM")
        return parsed

    @staticmethod
    def parse_date(value: Any, field: str = 'date') -> date:
        """Parse an ISO date (or date/datetime) into a date."""
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        try:
            return date.fromisoformat(str(value).strip()[:10])
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid {field}: expected YYYY-MM-DD")

    @staticmethod
    def parse_int(value: Any, field: str) -> Optional[int]:
        if value in (None, ''):
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid {field}: expected an integer")
