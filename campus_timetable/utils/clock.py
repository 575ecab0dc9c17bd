"""Institution-local calendar helpers.

Every day-of-week and session-date derivation goes through this module so
that a single timezone convention (``INSTITUTION_TIMEZONE``) applies.
"""
from datetime import date, datetime
from typing import Any
from zoneinfo import ZoneInfo

from flask import current_app, has_app_context

from campus_timetable.utils.validators import ValidationError

def institution_tz() -> ZoneInfo:
    name = 'UTC'
    if has_app_context():
        name = current_app.config.get('INSTITUTION_TIMEZONE') or 'UTC'
    return ZoneInfo(name)

def to_local(instant: datetime) -> datetime:
    """Aware datetime in the institution zone; naive input is taken as local."""
    tz = institution_tz()
    if instant.tzinfo is None:
        return instant.replace(tzinfo=tz)
    return instant.astimezone(tz)

def local_now() -> datetime:
    return datetime.now(institution_tz())

def local_today() -> date:
    return local_now().date()

def session_date(value: Any) -> date:
    """Calendar day, in the institution zone, that a value refers to."""
    if isinstance(value, datetime):
        return to_local(value).date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            if len(text) == 10:
                return date.fromisoformat(text)
            return to_local(datetime.fromisoformat(text.replace('Z', '+00:00'))).date()
        except ValueError:
            pass
    raise ValidationError('Invalid date format.')
