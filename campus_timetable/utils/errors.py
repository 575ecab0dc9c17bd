"""Domain errors raised by the scheduling services."""
from typing import List

class ScheduleError(Exception):
    """Base class for timetable errors."""
    pass

class NotFoundError(ScheduleError):
    """An entry, venue, course or user id does not exist."""
    pass

class VenueConflictError(ScheduleError):
    """A venue is already booked for an overlapping slot."""

    def __init__(self, message: str, conflicting_entry, suggestions: List = None):
        super().__init__(message)
        self.conflicting_entry = conflicting_entry
        self.suggestions = suggestions or []

class ImportRejectedError(ScheduleError):
    """A term import referenced teachers that could not be resolved."""

    def __init__(self, warnings: List[str]):
        super().__init__('Failed to upload timetable due to errors.')
        self.warnings = list(warnings)
