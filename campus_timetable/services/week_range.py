# File: campus_timetable/services/week_range.py
"""Sheet label parsing: "Week 6" and "Weeks 1-5"."""
import re
from typing import NamedTuple, Optional

WEEK_RANGE_PATTERN = re.compile(r'^\s*weeks?\s+(\d+)\s*-\s*(\d+)\s*$', re.IGNORECASE)
SINGLE_WEEK_PATTERN = re.compile(r'^\s*weeks?\s+(\d+)\s*$', re.IGNORECASE)

class WeekRange(NamedTuple):
    start: int
    end: int

    def __contains__(self, week) -> bool:
        return self.start <= week <= self.end

    @property
    def is_empty(self) -> bool:
        return self.end < self.start

    def to_dict(self):
        return {'start': self.start, 'end': self.end}

def parse_week_range(label) -> Optional[WeekRange]:
    """Inclusive week range for a sheet label, or None when unparseable."""
    if label is None:
        return None
    text = str(label)

    match = WEEK_RANGE_PATTERN.match(text)
    if match:
        return WeekRange(int(match.group(1)), int(match.group(2)))

    match = SINGLE_WEEK_PATTERN.match(text)
    if match:
        week = int(match.group(1))
        return WeekRange(week, week)

    return None
