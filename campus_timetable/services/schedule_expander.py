# File: campus_timetable/services/schedule_expander.py
"""Expansion of a representative weekly pattern into dated, per-week entries."""
from dataclasses import dataclass
from datetime import date, time, timedelta
from typing import Iterator, List, Optional

from campus_timetable.models.timetable import TimetableEntry, WEEKDAY_KEYS
from campus_timetable.services.week_range import WeekRange

MIN_DAY_PREFIX = 3

def normalize_day(label) -> Optional[str]:
    """Canonical lowercase day key for labels like 'Mon', 'MONDAY' or 'tues'."""
    if label is None:
        return None
    text = str(label).strip().lower().rstrip('.')
    if not text:
        return None
    for key in WEEKDAY_KEYS:
        if text == key:
            return key
    for key in WEEKDAY_KEYS:
        if len(text) >= MIN_DAY_PREFIX and key.startswith(text):
            return key
        # plural or decorated forms such as "mondays"
        if text.startswith(key):
            return key
    return None

@dataclass(frozen=True)
class WeeklyPattern:
    """One row of a representative week, with its teacher already resolved."""
    subject: str
    teacher_id: Optional[int]
    day_of_week: str
    start_time: time
    end_time: time
    teacher_email: Optional[str] = None

    @property
    def shape(self):
        return (self.subject, self.teacher_id, self.day_of_week, self.start_time, self.end_time)

@dataclass(frozen=True)
class TermWeek:
    number: int
    start_date: date
    end_date: date

def term_weeks(term_start: date, term_end: date) -> Iterator[TermWeek]:
    """Consecutive 7-day windows from term start, numbered from 1."""
    window_start = term_start
    number = 1
    while window_start < term_end:
        yield TermWeek(number, window_start, window_start + timedelta(days=6))
        window_start += timedelta(days=7)
        number += 1

class ScheduleExpander:
    """Builds TimetableEntry objects (unsaved) for a department's term."""

    def __init__(self, department: str, term: Optional[str], term_start: date, term_end: date):
        self.department = department
        self.term = term
        self.term_start = term_start
        self.term_end = term_end

    def weeks_in(self, week_range: WeekRange) -> List[TermWeek]:
        if week_range.is_empty:
            return []
        weeks = []
        for week in term_weeks(self.term_start, self.term_end):
            if week.number > week_range.end:
                break
            if week.number in week_range:
                weeks.append(week)
        return weeks

    def expand(self, pattern: WeeklyPattern, week_range: WeekRange) -> List[TimetableEntry]:
        """One entry per term week inside `week_range`; venue stays unassigned."""
        return [
            TimetableEntry(
                subject=pattern.subject,
                teacher_id=pattern.teacher_id,
                department=self.department,
                day_of_week=pattern.day_of_week,
                start_time=pattern.start_time,
                end_time=pattern.end_time,
                venue_id=None,
                term=self.term,
                week=week.number,
                start_date=week.start_date,
                end_date=week.end_date,
                reminder_sent=False,
                archived=False
            )
            for week in self.weeks_in(week_range)
        ]
