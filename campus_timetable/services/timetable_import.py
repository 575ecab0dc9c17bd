# File: campus_timetable/services/timetable_import.py
"""Term timetable import: sheets of weekly rows become dated entries.

A workbook holds one sheet per week range ("Week 6", "Weeks 1-5"); each sheet
lists the representative week for that range. Importing a (department, term)
replaces its whole schedule.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, time
from typing import Any, Dict, List, Mapping, Optional, Sequence

from campus_timetable import db, event_bus
from campus_timetable.models.timetable import TimetableEntry
from campus_timetable.services import locking
from campus_timetable.services.course_generator import CourseGenerator
from campus_timetable.services.identity_service import IdentityDirectory
from campus_timetable.services.schedule_expander import (
    ScheduleExpander, WeeklyPattern, normalize_day
)
from campus_timetable.services.week_range import WeekRange, parse_week_range
from campus_timetable.utils.errors import ImportRejectedError
from campus_timetable.utils.validators import ValidationError, Validator

logger = logging.getLogger(__name__)

# Accepted spreadsheet headers for each row field
ROW_ALIASES = {
    'subject': ('subject', 'Subject', 'subject_name'),
    'teacher_email': ('teacherEmail', 'teacher_email', 'Teacher Email', 'teacher'),
    'day_of_week': ('dayOfWeek', 'day_of_week', 'Day', 'day'),
    'start_time': ('startTime', 'start_time', 'Start Time', 'start'),
    'end_time': ('endTime', 'end_time', 'End Time', 'end'),
}

def _pick(row: Mapping, aliases) -> Any:
    for alias in aliases:
        value = row.get(alias)
        if value is None:
            continue
        if isinstance(value, float) and value != value:  # NaN from pandas
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None

@dataclass(frozen=True)
class TimetableRow:
    """A spreadsheet row that has every field the expander needs."""
    subject: str
    teacher_email: str
    day_of_week: str
    start_time: time
    end_time: time

    @classmethod
    def from_mapping(cls, row: Mapping) -> Optional['TimetableRow']:
        """Validated row, or None when a field is missing or malformed."""
        if not isinstance(row, Mapping):
            return None
        values = {name: _pick(row, aliases) for name, aliases in ROW_ALIASES.items()}
        if any(value is None for value in values.values()):
            return None

        day = normalize_day(values['day_of_week'])
        start = Validator.parse_clock(values['start_time'])
        end = Validator.parse_clock(values['end_time'])
        if day is None or start is None or end is None or start >= end:
            return None

        return cls(
            subject=str(values['subject']).strip(),
            teacher_email=str(values['teacher_email']).strip(),
            day_of_week=day,
            start_time=start,
            end_time=end
        )

@dataclass
class SheetPlan:
    name: str
    week_range: WeekRange
    rows: List[TimetableRow]
    row_count: int

@dataclass
class ImportResult:
    department: str
    term: Optional[str]
    entries_created: int = 0
    courses: List = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self):
        return {
            'department': self.department,
            'term': self.term,
            'entries_created': self.entries_created,
            'courses': [course.to_dict() for course in self.courses],
            'warnings': self.warnings
        }

class TermImportService:
    """Coordinates sheet parsing, expansion, course derivation and notification."""

    def __init__(self, identity: IdentityDirectory = None):
        self.identity = identity or IdentityDirectory()

    @staticmethod
    def plan_sheets(sheets: Mapping[str, Sequence[Mapping]], warnings: List[str]) -> List[SheetPlan]:
        plans = []
        for sheet_name, raw_rows in sheets.items():
            week_range = parse_week_range(sheet_name)
            if week_range is None:
                message = f'Skipping sheet with invalid name format: "{sheet_name}"'
                logger.warning(message)
                warnings.append(message)
                continue

            raw_rows = list(raw_rows or [])
            rows = [parsed for parsed in map(TimetableRow.from_mapping, raw_rows) if parsed]
            plans.append(SheetPlan(sheet_name, week_range, rows, len(raw_rows)))
        return plans

    @classmethod
    def preview_import(cls, sheets: Mapping[str, Sequence[Mapping]]) -> Dict:
        """Dry run: week ranges and row counts per sheet, no writes."""
        warnings: List[str] = []
        errors: List[str] = []
        plans = cls.plan_sheets(sheets, warnings)

        if not plans:
            errors.append('No valid sheets found in the uploaded file.')

        per_sheet = [
            {
                'sheet': plan.name,
                'week_range': plan.week_range.to_dict(),
                'row_count': plan.row_count,
                'valid_rows': len(plan.rows)
            }
            for plan in plans
        ]
        total_rows = sum(plan.row_count for plan in plans)
        valid_rows = sum(len(plan.rows) for plan in plans)

        return {
            'per_sheet': per_sheet,
            'warnings': warnings,
            'errors': errors,
            'summary': {
                'total_rows': total_rows,
                'valid_rows': valid_rows,
                'skipped_rows': total_rows - valid_rows,
                'error_count': len(errors),
                'warning_count': len(warnings)
            }
        }

    def import_term(self, department: str, term: Optional[str], term_start, term_end,
                    sheets: Mapping[str, Sequence[Mapping]], uploaded_by: str = None) -> ImportResult:
        """Replace the (department, term) schedule with the expanded sheets.

        Rows missing a field are skipped silently. Rows whose teacher cannot be
        resolved are collected as warnings and, if there are any, the whole
        import is rejected and rolled back.
        """
        if not department:
            raise ValidationError('User department not found.')
        start_date: date = Validator.parse_date(term_start, 'term start date')
        end_date: date = Validator.parse_date(term_end, 'term end date')
        if end_date <= start_date:
            raise ValidationError('Term end date must be after the start date')

        result = ImportResult(department=department, term=term)
        unresolved: List[str] = []
        expander = ScheduleExpander(department, term, start_date, end_date)

        try:
            locking.acquire(locking.IMPORT_SCOPE, locking.import_key(department, term))

            plans = self.plan_sheets(sheets, result.warnings)

            deleted = TimetableEntry.query.filter_by(
                department=department, term=term
            ).delete(synchronize_session=False)
            logger.info('Cleared %s entries for %s / %s', deleted, department, term)

            patterns: Dict[tuple, WeeklyPattern] = {}
            entries: Dict[tuple, TimetableEntry] = {}

            for plan in plans:
                for row in plan.rows:
                    teacher = self.identity.find_teacher(row.teacher_email)
                    if teacher is None:
                        message = f'Teacher with email {row.teacher_email} not found (from sheet "{plan.name}").'
                        if message not in unresolved:
                            logger.warning(message)
                            unresolved.append(message)
                        continue

                    pattern = WeeklyPattern(
                        subject=row.subject,
                        teacher_id=teacher.id,
                        day_of_week=row.day_of_week,
                        start_time=row.start_time,
                        end_time=row.end_time,
                        teacher_email=row.teacher_email
                    )
                    patterns.setdefault(pattern.shape, pattern)

                    for entry in expander.expand(pattern, plan.week_range):
                        key = (entry.week, entry.subject, entry.day_of_week, entry.start_time)
                        if key in entries:
                            result.warnings.append(
                                f'Duplicate {entry.subject} on {entry.day_of_week} '
                                f'{entry.start_time.strftime("%H:%M")} in week {entry.week} '
                                f'(sheet "{plan.name}") ignored.'
                            )
                            continue
                        entries[key] = entry

            if unresolved:
                db.session.rollback()
                raise ImportRejectedError(unresolved + result.warnings)

            db.session.add_all(entries.values())
            result.entries_created = len(entries)
            result.courses = CourseGenerator(department).sync(patterns.values())
            db.session.commit()
        except (ImportRejectedError, ValidationError):
            raise
        except Exception:
            db.session.rollback()
            logger.exception('Timetable import failed for %s / %s', department, term)
            raise

        logger.info(
            'Imported %s entries and %s classes for %s / %s',
            result.entries_created, len(result.courses), department, term
        )
        event_bus.publish('timetable_updated', {
            'department': department,
            'term': term,
            'uploaded_by': uploaded_by
        })
        return result
