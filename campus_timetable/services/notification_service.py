# File: campus_timetable/services/notification_service.py
"""Delivery side of timetable events: announcements, notifications, realtime."""
import logging
from typing import Dict

from campus_timetable import db
from campus_timetable.models.course import Course
from campus_timetable.models.notification import Announcement, Notification
from campus_timetable.models.timetable import TimetableEntry
from campus_timetable.models.user import UserRole
from campus_timetable.services.events import EventBus
from campus_timetable.services.identity_service import IdentityDirectory

logger = logging.getLogger(__name__)

class NotificationDispatcher:
    """Consumes queued events. Each event commits or rolls back on its own."""

    def __init__(self, bus: EventBus):
        self.bus = bus
        self.handlers = {
            'timetable_updated': self.on_timetable_updated,
            'venue_updated': self.on_venue_updated,
            'replacement_assigned': self.on_replacement_assigned,
            'replacement_cleared': self.on_replacement_cleared,
        }

    def dispatch_pending(self) -> int:
        handled = 0
        for event in self.bus.drain():
            if self.dispatch(event):
                handled += 1
        return handled

    def dispatch(self, event: Dict) -> bool:
        handler = self.handlers.get(event.get('type'))
        if handler is None:
            logger.warning('No handler for event %s', event.get('type'))
            return False
        try:
            handler(event.get('payload') or {})
            db.session.commit()
            return True
        except Exception:
            db.session.rollback()
            logger.exception('Failed to dispatch %s event', event.get('type'))
            return False

    @staticmethod
    def _notify(recipient_id: int, type_: str, title: str, message: str, data: Dict = None) -> None:
        db.session.add(Notification(
            recipient_id=recipient_id,
            type=type_,
            title=title,
            message=message,
            data=data or {}
        ))

    @staticmethod
    def _slot(entry: TimetableEntry) -> str:
        return f"{entry.day_of_week} {entry.start_time.strftime('%H:%M')} - {entry.end_time.strftime('%H:%M')}"

    # =================== HANDLERS ===================

    def on_timetable_updated(self, payload: Dict) -> None:
        department = payload.get('department')
        members = IdentityDirectory.department_members(
            department, [UserRole.STUDENT, UserRole.TEACHER]
        )
        for member in members:
            self._notify(
                member.id,
                'timetable_update',
                'Timetable Updated',
                f'The timetable for {department} department has been updated. '
                'Please check your schedule for any changes.',
                {'department': department, 'term': payload.get('term'),
                 'updated_by': payload.get('uploaded_by'), 'update_type': 'timetable'}
            )
        self.bus.emit_realtime([f'department:{department}'], 'timetable_updated', payload)
        logger.info('Sent timetable update notifications to %s members of %s', len(members), department)

    def on_venue_updated(self, payload: Dict) -> None:
        entry = db.session.get(TimetableEntry, payload.get('entry_id'))
        if entry is None or entry.venue is None:
            return
        students = IdentityDirectory.department_members(entry.department, [UserRole.STUDENT])
        for student in students:
            self._notify(
                student.id,
                'venue_update',
                f'Venue Change for {entry.subject}',
                f'The venue for {entry.subject} on {entry.day_of_week} at '
                f"{entry.start_time.strftime('%H:%M')} has been changed to {entry.venue.name}.",
                {'entry_id': entry.id, 'venue': entry.venue.name, 'week': entry.week}
            )
        self.bus.emit_realtime([f'department:{entry.department}'], 'venue_updated', entry.to_dict())

    def on_replacement_assigned(self, payload: Dict) -> None:
        entry = db.session.get(TimetableEntry, payload.get('entry_id'))
        if entry is None or entry.replacement is None:
            return
        replacement = entry.replacement
        course = Course.query.filter_by(name=entry.subject, department=entry.department).first()

        db.session.add(Announcement(
            title=f'Teacher change for {entry.subject}',
            message=(
                f'A replacement teacher has been assigned for {entry.subject} on {self._slot(entry)}. '
                f"Replacement: {replacement.teacher_name or 'Assigned teacher'}. "
                f"Reason: {replacement.reason or 'Not specified'}"
            ),
            department=entry.department,
            target_roles=['student', 'teacher'],
            course_id=course.id if course else None,
            created_by=payload.get('assigned_by')
        ))

        if replacement.teacher_id is not None:
            self._notify(
                replacement.teacher_id,
                'substitute_assigned',
                'You have been assigned as a substitute',
                f'You have been assigned to cover {entry.subject} on {self._slot(entry)}.',
                {'entry_id': entry.id}
            )
            self.bus.emit_realtime([f'user:{replacement.teacher_id}'], 'replacement_assigned', {
                'entry_id': entry.id,
                'subject': entry.subject,
                'day_of_week': entry.day_of_week,
                'start_time': entry.start_time.strftime('%H:%M'),
                'end_time': entry.end_time.strftime('%H:%M')
            })

        rooms = [f'user:{entry.teacher_id}'] if entry.teacher_id else []
        if course:
            rooms.append(f'class:{course.id}')
        self.bus.emit_realtime(rooms, 'timetable_updated', {
            'entry_id': entry.id, 'replacement': replacement.to_dict()
        })

    def on_replacement_cleared(self, payload: Dict) -> None:
        entry = db.session.get(TimetableEntry, payload.get('entry_id'))
        if entry is None:
            return
        course = Course.query.filter_by(name=entry.subject, department=entry.department).first()
        rooms = [f'user:{entry.teacher_id}'] if entry.teacher_id else []
        if course:
            rooms.append(f'class:{course.id}')
        self.bus.emit_realtime(rooms, 'timetable_updated', {'entry_id': entry.id, 'replacement': None})
