"""Tests for event delivery."""
from campus_timetable.models.notification import Announcement, Notification
from campus_timetable.services.notification_service import NotificationDispatcher
from campus_timetable.services.replacement_service import ReplacementService
from campus_timetable.services.venue_service import VenueService

from conftest import make_entry

def test_timetable_update_notifies_department(app, hod, teacher, student, events):
    events.publish('timetable_updated', {'department': 'Computer Science', 'term': '2025-T1'})

    assert NotificationDispatcher(events).dispatch_pending() == 1

    recipients = {n.recipient_id for n in Notification.query.filter_by(type='timetable_update')}
    assert recipients == {teacher.id, student.id}
    rooms = [message['room'] for message in events.realtime_log]
    assert 'department:Computer Science' in rooms

def test_replacement_creates_announcement_and_substitute_notice(app, hod, teacher, other_teacher,
                                                                course, events):
    entry = make_entry(teacher.id)
    ReplacementService().assign_replacement(
        entry.id, substitute_id=other_teacher.id, reason='Conference', assigned_by=hod.id
    )

    NotificationDispatcher(events).dispatch_pending()

    announcement = Announcement.query.one()
    assert announcement.course_id == course.id
    assert announcement.target_roles == ['student', 'teacher']
    assert 'Conference' in announcement.message

    notice = Notification.query.filter_by(type='substitute_assigned').one()
    assert notice.recipient_id == other_teacher.id

    rooms = {(message['room'], message['event']) for message in events.realtime_log}
    assert (f'user:{other_teacher.id}', 'replacement_assigned') in rooms
    assert (f'class:{course.id}', 'timetable_updated') in rooms

def test_venue_update_notifies_students(app, teacher, student, venues, events):
    entry = make_entry(teacher.id)
    VenueService.assign_venue(entry.id, venues['lab'].id)

    NotificationDispatcher(events).dispatch_pending()

    notice = Notification.query.filter_by(type='venue_update').one()
    assert notice.recipient_id == student.id
    assert 'Lab 1' in notice.message

def test_failed_event_does_not_stop_the_rest(app, teacher, student, events):
    dispatcher = NotificationDispatcher(events)

    def explode(payload):
        raise RuntimeError('boom')

    dispatcher.handlers['replacement_cleared'] = explode
    events.publish('replacement_cleared', {'entry_id': 1})
    events.publish('timetable_updated', {'department': 'Computer Science'})
    events.publish('mystery', {})

    assert dispatcher.dispatch_pending() == 1
    assert Notification.query.count() == 2
    assert not events.has_pending()
