"""Test timetable, venue and attendance endpoints."""
import io
import json
from datetime import time

import pandas as pd

from campus_timetable import db
from campus_timetable.models.attendance import AttendanceRecord
from campus_timetable.models.timetable import TimetableEntry
from campus_timetable.models.user import UserRole
from campus_timetable.models.venue import Venue

from conftest import TERM_END, TERM_START, auth_headers, make_entry, make_user

def workbook(sheets):
    """In-memory .xlsx with one sheet per name."""
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine='openpyxl') as writer:
        for name, rows in sheets.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=name, index=False)
    output.seek(0)
    return output

def sample_rows(email='alan@campus.edu'):
    return [
        {'subject': 'Algorithms', 'teacherEmail': email, 'dayOfWeek': 'Monday',
         'startTime': '09:00', 'endTime': '10:00'},
        {'subject': 'Algorithms', 'teacherEmail': email, 'dayOfWeek': 'Wednesday',
         'startTime': '09:00', 'endTime': '10:00'},
    ]

def upload(client, user, sheets, filename='timetable.xlsx'):
    return client.post(
        '/api/timetable/upload',
        headers=auth_headers(user),
        data={
            'file': (workbook(sheets), filename),
            'term': '2025-T1',
            'term_start_date': TERM_START.isoformat(),
            'term_end_date': TERM_END.isoformat()
        },
        content_type='multipart/form-data'
    )

def test_health_check(client):
    """Test timetable health endpoint."""
    response = client.get('/api/timetable/health')
    assert response.status_code == 200
    data = json.loads(response.data)
    assert data['error'] is False

def test_upload_requires_token(client):
    response = client.post('/api/timetable/upload')
    assert response.status_code == 401

def test_upload_requires_manager(client, teacher):
    response = upload(client, teacher, {'Week 1': sample_rows()})
    assert response.status_code == 403

def test_upload_success(client, hod, teacher):
    response = upload(client, hod, {'Weeks 1-3': sample_rows(), 'Notes': [{'text': 'ignored'}]})

    assert response.status_code == 201
    data = json.loads(response.data)
    assert data['data']['entries_created'] == 6
    assert data['data']['courses'][0]['credits_required'] == 2
    assert TimetableEntry.query.count() == 6

def test_upload_with_unknown_teacher_is_rejected(client, hod, teacher):
    response = upload(client, hod, {'Week 1': sample_rows('ghost@campus.edu')})

    assert response.status_code == 400
    data = json.loads(response.data)
    assert data['message'] == 'Failed to upload timetable due to errors.'
    assert any('ghost@campus.edu' in error for error in data['errors'])
    assert TimetableEntry.query.count() == 0

def test_upload_rejects_other_formats(client, hod):
    response = upload(client, hod, {'Week 1': sample_rows()}, filename='timetable.csv')
    assert response.status_code == 400

def test_upload_requires_term_dates(client, hod):
    response = client.post(
        '/api/timetable/upload',
        headers=auth_headers(hod),
        data={'file': (workbook({'Week 1': sample_rows()}), 'timetable.xlsx')},
        content_type='multipart/form-data'
    )
    assert response.status_code == 400

def test_preview_does_not_write(client, hod, teacher):
    response = client.post(
        '/api/timetable/preview',
        headers=auth_headers(hod),
        data={'file': (workbook({'Weeks 1-3': sample_rows()}), 'timetable.xlsx')},
        content_type='multipart/form-data'
    )
    assert response.status_code == 200
    data = json.loads(response.data)
    assert data['data']['summary']['valid_rows'] == 2
    assert TimetableEntry.query.count() == 0

def test_list_timetable_filters_by_week(client, teacher):
    make_entry(teacher.id, week=1)
    make_entry(teacher.id, week=2)

    response = client.get('/api/timetable/?week=2', headers=auth_headers(teacher))

    assert response.status_code == 200
    data = json.loads(response.data)
    assert [entry['week'] for entry in data['data']] == [2]

def test_list_timetable_rejects_bad_day(client, teacher):
    response = client.get('/api/timetable/?day=someday', headers=auth_headers(teacher))
    assert response.status_code == 400

def test_teacher_week_includes_covered_classes(client, hod, teacher, other_teacher):
    entry = make_entry(teacher.id, week=1)
    client.post(
        f'/api/timetable/{entry.id}/replacement',
        headers=auth_headers(hod),
        json={'teacher_id': other_teacher.id, 'reason': 'Sick'}
    )

    response = client.get('/api/timetable/teacher?week=1', headers=auth_headers(other_teacher))

    data = json.loads(response.data)['data']
    assert data['total_entries'] == 1
    monday = data['timetable']['monday'][0]
    assert monday['is_replacement_assignment'] is True
    assert monday['is_teaching'] is True

def test_clear_replacement_endpoint(client, hod, teacher, other_teacher):
    entry = make_entry(teacher.id)
    client.post(
        f'/api/timetable/{entry.id}/replacement',
        headers=auth_headers(hod),
        json={'teacher_id': other_teacher.id}
    )

    response = client.post(
        f'/api/timetable/{entry.id}/replacement', headers=auth_headers(hod), json={}
    )

    assert response.status_code == 200
    data = json.loads(response.data)
    assert data['data']['replacement'] is None
    assert data['data']['effective_teacher_id'] == teacher.id

def test_replacement_for_missing_entry(client, hod):
    response = client.post('/api/timetable/999/replacement', headers=auth_headers(hod),
                           json={'teacher_name': 'Guest'})
    assert response.status_code == 404

def test_assign_venue_conflict_returns_suggestions(client, hod, teacher, venues):
    make_entry(teacher.id, subject='Databases', venue_id=venues['hall'].id,
               start=time(9), end=time(10, 30))
    entry = make_entry(teacher.id, start=time(10), end=time(11))

    response = client.post('/api/venues/assign', headers=auth_headers(hod),
                           json={'entry_id': entry.id, 'venue_id': venues['hall'].id})

    assert response.status_code == 409
    data = json.loads(response.data)
    assert data['conflict']['subject'] == 'Databases'
    assert [venue['name'] for venue in data['suggestions']] == ['Lab 1']

def test_available_venues(client, teacher, venues):
    make_entry(teacher.id, venue_id=venues['hall'].id)

    response = client.get(
        '/api/venues/available?day=Monday&start_time=09:30&end_time=10:30&term=2025-T1&week=1',
        headers=auth_headers(teacher)
    )

    assert response.status_code == 200
    names = [venue['name'] for venue in json.loads(response.data)['data']]
    assert names == ['Lab 1']

def test_create_venue_requires_manager(client, teacher, hod):
    response = client.post('/api/venues/', headers=auth_headers(teacher), json={'name': 'Hall C'})
    assert response.status_code == 403

    response = client.post('/api/venues/', headers=auth_headers(hod),
                           json={'name': 'Hall C', 'capacity': 40})
    assert response.status_code == 201

def test_mark_attendance_outside_window_is_forbidden(client, teacher, student, course):
    make_entry(teacher.id, day='monday')

    response = client.post('/api/attendance/mark', headers=auth_headers(teacher), json={
        'course_id': course.id, 'student_id': student.id, 'date': '2025-01-06', 'status': 'present'
    })

    assert response.status_code == 403
    data = json.loads(response.data)
    assert data['message'] == 'Attendance can only be marked within the scheduled session time window.'
    assert AttendanceRecord.query.count() == 0

def test_mark_attendance_without_session_is_allowed(client, teacher, student, course):
    make_entry(teacher.id, day='monday')

    response = client.post('/api/attendance/mark', headers=auth_headers(teacher), json={
        'course_id': course.id, 'student_id': student.id, 'date': '2025-01-07', 'status': 'present'
    })
    assert response.status_code == 201

    response = client.post('/api/attendance/mark', headers=auth_headers(teacher), json={
        'course_id': course.id, 'student_id': student.id, 'date': '2025-01-07', 'status': 'late'
    })
    assert response.status_code == 200
    assert AttendanceRecord.query.count() == 1

def test_can_mark_endpoint(client, teacher, course):
    make_entry(teacher.id, day='monday')

    response = client.get(f'/api/attendance/can-mark?course_id={course.id}&date=2025-01-06',
                          headers=auth_headers(teacher))

    assert response.status_code == 200
    assert json.loads(response.data)['data']['can_mark'] is False

def test_mark_attendance_requires_teacher(client, student, course):
    response = client.post('/api/attendance/mark', headers=auth_headers(student), json={
        'course_id': course.id, 'student_id': student.id, 'date': '2025-01-07', 'status': 'present'
    })
    assert response.status_code == 403

def test_bulk_attendance(client, teacher, student, course):
    response = client.post('/api/attendance/bulk', headers=auth_headers(teacher), json={
        'course_id': course.id,
        'date': '2025-01-07',
        'attendance': [{'student_id': student.id, 'status': 'present'}, {'status': 'absent'}]
    })

    assert response.status_code == 200
    data = json.loads(response.data)['data']
    assert data['created'] == 1
    assert len(data['errors']) == 1

def test_student_timetable(client, teacher, student, course):
    course.enrolled_students.append(student)
    db.session.commit()
    make_entry(teacher.id, day='monday', week=1)
    make_entry(teacher.id, subject='Databases', day='tuesday', week=1)

    response = client.get('/api/timetable/student?week=1', headers=auth_headers(student))

    assert response.status_code == 200
    data = json.loads(response.data)['data']
    assert data['week'] == 1
    assert data['total_entries'] == 1
    assert data['enrolled_classes'] == [course.id]
    assert [entry['subject'] for entry in data['timetable']['monday']] == ['Algorithms']

def test_student_timetable_is_for_students(client, teacher):
    response = client.get('/api/timetable/student', headers=auth_headers(teacher))
    assert response.status_code == 403

def test_delete_venue_releases_bookings(client, teacher, venues):
    admin = make_user('admin@campus.edu', UserRole.ADMIN, department=None)
    entry = make_entry(teacher.id, venue_id=venues['hall'].id)
    hall_id = venues['hall'].id

    response = client.delete(f'/api/venues/{hall_id}', headers=auth_headers(admin))

    assert response.status_code == 200
    assert json.loads(response.data)['data']['unassigned_entries'] == 1
    assert db.session.get(Venue, hall_id) is None
    assert db.session.get(TimetableEntry, entry.id).venue_id is None

def test_delete_venue_requires_admin(client, hod, venues):
    response = client.delete(f"/api/venues/{venues['hall'].id}", headers=auth_headers(hod))

    assert response.status_code == 403
    assert Venue.query.count() == 3

def test_delete_unknown_venue(client):
    admin = make_user('admin@campus.edu', UserRole.ADMIN, department=None)
    response = client.delete('/api/venues/999', headers=auth_headers(admin))
    assert response.status_code == 404
