import pytest
from sqlalchemy.exc import IntegrityError

from backend.database import is_unique_violation
from backend.models.attendance import Attendance


def _attendance_count(session_factory, lecture_id: int, student_id: str) -> int:
    session = session_factory()
    try:
        return session.query(Attendance).filter(
            Attendance.lecture_id == lecture_id,
            Attendance.student_id == student_id,
        ).count()
    finally:
        session.close()


def test_mark_attendance_records_presence(client, make_user, make_lecture, auth_header, session_factory) -> None:
    make_user('T-1', 'teacher')
    student = make_user('S-1', 'student')
    lecture_id = make_lecture('T-1').id

    response = client.post(
        '/student/mark-attendance',
        json={'lectureId': lecture_id, 'studentId': 'S-1'},
        headers=auth_header(student),
    )

    assert response.status_code == 201
    assert response.json()['message'] == 'Attendance marked successfully!'
    assert isinstance(response.json()['newRecordId'], int)
    assert _attendance_count(session_factory, lecture_id, 'S-1') == 1


def test_marking_twice_is_a_conflict_and_keeps_one_row(
    client, make_user, make_lecture, auth_header, session_factory,
) -> None:
    make_user('T-1', 'teacher')
    student = make_user('S-1', 'student')
    lecture_id = make_lecture('T-1').id
    payload = {'lectureId': lecture_id, 'studentId': 'S-1'}

    first = client.post('/student/mark-attendance', json=payload, headers=auth_header(student))
    second = client.post('/student/mark-attendance', json=payload, headers=auth_header(student))

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.json() == {'message': 'Attendance already marked for this lecture.'}
    assert _attendance_count(session_factory, lecture_id, 'S-1') == 1


def test_duplicate_attendance_is_blocked_by_storage_constraint(db, make_user, make_lecture, mark_present) -> None:
    make_user('T-1', 'teacher')
    make_user('S-1', 'student')
    lecture_id = make_lecture('T-1').id
    mark_present(lecture_id, 'S-1')

    db.add(Attendance(lecture_id=lecture_id, student_id='S-1', status='present'))
    with pytest.raises(IntegrityError) as exception_info:
        db.commit()
    db.rollback()

    assert is_unique_violation(exception_info.value)


def test_mark_attendance_for_missing_lecture_is_not_found(client, make_user, auth_header) -> None:
    student = make_user('S-1', 'student')

    response = client.post(
        '/student/mark-attendance',
        json={'lectureId': 404, 'studentId': 'S-1'},
        headers=auth_header(student),
    )

    assert response.status_code == 404
    assert response.json() == {'error': 'Lecture not found'}


def test_student_cannot_mark_attendance_for_someone_else(client, make_user, make_lecture, auth_header) -> None:
    make_user('T-1', 'teacher')
    student = make_user('S-1', 'student')
    make_user('S-2', 'student')
    lecture_id = make_lecture('T-1').id

    response = client.post(
        '/student/mark-attendance',
        json={'lectureId': lecture_id, 'studentId': 'S-2'},
        headers=auth_header(student),
    )

    assert response.status_code == 403


def test_mark_attendance_requires_both_ids(client, make_user, auth_header) -> None:
    student = make_user('S-1', 'student')

    response = client.post('/student/mark-attendance', json={'studentId': 'S-1'}, headers=auth_header(student))

    assert response.status_code == 400
    assert response.json() == {'error': 'Missing required fields: lectureId.'}


def test_list_lectures_includes_teacher_name(client, make_user, make_lecture, auth_header) -> None:
    make_user('T-1', 'teacher', name='Prof. Curie')
    student = make_user('S-1', 'student')
    make_lecture('T-1', subject='Radiology')

    response = client.get('/student/lectures', headers=auth_header(student))

    assert response.status_code == 200
    lectures = response.json()
    assert len(lectures) == 1
    assert lectures[0]['teacher_name'] == 'Prof. Curie'
    assert lectures[0]['subject'] == 'Radiology'


def test_attendance_history_is_private(client, make_user, make_lecture, mark_present, auth_header) -> None:
    make_user('T-1', 'teacher')
    student = make_user('S-1', 'student')
    make_user('S-2', 'student')
    lecture_id = make_lecture('T-1').id
    mark_present(lecture_id, 'S-1')

    own = client.get('/student/attendance/S-1', headers=auth_header(student))
    other = client.get('/student/attendance/S-2', headers=auth_header(student))

    assert own.status_code == 200
    assert [record['lecture_id'] for record in own.json()] == [lecture_id]
    assert own.json()[0]['status'] == 'present'
    assert other.status_code == 403


def test_teachers_cannot_mark_attendance(client, make_user, auth_header) -> None:
    teacher = make_user('T-1', 'teacher')

    response = client.post(
        '/student/mark-attendance',
        json={'lectureId': 1, 'studentId': 'T-1'},
        headers=auth_header(teacher),
    )

    assert response.status_code == 403
