"""Deletion workflows for users and lectures.

Dependent rows are snapshotted into the archive tables and removed before
their parent. Every workflow runs in the caller's session transaction and
either commits as a whole or is rolled back.
"""

import logging

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.database import database_error
from backend.models.archive import ArchivedAttendance, ArchivedLecture
from backend.models.attendance import Attendance
from backend.models.lecture import Lecture
from backend.models.user import ROLE_ADMIN, ROLE_STUDENT, ROLE_TEACHER, User

logger = logging.getLogger(__name__)


def archive_attendance(db: Session, records: list[Attendance]) -> None:
    if not records:
        return

    student_ids = {record.student_id for record in records}
    students = {
        student.id: student
        for student in db.query(User).filter(User.id.in_(student_ids)).all()
    }

    for record in records:
        student = students.get(record.student_id)
        db.add(
            ArchivedAttendance(
                original_attendance_id=record.id,
                lecture_id=record.lecture_id,
                student_id=record.student_id,
                student_name=student.name if student else None,
                roll_number=student.roll_number if student else None,
                enrollment_number=student.enrollment_number if student else None,
                status=record.status,
                timestamp=record.timestamp,
            )
        )


def archive_lectures(db: Session, lectures: list[Lecture]) -> None:
    if not lectures:
        return

    lecture_ids = [lecture.id for lecture in lectures]
    attendance_counts = dict(
        db.execute(
            select(Attendance.lecture_id, func.count(Attendance.id))
            .where(Attendance.lecture_id.in_(lecture_ids))
            .group_by(Attendance.lecture_id)
        ).all()
    )
    teacher_ids = {lecture.teacher_id for lecture in lectures}
    teacher_names = dict(
        db.execute(select(User.id, User.name).where(User.id.in_(teacher_ids))).all()
    )

    for lecture in lectures:
        db.add(
            ArchivedLecture(
                original_lecture_id=lecture.id,
                name=lecture.name,
                subject=lecture.subject,
                date=lecture.date,
                time=lecture.time,
                teacher_id=lecture.teacher_id,
                teacher_name=teacher_names.get(lecture.teacher_id),
                attendance_count=attendance_counts.get(lecture.id, 0),
                created_at=lecture.created_at,
            )
        )


def _remove_attendance(db: Session, *criteria) -> int:
    records = db.query(Attendance).filter(*criteria).all()
    archive_attendance(db, records)
    return db.query(Attendance).filter(*criteria).delete(synchronize_session=False)


def _remove_lectures(db: Session, lectures: list[Lecture]) -> tuple[int, int]:
    if not lectures:
        return 0, 0

    lecture_ids = [lecture.id for lecture in lectures]
    # Counts are taken before the attendance rows go away.
    archive_lectures(db, lectures)
    removed_attendance = _remove_attendance(db, Attendance.lecture_id.in_(lecture_ids))
    db.query(Lecture).filter(Lecture.id.in_(lecture_ids)).delete(synchronize_session=False)
    return len(lecture_ids), removed_attendance


def delete_user(db: Session, user_id: str, requester_id: str) -> str:
    """Delete a teacher or student with everything that references them.

    Returns the deleted user's name.
    """
    if user_id == requester_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Cannot delete your own admin account',
        )

    try:
        target = db.query(User).filter(User.id == user_id).first()
    except SQLAlchemyError as exc:
        logger.exception('Looking up user %s for deletion failed', user_id)
        raise database_error(exc, 'Failed to delete user') from exc

    if target is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='User not found')

    if target.role == ROLE_ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Cannot delete admin accounts')

    name, role = target.name, target.role

    try:
        if role == ROLE_STUDENT:
            removed = _remove_attendance(db, Attendance.student_id == user_id)
            logger.info('Removed %d attendance records of student %s', removed, user_id)
        elif role == ROLE_TEACHER:
            owned_lectures = db.query(Lecture).filter(Lecture.teacher_id == user_id).all()
            removed_lectures, removed = _remove_lectures(db, owned_lectures)
            logger.info(
                'Removed %d lectures and %d attendance records of teacher %s',
                removed_lectures,
                removed,
                user_id,
            )

        db.delete(target)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Deleting user %s failed; cascade rolled back', user_id)
        raise database_error(exc, 'Failed to delete user') from exc

    logger.info('User %s (%s) deleted by %s', user_id, role, requester_id)
    return name


def delete_lecture(db: Session, lecture_id: int) -> str:
    """Delete a lecture and its attendance. Returns the lecture name."""
    try:
        lecture = db.query(Lecture).filter(Lecture.id == lecture_id).first()
    except SQLAlchemyError as exc:
        logger.exception('Looking up lecture %s for deletion failed', lecture_id)
        raise database_error(exc, 'Failed to delete lecture') from exc

    if lecture is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Lecture not found')

    name = lecture.name

    try:
        _, removed = _remove_lectures(db, [lecture])
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Deleting lecture %s failed; cascade rolled back', lecture_id)
        raise database_error(exc, 'Failed to delete lecture') from exc

    logger.info('Lecture %s deleted with %d attendance records', lecture_id, removed)
    return name
