import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import CurrentUser, require_student
from backend.database import database_error, get_db, is_unique_violation
from backend.models.attendance import STATUS_PRESENT, Attendance
from backend.models.lecture import Lecture
from backend.models.user import ROLE_TEACHER, User

router = APIRouter(tags=['student'])

logger = logging.getLogger(__name__)

ALREADY_MARKED = 'Attendance already marked for this lecture.'


class MarkAttendanceRequest(BaseModel):
    lecture_id: int = Field(alias='lectureId')
    student_id: str = Field(alias='studentId')

    class Config:
        populate_by_name = True

    @field_validator('student_id', mode='before')
    @classmethod
    def coerce_student_id(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


def ensure_own_student_id(student_id: str, current_user: CurrentUser) -> None:
    if student_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Students can only access their own attendance.',
        )


@router.post('/mark-attendance', status_code=status.HTTP_201_CREATED)
def mark_attendance(
    data: MarkAttendanceRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_student),
):
    ensure_own_student_id(data.student_id, current_user)

    lecture = db.query(Lecture).filter(Lecture.id == data.lecture_id).first()
    if lecture is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Lecture not found')

    record = Attendance(lecture_id=data.lecture_id, student_id=data.student_id, status=STATUS_PRESENT)

    # Duplicates are decided by the unique (lecture_id, student_id) constraint.
    try:
        db.add(record)
        db.commit()
        db.refresh(record)
    except IntegrityError as exc:
        db.rollback()
        if is_unique_violation(exc):
            return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={'message': ALREADY_MARKED})
        logger.exception('Error marking attendance for student %s', data.student_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Server error while marking attendance.',
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Error marking attendance for student %s', data.student_id)
        raise database_error(exc, 'Server error while marking attendance.') from exc

    logger.info('Student %s marked present for lecture %s', data.student_id, data.lecture_id)
    return {'message': 'Attendance marked successfully!', 'newRecordId': record.id}


@router.get('/lectures')
def list_lectures(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_student),
):
    try:
        rows = db.execute(
            select(
                Lecture.id,
                Lecture.name,
                Lecture.subject,
                Lecture.date,
                Lecture.time,
                Lecture.teacher_id,
                Lecture.created_at,
                User.name.label('teacher_name'),
            )
            .join(User, Lecture.teacher_id == User.id)
            .where(User.role == ROLE_TEACHER)
            .order_by(Lecture.created_at.desc(), Lecture.id.desc())
        ).mappings().all()
    except SQLAlchemyError as exc:
        logger.exception('Error fetching lectures for student %s', current_user.id)
        raise database_error(exc, 'Server error') from exc

    return [dict(row) for row in rows]


@router.get('/attendance/{student_id}')
def attendance_history(
    student_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_student),
):
    ensure_own_student_id(student_id, current_user)

    try:
        records = db.execute(
            select(
                Attendance.id,
                Attendance.lecture_id,
                Attendance.student_id,
                Attendance.status,
                Attendance.timestamp,
            )
            .where(Attendance.student_id == student_id)
            .order_by(Attendance.timestamp.desc())
        ).mappings().all()
    except SQLAlchemyError as exc:
        logger.exception('Error fetching attendance history of %s', student_id)
        raise database_error(exc, 'Server error') from exc

    return [dict(row) for row in records]
