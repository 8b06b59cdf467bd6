import logging
from datetime import date, datetime, time

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import CurrentUser, require_teacher
from backend.core import config
from backend.database import database_error, get_db
from backend.models.attendance import STATUS_PRESENT, Attendance
from backend.models.lecture import Lecture
from backend.models.user import ROLE_STUDENT, User

router = APIRouter(tags=['teacher'])

logger = logging.getLogger(__name__)

DEFAULTER_THRESHOLD = 75


class CreateLectureRequest(BaseModel):
    subject: str
    date: date
    time: time
    teacher_id: str | None = None

    @field_validator('subject')
    @classmethod
    def validate_subject(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('subject is required.')
        return normalized


class LectureResponse(BaseModel):
    id: int
    name: str
    subject: str | None
    date: date | None
    time: time | None
    teacher_id: str
    created_at: datetime | None
    qrUrl: str


def to_lecture_response(lecture: Lecture) -> LectureResponse:
    return LectureResponse(
        id=lecture.id,
        name=lecture.name,
        subject=lecture.subject,
        date=lecture.date,
        time=lecture.time,
        teacher_id=lecture.teacher_id,
        created_at=lecture.created_at,
        qrUrl=config.build_qr_url(lecture.id),
    )


def ensure_own_teacher_id(teacher_id: str, current_user: CurrentUser) -> None:
    if teacher_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Teachers can only access their own lectures.",
        )


def get_owned_lecture(db: Session, lecture_id: int, current_user: CurrentUser) -> Lecture:
    lecture = db.query(Lecture).filter(Lecture.id == lecture_id).first()
    if lecture is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Lecture not found')
    ensure_own_teacher_id(lecture.teacher_id, current_user)
    return lecture


def compute_defaulters(
    attendance_counts: list[dict],
    total_lectures: int,
    threshold: float = DEFAULTER_THRESHOLD,
) -> list[dict]:
    if total_lectures == 0:
        return []

    students = [
        {**student, 'percentage': student['attended_count'] / total_lectures * 100}
        for student in attendance_counts
    ]
    defaulters = [student for student in students if student['percentage'] < threshold]
    return sorted(defaulters, key=lambda student: student['percentage'])


@router.post('/lectures', response_model=LectureResponse, status_code=status.HTTP_201_CREATED)
def create_lecture(
    data: CreateLectureRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_teacher),
):
    if data.teacher_id is not None:
        ensure_own_teacher_id(data.teacher_id, current_user)

    lecture = Lecture(
        name=f'{data.subject} - {data.date}',
        subject=data.subject,
        date=data.date,
        time=data.time,
        teacher_id=current_user.id,
    )

    try:
        db.add(lecture)
        db.commit()
        db.refresh(lecture)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Error creating lecture for teacher %s', current_user.id)
        raise database_error(exc, 'Server error while creating lecture') from exc

    logger.info('Teacher %s created lecture %s', current_user.id, lecture.id)
    return to_lecture_response(lecture)


@router.get('/lectures/{teacher_id}', response_model=list[LectureResponse])
def list_teacher_lectures(
    teacher_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_teacher),
):
    ensure_own_teacher_id(teacher_id, current_user)

    try:
        lectures = db.query(Lecture).filter(
            Lecture.teacher_id == teacher_id,
        ).order_by(Lecture.created_at.desc(), Lecture.id.desc()).all()
    except SQLAlchemyError as exc:
        logger.exception('Error fetching lectures of teacher %s', teacher_id)
        raise database_error(exc, 'Server error') from exc

    return [to_lecture_response(lecture) for lecture in lectures]


@router.get('/reports/defaulters/{teacher_id}')
def defaulter_report(
    teacher_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_teacher),
):
    ensure_own_teacher_id(teacher_id, current_user)

    try:
        total_lectures = db.scalar(
            select(func.count(Lecture.id)).where(Lecture.teacher_id == teacher_id)
        )
        if not total_lectures:
            return []

        attendance_counts = db.execute(
            select(
                User.id,
                User.name,
                User.roll_number,
                User.enrollment_number,
                func.count(Attendance.id).label('attended_count'),
            )
            .join(Attendance, Attendance.student_id == User.id)
            .join(Lecture, Lecture.id == Attendance.lecture_id)
            .where(User.role == ROLE_STUDENT, Lecture.teacher_id == teacher_id)
            .group_by(User.id, User.name, User.roll_number, User.enrollment_number)
        ).mappings().all()
    except SQLAlchemyError as exc:
        logger.exception('Error building defaulter report for teacher %s', teacher_id)
        raise database_error(exc, 'Server error') from exc

    defaulters = compute_defaulters([dict(row) for row in attendance_counts], total_lectures)
    if defaulters:
        # TODO: deliver these to mentors once an email backend is configured.
        logger.info('%d defaulters below %d%% for teacher %s', len(defaulters), DEFAULTER_THRESHOLD, teacher_id)
    return defaulters


@router.get('/lectures/{lecture_id}/attendance')
def live_attendance(
    lecture_id: int,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_teacher),
):
    get_owned_lecture(db, lecture_id, current_user)

    try:
        rows = db.execute(
            select(
                Attendance.id,
                Attendance.timestamp,
                User.name.label('student_name'),
                User.roll_number,
                User.enrollment_number,
            )
            .join(User, Attendance.student_id == User.id)
            .where(Attendance.lecture_id == lecture_id)
            .order_by(Attendance.timestamp.asc())
        ).mappings().all()
    except SQLAlchemyError as exc:
        logger.exception('Error fetching live attendance for lecture %s', lecture_id)
        raise database_error(exc, 'Server error') from exc

    return [dict(row) for row in rows]


@router.get('/lecture-report/{lecture_id}')
def lecture_report(
    lecture_id: int,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_teacher),
):
    get_owned_lecture(db, lecture_id, current_user)

    try:
        rows = db.execute(
            select(
                User.id,
                User.roll_number,
                User.enrollment_number,
                User.name,
                Attendance.timestamp,
            )
            .join(User, Attendance.student_id == User.id)
            .where(Attendance.lecture_id == lecture_id, Attendance.status == STATUS_PRESENT)
            .order_by(User.roll_number.asc())
        ).mappings().all()
    except SQLAlchemyError as exc:
        logger.exception('Error fetching lecture report for lecture %s', lecture_id)
        raise database_error(exc, 'Server error') from exc

    return [dict(row) for row in rows]
