import logging
from datetime import date, datetime, timedelta, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import distinct, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import CurrentUser, require_admin
from backend.database import database_error, get_db
from backend.models.archive import ArchivedAttendance, ArchivedLecture
from backend.models.attendance import Attendance
from backend.models.lecture import Lecture
from backend.models.user import ROLE_ADMIN, ROLE_STUDENT, ROLE_TEACHER, User
from backend.services import cascade

router = APIRouter(tags=['admin'], dependencies=[Depends(require_admin)])

logger = logging.getLogger(__name__)

TREND_DAYS = 30
TOP_STUDENTS_LIMIT = 10


def _count(db: Session, model, *criteria) -> int:
    return db.scalar(select(func.count()).select_from(model).where(*criteria)) or 0


def _rows(db: Session, statement, **extra) -> list[dict]:
    return [{**row, **extra} for row in db.execute(statement).mappings().all()]


def _day_key(value) -> str:
    if isinstance(value, (date, datetime)):
        return value.isoformat()[:10]
    return str(value)[:10]


def merge_daily_counts(*row_sets) -> list[dict]:
    """Sum (day, count) rows from several sources into one ascending series."""
    merged: dict[str, int] = {}
    for rows in row_sets:
        for day, count in rows:
            key = _day_key(day)
            merged[key] = merged.get(key, 0) + int(count)
    return [{'date': day, 'count': merged[day]} for day in sorted(merged)]


def active_lectures(db: Session) -> list[dict]:
    attendance_count = (
        select(func.count(Attendance.id))
        .where(Attendance.lecture_id == Lecture.id)
        .scalar_subquery()
    )
    return _rows(
        db,
        select(
            Lecture.id,
            Lecture.name,
            Lecture.subject,
            Lecture.date,
            Lecture.time,
            Lecture.teacher_id,
            User.name.label('teacher_name'),
            User.email.label('teacher_email'),
            attendance_count.label('attendance_count'),
            Lecture.created_at,
        )
        .join(User, Lecture.teacher_id == User.id)
        .order_by(Lecture.created_at.desc(), Lecture.id.desc()),
        status='active',
    )


def archived_lectures(db: Session) -> list[dict]:
    return _rows(
        db,
        select(
            ArchivedLecture.id,
            ArchivedLecture.original_lecture_id,
            ArchivedLecture.name,
            ArchivedLecture.subject,
            ArchivedLecture.date,
            ArchivedLecture.time,
            ArchivedLecture.teacher_id,
            ArchivedLecture.teacher_name,
            ArchivedLecture.attendance_count,
            ArchivedLecture.created_at,
            ArchivedLecture.archived_at,
        ).order_by(ArchivedLecture.archived_at.desc(), ArchivedLecture.id.desc()),
        status='archived',
    )


def active_attendance(db: Session) -> list[dict]:
    return _rows(
        db,
        select(
            Attendance.id,
            Attendance.lecture_id,
            Attendance.student_id,
            Attendance.status,
            Attendance.timestamp,
            User.name.label('student_name'),
            User.roll_number,
            User.enrollment_number,
            Lecture.name.label('lecture_name'),
            Lecture.subject,
            Lecture.date.label('lecture_date'),
        )
        .join(User, Attendance.student_id == User.id)
        .join(Lecture, Attendance.lecture_id == Lecture.id)
        .order_by(Attendance.timestamp.desc()),
        record_status='active',
    )


def archived_attendance(db: Session) -> list[dict]:
    return _rows(
        db,
        select(
            ArchivedAttendance.id,
            ArchivedAttendance.lecture_id,
            ArchivedAttendance.student_id,
            ArchivedAttendance.student_name,
            ArchivedAttendance.roll_number,
            ArchivedAttendance.enrollment_number,
            ArchivedAttendance.status,
            ArchivedAttendance.timestamp,
        ).order_by(ArchivedAttendance.timestamp.desc()),
        record_status='archived',
    )


@router.get('/dashboard-stats')
def dashboard_stats(db: Session = Depends(get_db)):
    try:
        stats = {
            'total_teachers': _count(db, User, User.role == ROLE_TEACHER),
            'total_students': _count(db, User, User.role == ROLE_STUDENT),
            'active_lectures': _count(db, Lecture),
            'active_attendance': _count(db, Attendance),
            'archived_lectures': _count(db, ArchivedLecture),
            'archived_attendance': _count(db, ArchivedAttendance),
        }
    except SQLAlchemyError as exc:
        logger.exception('Error fetching dashboard stats')
        raise database_error(exc, 'Failed to fetch dashboard stats') from exc

    stats['total_lectures'] = stats['active_lectures'] + stats['archived_lectures']
    stats['total_attendance_records'] = stats['active_attendance'] + stats['archived_attendance']
    return stats


@router.get('/all-users')
def all_users(db: Session = Depends(get_db)):
    try:
        return _rows(
            db,
            select(
                User.id,
                User.name,
                User.email,
                User.role,
                User.roll_number,
                User.enrollment_number,
                User.created_at,
            )
            .where(User.role != ROLE_ADMIN)
            .order_by(User.role.asc(), User.created_at.desc()),
        )
    except SQLAlchemyError as exc:
        logger.exception('Error fetching users')
        raise database_error(exc, 'Failed to fetch users') from exc


@router.get('/all-lectures')
def all_lectures(db: Session = Depends(get_db)):
    try:
        return active_lectures(db)
    except SQLAlchemyError as exc:
        logger.exception('Error fetching all lectures')
        raise database_error(exc, 'Failed to fetch lectures') from exc


@router.get('/archived-lectures')
def list_archived_lectures(db: Session = Depends(get_db)):
    try:
        return archived_lectures(db)
    except SQLAlchemyError as exc:
        logger.exception('Error fetching archived lectures')
        raise database_error(exc, 'Failed to fetch archived lectures') from exc


@router.get('/combined-lectures')
def combined_lectures(db: Session = Depends(get_db)):
    try:
        active = active_lectures(db)
        archived = archived_lectures(db)
    except SQLAlchemyError as exc:
        logger.exception('Error fetching combined lectures')
        raise database_error(exc, 'Failed to fetch lectures') from exc

    return {'active': active, 'archived': archived, 'all': active + archived}


@router.get('/all-attendance')
def all_attendance(db: Session = Depends(get_db)):
    try:
        return active_attendance(db)
    except SQLAlchemyError as exc:
        logger.exception('Error fetching attendance records')
        raise database_error(exc, 'Failed to fetch attendance records') from exc


@router.get('/combined-attendance')
def combined_attendance(db: Session = Depends(get_db)):
    try:
        active = active_attendance(db)
        archived = archived_attendance(db)
    except SQLAlchemyError as exc:
        logger.exception('Error fetching combined attendance')
        raise database_error(exc, 'Failed to fetch attendance') from exc

    return {'active': active, 'archived': archived, 'all': active + archived}


@router.get('/attendance-trend')
def attendance_trend(db: Session = Depends(get_db)):
    cutoff = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(days=TREND_DAYS)

    def daily_counts(timestamp_column):
        day = func.date(timestamp_column)
        return db.execute(
            select(day, func.count())
            .where(timestamp_column >= cutoff)
            .group_by(day)
        ).all()

    try:
        active = daily_counts(Attendance.timestamp)
        archived = daily_counts(ArchivedAttendance.timestamp)
    except SQLAlchemyError as exc:
        logger.exception('Error fetching attendance trend')
        raise database_error(exc, 'Failed to fetch trend data') from exc

    return merge_daily_counts(active, archived)


@router.get('/top-students')
def top_students(db: Session = Depends(get_db)):
    attendance_count = func.count(Attendance.id).label('attendance_count')
    try:
        return _rows(
            db,
            select(User.id, User.name, User.roll_number, User.enrollment_number, attendance_count)
            .join(Attendance, User.id == Attendance.student_id)
            .where(User.role == ROLE_STUDENT)
            .group_by(User.id, User.name, User.roll_number, User.enrollment_number)
            .order_by(attendance_count.desc())
            .limit(TOP_STUDENTS_LIMIT),
        )
    except SQLAlchemyError as exc:
        logger.exception('Error fetching top students')
        raise database_error(exc, 'Failed to fetch top students') from exc


@router.get('/attendance-by-subject')
def attendance_by_subject(db: Session = Depends(get_db)):
    attendance_count = func.count(Attendance.id).label('attendance_count')
    try:
        return _rows(
            db,
            select(
                Lecture.subject,
                attendance_count,
                func.count(distinct(Lecture.id)).label('lecture_count'),
            )
            .outerjoin(Attendance, Lecture.id == Attendance.lecture_id)
            .where(Lecture.subject.is_not(None))
            .group_by(Lecture.subject)
            .order_by(attendance_count.desc()),
        )
    except SQLAlchemyError as exc:
        logger.exception('Error fetching attendance by subject')
        raise database_error(exc, 'Failed to fetch subject data') from exc


@router.delete('/users/{user_id}')
def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin),
):
    name = cascade.delete_user(db, user_id, requester_id=current_user.id)
    return {'message': f'User "{name}" deleted successfully'}


@router.delete('/lectures/{lecture_id}')
def delete_lecture(lecture_id: int, db: Session = Depends(get_db)):
    name = cascade.delete_lecture(db, lecture_id)
    return {'message': f'Lecture "{name}" deleted successfully and archived'}
