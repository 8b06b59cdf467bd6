import logging
from threading import Lock

from fastapi import HTTPException, status
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from backend.core import config


logger = logging.getLogger(__name__)

Base = declarative_base()

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
)

engine: Engine | None = None

_schema_lock = Lock()
_attendance_schema_checked = False

UNIQUE_VIOLATION_SQLSTATE = '23505'


def _connect_args(database_url: str) -> dict:
    if database_url.startswith('postgresql'):
        return {'options': f'-c statement_timeout={config.DB_STATEMENT_TIMEOUT_MS}'}
    if database_url.startswith('sqlite'):
        return {'check_same_thread': False}
    return {}


def init_engine(database_url: str | None = None) -> Engine:
    global engine

    url = database_url or config.DATABASE_URL
    engine = create_engine(url, pool_pre_ping=True, connect_args=_connect_args(url))
    SessionLocal.configure(bind=engine)
    logger.info('Database engine initialised for %s', engine.url.render_as_string(hide_password=True))
    return engine


def dispose_engine() -> None:
    global engine, _attendance_schema_checked

    if engine is not None:
        engine.dispose()
        engine = None
    _attendance_schema_checked = False


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_attendance_schema() -> None:
    """Add the (lecture_id, student_id) unique index to attendance tables created without it."""
    global _attendance_schema_checked

    if _attendance_schema_checked:
        return

    with _schema_lock:
        if _attendance_schema_checked:
            return

        inspector = inspect(engine)

        if 'attendance' not in inspector.get_table_names():
            _attendance_schema_checked = True
            return

        with engine.begin() as connection:
            connection.execute(
                text(
                    'CREATE UNIQUE INDEX IF NOT EXISTS uq_attendance_lecture_student '
                    'ON attendance(lecture_id, student_id)'
                )
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_lectures_teacher_created ON lectures(teacher_id, created_at)')
            )

        _attendance_schema_checked = True


def is_unique_violation(exc: IntegrityError) -> bool:
    original = exc.orig
    sqlstate = getattr(original, 'pgcode', None) or getattr(original, 'sqlstate', None)
    if sqlstate is not None:
        return sqlstate == UNIQUE_VIOLATION_SQLSTATE
    return 'UNIQUE constraint failed' in str(original)


def database_error(exc: SQLAlchemyError, message: str) -> HTTPException:
    if isinstance(exc, OperationalError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Database unavailable.',
        )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=message)


def ping(db: Session) -> int:
    return db.execute(text('SELECT COUNT(*) FROM users')).scalar_one()
