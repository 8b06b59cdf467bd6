import os
from datetime import date, time

import bcrypt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('JWT_SECRET_KEY', 'test-secret-key')

from backend.auth import jwt_handler  # noqa: E402
from backend.core import config  # noqa: E402
from backend.database import Base, get_db  # noqa: E402
from backend.main import app  # noqa: E402
from backend.models.attendance import Attendance  # noqa: E402
from backend.models.lecture import Lecture  # noqa: E402
from backend.models.user import User  # noqa: E402

TEST_SECRET = 'test-secret-key'
DEFAULT_PASSWORD = 'secret123'

# Low-cost hash so fixtures stay fast; real hashing is covered by the password tests.
_DEFAULT_PASSWORD_HASH = bcrypt.hashpw(DEFAULT_PASSWORD.encode('utf-8'), bcrypt.gensalt(rounds=4)).decode('utf-8')


@pytest.fixture(autouse=True)
def jwt_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'JWT_SECRET_KEY', TEST_SECRET)
    monkeypatch.setattr(config, 'JWT_ALGORITHM', 'HS256')
    monkeypatch.setattr(config, 'JWT_EXPIRES_MINUTES', 24 * 60)
    monkeypatch.setattr(config, 'FRONTEND_URL', 'http://frontend.test')


@pytest.fixture
def session_factory():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make_user(user_id: str, role: str, **fields) -> User:
        user = User(
            id=user_id,
            name=fields.pop('name', f'{role.capitalize()} {user_id}'),
            email=fields.pop('email', f'{user_id}@school.test'),
            password_hash=fields.pop('password_hash', _DEFAULT_PASSWORD_HASH),
            role=role,
            **fields,
        )
        db.add(user)
        db.commit()
        return user

    return _make_user


@pytest.fixture
def make_lecture(db):
    def _make_lecture(teacher_id: str, subject: str = 'Physics', day: date = date(2026, 1, 5)) -> Lecture:
        lecture = Lecture(
            name=f'{subject} - {day}',
            subject=subject,
            date=day,
            time=time(9, 0),
            teacher_id=teacher_id,
        )
        db.add(lecture)
        db.commit()
        return lecture

    return _make_lecture


@pytest.fixture
def mark_present(db):
    def _mark_present(lecture_id: int, student_id: str) -> Attendance:
        record = Attendance(lecture_id=lecture_id, student_id=student_id, status='present')
        db.add(record)
        db.commit()
        return record

    return _mark_present


@pytest.fixture
def auth_header():
    def _auth_header(user: User) -> dict:
        token = jwt_handler.create_access_token({'id': user.id, 'role': user.role, 'name': user.name})
        return {'Authorization': f'Bearer {token}'}

    return _auth_header
