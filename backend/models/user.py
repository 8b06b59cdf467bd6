"""User model definitions."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String
from backend.database import Base

ROLE_TEACHER = "teacher"
ROLE_STUDENT = "student"
ROLE_ADMIN = "admin"
ROLES = (ROLE_TEACHER, ROLE_STUDENT, ROLE_ADMIN)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    """Represents a teacher, student or admin account."""
    __tablename__ = "users"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False)  # teacher/student/admin
    roll_number = Column(String, nullable=True)  # students only
    enrollment_number = Column(String, nullable=True)  # students only
    created_at = Column(DateTime, default=utcnow)
