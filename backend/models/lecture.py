"""Lecture model definitions."""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, Time
from backend.database import Base
from backend.models.user import utcnow


class Lecture(Base):
    """Represents a teaching session owned by one teacher."""
    __tablename__ = "lectures"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    subject = Column(String)
    date = Column(Date)
    time = Column(Time)
    teacher_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow)
