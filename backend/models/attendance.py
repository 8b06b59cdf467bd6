"""Attendance model definitions."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from backend.database import Base
from backend.models.user import utcnow

STATUS_PRESENT = "present"


class Attendance(Base):
    """Represents one student's presence at one lecture."""
    __tablename__ = "attendance"
    __table_args__ = (
        UniqueConstraint("lecture_id", "student_id", name="uq_attendance_lecture_student"),
    )

    id = Column(Integer, primary_key=True)
    lecture_id = Column(Integer, ForeignKey("lectures.id"), nullable=False, index=True)
    student_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String, default=STATUS_PRESENT)
    timestamp = Column(DateTime, default=utcnow)
