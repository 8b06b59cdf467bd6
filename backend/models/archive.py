"""Snapshots of deleted lectures and attendance records."""

from sqlalchemy import Column, Date, DateTime, Integer, String, Time
from backend.database import Base
from backend.models.user import utcnow


class ArchivedLecture(Base):
    __tablename__ = "archived_lectures"

    id = Column(Integer, primary_key=True)
    original_lecture_id = Column(Integer, index=True)
    name = Column(String)
    subject = Column(String)
    date = Column(Date)
    time = Column(Time)
    teacher_id = Column(String)
    teacher_name = Column(String)
    attendance_count = Column(Integer, default=0)
    created_at = Column(DateTime)
    archived_at = Column(DateTime, default=utcnow)


class ArchivedAttendance(Base):
    __tablename__ = "archived_attendance"

    id = Column(Integer, primary_key=True)
    original_attendance_id = Column(Integer)
    lecture_id = Column(Integer, index=True)
    student_id = Column(String, index=True)
    student_name = Column(String)
    roll_number = Column(String)
    enrollment_number = Column(String)
    status = Column(String)
    timestamp = Column(DateTime)
    archived_at = Column(DateTime, default=utcnow)
