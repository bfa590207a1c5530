"""SQLAlchemy models for the soft-deletable dashboard tables."""

import uuid

from sqlalchemy import Column, Date, DateTime, Index, String, Text

from ..clock import utcnow
from ..database import Base
from .mixins import SoftDeleteMixin


def _new_id() -> str:
    return str(uuid.uuid4())


class StudentRecord(Base, SoftDeleteMixin):  # type: ignore[valid-type,misc]
    """A student on a teacher's roster."""

    __tablename__ = "students"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(100), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    name = Column(String(200), nullable=False)
    class_id = Column(String(36), nullable=False, index=True)
    avatar_url = Column(Text, nullable=False, default="")
    gender = Column(String(20), nullable=False)
    access_code = Column(String(20), nullable=True)
    parent_phone = Column(String(30), nullable=True)

    __table_args__ = (Index("idx_students_owner_deleted", "user_id", "deleted_at"),)


class ClassRecord(Base, SoftDeleteMixin):  # type: ignore[valid-type,misc]
    """A class (rombel) owned by a teacher."""

    __tablename__ = "classes"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(100), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    name = Column(String(200), nullable=False)

    __table_args__ = (Index("idx_classes_owner_deleted", "user_id", "deleted_at"),)


class AttendanceRecord(Base, SoftDeleteMixin):  # type: ignore[valid-type,misc]
    """One attendance mark for one student on one day."""

    __tablename__ = "attendance"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(100), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    student_id = Column(String(36), nullable=False, index=True)
    date = Column(Date, nullable=False)
    status = Column(String(10), nullable=False)
    notes = Column(Text, nullable=True)

    __table_args__ = (
        Index("idx_attendance_owner_deleted", "user_id", "deleted_at"),
    )


class TaskRecord(Base, SoftDeleteMixin):  # type: ignore[valid-type,misc]
    """A teacher's to-do item."""

    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(100), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    title = Column(String(300), nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(Date, nullable=True)
    status = Column(String(20), nullable=False, default="todo")

    __table_args__ = (Index("idx_tasks_owner_deleted", "user_id", "deleted_at"),)
