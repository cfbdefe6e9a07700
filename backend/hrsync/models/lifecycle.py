import enum
import uuid

from sqlalchemy import (
    Column, String, Text, Boolean, Integer, Date, DateTime, ForeignKey, UniqueConstraint, Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from hrsync.database import Base


class TaskType(str, enum.Enum):
    ONBOARDING = "ONBOARDING"
    OFFBOARDING = "OFFBOARDING"


class TaskStatus(str, enum.Enum):
    OPEN = "OPEN"
    DONE = "DONE"
    BLOCKED = "BLOCKED"


class OwnerRole(str, enum.Enum):
    ADMIN = "ADMIN"
    HR = "HR"
    PEOPLE_MANAGER = "PEOPLE_MANAGER"
    TEAM_LEAD = "TEAM_LEAD"
    UNIT_LEAD = "UNIT_LEAD"


class TaskTemplate(Base):
    __tablename__ = "task_templates"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String(20), nullable=False, index=True)
    owner_role = Column(String(50), nullable=False)
    # signed offset in days from the anchor date (hire or exit)
    relative_due_days = Column(Integer, nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class TaskAssignment(Base):
    """A template materialized for one employee. At most one per (employee, template)."""

    __tablename__ = "task_assignments"

    __table_args__ = (
        UniqueConstraint("employee_id", "task_template_id", name="uq_task_assignments_employee_template"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    employee_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    task_template_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("task_templates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    type = Column(String(20), nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    status = Column(String(20), nullable=False, default=TaskStatus.OPEN.value)
    owner_role = Column(String(50), nullable=False)
    notes = Column(Text, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    employee = relationship("Employee", lazy="joined")
    template = relationship("TaskTemplate", lazy="joined")
