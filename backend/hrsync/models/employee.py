# backend/hrsync/models/employee.py

import enum
import uuid
from sqlalchemy import Column, String, Date, Boolean, DateTime, UniqueConstraint, Uuid
from sqlalchemy.sql import func

from hrsync.database import Base


class EmployeeStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    EXITED = "EXITED"


class Employee(Base):
    """
    Table: employees

    Purpose:
    - Master record for one person on the roster
    - Matched against uploaded rosters by (first_name, last_name, birth_date)
    - Lock flags protect curated values from being overwritten by imports

    Invariants:
    - lock_all set -> the roster import never mutates the record
    - exit_date is set iff status == EXITED
    """

    __tablename__ = "employees"

    __table_args__ = (
        UniqueConstraint("first_name", "last_name", "birth_date", name="uq_employees_natural_key"),
    )

    # ------------------------------------------------------------------
    # Identity (natural key)
    # ------------------------------------------------------------------

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)

    first_name = Column(String(200), nullable=False)
    last_name = Column(String(200), nullable=False)
    birth_date = Column(Date, nullable=False)

    # ------------------------------------------------------------------
    # Employment
    # ------------------------------------------------------------------

    email = Column(String(255), nullable=True, index=True)
    start_date = Column(Date, nullable=False)

    status = Column(String(32), nullable=False, default=EmployeeStatus.ACTIVE.value, index=True)
    exit_date = Column(DateTime(timezone=True), nullable=True)

    # ------------------------------------------------------------------
    # Import locks
    # ------------------------------------------------------------------

    lock_all = Column(Boolean, nullable=False, default=False)
    lock_first_name = Column(Boolean, nullable=False, default=False)
    lock_last_name = Column(Boolean, nullable=False, default=False)
    lock_start_date = Column(Boolean, nullable=False, default=False)
    lock_birth_date = Column(Boolean, nullable=False, default=False)
    lock_email = Column(Boolean, nullable=False, default=False)

    # ------------------------------------------------------------------
    # Audit fields
    # ------------------------------------------------------------------

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def is_active(self) -> bool:
        return self.status == EmployeeStatus.ACTIVE.value

    def __repr__(self) -> str:
        return f"<Employee {self.last_name}, {self.first_name} ({self.status})>"
