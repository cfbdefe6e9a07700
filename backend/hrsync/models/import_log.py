import uuid
from sqlalchemy import Column, Integer, DateTime, Uuid
from sqlalchemy.sql import func

from hrsync.database import Base


class EmployeeImportLog(Base):
    """One append-only row per roster reconciliation run."""

    __tablename__ = "employee_import_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    created = Column(Integer, nullable=False, default=0)
    updated = Column(Integer, nullable=False, default=0)
    skipped_locked = Column(Integer, nullable=False, default=0)
    unchanged = Column(Integer, nullable=False, default=0)
    exited = Column(Integer, nullable=False, default=0)
    skipped_exit_locked = Column(Integer, nullable=False, default=0)
    reactivated = Column(Integer, nullable=False, default=0)
    skipped_no_data = Column(Integer, nullable=False, default=0)
    errors = Column(Integer, nullable=False, default=0)
    total_rows = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
