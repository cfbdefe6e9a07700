from pydantic import BaseModel, ConfigDict
from datetime import datetime
from uuid import UUID


class ImportResult(BaseModel):
    created: int
    updated: int
    skippedLocked: int
    unchanged: int
    exited: int
    skippedExitLocked: int
    reactivated: int
    skippedNoData: int
    errors: int
    totalRows: int


class ImportLogResponse(BaseModel):
    id: UUID
    created: int
    updated: int
    skipped_locked: int
    unchanged: int
    exited: int
    skipped_exit_locked: int
    reactivated: int
    skipped_no_data: int
    errors: int
    total_rows: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
