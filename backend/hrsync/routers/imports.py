"""Roster upload: reconcile an uploaded spreadsheet against the employee table."""

import io
import logging

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from hrsync.database import get_db
from hrsync.dependencies import require_hr
from hrsync.models.import_log import EmployeeImportLog
from hrsync.schemas.imports import ImportLogResponse, ImportResult
from hrsync.services.errors import ServiceError, to_http
from hrsync.services.reconciler import run_import
from hrsync.services.roster_reader import MAX_UPLOAD_BYTES, read_roster

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/import", tags=["Roster Import"])

TEMPLATE_HEADERS = [
    "firstName", "lastName", "startDate", "birthDate", "email",
    "lockAll", "lockFirstName", "lockLastName", "lockStartDate", "lockBirthDate", "lockEmail",
]


@router.post("", response_model=ImportResult)
async def upload_roster(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    _role: str = Depends(require_hr),
):
    """
    Reconcile a full roster (.xlsx, legacy .xls or .csv).

    Employees missing from the file are marked EXITED unless lock_all is
    set, so always upload the complete roster.
    """
    if file.size is not None and file.size > MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=413,
            detail=f"File is too large (>{MAX_UPLOAD_BYTES // (1024 * 1024)} MB). Please split the file.",
        )

    content = await file.read()
    try:
        rows = read_roster(content, file.filename or "")
    except ServiceError as e:
        raise to_http(e)

    summary = run_import(db, rows)
    return summary.as_response()


@router.get("/logs", response_model=list[ImportLogResponse])
def list_import_logs(
    limit: int = Query(default=20, ge=1, le=200),
    db: Session = Depends(get_db),
    _role: str = Depends(require_hr),
):
    return (
        db.query(EmployeeImportLog)
        .order_by(EmployeeImportLog.created_at.desc())
        .limit(limit)
        .all()
    )


@router.get("/template.xlsx")
def download_template():
    """Blank roster with the recognized headers and one sample row."""
    import openpyxl

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Employees"
    ws.append(TEMPLATE_HEADERS)
    ws.append(["Max", "Mustermann", "01.01.20", "31.12.90", "", "", "", "", "", "", ""])

    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)
    return StreamingResponse(
        buf,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": "attachment; filename=employee_template.xlsx"},
    )
