# backend/hrsync/routers/employees.py

import csv
import io
import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from hrsync.database import get_db
from hrsync.dependencies import require_hr
from hrsync.models.employee import Employee, EmployeeStatus
from hrsync.schemas.employees import EmployeeResponse, EmployeeUpdate

router = APIRouter(prefix="/api/v1/employees", tags=["Employee Management"])

EXPORT_HEADERS = [
    "firstName", "lastName", "email", "startDate", "birthDate",
    "lockAll", "lockFirstName", "lockLastName", "lockStartDate", "lockBirthDate", "lockEmail",
]

REQUIRED_FIELDS = (
    "first_name", "last_name", "start_date", "birth_date", "status",
    "lock_all", "lock_first_name", "lock_last_name", "lock_start_date", "lock_birth_date", "lock_email",
)


# ---------- helpers ----------

def _fmt_bool(value: bool) -> str:
    # matches what German Excel writes for booleans, so exports re-import cleanly
    return "WAHR" if value else "FALSCH"


def _get_employee(db: Session, employee_id: uuid.UUID) -> Employee:
    e = db.get(Employee, employee_id)
    if not e:
        raise HTTPException(status_code=404, detail="Employee not found")
    return e


# ---------- endpoints ----------

@router.get("/", response_model=list[EmployeeResponse])
def list_employees(
    db: Session = Depends(get_db),
    search: Optional[str] = Query(default=None),
    status: Optional[EmployeeStatus] = Query(default=None),
):
    q = db.query(Employee)

    if status:
        q = q.filter(Employee.status == status.value)

    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(
            Employee.first_name.ilike(like),
            Employee.last_name.ilike(like),
            Employee.email.ilike(like),
        ))

    return q.order_by(Employee.last_name, Employee.first_name).all()


# ---------- export (must be before /{employee_id}) ----------

def _export_rows(db: Session) -> list[list]:
    employees = db.query(Employee).order_by(Employee.last_name, Employee.first_name).all()
    return [
        [
            e.first_name,
            e.last_name,
            e.email or "",
            e.start_date,
            e.birth_date,
            _fmt_bool(e.lock_all),
            _fmt_bool(e.lock_first_name),
            _fmt_bool(e.lock_last_name),
            _fmt_bool(e.lock_start_date),
            _fmt_bool(e.lock_birth_date),
            _fmt_bool(e.lock_email),
        ]
        for e in employees
    ]


@router.get("/export.csv")
def export_employees_csv(db: Session = Depends(get_db)):
    """All employees in the roster import format, lock columns included."""
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(EXPORT_HEADERS)
    for row in _export_rows(db):
        writer.writerow([v.isoformat() if isinstance(v, date) else v for v in row])
    buf.seek(0)
    return StreamingResponse(
        iter([buf.getvalue()]),
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": "attachment; filename=employees.csv",
            "Cache-Control": "no-store",
        },
    )


@router.get("/export.xlsx")
def export_employees_xlsx(db: Session = Depends(get_db)):
    """Same content as export.csv as a workbook, so the roster can be edited in Excel and re-uploaded."""
    import openpyxl

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Employees"
    ws.append(EXPORT_HEADERS)
    for row in _export_rows(db):
        ws.append(row)
    for col in ("D", "E"):
        for cell in ws[col][1:]:
            cell.number_format = "DD.MM.YYYY"

    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)
    return StreamingResponse(
        buf,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={
            "Content-Disposition": "attachment; filename=employees.xlsx",
            "Cache-Control": "no-store",
        },
    )


@router.get("/{employee_id}", response_model=EmployeeResponse)
def get_employee(employee_id: uuid.UUID, db: Session = Depends(get_db)):
    return _get_employee(db, employee_id)


@router.put("/{employee_id}", response_model=EmployeeResponse)
def update_employee(
    employee_id: uuid.UUID,
    body: EmployeeUpdate,
    db: Session = Depends(get_db),
    _role: str = Depends(require_hr),
):
    e = _get_employee(db, employee_id)
    # an explicit null on a NOT NULL column leaves it unchanged
    data = {
        field: value
        for field, value in body.model_dump(exclude_unset=True).items()
        if value is not None or field not in REQUIRED_FIELDS
    }

    if "status" in data:
        try:
            data["status"] = EmployeeStatus(data["status"]).value
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Unknown status: {data['status']}")
        if data["status"] == EmployeeStatus.ACTIVE.value:
            data["exit_date"] = None

    # exit_date is set exactly when the employee is EXITED
    new_status = data.get("status", e.status)
    new_exit = data["exit_date"] if "exit_date" in data else e.exit_date
    if new_status == EmployeeStatus.EXITED.value and new_exit is None:
        raise HTTPException(status_code=400, detail="exit_date is required when status is EXITED")
    if new_status != EmployeeStatus.EXITED.value and new_exit is not None:
        raise HTTPException(status_code=400, detail="exit_date can only be set on EXITED employees")

    for field, value in data.items():
        setattr(e, field, value)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Another employee already has this name and birth date")
    db.refresh(e)
    return e
