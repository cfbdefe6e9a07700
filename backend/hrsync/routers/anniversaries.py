"""Birthday / service-anniversary queries for the dashboard and the notifier."""

import csv
import io
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from hrsync.database import get_db
from hrsync.models.employee import Employee, EmployeeStatus
from hrsync.schemas.anniversaries import DayEventsResponse, EmployeeRef, JubileeHitResponse
from hrsync.services.anniversaries import (
    EVENT_KINDS,
    JubileeHit,
    birthdays_on_day,
    calendar_events,
    hits_on_day,
    upcoming,
)
from hrsync.services.settings import load_settings

router = APIRouter(prefix="/api/v1/anniversaries", tags=["Anniversaries"])


def _active_employees(db: Session) -> list[Employee]:
    return (
        db.query(Employee)
        .filter(Employee.status == EmployeeStatus.ACTIVE.value)
        .order_by(Employee.last_name, Employee.first_name)
        .all()
    )


def _ref(e: Employee) -> EmployeeRef:
    return EmployeeRef(id=e.id, first_name=e.first_name, last_name=e.last_name, email=e.email)


def _hit(h: JubileeHit) -> JubileeHitResponse:
    return JubileeHitResponse(employee=_ref(h.employee), years=h.years, anniversary_date=h.anniversary_date)


@router.get("/upcoming", response_model=list[JubileeHitResponse])
def upcoming_jubilees(
    days: int = Query(default=30, ge=1, le=365),
    db: Session = Depends(get_db),
):
    settings = load_settings(db)
    hits = upcoming(_active_employees(db), list(settings.milestone_years), days, today=date.today())
    return [_hit(h) for h in hits]


@router.get("/day", response_model=DayEventsResponse)
def events_on_day(
    day: Optional[date] = Query(default=None),
    db: Session = Depends(get_db),
):
    day = day or date.today()
    settings = load_settings(db)
    employees = _active_employees(db)
    return DayEventsResponse(
        day=day,
        jubilees=[_hit(h) for h in hits_on_day(employees, list(settings.milestone_years), day)],
        birthdays=[_ref(e) for e in birthdays_on_day(employees, day)],
    )


@router.get("/export.csv")
def export_events_csv(
    kind: str = Query(...),
    year: Optional[int] = Query(default=None, ge=1900, le=2200),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    quarter: Optional[int] = Query(default=None, ge=1, le=4),
    db: Session = Depends(get_db),
):
    if kind not in EVENT_KINDS:
        raise HTTPException(status_code=400, detail=f"kind must be one of {', '.join(EVENT_KINDS)}")
    year = year or date.today().year

    events = calendar_events(_active_employees(db), kind, year, month=month, quarter=quarter)

    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(["firstName", "lastName", "email", "date", "type"])
    for ev in events:
        writer.writerow([
            ev.employee.first_name,
            ev.employee.last_name,
            ev.employee.email or "",
            ev.event_date.isoformat(),
            kind.rstrip("s"),
        ])
    buf.seek(0)

    suffix = f"-m{month}" if month else f"-q{quarter}" if quarter else ""
    return StreamingResponse(
        iter([buf.getvalue()]),
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f"attachment; filename=dashboard-{kind}-{year}{suffix}.csv",
            "Cache-Control": "no-store",
        },
    )
