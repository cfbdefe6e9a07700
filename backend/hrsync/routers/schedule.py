"""Daily notification run, triggered by an external cron."""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from hrsync.database import get_db
from hrsync.dependencies import require_admin
from hrsync.models.employee import Employee, EmployeeStatus
from hrsync.services.lifecycle import due_tasks
from hrsync.services.notifications import build_daily_digest, dispatch
from hrsync.services.settings import load_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/schedule", tags=["Schedule"])


@router.post("/run-daily")
def run_daily(
    day: Optional[date] = Query(default=None),
    db: Session = Depends(get_db),
    _role: str = Depends(require_admin),
):
    today = day or date.today()
    settings = load_settings(db)
    employees = db.query(Employee).filter(Employee.status == EmployeeStatus.ACTIVE.value).all()

    digest = build_daily_digest(employees, due_tasks(db, today), settings, today)
    counts = dispatch(digest)
    logger.info("Daily run for %s: %s", today.isoformat(), counts)
    return counts
