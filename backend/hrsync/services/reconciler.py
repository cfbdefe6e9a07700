"""
Roster reconciliation: match uploaded rows against persisted employees,
apply unlocked changes, then exit everyone the roster no longer lists.

The uploaded roster is authoritative. An ACTIVE employee missing from a
full upload is presumed gone unless lock_all protects the record.

Failure model:
- each row (and each exit) runs in its own SAVEPOINT; a failing row is
  logged and counted, the run continues
- batches are committed as they complete and are never rolled back by a
  later failure
"""
import logging
import os
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from hrsync.models.employee import Employee, EmployeeStatus
from hrsync.models.import_log import EmployeeImportLog
from hrsync.services.roster_reader import ImportRow, build_email

logger = logging.getLogger(__name__)

BATCH_SIZE = int(os.getenv("IMPORT_BATCH_SIZE", "300"))

# how many skipped rows get logged at INFO before going quiet
_SKIP_LOG_LIMIT = 3


@dataclass
class ReconcileResult:
    created: int = 0
    updated: int = 0
    # locked rows plus up-to-date rows (kept for existing consumers)
    skipped_locked: int = 0
    # up-to-date rows only; a subset of skipped_locked
    unchanged: int = 0
    reactivated: int = 0
    skipped_no_data: int = 0
    errors: int = 0
    touched_ids: set[uuid.UUID] = field(default_factory=set)


@dataclass
class ExitResult:
    exited: int = 0
    skipped_exit_locked: int = 0
    errors: int = 0


@dataclass
class ImportSummary:
    reconcile: ReconcileResult
    exits: ExitResult
    total_rows: int

    def as_response(self) -> dict:
        r, x = self.reconcile, self.exits
        return {
            "created": r.created,
            "updated": r.updated,
            "skippedLocked": r.skipped_locked,
            "unchanged": r.unchanged,
            "exited": x.exited,
            "skippedExitLocked": x.skipped_exit_locked,
            "reactivated": r.reactivated,
            "skippedNoData": r.skipped_no_data,
            "errors": r.errors + x.errors,
            "totalRows": self.total_rows,
        }


# ---------- per-row logic ----------

def _find_by_natural_key(db: Session, row: ImportRow) -> Optional[Employee]:
    return (
        db.query(Employee)
        .filter(
            Employee.first_name == row.first_name,
            Employee.last_name == row.last_name,
            Employee.birth_date == row.birth_date,
        )
        .first()
    )


def compute_changes(existing: Employee, row: ImportRow) -> dict:
    """Column -> new value for every unlocked field whose incoming value differs."""
    changes = {}
    if not existing.lock_first_name and row.first_name and existing.first_name != row.first_name:
        changes["first_name"] = row.first_name
    if not existing.lock_last_name and row.last_name and existing.last_name != row.last_name:
        changes["last_name"] = row.last_name
    if not existing.lock_start_date and row.start_date and existing.start_date != row.start_date:
        changes["start_date"] = row.start_date
    if not existing.lock_birth_date and row.birth_date and existing.birth_date != row.birth_date:
        changes["birth_date"] = row.birth_date
    if not existing.lock_email:
        if row.email is not None and row.email != existing.email:
            changes["email"] = row.email
        elif not existing.email:
            generated = build_email(row.first_name, row.last_name)
            if generated:
                changes["email"] = generated
    return changes


def _create(db: Session, row: ImportRow, today: date, result: ReconcileResult) -> None:
    employee = Employee(
        id=uuid.uuid4(),
        first_name=row.first_name,
        last_name=row.last_name,
        birth_date=row.birth_date,
        start_date=row.start_date or today,
        email=row.email or build_email(row.first_name, row.last_name),
        status=EmployeeStatus.ACTIVE.value,
        exit_date=None,
        **row.locks.as_columns(),
    )
    db.add(employee)
    db.flush()
    result.touched_ids.add(employee.id)
    result.created += 1


def _reconcile_row(db: Session, row: ImportRow, today: date, result: ReconcileResult) -> None:
    existing = _find_by_natural_key(db, row)
    if existing is None:
        _create(db, row, today, result)
        return

    # listed in this roster, so never a candidate for the exit pass even if the update fails
    result.touched_ids.add(existing.id)

    if existing.lock_all:
        result.skipped_locked += 1
        return

    changes = compute_changes(existing, row)
    reactivating = existing.status == EmployeeStatus.EXITED.value
    if reactivating:
        changes["status"] = EmployeeStatus.ACTIVE.value
        changes["exit_date"] = None

    if not changes:
        result.skipped_locked += 1
        result.unchanged += 1
        return

    for column, value in changes.items():
        setattr(existing, column, value)
    db.flush()

    result.updated += 1
    if reactivating:
        result.reactivated += 1
        logger.info("Reactivated employee %s (%s %s)", existing.id, existing.first_name, existing.last_name)


def reconcile(
    db: Session,
    rows: list[ImportRow],
    today: Optional[date] = None,
    batch_size: int = BATCH_SIZE,
) -> ReconcileResult:
    """
    Apply every complete row to the employee table.

    Rows missing first name, last name or birth date are counted in
    skipped_no_data and dropped. Every matched, created or protected
    employee ends up in touched_ids for the exit pass.
    """
    today = today or date.today()
    result = ReconcileResult()

    for offset in range(0, len(rows), batch_size):
        for row in rows[offset:offset + batch_size]:
            if not row.is_complete:
                result.skipped_no_data += 1
                if result.skipped_no_data <= _SKIP_LOG_LIMIT:
                    logger.info(
                        "Skipping row %s: first_name=%r last_name=%r birth_date=%r",
                        row.line_no, row.first_name, row.last_name, row.birth_date,
                    )
                continue

            try:
                with db.begin_nested():
                    _reconcile_row(db, row, today, result)
            except IntegrityError:
                # a concurrent upload inserted the same natural key; retry as a match
                logger.warning("Natural key race on row %s, retrying as update", row.line_no)
                try:
                    with db.begin_nested():
                        _reconcile_row(db, row, today, result)
                except SQLAlchemyError:
                    logger.exception("Row %s failed after retry", row.line_no)
                    result.errors += 1
            except SQLAlchemyError:
                logger.exception("Row %s failed", row.line_no)
                result.errors += 1

        db.commit()
        logger.debug("Committed batch ending at row %d", min(offset + batch_size, len(rows)))

    return result


# ---------- exit pass ----------

def detect_exits(db: Session, touched_ids: Iterable[uuid.UUID], now: Optional[datetime] = None) -> ExitResult:
    """Mark every ACTIVE employee not touched by this run as EXITED, unless lock_all."""
    now = now or datetime.now(timezone.utc)
    touched = set(touched_ids)
    result = ExitResult()

    candidates = (
        db.query(Employee)
        .filter(Employee.status == EmployeeStatus.ACTIVE.value)
        .all()
    )
    for employee in candidates:
        if employee.id in touched:
            continue
        if employee.lock_all:
            result.skipped_exit_locked += 1
            continue
        try:
            with db.begin_nested():
                employee.status = EmployeeStatus.EXITED.value
                employee.exit_date = now
                db.flush()
            result.exited += 1
        except SQLAlchemyError:
            logger.exception("Could not exit employee %s", employee.id)
            result.errors += 1

    db.commit()
    return result


def run_import(
    db: Session,
    rows: list[ImportRow],
    now: Optional[datetime] = None,
    batch_size: int = BATCH_SIZE,
) -> ImportSummary:
    """Reconcile a full roster, exit the missing, and append the run log."""
    now = now or datetime.now(timezone.utc)

    reconciled = reconcile(db, rows, today=now.date(), batch_size=batch_size)
    exits = detect_exits(db, reconciled.touched_ids, now=now)
    summary = ImportSummary(reconcile=reconciled, exits=exits, total_rows=len(rows))

    db.add(EmployeeImportLog(
        created=reconciled.created,
        updated=reconciled.updated,
        skipped_locked=reconciled.skipped_locked,
        unchanged=reconciled.unchanged,
        exited=exits.exited,
        skipped_exit_locked=exits.skipped_exit_locked,
        reactivated=reconciled.reactivated,
        skipped_no_data=reconciled.skipped_no_data,
        errors=reconciled.errors + exits.errors,
        total_rows=len(rows),
    ))
    db.commit()

    logger.info("Roster import finished: %s", summary.as_response())
    return summary
