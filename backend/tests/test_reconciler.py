"""
HR Sync - Roster Reconciliation Tests

Create / update / lock / reactivate decisions, the exit pass, and the
run log.
"""

from datetime import date, datetime

from sqlalchemy.exc import OperationalError

from hrsync.models.employee import Employee, EmployeeStatus
from hrsync.models.import_log import EmployeeImportLog
from hrsync.services import reconciler
from hrsync.services.reconciler import compute_changes, detect_exits, reconcile, run_import
from hrsync.services.roster_reader import FieldLocks, ImportRow

RUN_1 = datetime(2025, 1, 10, 6, 0, 0)
RUN_2 = datetime(2025, 2, 10, 6, 0, 0)


def _row(**overrides) -> ImportRow:
    data = {
        "first_name": "Max",
        "last_name": "Mustermann",
        "birth_date": date(1990, 12, 31),
        "start_date": date(2020, 1, 1),
        "email": None,
    }
    data.update(overrides)
    return ImportRow(**data)


class TestCreate:

    def test_new_row_creates_active_employee_with_generated_email(self, db_session, monkeypatch):
        monkeypatch.setattr("hrsync.services.roster_reader.EMAIL_DOMAIN", "corp.test")
        result = reconcile(db_session, [_row(first_name="Jörg", last_name="Müller")])

        assert result.created == 1
        employee = db_session.query(Employee).one()
        assert employee.status == EmployeeStatus.ACTIVE.value
        assert employee.exit_date is None
        assert employee.email == "jorg.muller@corp.test"
        assert employee.id in result.touched_ids

    def test_explicit_email_and_row_locks_are_kept(self, db_session):
        reconcile(db_session, [_row(email="max@corp.test", locks=FieldLocks(lock_email=True))])

        employee = db_session.query(Employee).one()
        assert employee.email == "max@corp.test"
        assert employee.lock_email is True
        assert employee.lock_all is False

    def test_missing_start_date_defaults_to_run_day(self, db_session):
        reconcile(db_session, [_row(start_date=None)], today=date(2025, 1, 10))
        assert db_session.query(Employee).one().start_date == date(2025, 1, 10)

    def test_missing_last_name_is_skipped(self, db_session):
        result = reconcile(db_session, [_row(last_name=None)])

        assert result.skipped_no_data == 1
        assert result.created == 0
        assert db_session.query(Employee).count() == 0

    def test_duplicate_rows_in_one_upload_create_once(self, db_session):
        result = reconcile(db_session, [_row(), _row()])

        assert result.created == 1
        assert result.skipped_locked == 1
        assert db_session.query(Employee).count() == 1


class TestUpdate:

    def test_unlocked_field_is_updated(self, db_session, make_employee):
        employee = make_employee(start_date=date(2019, 1, 1))
        result = reconcile(db_session, [_row(start_date=date(2020, 1, 1))])

        assert result.updated == 1
        db_session.refresh(employee)
        assert employee.start_date == date(2020, 1, 1)

    def test_locked_field_is_not_updated(self, db_session, make_employee):
        employee = make_employee(email="curated@corp.test", lock_email=True)
        result = reconcile(db_session, [_row(email="other@corp.test")])

        assert result.updated == 0
        assert result.skipped_locked == 1
        assert result.unchanged == 1
        db_session.refresh(employee)
        assert employee.email == "curated@corp.test"

    def test_lock_all_blocks_every_change(self, db_session, make_employee):
        employee = make_employee(start_date=date(2019, 1, 1), lock_all=True)
        result = reconcile(db_session, [_row(start_date=date(2020, 1, 1), email="new@corp.test")])

        assert result.skipped_locked == 1
        assert result.unchanged == 0
        assert employee.id in result.touched_ids
        db_session.refresh(employee)
        assert employee.start_date == date(2019, 1, 1)

    def test_missing_email_is_backfilled(self, db_session, make_employee):
        employee = make_employee(email=None)
        changes = compute_changes(employee, _row())
        assert changes["email"].startswith("max.mustermann@")

    def test_exited_employee_is_reactivated(self, db_session, make_employee):
        employee = make_employee(status=EmployeeStatus.EXITED.value, exit_date=RUN_1)
        result = reconcile(db_session, [_row()])

        assert result.reactivated == 1
        assert result.updated == 1
        db_session.refresh(employee)
        assert employee.status == EmployeeStatus.ACTIVE.value
        assert employee.exit_date is None

    def test_exited_lock_all_employee_stays_exited(self, db_session, make_employee):
        employee = make_employee(status=EmployeeStatus.EXITED.value, exit_date=RUN_1, lock_all=True)
        result = reconcile(db_session, [_row()])

        assert result.reactivated == 0
        db_session.refresh(employee)
        assert employee.status == EmployeeStatus.EXITED.value

    def test_small_batches_process_every_row(self, db_session):
        rows = [_row(first_name=f"Person{i}") for i in range(7)]
        result = reconcile(db_session, rows, batch_size=3)

        assert result.created == 7
        assert db_session.query(Employee).count() == 7


class TestExitDetection:

    def test_absent_employee_is_exited(self, db_session, make_employee):
        gone = make_employee(first_name="Erika", last_name="Musterfrau")
        result = detect_exits(db_session, touched_ids=set(), now=RUN_2)

        assert result.exited == 1
        db_session.refresh(gone)
        assert gone.status == EmployeeStatus.EXITED.value
        assert gone.exit_date == RUN_2

    def test_lock_all_employee_is_not_exited(self, db_session, make_employee):
        kept = make_employee(lock_all=True)
        result = detect_exits(db_session, touched_ids=set(), now=RUN_2)

        assert result.exited == 0
        assert result.skipped_exit_locked == 1
        db_session.refresh(kept)
        assert kept.status == EmployeeStatus.ACTIVE.value
        assert kept.exit_date is None

    def test_touched_employee_is_not_exited(self, db_session, make_employee):
        employee = make_employee()
        result = detect_exits(db_session, touched_ids={employee.id}, now=RUN_2)
        assert result.exited == 0

    def test_already_exited_is_left_alone(self, db_session, make_employee):
        employee = make_employee(status=EmployeeStatus.EXITED.value, exit_date=RUN_1)
        result = detect_exits(db_session, touched_ids=set(), now=RUN_2)

        assert result.exited == 0
        db_session.refresh(employee)
        assert employee.exit_date == RUN_1


class TestFullRuns:

    def test_second_identical_run_changes_nothing(self, db_session):
        rows = [_row(), _row(first_name="Erika", last_name="Musterfrau", birth_date=date(1985, 5, 5))]
        first = run_import(db_session, rows, now=RUN_1).as_response()
        second = run_import(db_session, rows, now=RUN_2).as_response()

        assert first["created"] == 2
        assert second["created"] == 0
        assert second["updated"] == 0
        assert second["exited"] == 0
        assert second["unchanged"] == 2
        assert second["skippedLocked"] == 2

    def test_employee_missing_from_next_run_exits_at_run_time(self, db_session):
        erika = _row(first_name="Erika", last_name="Musterfrau", birth_date=date(1985, 5, 5))
        run_import(db_session, [_row(), erika], now=RUN_1)
        summary = run_import(db_session, [_row()], now=RUN_2).as_response()

        assert summary["exited"] == 1
        gone = db_session.query(Employee).filter(Employee.first_name == "Erika").one()
        assert gone.status == EmployeeStatus.EXITED.value
        assert gone.exit_date == RUN_2

    def test_updated_employee_is_not_exited_in_same_run(self, db_session):
        run_import(db_session, [_row(start_date=date(2019, 1, 1))], now=RUN_1)
        summary = run_import(db_session, [_row(start_date=date(2020, 1, 1))], now=RUN_2).as_response()

        assert summary["updated"] == 1
        assert summary["exited"] == 0

    def test_run_log_is_appended(self, db_session, make_employee):
        make_employee(first_name="Locked", lock_all=True)
        run_import(db_session, [_row(), _row(last_name=None)], now=RUN_1)

        log = db_session.query(EmployeeImportLog).one()
        assert log.created == 1
        assert log.skipped_no_data == 1
        assert log.skipped_exit_locked == 1
        assert log.exited == 0
        assert log.total_rows == 2


class TestFailures:

    def test_failing_row_does_not_abort_the_batch(self, db_session, monkeypatch):
        real_create = reconciler._create

        def create(db, row, today, result):
            if row.first_name == "Broken":
                raise OperationalError("INSERT INTO employees", {}, Exception("disk I/O error"))
            return real_create(db, row, today, result)

        monkeypatch.setattr(reconciler, "_create", create)
        rows = [_row(first_name="Anna"), _row(first_name="Broken"), _row(first_name="Bert")]

        summary = run_import(db_session, rows, now=RUN_1)

        assert summary.reconcile.created == 2
        assert summary.reconcile.errors == 1
        assert summary.as_response()["errors"] == 1
        assert sorted(e.first_name for e in db_session.query(Employee).all()) == ["Anna", "Bert"]
        assert db_session.query(EmployeeImportLog).one().errors == 1

    def test_natural_key_race_is_retried_as_match(self, db_session, make_employee, monkeypatch):
        employee = make_employee()
        real_find = reconciler._find_by_natural_key
        calls = []

        def find(db, row):
            calls.append(row.line_no)
            # first lookup misses, as if another upload inserted the row just after it
            if len(calls) == 1:
                return None
            return real_find(db, row)

        monkeypatch.setattr(reconciler, "_find_by_natural_key", find)

        result = reconcile(db_session, [_row(line_no=2)])

        assert len(calls) == 2
        assert result.created == 0
        assert result.errors == 0
        assert result.unchanged == 1
        assert employee.id in result.touched_ids
        assert db_session.query(Employee).count() == 1
