"""
HTTP-level tests: routing, role checks, error mapping and response shapes.
Business rules are covered by the service tests.
"""

import io
import uuid
from datetime import date, datetime

import openpyxl
import pytest

from hrsync.models.employee import Employee
from hrsync.models.lifecycle import TaskAssignment
from hrsync.services import notifications, roster_reader
from hrsync.services.anniversaries import add_years
from hrsync.services.roster_reader import read_roster

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def roster_xlsx(*rows) -> bytes:
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.append(["Vorname", "Nachname", "Eintrittsdatum", "Geburtsdatum", "E-Mail", "Lock All"])
    for row in rows:
        ws.append(list(row))
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def upload(client, content, filename="roster.xlsx", role=None):
    headers = {"X-User-Role": role} if role else {}
    return client.post(
        "/api/v1/import",
        files={"file": (filename, content, XLSX)},
        headers=headers,
    )


class TestImportEndpoint:

    def test_upload_and_reconcile(self, client, db_session, make_employee):
        make_employee(first_name="Gone", last_name="Person")

        res = upload(client, roster_xlsx(
            ["Anna", "Schmidt", "01.02.20", "15.05.90", "", ""],
            ["", "NoFirstName", "01.02.20", "15.05.90", "", ""],
        ))

        assert res.status_code == 200
        body = res.json()
        assert body["created"] == 1
        assert body["exited"] == 1
        assert body["skippedNoData"] == 1
        assert body["totalRows"] == 2

        anna = db_session.query(Employee).filter(Employee.last_name == "Schmidt").one()
        assert anna.email == "anna.schmidt@example.com"
        assert anna.start_date == date(2020, 2, 1)

    def test_run_is_logged(self, client):
        upload(client, roster_xlsx(["Anna", "Schmidt", "01.02.20", "15.05.90", "", ""]))
        logs = client.get("/api/v1/import/logs").json()
        assert len(logs) == 1
        assert logs[0]["created"] == 1

    def test_missing_columns(self, client):
        wb = openpyxl.Workbook()
        wb.active.append(["Name", "Abteilung"])
        wb.active.append(["Anna", "IT"])
        buf = io.BytesIO()
        wb.save(buf)

        res = upload(client, buf.getvalue())
        assert res.status_code == 400
        assert "Missing required columns" in res.json()["detail"]

    def test_unreadable_file(self, client):
        res = upload(client, b"definitely not a workbook")
        assert res.status_code == 400

    def test_too_large(self, client, monkeypatch):
        monkeypatch.setattr(roster_reader, "MAX_UPLOAD_BYTES", 16)
        res = upload(client, roster_xlsx(["Anna", "Schmidt", "01.02.20", "15.05.90", "", ""]))
        assert res.status_code == 413

    def test_forbidden_role(self, client):
        res = upload(client, roster_xlsx(), role="TEAM_LEAD")
        assert res.status_code == 403

    def test_template_download(self, client):
        res = client.get("/api/v1/import/template.xlsx")
        assert res.status_code == 200
        wb = openpyxl.load_workbook(io.BytesIO(res.content))
        headers = [c.value for c in wb.active[1]]
        assert headers[:4] == ["firstName", "lastName", "startDate", "birthDate"]


class TestEmployeeEndpoints:

    def test_list_and_search(self, client, make_employee):
        make_employee()
        make_employee(first_name="Erika", last_name="Musterfrau", email="erika@example.com")

        assert len(client.get("/api/v1/employees/").json()) == 2
        found = client.get("/api/v1/employees/", params={"search": "erika"}).json()
        assert [e["first_name"] for e in found] == ["Erika"]

    def test_get_unknown(self, client):
        assert client.get(f"/api/v1/employees/{uuid.uuid4()}").status_code == 404

    def test_exit_requires_exit_date(self, client, make_employee):
        e = make_employee()
        res = client.put(f"/api/v1/employees/{e.id}", json={"status": "EXITED"})
        assert res.status_code == 400

    def test_reactivate_clears_exit_date(self, client, make_employee):
        e = make_employee()
        client.put(f"/api/v1/employees/{e.id}", json={"status": "EXITED", "exit_date": "2025-01-31T00:00:00"})
        res = client.put(f"/api/v1/employees/{e.id}", json={"status": "ACTIVE"})
        assert res.status_code == 200
        assert res.json()["exit_date"] is None

    def test_natural_key_conflict(self, client, make_employee):
        make_employee()
        other = make_employee(first_name="Moritz")
        res = client.put(f"/api/v1/employees/{other.id}", json={"first_name": "Max"})
        assert res.status_code == 409

    def test_export_round_trips_lock_flags(self, client, make_employee):
        make_employee(lock_email=True)
        res = client.get("/api/v1/employees/export.csv")
        assert res.status_code == 200
        lines = res.text.strip().splitlines()
        assert lines[0].startswith("firstName,lastName,email")
        assert lines[1].endswith("FALSCH,FALSCH,FALSCH,FALSCH,FALSCH,WAHR")


    @pytest.mark.parametrize("body", [
        {"exit_date": None},
        {"status": "EXITED", "exit_date": None},
    ])
    def test_exited_employee_keeps_exit_date(self, client, db_session, make_employee, body):
        e = make_employee(status="EXITED", exit_date=datetime(2025, 1, 1))

        res = client.put(f"/api/v1/employees/{e.id}", json=body)

        assert res.status_code == 400
        db_session.refresh(e)
        assert e.status == "EXITED"
        assert e.exit_date == datetime(2025, 1, 1)

    def test_exit_date_on_active_employee(self, client, make_employee):
        e = make_employee()
        res = client.put(f"/api/v1/employees/{e.id}", json={"exit_date": "2025-01-31T00:00:00"})
        assert res.status_code == 400

    def test_null_flags_leave_record_unchanged(self, client, make_employee):
        e = make_employee(lock_all=True)

        res = client.put(f"/api/v1/employees/{e.id}", json={"lock_all": None, "status": None, "first_name": None})

        assert res.status_code == 200
        body = res.json()
        assert body["lock_all"] is True
        assert body["status"] == "ACTIVE"
        assert body["first_name"] == "Max"

    def test_xlsx_export_reimports_cleanly(self, client, make_employee):
        make_employee(lock_email=True)
        make_employee(first_name="Erika", last_name="Musterfrau", email="erika@example.com", birth_date=date(1988, 2, 29))

        res = client.get("/api/v1/employees/export.xlsx")
        assert res.status_code == 200
        assert "employees.xlsx" in res.headers["content-disposition"]

        rows = read_roster(res.content, "employees.xlsx")
        by_first = {r.first_name: r for r in rows}
        assert by_first["Max"].birth_date == date(1990, 12, 31)
        assert by_first["Max"].start_date == date(2020, 1, 1)
        assert by_first["Max"].locks.lock_email is True
        assert by_first["Max"].locks.lock_all is False
        assert by_first["Erika"].birth_date == date(1988, 2, 29)
        assert by_first["Erika"].email == "erika@example.com"

        body = upload(client, res.content, filename="employees.xlsx").json()
        assert body["unchanged"] == 2
        assert body["created"] == 0
        assert body["exited"] == 0


class TestAnniversaryEndpoints:

    def test_upcoming(self, client, make_employee):
        target = date.today()
        make_employee(start_date=add_years(target, -5))
        make_employee(first_name="Newbie", start_date=date.today())

        hits = client.get("/api/v1/anniversaries/upcoming", params={"days": 7}).json()
        assert [(h["employee"]["first_name"], h["years"]) for h in hits] == [("Max", 5)]

    def test_upcoming_days_validated(self, client):
        assert client.get("/api/v1/anniversaries/upcoming", params={"days": 0}).status_code == 422

    def test_day(self, client, make_employee):
        make_employee(start_date=date(2015, 3, 10), birth_date=date(1990, 3, 10))
        body = client.get("/api/v1/anniversaries/day", params={"day": "2025-03-10"}).json()
        assert body["jubilees"][0]["years"] == 10
        assert body["birthdays"][0]["first_name"] == "Max"

    def test_export(self, client, make_employee):
        make_employee(birth_date=date(1990, 5, 17))
        res = client.get(
            "/api/v1/anniversaries/export.csv",
            params={"kind": "birthdays", "year": 2025, "quarter": 2},
        )
        assert res.status_code == 200
        assert "dashboard-birthdays-2025-q2.csv" in res.headers["content-disposition"]
        assert "Max,Mustermann,max.mustermann@example.com,2025-05-17,birthday" in res.text

    def test_export_bad_kind(self, client):
        res = client.get("/api/v1/anniversaries/export.csv", params={"kind": "promotions"})
        assert res.status_code == 400


class TestLifecycleEndpoints:

    def test_generate(self, client, make_employee, make_template):
        e = make_employee(start_date=date(2025, 6, 1))
        make_template()

        res = client.post("/api/v1/lifecycle/generate", json={"employeeId": str(e.id), "type": "ONBOARDING"})
        assert res.status_code == 200
        assert res.json() == {"generated": 1}

        tasks = client.get("/api/v1/lifecycle/tasks", params={"employeeId": str(e.id)}).json()
        assert tasks[0]["due_date"] == "2025-05-29"
        assert tasks[0]["template"]["title"] == "Prepare laptop"

    @pytest.mark.parametrize("role,expected", [("UNIT_LEAD", 200), ("TEAM_LEAD", 403)])
    def test_generate_roles(self, client, make_employee, make_template, role, expected):
        e = make_employee()
        make_template()
        res = client.post(
            "/api/v1/lifecycle/generate",
            json={"employeeId": str(e.id), "type": "ONBOARDING"},
            headers={"X-User-Role": role},
        )
        assert res.status_code == expected

    def test_generate_errors(self, client, make_employee):
        e = make_employee()
        res = client.post("/api/v1/lifecycle/generate", json={"employeeId": str(uuid.uuid4()), "type": "ONBOARDING"})
        assert res.status_code == 404
        res = client.post("/api/v1/lifecycle/generate", json={"employeeId": str(e.id), "type": "OFFBOARDING"})
        assert res.status_code == 400

    def test_template_crud(self, client):
        res = client.post("/api/v1/lifecycle/templates", json={
            "title": "Collect badge",
            "type": "OFFBOARDING",
            "owner_role": "TEAM_LEAD",
            "relative_due_days": 0,
        })
        assert res.status_code == 201
        template_id = res.json()["id"]

        res = client.patch(f"/api/v1/lifecycle/templates/{template_id}", json={"active": False})
        assert res.json()["active"] is False
        assert len(client.get("/api/v1/lifecycle/templates").json()) == 1

    def test_template_offset_bounds(self, client):
        res = client.post("/api/v1/lifecycle/templates", json={
            "title": "Far away",
            "type": "ONBOARDING",
            "owner_role": "HR",
            "relative_due_days": 400,
        })
        assert res.status_code == 422

    def test_task_patch(self, client, db_session, make_employee, make_template):
        e = make_employee()
        make_template()
        client.post("/api/v1/lifecycle/generate", json={"employeeId": str(e.id), "type": "ONBOARDING"})
        task = db_session.query(TaskAssignment).one()

        res = client.patch(f"/api/v1/lifecycle/tasks/{task.id}", json={"status": "DONE"})
        assert res.status_code == 200
        assert res.json()["completed_at"] is not None

        assert client.patch(f"/api/v1/lifecycle/tasks/{task.id}", json={}).status_code == 400
        assert client.patch(f"/api/v1/lifecycle/tasks/{uuid.uuid4()}", json={"status": "DONE"}).status_code == 404


class TestSettingsEndpoints:

    def test_get_defaults(self, client):
        body = client.get("/api/v1/settings").json()
        assert body["jubilee_years_csv"] == "5,10,15,20,25,30,35,40"

    def test_put(self, client):
        res = client.put("/api/v1/settings", json={"jubilee_years_csv": "10,25"})
        assert res.status_code == 200
        assert res.json()["jubilee_years_csv"] == "10,25"

    def test_put_invalid(self, client):
        assert client.put("/api/v1/settings", json={"jubilee_years_csv": "ten"}).status_code == 400

    def test_requires_admin(self, client):
        assert client.get("/api/v1/settings", headers={"X-User-Role": "HR"}).status_code == 403


class TestDailyRun:

    def test_run_daily(self, client, make_employee, monkeypatch):
        monkeypatch.setattr(notifications, "SMTP_HOST", "")
        client.put("/api/v1/settings", json={"manager_emails": "boss@example.com"})
        make_employee(start_date=date(2015, 3, 10), birth_date=date(1990, 3, 10))

        res = client.post("/api/v1/schedule/run-daily", params={"day": "2025-03-10"})

        assert res.status_code == 200
        assert res.json() == {"birthdays": 1, "managersNotified": 1, "lifecycleNotified": 0, "jubileeHits": 1}
