"""
HR Sync - Test Configuration

Every test gets a fresh in-memory SQLite database. The API client shares
the test session through a get_db override.
"""

import uuid
from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from hrsync.database import Base, enable_sqlite_savepoints, get_db
from hrsync.models.employee import Employee, EmployeeStatus
from hrsync.models.lifecycle import TaskTemplate
from main import app


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(test_engine)
    Base.metadata.create_all(test_engine)
    yield test_engine
    Base.metadata.drop_all(test_engine)
    test_engine.dispose()


@pytest.fixture
def db_session(engine):
    TestSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = TestSessionLocal()
    yield session
    session.close()


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


# ===========================================
# DATA FIXTURES
# ===========================================

@pytest.fixture
def make_employee(db_session):
    def _make(**overrides) -> Employee:
        data = {
            "id": uuid.uuid4(),
            "first_name": "Max",
            "last_name": "Mustermann",
            "birth_date": date(1990, 12, 31),
            "start_date": date(2020, 1, 1),
            "email": "max.mustermann@example.com",
            "status": EmployeeStatus.ACTIVE.value,
        }
        data.update(overrides)
        employee = Employee(**data)
        db_session.add(employee)
        db_session.commit()
        db_session.refresh(employee)
        return employee

    return _make


@pytest.fixture
def make_template(db_session):
    def _make(**overrides) -> TaskTemplate:
        data = {
            "id": uuid.uuid4(),
            "title": "Prepare laptop",
            "type": "ONBOARDING",
            "owner_role": "HR",
            "relative_due_days": -3,
            "active": True,
        }
        data.update(overrides)
        template = TaskTemplate(**data)
        db_session.add(template)
        db_session.commit()
        db_session.refresh(template)
        return template

    return _make
