from pydantic import BaseModel
from datetime import date
from uuid import UUID


class EmployeeRef(BaseModel):
    id: UUID
    first_name: str
    last_name: str
    email: str | None = None


class JubileeHitResponse(BaseModel):
    employee: EmployeeRef
    years: int
    anniversary_date: date


class DayEventsResponse(BaseModel):
    day: date
    jubilees: list[JubileeHitResponse]
    birthdays: list[EmployeeRef]
