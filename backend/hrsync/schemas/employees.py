from pydantic import BaseModel, ConfigDict, EmailStr
from datetime import date, datetime
from typing import Optional
from uuid import UUID


class EmployeeResponse(BaseModel):
    id: UUID
    first_name: str
    last_name: str
    email: Optional[str] = None
    start_date: date
    birth_date: date
    status: str
    exit_date: Optional[datetime] = None

    lock_all: bool
    lock_first_name: bool
    lock_last_name: bool
    lock_start_date: bool
    lock_birth_date: bool
    lock_email: bool

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class EmployeeUpdate(BaseModel):
    """Explicit HR edit. Ignores locks; locks only guard against the roster import."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None
    start_date: Optional[date] = None
    birth_date: Optional[date] = None
    status: Optional[str] = None
    exit_date: Optional[datetime] = None

    lock_all: Optional[bool] = None
    lock_first_name: Optional[bool] = None
    lock_last_name: Optional[bool] = None
    lock_start_date: Optional[bool] = None
    lock_birth_date: Optional[bool] = None
    lock_email: Optional[bool] = None
