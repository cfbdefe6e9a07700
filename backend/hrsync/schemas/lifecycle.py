"""Lifecycle template / task schemas."""

from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from typing import Optional
from uuid import UUID

from hrsync.models.lifecycle import OwnerRole, TaskStatus, TaskType


# ── Generation ──


class GenerateRequest(BaseModel):
    employee_id: UUID = Field(alias="employeeId")
    type: TaskType
    overwrite: bool = False
    template_id: Optional[UUID] = Field(default=None, alias="templateId")

    model_config = ConfigDict(populate_by_name=True)


class GenerateResponse(BaseModel):
    generated: int


# ── Templates ──


class TaskTemplateCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    type: TaskType
    owner_role: OwnerRole
    relative_due_days: int = Field(ge=-365, le=365)
    active: bool = True


class TaskTemplateUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    type: Optional[TaskType] = None
    owner_role: Optional[OwnerRole] = None
    relative_due_days: Optional[int] = Field(default=None, ge=-365, le=365)
    active: Optional[bool] = None


class TaskTemplateResponse(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    type: str
    owner_role: str
    relative_due_days: int
    active: bool

    model_config = ConfigDict(from_attributes=True)


# ── Assignments ──


class TaskEmployee(BaseModel):
    id: UUID
    first_name: str
    last_name: str
    email: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class TaskTemplateRef(BaseModel):
    id: UUID
    title: str
    owner_role: str
    type: str

    model_config = ConfigDict(from_attributes=True)


class TaskAssignmentResponse(BaseModel):
    id: UUID
    employee_id: UUID
    task_template_id: UUID
    type: str
    due_date: date
    status: str
    owner_role: str
    notes: Optional[str] = None
    completed_at: Optional[datetime] = None
    employee: Optional[TaskEmployee] = None
    template: Optional[TaskTemplateRef] = None

    model_config = ConfigDict(from_attributes=True)


class TaskAssignmentUpdate(BaseModel):
    status: Optional[TaskStatus] = None
    notes: Optional[str] = Field(default=None, max_length=2000)
