"""Onboarding / offboarding templates, generation and task tracking."""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from hrsync.database import get_db
from hrsync.dependencies import get_current_role, require_admin, require_task_generator
from hrsync.models.lifecycle import TaskStatus, TaskType
from hrsync.schemas.lifecycle import (
    GenerateRequest,
    GenerateResponse,
    TaskAssignmentResponse,
    TaskAssignmentUpdate,
    TaskTemplateCreate,
    TaskTemplateResponse,
    TaskTemplateUpdate,
)
from hrsync.services import lifecycle as lifecycle_service
from hrsync.services.errors import ServiceError, to_http

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/lifecycle", tags=["Lifecycle"])


# ── Generation ──


@router.post("/generate", response_model=GenerateResponse)
def generate(
    body: GenerateRequest,
    db: Session = Depends(get_db),
    _role: str = Depends(require_task_generator),
):
    try:
        generated = lifecycle_service.generate_tasks(
            db,
            body.employee_id,
            body.type,
            overwrite=body.overwrite,
            template_id=body.template_id,
        )
    except ServiceError as e:
        raise to_http(e)
    return {"generated": generated}


# ── Templates ──


@router.get("/templates", response_model=list[TaskTemplateResponse])
def list_templates(db: Session = Depends(get_db), _role: str = Depends(require_admin)):
    return lifecycle_service.list_templates(db)


@router.post("/templates", response_model=TaskTemplateResponse, status_code=201)
def create_template(
    body: TaskTemplateCreate,
    db: Session = Depends(get_db),
    _role: str = Depends(require_admin),
):
    return lifecycle_service.create_template(db, body.model_dump(mode="json"))


@router.patch("/templates/{template_id}", response_model=TaskTemplateResponse)
def update_template(
    template_id: uuid.UUID,
    body: TaskTemplateUpdate,
    db: Session = Depends(get_db),
    _role: str = Depends(require_admin),
):
    try:
        return lifecycle_service.update_template(db, template_id, body.model_dump(mode="json", exclude_unset=True))
    except ServiceError as e:
        raise to_http(e)


# ── Tasks ──


@router.get("/tasks", response_model=list[TaskAssignmentResponse])
def list_tasks(
    type: Optional[TaskType] = Query(default=None),
    status: Optional[TaskStatus] = Query(default=None),
    employee_id: Optional[uuid.UUID] = Query(default=None, alias="employeeId"),
    db: Session = Depends(get_db),
    _role: str = Depends(get_current_role),
):
    return lifecycle_service.list_tasks(
        db,
        task_type=type.value if type else None,
        status=status.value if status else None,
        employee_id=employee_id,
    )


@router.patch("/tasks/{task_id}", response_model=TaskAssignmentResponse)
def update_task(
    task_id: uuid.UUID,
    body: TaskAssignmentUpdate,
    db: Session = Depends(get_db),
    _role: str = Depends(get_current_role),
):
    data = body.model_dump(exclude_unset=True)
    if not data:
        raise HTTPException(status_code=400, detail="Nothing to update")

    kwargs = {}
    if data.get("status") is not None:
        kwargs["status"] = data["status"].value
    if "notes" in data:
        kwargs["notes"] = data["notes"]
    try:
        return lifecycle_service.update_task(db, task_id, **kwargs)
    except ServiceError as e:
        raise to_http(e)
