"""
Onboarding / offboarding checklists.

generate_tasks materializes every active template of a lifecycle type
for one employee. The due date is the anchor (start date for ONBOARDING,
exit date for OFFBOARDING) shifted by the template's signed
relative_due_days.

Generation is idempotent: without overwrite an existing
(employee, template) assignment is left alone and still counts as
generated; with overwrite it is reset to OPEN with a recomputed due date.
Assignments are never deleted here.
"""
import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from hrsync.models.employee import Employee
from hrsync.models.lifecycle import TaskAssignment, TaskStatus, TaskTemplate, TaskType
from hrsync.services.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

_TYPE_LABELS = {
    TaskType.ONBOARDING: "onboarding",
    TaskType.OFFBOARDING: "offboarding",
}


def parse_task_type(value) -> TaskType:
    try:
        return TaskType(value)
    except ValueError:
        raise ValidationError(f"Unknown lifecycle type: {value}")


def parse_task_status(value) -> TaskStatus:
    try:
        return TaskStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown task status: {value}")


def anchor_date(employee: Employee, task_type: TaskType) -> Optional[date]:
    value = employee.start_date if task_type == TaskType.ONBOARDING else employee.exit_date
    if isinstance(value, datetime):
        return value.date()
    return value


def due_date_for(anchor: date, template: TaskTemplate) -> date:
    return anchor + timedelta(days=template.relative_due_days or 0)


# ---------- template selection ----------

def _select_templates(db: Session, task_type: TaskType, template_id: Optional[uuid.UUID]) -> list[TaskTemplate]:
    q = db.query(TaskTemplate).filter(
        TaskTemplate.type == task_type.value,
        TaskTemplate.active == True,  # noqa: E712
    )
    if template_id:
        q = q.filter(TaskTemplate.id == template_id)
    templates = q.order_by(TaskTemplate.title).all()

    if templates:
        return templates

    if template_id:
        template = db.get(TaskTemplate, template_id)
        if template is None:
            raise NotFoundError("Template not found")
        reasons = []
        if template.type != task_type.value:
            reasons.append(f"type is {template.type}, not {task_type.value}")
        if not template.active:
            reasons.append("template is not active")
        logger.info("Template %s exists but was filtered out: %s", template_id, reasons)
        raise ValidationError(f'Template "{template.title}" cannot be used: {", ".join(reasons)}')

    raise ValidationError(f"No active {_TYPE_LABELS[task_type]} templates found")


# ---------- per-template writes ----------

def _existing_assignment(db: Session, employee_id: uuid.UUID, template_id: uuid.UUID) -> Optional[TaskAssignment]:
    return (
        db.query(TaskAssignment)
        .filter(
            TaskAssignment.employee_id == employee_id,
            TaskAssignment.task_template_id == template_id,
        )
        .first()
    )


def _new_assignment(employee_id, template: TaskTemplate, task_type: TaskType, due: date) -> TaskAssignment:
    return TaskAssignment(
        id=uuid.uuid4(),
        employee_id=employee_id,
        task_template_id=template.id,
        type=task_type.value,
        due_date=due,
        owner_role=template.owner_role,
        status=TaskStatus.OPEN.value,
    )


def _upsert(db: Session, employee_id, template: TaskTemplate, task_type: TaskType, due: date) -> None:
    existing = _existing_assignment(db, employee_id, template.id)
    if existing is None:
        db.add(_new_assignment(employee_id, template, task_type, due))
    else:
        existing.type = task_type.value
        existing.due_date = due
        existing.owner_role = template.owner_role
        existing.status = TaskStatus.OPEN.value
        existing.completed_at = None
    db.flush()


def _insert_if_absent(db: Session, employee_id, template: TaskTemplate, task_type: TaskType, due: date) -> bool:
    """Return True if a new row was inserted."""
    if _existing_assignment(db, employee_id, template.id) is not None:
        return False
    db.add(_new_assignment(employee_id, template, task_type, due))
    db.flush()
    return True


def generate_tasks(
    db: Session,
    employee_id: uuid.UUID,
    task_type,
    overwrite: bool = False,
    template_id: Optional[uuid.UUID] = None,
) -> int:
    """
    Materialize lifecycle tasks for one employee.

    Returns the number of templates that have an assignment for this
    employee after the call. Raises NotFoundError for an unknown employee
    or template and ValidationError for a missing anchor date or when no
    usable template matches.
    """
    task_type = parse_task_type(task_type)

    employee = db.get(Employee, employee_id)
    if employee is None:
        raise NotFoundError("Employee not found")

    anchor = anchor_date(employee, task_type)
    if anchor is None:
        missing = "start date" if task_type == TaskType.ONBOARDING else "exit date"
        raise ValidationError(f"Missing anchor date: employee has no {missing}")

    templates = _select_templates(db, task_type, template_id)
    logger.info(
        "Generating %s tasks for employee %s from %d templates (overwrite=%s)",
        task_type.value, employee_id, len(templates), overwrite,
    )

    generated = 0
    for template in templates:
        due = due_date_for(anchor, template)
        try:
            with db.begin_nested():
                if overwrite:
                    _upsert(db, employee_id, template, task_type, due)
                else:
                    _insert_if_absent(db, employee_id, template, task_type, due)
            generated += 1
        except IntegrityError:
            # a concurrent request created the same (employee, template) pair first
            if overwrite:
                logger.exception("Could not upsert task for template %s", template.id)
            else:
                generated += 1
        except SQLAlchemyError:
            logger.exception("Failed to generate task for template %s", template.id)

    db.commit()
    return generated


# ---------- task queries / updates ----------

def list_tasks(
    db: Session,
    task_type: Optional[str] = None,
    status: Optional[str] = None,
    employee_id: Optional[uuid.UUID] = None,
) -> list[TaskAssignment]:
    q = db.query(TaskAssignment)
    if task_type:
        q = q.filter(TaskAssignment.type == parse_task_type(task_type).value)
    if status:
        q = q.filter(TaskAssignment.status == parse_task_status(status).value)
    if employee_id:
        q = q.filter(TaskAssignment.employee_id == employee_id)
    return q.order_by(TaskAssignment.due_date.asc()).all()


def due_tasks(db: Session, today: Optional[date] = None) -> list[TaskAssignment]:
    """OPEN tasks due today or earlier."""
    today = today or date.today()
    return (
        db.query(TaskAssignment)
        .filter(TaskAssignment.status == TaskStatus.OPEN.value, TaskAssignment.due_date <= today)
        .order_by(TaskAssignment.due_date.asc())
        .all()
    )


_UNSET = object()


def update_task(db: Session, task_id: uuid.UUID, status: Optional[str] = None, notes=_UNSET) -> TaskAssignment:
    """Explicit status/notes edit. DONE stamps completed_at, anything else clears it."""
    task = db.get(TaskAssignment, task_id)
    if task is None:
        raise NotFoundError("Task not found")

    if status is not None:
        task.status = parse_task_status(status).value
        task.completed_at = datetime.now(timezone.utc) if task.status == TaskStatus.DONE.value else None
    if notes is not _UNSET:
        task.notes = notes

    db.commit()
    db.refresh(task)
    return task


# ---------- templates ----------

def list_templates(db: Session) -> list[TaskTemplate]:
    return db.query(TaskTemplate).order_by(TaskTemplate.type, TaskTemplate.title).all()


def create_template(db: Session, data: dict) -> TaskTemplate:
    template = TaskTemplate(
        title=data["title"],
        description=data.get("description"),
        type=parse_task_type(data["type"]).value,
        owner_role=data["owner_role"],
        relative_due_days=data.get("relative_due_days", 0),
        active=data.get("active", True),
    )
    db.add(template)
    db.commit()
    db.refresh(template)
    return template


def update_template(db: Session, template_id: uuid.UUID, data: dict) -> TaskTemplate:
    template = db.get(TaskTemplate, template_id)
    if template is None:
        raise NotFoundError("Template not found")
    if data.get("type") is not None:
        data["type"] = parse_task_type(data["type"]).value
    for field, value in data.items():
        if hasattr(template, field):
            setattr(template, field, value)
    db.commit()
    db.refresh(template)
    return template
