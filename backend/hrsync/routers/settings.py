"""Notification settings (milestone years, manager recipients, mail templates)."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from hrsync.database import get_db
from hrsync.dependencies import require_admin
from hrsync.schemas.settings import SettingsResponse, SettingsUpdate
from hrsync.services.errors import ServiceError, to_http
from hrsync.services.settings import get_or_create_setting, update_settings

router = APIRouter(prefix="/api/v1/settings", tags=["Settings"])


@router.get("", response_model=SettingsResponse)
def get_settings(db: Session = Depends(get_db), _role: str = Depends(require_admin)):
    return get_or_create_setting(db)


@router.put("", response_model=SettingsResponse)
def put_settings(
    body: SettingsUpdate,
    db: Session = Depends(get_db),
    _role: str = Depends(require_admin),
):
    try:
        return update_settings(db, body.model_dump(exclude_unset=True))
    except ServiceError as e:
        raise to_http(e)
