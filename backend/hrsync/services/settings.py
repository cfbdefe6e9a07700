"""
Runtime notification settings (single `settings` row).

load_settings returns an immutable NotificationSettings; pass that value
to the anniversary and notification code instead of reading the table
from inside them.
"""
import logging
import re
from dataclasses import dataclass

from sqlalchemy.orm import Session

from hrsync.models.setting import Setting, SETTINGS_ROW_ID
from hrsync.services.anniversaries import parse_milestone_years
from hrsync.services.errors import ValidationError

logger = logging.getLogger(__name__)

_YEARS_CSV_RE = re.compile(r"^\d+(,\d+)*$")


@dataclass(frozen=True)
class NotificationSettings:
    milestone_years: tuple[int, ...]
    manager_emails: tuple[str, ...]
    birthday_email_template: str
    jubilee_email_template: str
    send_on_birthday: bool
    send_on_jubilee: bool
    daily_send_hour: int


def parse_list(csv: str) -> list[str]:
    return [s.strip() for s in (csv or "").split(",") if s.strip()]


def get_or_create_setting(db: Session) -> Setting:
    setting = db.get(Setting, SETTINGS_ROW_ID)
    if setting is None:
        setting = Setting(id=SETTINGS_ROW_ID)
        db.add(setting)
        db.commit()
        db.refresh(setting)
        logger.info("Created default settings row")
    return setting


def to_value(setting: Setting) -> NotificationSettings:
    return NotificationSettings(
        milestone_years=tuple(parse_milestone_years(setting.jubilee_years_csv)),
        manager_emails=tuple(parse_list(setting.manager_emails)),
        birthday_email_template=setting.birthday_email_template,
        jubilee_email_template=setting.jubilee_email_template,
        send_on_birthday=bool(setting.send_on_birthday),
        send_on_jubilee=bool(setting.send_on_jubilee),
        daily_send_hour=setting.daily_send_hour,
    )


def load_settings(db: Session) -> NotificationSettings:
    return to_value(get_or_create_setting(db))


def update_settings(db: Session, data: dict) -> Setting:
    """Apply a partial update. jubilee_years_csv must be comma-separated positive integers."""
    setting = get_or_create_setting(db)

    if data.get("jubilee_years_csv") is not None:
        years_csv = re.sub(r"\s+", "", data["jubilee_years_csv"])
        if not _YEARS_CSV_RE.match(years_csv) or not parse_milestone_years(years_csv):
            raise ValidationError("jubilee_years_csv must be comma-separated positive integers")
        data["jubilee_years_csv"] = years_csv

    if data.get("daily_send_hour") is not None and not 0 <= data["daily_send_hour"] <= 23:
        raise ValidationError("daily_send_hour must be between 0 and 23")

    for field, value in data.items():
        if value is not None and hasattr(setting, field):
            setattr(setting, field, value.strip() if isinstance(value, str) else value)

    db.commit()
    db.refresh(setting)
    return setting
