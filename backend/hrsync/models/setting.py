from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime
from sqlalchemy.sql import func

from hrsync.database import Base

SETTINGS_ROW_ID = 1

DEFAULT_JUBILEE_YEARS_CSV = "5,10,15,20,25,30,35,40"
DEFAULT_BIRTHDAY_TEMPLATE = "Happy Birthday, {{firstName}}!"
DEFAULT_JUBILEE_TEMPLATE = "Congrats on {{years}} years, {{firstName}}!"


class Setting(Base):
    """
    Table: settings

    Single row (id=1) holding the notification configuration editable by
    HR admins at runtime. Read it through services.settings.load_settings
    and pass the resulting value object around explicitly.
    """

    __tablename__ = "settings"

    id = Column(Integer, primary_key=True, default=SETTINGS_ROW_ID)

    jubilee_years_csv = Column(String(255), nullable=False, default=DEFAULT_JUBILEE_YEARS_CSV)
    manager_emails = Column(Text, nullable=False, default="")

    birthday_email_template = Column(Text, nullable=False, default=DEFAULT_BIRTHDAY_TEMPLATE)
    jubilee_email_template = Column(Text, nullable=False, default=DEFAULT_JUBILEE_TEMPLATE)

    send_on_birthday = Column(Boolean, nullable=False, default=True)
    send_on_jubilee = Column(Boolean, nullable=False, default=True)
    daily_send_hour = Column(Integer, nullable=False, default=8)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
