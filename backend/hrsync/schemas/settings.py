from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class SettingsResponse(BaseModel):
    jubilee_years_csv: str
    manager_emails: str
    birthday_email_template: str
    jubilee_email_template: str
    send_on_birthday: bool
    send_on_jubilee: bool
    daily_send_hour: int

    model_config = ConfigDict(from_attributes=True)


class SettingsUpdate(BaseModel):
    jubilee_years_csv: Optional[str] = None
    manager_emails: Optional[str] = None
    birthday_email_template: Optional[str] = Field(default=None, min_length=1)
    jubilee_email_template: Optional[str] = Field(default=None, min_length=1)
    send_on_birthday: Optional[bool] = None
    send_on_jubilee: Optional[bool] = None
    daily_send_hour: Optional[int] = None
