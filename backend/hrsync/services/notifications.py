"""
Daily notification run: birthday mails, jubilee digest for managers,
overdue lifecycle task digest.

build_daily_digest only decides what should go out and renders it; the
actual delivery goes through send_mail, which quietly skips when SMTP is
not configured.
"""
import html
import logging
import os
import re
import smtplib
import ssl
from dataclasses import dataclass, field
from datetime import date
from email.mime.text import MIMEText
from typing import Any, Callable, Iterable, Optional

from hrsync.services.anniversaries import birthdays_on_day, hits_on_day
from hrsync.services.settings import NotificationSettings

logger = logging.getLogger(__name__)

SMTP_HOST = os.getenv("SMTP_HOST", "")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USER = os.getenv("SMTP_USER", "")
SMTP_PASS = os.getenv("SMTP_PASS", "")
SMTP_FROM = os.getenv("SMTP_FROM", "") or SMTP_USER

BIRTHDAY_SUBJECT = "Happy Birthday!"
JUBILEE_SUBJECT = "Service anniversaries today"
LIFECYCLE_SUBJECT = "Lifecycle tasks due"

_PLACEHOLDER_RE = re.compile(r"\{\{\s*(\w+)\s*\}\}")


@dataclass
class OutgoingMail:
    to: list[str]
    subject: str
    html: str


@dataclass
class DailyDigest:
    birthday_mails: list[OutgoingMail] = field(default_factory=list)
    jubilee_mail: Optional[OutgoingMail] = None
    lifecycle_mail: Optional[OutgoingMail] = None
    jubilee_hits: int = 0

    @property
    def mails(self) -> list[OutgoingMail]:
        out = list(self.birthday_mails)
        if self.jubilee_mail:
            out.append(self.jubilee_mail)
        if self.lifecycle_mail:
            out.append(self.lifecycle_mail)
        return out


def render_template(template: str, variables: dict[str, Any]) -> str:
    """Replace {{name}} placeholders; unknown names render as empty strings."""
    return _PLACEHOLDER_RE.sub(lambda m: str(variables.get(m.group(1), "")), template)


def build_daily_digest(
    employees: Iterable[Any],
    due_tasks: Iterable[Any],
    settings: NotificationSettings,
    today: date,
) -> DailyDigest:
    """
    Decide which mails the daily run should send.

    `employees` should be the ACTIVE employees; `due_tasks` the OPEN
    lifecycle tasks due on or before today.
    """
    employees = list(employees)
    digest = DailyDigest()
    managers = list(settings.manager_emails)

    if settings.send_on_birthday:
        for e in birthdays_on_day(employees, today):
            if not e.email:
                continue
            body = render_template(settings.birthday_email_template, {
                "firstName": html.escape(e.first_name),
                "lastName": html.escape(e.last_name),
            })
            digest.birthday_mails.append(OutgoingMail(to=[e.email], subject=BIRTHDAY_SUBJECT, html=body))

    hits = hits_on_day(employees, list(settings.milestone_years), today)
    digest.jubilee_hits = len(hits)
    if settings.send_on_jubilee and managers and hits:
        lines = [
            render_template(settings.jubilee_email_template, {
                "years": h.years,
                "firstName": h.employee.first_name,
                "lastName": h.employee.last_name,
            })
            for h in hits
        ]
        body = "<div>" + "<br>".join(html.escape(line) for line in lines) + "</div>"
        digest.jubilee_mail = OutgoingMail(to=managers, subject=JUBILEE_SUBJECT, html=body)

    due_tasks = list(due_tasks)
    if managers and due_tasks:
        rows = [
            "{due}: [{type}] {title} - {last}, {first}".format(
                due=t.due_date.isoformat(),
                type=t.type,
                title=html.escape(t.template.title),
                last=html.escape(t.employee.last_name),
                first=html.escape(t.employee.first_name),
            )
            for t in due_tasks
        ]
        body = (
            "<div><strong>Lifecycle tasks due</strong></div>"
            f'<div style="margin-top:8px">{"<br>".join(rows)}</div>'
        )
        digest.lifecycle_mail = OutgoingMail(to=managers, subject=LIFECYCLE_SUBJECT, html=body)

    return digest


def smtp_configured() -> bool:
    return bool(SMTP_HOST and SMTP_USER and SMTP_PASS and SMTP_FROM)


def send_mail(mail: OutgoingMail) -> bool:
    """Send one mail over SMTP. Returns False (and logs) when SMTP is not configured."""
    if not smtp_configured():
        logger.warning("SMTP not fully configured; skipping mail %r to %s", mail.subject, mail.to)
        return False

    msg = MIMEText(mail.html, "html", "utf-8")
    msg["Subject"] = mail.subject
    msg["From"] = SMTP_FROM
    msg["To"] = ", ".join(mail.to)

    if SMTP_PORT == 465:
        with smtplib.SMTP_SSL(SMTP_HOST, SMTP_PORT, context=ssl.create_default_context()) as server:
            server.login(SMTP_USER, SMTP_PASS)
            server.sendmail(SMTP_FROM, mail.to, msg.as_string())
    else:
        with smtplib.SMTP(SMTP_HOST, SMTP_PORT) as server:
            server.starttls(context=ssl.create_default_context())
            server.login(SMTP_USER, SMTP_PASS)
            server.sendmail(SMTP_FROM, mail.to, msg.as_string())
    return True


def dispatch(digest: DailyDigest, sender: Callable[[OutgoingMail], bool] = send_mail) -> dict:
    """Send everything in the digest; a failing mail is logged and does not stop the rest."""
    counts = {"birthdays": 0, "managersNotified": 0, "lifecycleNotified": 0}
    for mail in digest.mails:
        try:
            sender(mail)
        except (smtplib.SMTPException, OSError):
            logger.exception("Failed to send %r to %s", mail.subject, mail.to)
            continue
        if mail is digest.jubilee_mail:
            counts["managersNotified"] = len(mail.to)
        elif mail is digest.lifecycle_mail:
            counts["lifecycleNotified"] = len(mail.to)
        else:
            counts["birthdays"] += 1
    counts["jubileeHits"] = digest.jubilee_hits
    return counts
