"""
Birthday and service-anniversary (jubilee) detection.

Pure functions over anything that looks like an employee (needs
start_date / birth_date attributes). No DB access here; callers load the
employees and the milestone years and pass them in.

A jubilee hit is exact: start_date advanced by a configured number of
years must land on the query day, year included. A milestone therefore
fires once, on its literal date.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Iterable, Optional

from hrsync.models.setting import DEFAULT_JUBILEE_YEARS_CSV

EVENT_KINDS = ("birthdays", "jubilees", "hires")


@dataclass(frozen=True)
class JubileeHit:
    employee: Any
    years: int
    anniversary_date: date


@dataclass(frozen=True)
class CalendarEvent:
    employee: Any
    kind: str
    event_date: date


def _as_date(value) -> date:
    return value.date() if isinstance(value, datetime) else value


def parse_milestone_years(csv: Optional[str]) -> list[int]:
    """'10, 5,abc,-1,5' -> [5, 10]. Empty input falls back to the default list."""
    text = (csv or "").strip() or DEFAULT_JUBILEE_YEARS_CSV
    years = set()
    for part in text.split(","):
        part = part.strip()
        if part.isdigit() and int(part) > 0:
            years.add(int(part))
    return sorted(years)


def add_years(d: date, years: int) -> date:
    """Same month/day `years` later; Feb 29 becomes Feb 28 in non-leap years."""
    try:
        return d.replace(year=d.year + years)
    except ValueError:
        return d.replace(year=d.year + years, day=28)


def years_between(start: date, end: date) -> int:
    """Completed years from start to end; the anniversary day itself counts."""
    years = end.year - start.year
    if (end.month, end.day) < (start.month, start.day):
        years -= 1
    return years


def is_same_month_day(a: date, b: date) -> bool:
    return a.month == b.month and a.day == b.day


def is_birthday(birth_date: date, today: Optional[date] = None) -> bool:
    today = today or date.today()
    return is_same_month_day(_as_date(birth_date), today)


def hits_on_day(employees: Iterable[Any], years: list[int], day: date) -> list[JubileeHit]:
    hits = []
    for e in employees:
        start = _as_date(e.start_date)
        for y in years:
            target = add_years(start, y)
            if target == day:
                hits.append(JubileeHit(employee=e, years=y, anniversary_date=target))
    return hits


def upcoming(
    employees: Iterable[Any],
    years: list[int],
    within_days: int,
    today: Optional[date] = None,
) -> list[JubileeHit]:
    """All (employee, milestone) pairs with a target date in [today, today + within_days]."""
    today = today or date.today()
    until = today + timedelta(days=within_days)
    hits = []
    for e in employees:
        start = _as_date(e.start_date)
        for y in years:
            target = add_years(start, y)
            if today <= target <= until:
                hits.append(JubileeHit(employee=e, years=y, anniversary_date=target))
    hits.sort(key=lambda h: (h.anniversary_date, h.years))
    return hits


def birthdays_on_day(employees: Iterable[Any], day: date) -> list[Any]:
    return [e for e in employees if e.birth_date and is_birthday(e.birth_date, day)]


def _in_period(month: int, filter_month: Optional[int], quarter: Optional[int]) -> bool:
    if filter_month is not None and month != filter_month:
        return False
    if quarter is not None and (month - 1) // 3 + 1 != quarter:
        return False
    return True


def _in_year(d: date, year: int) -> date:
    # Feb 29 birthdays/anniversaries are observed on Feb 28 outside leap years
    return add_years(d, year - d.year)


def calendar_events(
    employees: Iterable[Any],
    kind: str,
    year: int,
    month: Optional[int] = None,
    quarter: Optional[int] = None,
) -> list[CalendarEvent]:
    """
    Dashboard listing for one year, optionally narrowed to a month (1-12)
    or quarter (1-4).

    - birthdays: every employee, dated in `year`
    - jubilees: every employee's hire anniversary in `year`, regardless of
      the configured milestone years
    - hires: employees whose start_date falls in `year`
    """
    if kind not in EVENT_KINDS:
        raise ValueError(f"kind must be one of {', '.join(EVENT_KINDS)}")

    events = []
    for e in employees:
        if kind == "birthdays":
            source = _as_date(e.birth_date)
            when = _in_year(source, year)
        elif kind == "jubilees":
            source = _as_date(e.start_date)
            if source.year >= year:
                continue
            when = _in_year(source, year)
        else:
            source = _as_date(e.start_date)
            if source.year != year:
                continue
            when = source
        if not _in_period(source.month, month, quarter):
            continue
        events.append(CalendarEvent(employee=e, kind=kind, event_date=when))

    events.sort(key=lambda ev: (ev.event_date, ev.employee.last_name, ev.employee.first_name))
    return events
