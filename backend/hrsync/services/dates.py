"""
Lenient date parsing for roster cells.

Handles what spreadsheets actually contain:
- date / datetime cell values (openpyxl returns these for formatted cells)
- Excel day-serials (int/float or numeric strings)
- dd.mm.yy / dd.mm.yyyy
- dd/mm/yy / dd/mm/yyyy (day first, mm/dd only when day first is impossible)
- ISO-8601 dates and datetimes

parse_date never raises; None means "no usable date".
"""
import logging
import re
from datetime import date, datetime, timedelta
from typing import Any, Optional

logger = logging.getLogger(__name__)

# Excel counts from 1900-01-01 as day 1 and believes 1900-02-29 existed.
# Anchoring at 1899-12-30 makes every serial after Feb 1900 line up.
EXCEL_EPOCH = date(1899, 12, 30)
_SERIAL_MIN = 1
_SERIAL_MAX = 100000

_NUMERIC_RE = re.compile(r"^\d+(\.\d+)?$")
_DOTTED_RE = re.compile(r"^([0-3]?\d)\.([0-1]?\d)\.(\d{2}|\d{4})$")
_SLASH_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2}|\d{4})$")


def expand_two_digit_year(yy: int) -> int:
    """00-49 -> 2000-2049, 50-99 -> 1950-1999."""
    return 2000 + yy if yy < 50 else 1900 + yy


def _year(raw: str) -> int:
    value = int(raw)
    return expand_two_digit_year(value) if len(raw) == 2 else value


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def from_excel_serial(serial: float) -> Optional[date]:
    if not (_SERIAL_MIN < serial < _SERIAL_MAX):
        return None
    return EXCEL_EPOCH + timedelta(days=int(serial))


def parse_date(raw: Any) -> Optional[date]:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if isinstance(raw, (int, float)):
        return from_excel_serial(raw)

    s = str(raw).strip()
    if not s:
        return None

    if _NUMERIC_RE.match(s):
        return from_excel_serial(float(s))

    m = _DOTTED_RE.match(s)
    if m:
        dd, mm, yy = m.groups()
        return _safe_date(_year(yy), int(mm), int(dd))

    m = _SLASH_RE.match(s)
    if m:
        first, second, yy = m.groups()
        # day first; only read as month/day when day/month is impossible (12/25/2020)
        return (
            _safe_date(_year(yy), int(second), int(first))
            or _safe_date(_year(yy), int(first), int(second))
        )

    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00")).date()
    except ValueError:
        pass

    logger.debug("Unparseable date value: %r", raw)
    return None
