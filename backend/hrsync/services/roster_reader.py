"""
Read an uploaded roster (.xlsx, legacy .xls or .csv) into ImportRow objects.

Header matching ignores case, diacritics, spaces, dashes and underscores,
so "Geburtsdatum", "birth_date" and "Birth Date" all land on birth_date.
Unknown columns are ignored.
"""
import csv
import io
import logging
import os
import re
import unicodedata
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

from hrsync.services.dates import parse_date
from hrsync.services.errors import ValidationError, UploadTooLargeError

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = int(os.getenv("IMPORT_MAX_BYTES", str(8 * 1024 * 1024)))
MAX_DATA_ROWS = int(os.getenv("IMPORT_MAX_ROWS", "5000"))
EMAIL_DOMAIN = os.getenv("EMPLOYEE_EMAIL_DOMAIN", "example.com")

HEADER_ALIASES = {
    "first_name": ("firstname", "vorname"),
    "last_name": ("lastname", "nachname"),
    "email": ("email", "mail"),
    "start_date": ("startdate", "eintrittsdatum", "eintritt"),
    "birth_date": ("birthdate", "geburtstag", "geburtsdatum"),
    "lock_all": ("lockall",),
    "lock_first_name": ("lockfirstname",),
    "lock_last_name": ("locklastname",),
    "lock_start_date": ("lockstartdate",),
    "lock_birth_date": ("lockbirthdate",),
    "lock_email": ("lockemail",),
}

_TRUE_VALUES = {"true", "wahr", "1", "ja", "yes", "x"}


@dataclass(frozen=True)
class FieldLocks:
    lock_all: bool = False
    lock_first_name: bool = False
    lock_last_name: bool = False
    lock_start_date: bool = False
    lock_birth_date: bool = False
    lock_email: bool = False

    def as_columns(self) -> dict[str, bool]:
        return {
            "lock_all": self.lock_all,
            "lock_first_name": self.lock_first_name,
            "lock_last_name": self.lock_last_name,
            "lock_start_date": self.lock_start_date,
            "lock_birth_date": self.lock_birth_date,
            "lock_email": self.lock_email,
        }


@dataclass
class ImportRow:
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    start_date: Optional[date] = None
    birth_date: Optional[date] = None
    locks: FieldLocks = field(default_factory=FieldLocks)
    line_no: Optional[int] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.first_name and self.last_name and self.birth_date)


# ---------- normalization helpers ----------

def _strip_diacritics(value: str) -> str:
    decomposed = unicodedata.normalize("NFD", value)
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def normalize_header(header: Any) -> str:
    text = _strip_diacritics(str(header if header is not None else "").lower())
    return re.sub(r"[^a-z0-9]", "", text)


def normalize_name_part(value: Optional[str]) -> str:
    text = _strip_diacritics((value or "").lower().replace("ß", "ss"))
    text = re.sub(r"[^a-z\s-]", "", text)
    text = re.sub(r"[\s-]+", ".", text.strip())
    return re.sub(r"\.+", ".", text).strip(".")


def build_email(first_name: Optional[str], last_name: Optional[str], domain: Optional[str] = None) -> Optional[str]:
    """Generated address `first.last@domain`, or None if either part normalizes to nothing."""
    domain = domain or EMAIL_DOMAIN
    first = normalize_name_part(first_name)
    last = normalize_name_part(last_name)
    if not first or not last:
        return None
    return f"{first}.{last}@{domain}"


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    return str(value if value is not None else "").strip().lower() in _TRUE_VALUES


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def map_headers(headers: list[Any]) -> dict[str, Any]:
    """Return {field_name: original_header} for every recognized column."""
    by_norm = {}
    for h in headers:
        norm = normalize_header(h)
        if norm and norm not in by_norm:
            by_norm[norm] = h

    mapping = {}
    for field_name, aliases in HEADER_ALIASES.items():
        for alias in aliases:
            if alias in by_norm:
                mapping[field_name] = by_norm[alias]
                break
    return mapping


def parse_row(raw: dict, col_map: dict[str, Any], line_no: Optional[int] = None) -> ImportRow:
    def cell(name):
        key = col_map.get(name)
        return raw.get(key) if key is not None else None

    locks = FieldLocks(**{name: parse_bool(cell(name)) for name in FieldLocks.__dataclass_fields__})
    return ImportRow(
        first_name=_clean_text(cell("first_name")),
        last_name=_clean_text(cell("last_name")),
        email=_clean_text(cell("email")),
        start_date=parse_date(cell("start_date")),
        birth_date=parse_date(cell("birth_date")),
        locks=locks,
        line_no=line_no,
    )


# ---------- file readers ----------

def _read_csv_bytes(content: bytes) -> tuple[list[str], list[dict]]:
    text = content.decode("utf-8-sig", errors="replace")
    # Excel in German locales saves CSV with ';'
    header_line = text.split("\n", 1)[0]
    delimiter = max((",", ";", "\t"), key=header_line.count)
    reader = csv.DictReader(io.StringIO(text), delimiter=delimiter)
    headers = list(reader.fieldnames or [])
    rows = [r for r in reader if any((v or "").strip() for v in r.values() if isinstance(v, str))]
    return headers, rows


def _read_xlsx_bytes(content: bytes) -> tuple[list[str], list[dict]]:
    import openpyxl

    wb = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    try:
        ws = wb.worksheets[0] if wb.worksheets else None
        if ws is None:
            raise ValidationError("No sheet found")

        all_rows = ws.iter_rows(values_only=True)
        headers = None
        rows = []
        for row in all_rows:
            if all(c is None or str(c).strip() == "" for c in row):
                continue
            if headers is None:
                headers = [str(h).strip() if h is not None else "" for h in row]
                continue
            rows.append({headers[i]: v for i, v in enumerate(row) if i < len(headers)})
            # one row of slack so the cap check below can see the overflow
            if len(rows) > MAX_DATA_ROWS:
                break
    finally:
        wb.close()

    if headers is None:
        raise ValidationError("Sheet has no data")
    return headers, rows


def _read_xls_bytes(content: bytes) -> tuple[list[str], list[dict]]:
    import xlrd

    book = xlrd.open_workbook(file_contents=content)
    sheet = book.sheet_by_index(0)
    if sheet.nrows < 1:
        raise ValidationError("Sheet has no data")

    headers = [str(sheet.cell_value(0, c)).strip() for c in range(sheet.ncols)]
    rows = []
    for r in range(1, min(sheet.nrows, MAX_DATA_ROWS + 2)):
        values = [sheet.cell_value(r, c) for c in range(sheet.ncols)]
        if all(str(v).strip() == "" for v in values):
            continue
        # xlrd returns date cells as Excel serial floats, which parse_date understands
        rows.append({headers[c]: values[c] for c in range(sheet.ncols)})
    return headers, rows


def read_roster(content: bytes, filename: str) -> list[ImportRow]:
    """
    Parse an uploaded roster file.

    Raises UploadTooLargeError over the byte cap and ValidationError for
    unreadable files, missing identity columns or more than MAX_DATA_ROWS
    data rows.
    """
    if len(content) > MAX_UPLOAD_BYTES:
        raise UploadTooLargeError(
            f"File is too large (>{MAX_UPLOAD_BYTES // (1024 * 1024)} MB). Please split the file."
        )

    name = (filename or "").lower()
    try:
        if name.endswith(".csv"):
            headers, raw_rows = _read_csv_bytes(content)
        elif name.endswith(".xls"):
            headers, raw_rows = _read_xls_bytes(content)
        else:
            headers, raw_rows = _read_xlsx_bytes(content)
    except ValidationError:
        raise
    except Exception as e:
        logger.warning("Could not parse roster %s: %s", filename, e)
        raise ValidationError(f"Could not parse file: {e}")

    if len(raw_rows) > MAX_DATA_ROWS:
        raise ValidationError(
            f"Too many rows (>{MAX_DATA_ROWS}). At most {MAX_DATA_ROWS} rows per upload, please split the file."
        )

    col_map = map_headers(headers)
    missing = [f for f in ("first_name", "last_name", "birth_date") if f not in col_map]
    if missing:
        raise ValidationError(
            f"Missing required columns: {', '.join(missing)}. Found headers: {', '.join(map(str, headers[:10]))}"
        )

    logger.info("Roster %s: %d data rows, columns=%s", filename, len(raw_rows), sorted(col_map))
    # header is line 1
    return [parse_row(r, col_map, line_no=i + 2) for i, r in enumerate(raw_rows)]
