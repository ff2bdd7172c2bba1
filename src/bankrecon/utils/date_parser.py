"""Date parsing utilities for bank statements."""

import re
import unicodedata
from datetime import date, datetime, timedelta
from typing import Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

EXCEL_EPOCH = date(1899, 12, 30)

# Portuguese and English month abbreviations
MONTH_ABBREVIATIONS = {
    "jan": 1,
    "fev": 2,
    "feb": 2,
    "mar": 3,
    "abr": 4,
    "apr": 4,
    "mai": 5,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "ago": 8,
    "aug": 8,
    "set": 9,
    "sep": 9,
    "out": 10,
    "oct": 10,
    "nov": 11,
    "dez": 12,
    "dec": 12,
}

_FULL_DATE_RE = re.compile(r"^(\d{1,2})[/.-](\d{1,2})[/.-](\d{2}|\d{4})$")
_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_COMPACT_DATE_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})")
_DAY_MONTH_RE = re.compile(r"^(\d{1,2})[/.-](\d{1,2})$")
_DAY_MONTH_NAME_RE = re.compile(r"^(\d{1,2})\s*(?:[/.-]|\s|de\s)\s*([a-z]{3})[a-z]*\.?$")


def strip_accents(text: str) -> str:
    """Remove diacritics, e.g. 'lançamento' -> 'lancamento'."""
    normalized = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in normalized if not unicodedata.combining(ch))


def parse_date(date_str: str) -> date:
    """Parse a date string into a date object.

    Supports the formats found in bank exports and on the command line:
    - "10/03/2024", "10-03-2024", "10.03.24" (day first)
    - "2024-03-10", "20240310"
    - Relative dates: "today", "yesterday", "tomorrow"
    - Anything else dateutil understands, read day first

    Args:
        date_str: Date string

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    if date_str is None:
        raise ValueError("Empty date string")
    date_str = str(date_str).strip().lower()
    if not date_str:
        raise ValueError("Empty date string")
    today = date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
    }
    if date_str in relative_dates:
        return relative_dates[date_str]

    match = _FULL_DATE_RE.match(date_str)
    if match:
        day, month, year = (int(part) for part in match.groups())
        if year < 100:
            year += 2000
        return _build_date(year, month, day, date_str)

    match = _ISO_DATE_RE.match(date_str) or _COMPACT_DATE_RE.match(date_str)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return _build_date(year, month, day, date_str)

    try:
        return date_parser.parse(date_str, dayfirst=True).date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def parse_ofx_date(value: str) -> date:
    """Parse an OFX timestamp (``YYYYMMDD[HHMMSS[.XXX]][[tz]]``) into a date."""
    digits = value.strip()[:8]
    if len(digits) != 8 or not digits.isdigit():
        raise ValueError(f"Invalid OFX date '{value}'")
    return _build_date(int(digits[:4]), int(digits[4:6]), int(digits[6:8]), value)


def excel_serial_to_date(serial: float) -> date:
    """Convert an Excel serial day number (1900 date system) into a date."""
    return EXCEL_EPOCH + timedelta(days=int(serial))


def parse_day_month(value: str) -> Optional[tuple[int, int]]:
    """Parse a year-less date such as "15/03", "15/mar" or "15 MAR".

    Returns:
        Tuple of (day, month), or None if the value is not a day/month date
    """
    text = strip_accents(str(value)).strip().lower()
    match = _DAY_MONTH_RE.match(text)
    if match:
        day, month = int(match.group(1)), int(match.group(2))
    else:
        match = _DAY_MONTH_NAME_RE.match(text)
        if not match or match.group(2) not in MONTH_ABBREVIATIONS:
            return None
        day, month = int(match.group(1)), MONTH_ABBREVIATIONS[match.group(2)]
    if not 1 <= month <= 12 or not 1 <= day <= 31:
        return None
    return day, month


def infer_year(month: int, due_date: date) -> int:
    """Infer the year of a year-less card statement line.

    A statement due in January lists December purchases: a transaction month
    later than the due-date month belongs to the previous year.
    """
    if month > due_date.month:
        return (due_date - relativedelta(years=1)).year
    return due_date.year


def to_date(value: date | datetime) -> date:
    """Normalize a date or datetime to a plain date."""
    if isinstance(value, datetime):
        return value.date()
    return value


def _build_date(year: int, month: int, day: int, original: str) -> date:
    try:
        return date(year, month, day)
    except ValueError as e:
        raise ValueError(f"Could not parse date '{original}': {e}")
