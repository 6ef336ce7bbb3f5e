"""Explicit value parsers shared by every ingestion strategy.

Each helper returns ``None`` when the raw value cannot be interpreted so the
caller decides, in one place, whether the row should be dropped.
"""

from __future__ import annotations

import calendar
import datetime as dt
import math
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import numpy as np
import pandas as pd

MONTH_ABBREVIATIONS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
_MONTH_INDEX = {name.upper(): idx for idx, name in enumerate(MONTH_ABBREVIATIONS, start=1)}

# "Jan-25", "Sept-25", "January 2025", "Jan 25"
MONTH_YEAR_PATTERN = re.compile(r"^([A-Za-z]{3,9})[\s\-_/']*(\d{2}|\d{4})$")
# "25-Jan", "2025-Jan"
YEAR_MONTH_PATTERN = re.compile(r"^(\d{2}|\d{4})[\s\-_/]*([A-Za-z]{3,9})$")
# "2025-01", "2025/1"
ISO_MONTH_PATTERN = re.compile(r"^(\d{4})[\-/](\d{1,2})$")
# xlsx date header cells rendered as text, "2025-01-01 00:00:00"
DATE_HEADER_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}(?:[ T]00:00:00)?$")

_NUMERIC_NOISE = re.compile(r"[\s,$€£]")
_EMPTY_TEXT = {"", "nan", "none", "null", "<na>", "nat", "-"}

# Days between the Excel epoch (1899-12-30) and 1970-01-01.
_EXCEL_EPOCH_OFFSET = 25569


@dataclass(frozen=True)
class Period:
    """A calendar month as carried by canonical records (``month`` is ``Jan``..``Dec``)."""

    year: str
    month: str

    @property
    def month_number(self) -> int:
        return _MONTH_INDEX[self.month.upper()]

    @property
    def key(self) -> str:
        """Sortable ``YYYY-MM`` label used for projection periods and transit buckets."""
        return f"{self.year}-{self.month_number:02d}"

    @classmethod
    def from_timestamp(cls, value: pd.Timestamp | dt.date) -> "Period":
        return cls(year=f"{value.year:04d}", month=MONTH_ABBREVIATIONS[value.month - 1])

    @classmethod
    def from_key(cls, key: str) -> "Period":
        year, month = key.split("-", 1)
        return cls(year=year, month=MONTH_ABBREVIATIONS[int(month) - 1])

    def first_day(self) -> pd.Timestamp:
        return pd.Timestamp(year=int(self.year), month=self.month_number, day=1)


def is_missing(value: Any) -> bool:
    """Return ``True`` for ``None``/NaN/NaT and placeholder strings."""

    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str):
        return value.strip().casefold() in _EMPTY_TEXT
    try:
        result = pd.isna(value)
    except (TypeError, ValueError):
        return False
    return bool(result) if isinstance(result, (bool, np.bool_)) else False


def clean_text(value: Any) -> str:
    """Trim a cell to text; missing values become ``""``."""

    if is_missing(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def full_year(two_digit: str | int) -> str:
    """Expand a two digit year with the 50/50 pivot (``>=50`` -> 19xx, else 20xx)."""

    text = str(two_digit).strip()
    if len(text) == 4 and text.isdigit():
        return text
    number = int(text[-2:])
    return f"19{number:02d}" if number >= 50 else f"20{number:02d}"


def parse_quantity(raw: Any) -> Optional[float]:
    """Parse a quantity cell into a non-negative float.

    Currency symbols, thousands separators and accounting parentheses are
    stripped. Negative values clamp to ``0.0``. ``None`` means the value is
    missing or not numeric.
    """

    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        if isinstance(raw, float) and (math.isnan(raw) or math.isinf(raw)):
            return None
        return max(0.0, float(raw))
    if is_missing(raw):
        return None

    text = _NUMERIC_NOISE.sub("", str(raw))
    if text.startswith("(") and text.endswith(")"):
        text = "-" + text[1:-1]
    try:
        number = float(text)
    except ValueError:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return max(0.0, number)


def month_abbreviation(raw: Any) -> Optional[str]:
    """Map ``Jan``/``January``/``Sept``/``1``/``01`` style month values to ``Jan``..``Dec``."""

    text = clean_text(raw)
    if not text:
        return None
    if text.isdigit():
        number = int(text)
        return MONTH_ABBREVIATIONS[number - 1] if 1 <= number <= 12 else None
    prefix = text[:3].upper()
    if prefix in _MONTH_INDEX:
        return MONTH_ABBREVIATIONS[_MONTH_INDEX[prefix] - 1]
    return None


def period_from_parts(month: Any, year: Any) -> Optional[Period]:
    """Build a :class:`Period` from separate month/year cells."""

    abbrev = month_abbreviation(month)
    year_text = clean_text(year)
    if not abbrev or not year_text.isdigit() or len(year_text) not in (2, 4):
        return None
    return Period(year=full_year(year_text), month=abbrev)


def parse_period(raw: Any) -> Optional[Period]:
    """Parse a month-level period label.

    Accepts ``Mon-YY`` headers (including ``Sept-25``), ``YY-Mon``,
    ``YYYY-MM`` and timestamps. Returns ``None`` for anything else.
    """

    if isinstance(raw, (pd.Timestamp, dt.datetime, dt.date)):
        if isinstance(raw, pd.Timestamp) and pd.isna(raw):
            return None
        return Period.from_timestamp(raw)

    text = clean_text(raw)
    if not text:
        return None

    match = MONTH_YEAR_PATTERN.match(text)
    if match:
        return period_from_parts(match.group(1), match.group(2))

    match = YEAR_MONTH_PATTERN.match(text)
    if match:
        return period_from_parts(match.group(2), match.group(1))

    match = ISO_MONTH_PATTERN.match(text)
    if match:
        return period_from_parts(match.group(2), match.group(1))

    # Header cells read from xlsx sometimes arrive as "2025-01-01 00:00:00".
    if re.match(r"^\d{4}-\d{2}-\d{2}", text):
        stamp = pd.to_datetime(text, errors="coerce")
        if not pd.isna(stamp):
            return Period.from_timestamp(stamp)
    return None


def parse_month_header(value: Any) -> Optional[Period]:
    """Read a month column header.

    Accepts ``Mon-YY`` style labels and date cells, either as date objects or
    as the text a workbook reader makes of them. Other labels return ``None``
    so free-text headers such as ``State`` are never mistaken for months.
    """

    if isinstance(value, (pd.Timestamp, dt.datetime, dt.date)):
        return parse_period(value)
    label = clean_text(value)
    if MONTH_YEAR_PATTERN.match(label) or DATE_HEADER_PATTERN.match(label):
        return parse_period(label)
    return None


def parse_date(raw: Any) -> Optional[pd.Timestamp]:
    """Parse a shipment date cell into a normalised ``Timestamp``.

    Handles Excel serial numbers, ISO ``YYYY-MM-DD`` and slash/hyphen day-first
    or month-first forms. A first part above 12 is read as D/M/Y, otherwise
    M/D/Y. Two digit years use the 50/50 pivot.
    """

    if isinstance(raw, bool):
        return None
    if isinstance(raw, (pd.Timestamp, dt.datetime, dt.date)):
        try:
            stamp = pd.Timestamp(raw)
        except pd.errors.OutOfBoundsDatetime:
            return None
        return None if pd.isna(stamp) else stamp.normalize()
    if isinstance(raw, (int, float)):
        if isinstance(raw, float) and not math.isfinite(raw):
            return None
        if raw <= 0:
            return None
        try:
            return pd.Timestamp(dt.date(1970, 1, 1)) + pd.Timedelta(days=int(raw) - _EXCEL_EPOCH_OFFSET)
        except (OverflowError, pd.errors.OutOfBoundsDatetime, pd.errors.OutOfBoundsTimedelta):
            # serial beyond the Timestamp range
            return None

    text = clean_text(raw)
    if not text:
        return None

    if re.fullmatch(r"\d{5}(\.\d+)?", text):
        return parse_date(float(text))

    parts = re.split(r"[/\-.]", text.split(" ")[0])
    if len(parts) == 3 and all(part.isdigit() for part in parts):
        first, second, third = (int(part) for part in parts)
        if len(parts[0]) == 4:
            year, month, day = first, second, third
        elif first > 12 and second <= 12:
            day, month, year = first, second, third
        else:
            month, day, year = first, second, third
        if year < 100:
            year = int(full_year(f"{year:02d}"))
        try:
            return pd.Timestamp(year=year, month=month, day=day)
        except ValueError:
            return None

    stamp = pd.to_datetime(text, errors="coerce")
    if pd.isna(stamp):
        return None
    return pd.Timestamp(stamp).normalize()


def add_months_safe(value: pd.Timestamp, months: int) -> pd.Timestamp:
    """Add calendar months, clamping the day to the target month's length."""

    total = value.month - 1 + int(months)
    year = value.year + total // 12
    month = total % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return pd.Timestamp(year=year, month=month, day=day)


def is_empty_record(record: Mapping[str, Any]) -> bool:
    """Return ``True`` when every public cell is empty, NaN or zero.

    Keys starting with ``_`` hold provenance and are ignored.
    """

    for key, value in record.items():
        if str(key).startswith("_"):
            continue
        if is_missing(value):
            continue
        if isinstance(value, (int, float)) and not isinstance(value, bool) and value == 0:
            continue
        if isinstance(value, str) and value.strip() in ("", "0"):
            continue
        return False
    return True
