"""Utility helpers for date handling and loosely typed JSON payloads."""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import structlog
from dateutil import parser as date_parser

LOGGER = structlog.get_logger(__name__)

JsonValue = Union[Dict[str, Any], List[Any], str, int, float, bool, None]

ISO_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")
NUMERIC_DATE = re.compile(r"\b\d{1,4}[./-]\d{1,2}[./-]\d{1,4}\b")
YEAR_FIRST_DATE = re.compile(r"^\d{4}[./]\d{1,2}[./]\d{1,2}")


def as_object(value: JsonValue) -> Optional[Dict[str, Any]]:
    """Return ``value`` if it is a JSON object."""
    return value if isinstance(value, dict) else None


def as_array(value: JsonValue) -> List[Any]:
    """Return ``value`` if it is a JSON array, else an empty list."""
    return value if isinstance(value, list) else []


def first_present(obj: Mapping[str, Any], keys: Iterable[str]) -> Any:
    """Return the first truthy value stored under any of ``keys``."""
    for key in keys:
        value = obj.get(key)
        if value not in (None, "", [], {}):
            return value
    return None


def as_text(value: Any) -> Optional[str]:
    """Render scalar JSON values as stripped text, rejecting containers and blanks."""
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    text = normalise_whitespace(str(value))
    return text or None


def as_identifier(value: Any) -> Optional[str]:
    """Normalise numeric or string identifiers to a common string form."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return as_text(value)


def as_count(value: Any) -> Optional[int]:
    """Best-effort non-negative integer coercion."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        count = int(value)
    except (TypeError, ValueError):
        return None
    return count if count >= 0 else None


def to_iso_date(value: Any) -> Optional[str]:
    """Normalise a date or timestamp string to ``YYYY-MM-DD``.

    Timestamps carrying an offset are converted to UTC before truncation so a
    slot starting ``2025-11-03T00:30:00+01:00`` lands on ``2025-11-02``. Naive
    values keep the date as written. Non ISO spellings are only attempted when
    they look like a numeric date. ``03.11.2025`` is read day first and
    ``2025/11/03`` year first.
    """
    text = as_text(value)
    if text is None:
        return None

    if ISO_DATE_PREFIX.match(text):
        try:
            parsed = date_parser.isoparse(text)
        except (ValueError, OverflowError):
            # Trailing noise after a valid date, e.g. "2025-11-03 (Mon)".
            try:
                return date.fromisoformat(text[:10]).isoformat()
            except ValueError:
                LOGGER.debug("utils.date_unparseable", value=text)
                return None
        return _date_part(parsed)

    if not NUMERIC_DATE.search(text):
        return None
    year_first = bool(YEAR_FIRST_DATE.match(text))
    try:
        parsed = date_parser.parse(text, yearfirst=year_first, dayfirst=not year_first)
    except (ValueError, OverflowError) as exc:
        LOGGER.debug("utils.date_unparseable", value=text, error=str(exc))
        return None
    return _date_part(parsed)


def _date_part(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.date().isoformat()


def parse_month(text: Optional[str]) -> Optional[date]:
    """Parse ``YYYY-MM`` (or any full date) into the first day of that month."""
    if not text or not text.strip():
        return None
    cleaned = text.strip()
    try:
        parsed = date_parser.isoparse(cleaned)
    except (ValueError, OverflowError):
        iso = to_iso_date(cleaned)
        if iso is None:
            return None
        parsed = datetime.fromisoformat(iso)
    return date(parsed.year, parsed.month, 1)


def normalise_whitespace(text: str) -> str:
    """Collapse repeated whitespace into single spaces."""
    return re.sub(r"\s+", " ", text or "").strip()
