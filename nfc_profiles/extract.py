"""
Cell extraction rules for profile exports.

Each factory returns a pure function ``ProfileRecord -> str``. The returned
functions are total: missing or malformed values degrade to ``""``, ``"-"``
or ``"0"`` instead of raising, so one bad document never aborts an export.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Optional

from .models import ProfileRecord
from .rules import (
    CLAIMED_NO,
    CLAIMED_YES,
    DEFAULT_TIMESTAMP_FORMAT,
    TIMESTAMP_PLACEHOLDER,
)

Extractor = Callable[[ProfileRecord], str]


def text_field(key: str) -> Extractor:
    """Plain text: the value when present and non-empty, else ``""``."""

    def extract(record: ProfileRecord) -> str:
        value = record.lookup(key)
        if value is None or value == "":
            return ""
        return value if isinstance(value, str) else str(value)

    return extract


def claimed_status(record: ProfileRecord) -> str:
    return CLAIMED_YES if record.uid else CLAIMED_NO


def coerce_timestamp(value: Any) -> Optional[datetime]:
    """
    Interpret a stored timestamp value as an aware UTC datetime.

    Accepts datetimes (store timestamp types subclass datetime), objects with
    a ``to_datetime``/``ToDatetime``/``toDate`` conversion, serialized
    ``{"seconds", "nanoseconds"}`` mappings, ISO-8601 strings and epoch
    milliseconds. Returns None when the value cannot be interpreted.
    """
    if value is None or value == "" or isinstance(value, bool):
        return None

    try:
        if isinstance(value, datetime):
            dt = value
        elif isinstance(value, (int, float)):
            dt = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        elif isinstance(value, str):
            text = value.strip()
            if text.endswith(("Z", "z")):
                text = text[:-1] + "+00:00"
            dt = datetime.fromisoformat(text)
        elif isinstance(value, dict):
            seconds = value.get("seconds", value.get("_seconds"))
            nanos = value.get("nanoseconds", value.get("_nanoseconds", 0)) or 0
            if seconds is None:
                return None
            dt = datetime.fromtimestamp(float(seconds) + float(nanos) / 1e9, tz=timezone.utc)
        else:
            converter = None
            for attr in ("to_datetime", "ToDatetime", "toDate"):
                converter = getattr(value, attr, None)
                if callable(converter):
                    break
            if not callable(converter):
                return None
            try:
                dt = converter()
            except Exception:
                # foreign timestamp types raise their own error classes
                return None
            if not isinstance(dt, datetime):
                return None
    except (ValueError, TypeError, OverflowError, OSError, AttributeError):
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_timestamp(value: Any, fmt: str = DEFAULT_TIMESTAMP_FORMAT) -> str:
    dt = coerce_timestamp(value)
    if dt is None:
        return TIMESTAMP_PLACEHOLDER
    try:
        return dt.strftime(fmt)
    except (ValueError, TypeError):
        return TIMESTAMP_PLACEHOLDER


def timestamp_field(key: str, fmt: str = DEFAULT_TIMESTAMP_FORMAT) -> Extractor:
    """Human-readable date-time, or ``"-"`` when absent or unparseable."""

    def extract(record: ProfileRecord) -> str:
        return format_timestamp(record.lookup(key), fmt)

    return extract


def _counter_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        text = value.strip()
        try:
            return str(int(text))
        except ValueError:
            pass
        try:
            value = float(text)
        except ValueError:
            return None
    if not isinstance(value, float):
        return None
    if value != value or value in (float("inf"), float("-inf")):
        return None
    return str(int(value)) if value.is_integer() else str(value)


def counter_field(canonical: str, legacy: Optional[str] = None) -> Extractor:
    """Decimal counter from ``canonical``, falling back to ``legacy``, else ``"0"``."""

    def extract(record: ProfileRecord) -> str:
        for key in (canonical, legacy):
            if key is None:
                continue
            text = _counter_text(record.lookup(key))
            if text is not None:
                return text
        return "0"

    return extract
