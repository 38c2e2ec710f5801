"""Coerce the loose date values found in content records to UTC datetimes."""

from __future__ import annotations

import datetime as _dt
from email.utils import parsedate_to_datetime
from typing import Any

__all__ = ["coerce_datetime", "utc_now"]

_FALLBACK_FORMATS = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d, %Y",
    "%B %d, %Y",
)


def utc_now() -> _dt.datetime:
    """Return the current time as an aware UTC datetime without microseconds."""

    return _dt.datetime.now(_dt.timezone.utc).replace(microsecond=0)


def _as_utc(value: _dt.datetime) -> _dt.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=_dt.timezone.utc)
    return value.astimezone(_dt.timezone.utc)


def _parse_text(text: str) -> _dt.datetime | None:
    iso_candidate = text
    if iso_candidate.endswith(("Z", "z")):
        iso_candidate = iso_candidate[:-1] + "+00:00"
    try:
        return _dt.datetime.fromisoformat(iso_candidate)
    except ValueError:
        pass

    try:
        return parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        pass

    for fmt in _FALLBACK_FORMATS:
        try:
            return _dt.datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def coerce_datetime(value: Any) -> _dt.datetime | None:
    """Convert *value* into an aware UTC :class:`datetime.datetime`.

    Accepts datetimes, dates, epoch seconds or milliseconds and the common
    textual formats (ISO 8601 with or without ``Z``, RFC 2822, a few
    day-month-year spellings). Naive values are taken to be UTC. Returns
    ``None`` when nothing sensible can be extracted.
    """

    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, _dt.datetime):
        return _as_utc(value)

    if isinstance(value, _dt.date):
        return _dt.datetime(value.year, value.month, value.day, tzinfo=_dt.timezone.utc)

    if isinstance(value, (int, float)):
        timestamp = float(value)
        if timestamp > 1_000_000_000_000:  # likely milliseconds
            timestamp /= 1000.0
        try:
            return _dt.datetime.fromtimestamp(timestamp, tz=_dt.timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    parsed = _parse_text(text)
    if parsed is None:
        return None
    return _as_utc(parsed)
