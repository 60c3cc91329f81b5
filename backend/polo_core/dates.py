"""Wire date helpers.

Tournament, club and duty dates travel as ``YYYY-MM-DD`` (UTC calendar date);
match kick-off times travel as ISO-8601 date-times in UTC with a ``Z`` suffix.
"""

from __future__ import annotations

import datetime as dt
import re

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _as_utc(value: dt.datetime) -> dt.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


def format_api_date(value: dt.date | dt.datetime) -> str:
    if isinstance(value, dt.datetime):
        value = _as_utc(value).date()
    return value.isoformat()


def format_api_datetime(value: dt.datetime) -> str:
    return _as_utc(value).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def parse_api_date(value: str | None) -> dt.datetime | None:
    """Parse a wire date or date-time into an aware UTC datetime.

    Returns ``None`` for empty or unparseable input.
    """
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None

    if _DATE_ONLY.match(text):
        try:
            parsed_date = dt.date.fromisoformat(text)
        except ValueError:
            return None
        return dt.datetime(parsed_date.year, parsed_date.month, parsed_date.day, tzinfo=dt.timezone.utc)

    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = dt.datetime.fromisoformat(text)
    except ValueError:
        return None
    return _as_utc(parsed)
