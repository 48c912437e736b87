"""Date, timestamp and duration helpers.

The API uses two textual formats for domain fields:

* :data:`DATE_LAYOUT` -- a calendar date such as ``2016-05-01`` (birth
  dates, release dates).
* :data:`TIMESTAMP_LAYOUT` -- an ISO 8601 UTC timestamp with a literal ``Z``
  suffix such as ``2016-05-01T12:30:00Z`` (``added_at`` fields).

HTTP headers (``Expires``, ``Last-Modified``) use HTTP-dates instead and go
through :func:`parse_http_date`.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional

DATE_LAYOUT = "%Y-%m-%d"
TIMESTAMP_LAYOUT = "%Y-%m-%dT%H:%M:%SZ"

_MINUTE = 60
_HOUR = 60 * _MINUTE
_DAY = 24 * _HOUR
_YEAR = 365 * _DAY


def parse_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` calendar date.

    Raises:
        ValueError: If *value* does not match :data:`DATE_LAYOUT`.
    """
    return datetime.strptime(value, DATE_LAYOUT).date()


def parse_timestamp(value: str) -> datetime:
    """Parse a ``YYYY-MM-DDTHH:MM:SSZ`` timestamp into an aware UTC datetime.

    Raises:
        ValueError: If *value* does not match :data:`TIMESTAMP_LAYOUT`.
    """
    return datetime.strptime(value, TIMESTAMP_LAYOUT).replace(tzinfo=timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render *value* in :data:`TIMESTAMP_LAYOUT`, converting aware datetimes to UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(TIMESTAMP_LAYOUT)


def parse_http_date(value: str) -> Optional[datetime]:
    """Parse an RFC 7231 HTTP-date into an aware datetime.

    Returns ``None`` when *value* is not a valid HTTP-date. Dates without a
    zone are taken as UTC.
    """
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_duration(seconds: float) -> str:
    """Render a duration compactly, e.g. ``2m0s``, ``1h0m0s`` or ``1y3d2h0m0s``.

    Units above seconds are only shown once a larger unit is non-zero, so
    short cache lifetimes stay short in log lines.
    """
    if seconds < 0:
        return "-" + format_duration(-seconds)

    years, rest = divmod(seconds, _YEAR)
    days, rest = divmod(rest, _DAY)
    hours, rest = divmod(rest, _HOUR)
    minutes, secs = divmod(rest, _MINUTE)

    parts: list[str] = []
    if years:
        parts.append(f"{int(years)}y")
    if parts or days:
        parts.append(f"{int(days)}d")
    if parts or hours:
        parts.append(f"{int(hours)}h")
    if parts or minutes:
        parts.append(f"{int(minutes)}m")
    text = f"{secs:.3f}".rstrip("0").rstrip(".")
    parts.append(f"{text}s")
    return "".join(parts)
