"""Timestamp helpers.

All persisted timestamps are ISO 8601 strings in UTC with a fixed
microsecond precision, e.g. "2025-01-15T14:30:00.000000+00:00". A fixed
width means plain string comparison orders them chronologically, which the
history index and canvas listing rely on.

Human-friendly references (used by CLI filters) support:
- ISO format: "2025-01-15", "2025-01-15T14:30:00"
- Relative: "7 days ago", "2 weeks ago", "1 month ago"
- Named: "today", "yesterday", "last week", "last month", "last year"
"""

import re
from datetime import datetime, timedelta, timezone

from dateutil import parser as dateparser
from dateutil.relativedelta import relativedelta


def utc_now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(timezone.utc)


def to_iso(dt: datetime) -> str:
    """Format a datetime in the persisted ISO 8601 form."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def now_iso() -> str:
    """Current UTC time as a persisted ISO 8601 string."""
    return to_iso(utc_now())


def parse_iso(text: str | None) -> datetime | None:
    """Parse an ISO 8601 string; None if missing or unparseable.

    Naive values are assumed to be UTC.
    """
    if not text:
        return None
    try:
        parsed = dateparser.isoparse(text)
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_time_reference(ref: str, now: datetime | None = None) -> datetime:
    """Parse human-friendly time references.

    Args:
        ref: Time reference string
        now: Reference point for relative times (default: utcnow)

    Returns:
        Parsed datetime (timezone-aware UTC)

    Raises:
        ValueError: If the reference cannot be parsed
    """
    if now is None:
        now = utc_now()

    ref = ref.strip().lower()

    if ref == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if ref == "yesterday":
        return (now - timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)
    if ref == "last week":
        return now - timedelta(weeks=1)
    if ref == "last month":
        return now - relativedelta(months=1)
    if ref == "last year":
        return now - relativedelta(years=1)

    ago_match = re.match(r"(\d+)\s*(second|minute|hour|day|week|month|year)s?\s*ago", ref)
    if ago_match:
        amount = int(ago_match.group(1))
        unit = ago_match.group(2)

        if unit in ("month", "year"):
            return now - relativedelta(**{f"{unit}s": amount})
        return now - timedelta(**{f"{unit}s": amount})

    try:
        parsed = dateparser.parse(ref)
    except (ValueError, OverflowError, dateparser.ParserError) as e:
        raise ValueError(f"Cannot parse time reference: {ref}") from e
    if parsed is None:
        raise ValueError(f"Cannot parse time reference: {ref}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_relative_time(iso: str, now: datetime | None = None) -> str:
    """Format an ISO timestamp as "2 hours ago" style text.

    Unparseable input is returned unchanged.
    """
    from .constants import (
        SECONDS_PER_DAY,
        SECONDS_PER_HOUR,
        SECONDS_PER_MINUTE,
        SECONDS_PER_MONTH,
        SECONDS_PER_YEAR,
    )

    then = parse_iso(iso)
    if then is None:
        return iso
    if now is None:
        now = utc_now()

    seconds = int((now - then).total_seconds())
    if seconds < 0:
        return "in the future"
    if seconds < SECONDS_PER_MINUTE:
        return "just now"

    for unit, size, upper in (
        ("minute", SECONDS_PER_MINUTE, SECONDS_PER_HOUR),
        ("hour", SECONDS_PER_HOUR, SECONDS_PER_DAY),
        ("day", SECONDS_PER_DAY, SECONDS_PER_MONTH),
        ("month", SECONDS_PER_MONTH, SECONDS_PER_YEAR),
    ):
        if seconds < upper:
            amount = seconds // size
            return f"{amount} {unit}{'s' if amount != 1 else ''} ago"

    years = seconds // SECONDS_PER_YEAR
    return f"{years} year{'s' if years != 1 else ''} ago"
