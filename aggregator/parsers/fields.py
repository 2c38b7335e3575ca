"""
Field-level normalizers for RSS item values.

Feeds in the wild disagree on how durations and dates are written, so these
helpers never raise: unusable input becomes None (durations) or the current
time (dates).
"""

import datetime
import math
from typing import Any, Optional

from dateutil import parser as date_parser
from dateutil import tz

SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3600

# RFC 822 allows these zone names; dateutil does not know them by default.
_US_TZINFOS = {
    "EST": tz.tzoffset("EST", -5 * SECONDS_PER_HOUR),
    "EDT": tz.tzoffset("EDT", -4 * SECONDS_PER_HOUR),
    "CST": tz.tzoffset("CST", -6 * SECONDS_PER_HOUR),
    "CDT": tz.tzoffset("CDT", -5 * SECONDS_PER_HOUR),
    "MST": tz.tzoffset("MST", -7 * SECONDS_PER_HOUR),
    "MDT": tz.tzoffset("MDT", -6 * SECONDS_PER_HOUR),
    "PST": tz.tzoffset("PST", -8 * SECONDS_PER_HOUR),
    "PDT": tz.tzoffset("PDT", -7 * SECONDS_PER_HOUR),
}

_DEFAULT_A = datetime.datetime(2000, 1, 1)
_DEFAULT_B = datetime.datetime(2001, 2, 2)


def _to_number(text: str) -> float:
    """Converts a duration component to a float; an empty component counts as 0."""
    text = text.strip()
    if not text:
        return 0.0
    return float(text)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def parse_duration(raw: Any) -> Optional[int]:
    """
    Parses an itunes:duration value into whole seconds.

    Accepts HH:MM:SS, MM:SS and plain (possibly fractional) seconds. Component
    values are not range-checked, so "0:75" is 75 seconds.

    Example:
        >>> parse_duration("01:15:30")
        4530
        >>> parse_duration("45:00")
        2700
        >>> parse_duration("not-a-number") is None
        True
    """
    if raw is None:
        return None

    text = str(raw).strip()
    if not text:
        return None

    parts = text.split(":")
    try:
        if len(parts) == 3:
            hours, minutes, seconds = (_to_number(p) for p in parts)
            total = hours * SECONDS_PER_HOUR + minutes * SECONDS_PER_MINUTE + seconds
        elif len(parts) == 2:
            minutes, seconds = (_to_number(p) for p in parts)
            total = minutes * SECONDS_PER_MINUTE + seconds
        else:
            total = float(text)
    except ValueError:
        return None

    if not math.isfinite(total):
        return None
    return _round_half_up(total)


def format_iso(value: datetime.datetime) -> str:
    """Formats a datetime as a UTC ISO-8601 string with millisecond precision."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=datetime.timezone.utc)
    value = value.astimezone(datetime.timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_pub_date(
    raw: Optional[str], now: Optional[datetime.datetime] = None
) -> str:
    """
    Normalizes an RSS pubDate to a UTC ISO-8601 string.

    Missing, unparseable or incomplete dates (no year, month or day, such as
    "2025" or "12") fall back to the current time so the episode still sorts.
    Two runs over the same feed can therefore place such an episode
    differently.
    """
    if raw:
        try:
            parsed = date_parser.parse(raw, default=_DEFAULT_A, tzinfos=_US_TZINFOS)
            # dateutil fills missing fields from the default; a fragment like
            # "2025" or "12" comes out differently under the two defaults
            if parsed == date_parser.parse(raw, default=_DEFAULT_B, tzinfos=_US_TZINFOS):
                return format_iso(parsed)
        except (ValueError, OverflowError):
            pass

    if now is None:
        now = datetime.datetime.now(datetime.timezone.utc)
    return format_iso(now)


def parse_iso(value: str) -> Optional[datetime.datetime]:
    """Parses an ISO-8601 timestamp into an aware datetime, or None if it is invalid."""
    try:
        parsed = date_parser.isoparse(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed
