"""Civil date/time <-> epoch seconds conversion.

Integer-only proleptic Gregorian arithmetic (days-from-civil / civil-from-days),
UTC, no leap seconds and no time zone database.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone

SECONDS_PER_DAY = 86400

# Days between 0000-03-01 and 1970-01-01
_EPOCH_SHIFT = 719468
_DAYS_PER_ERA = 146097

_LOOSE_RE = re.compile(
    r"^(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})"
    r"(?:[T ](?P<hour>\d{2}):(?P<minute>\d{2})(?::(?P<second>\d{2}))?)?Z?$"
)
_STRICT_RE = re.compile(
    r"^(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2}) "
    r"(?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2})$"
)


class InvalidTimestampError(ValueError):
    """Raised when a date/time string cannot be parsed."""


def is_leap_year(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


def days_in_month(year: int, month: int) -> int:
    if month == 2:
        return 29 if is_leap_year(year) else 28
    if month in (4, 6, 9, 11):
        return 30
    return 31


def days_from_civil(year: int, month: int, day: int) -> int:
    """Days since 1970-01-01 for a proleptic Gregorian date."""
    y = year - 1 if month <= 2 else year
    era = y // 400
    yoe = y - era * 400  # [0, 399]
    mp = month + 9 if month <= 2 else month - 3  # March-based month [0, 11]
    doy = (153 * mp + 2) // 5 + day - 1  # [0, 365]
    doe = yoe * 365 + yoe // 4 - yoe // 100 + doy  # [0, 146096]
    return era * _DAYS_PER_ERA + doe - _EPOCH_SHIFT


def civil_from_days(days: int) -> tuple[int, int, int]:
    """Inverse of days_from_civil: (year, month, day)."""
    z = days + _EPOCH_SHIFT
    era = z // _DAYS_PER_ERA
    doe = z - era * _DAYS_PER_ERA
    yoe = (doe - doe // 1460 + doe // 36524 - doe // 146096) // 365
    doy = doe - (365 * yoe + yoe // 4 - yoe // 100)
    mp = (5 * doy + 2) // 153
    day = doy - (153 * mp + 2) // 5 + 1
    month = mp + 3 if mp < 10 else mp - 9
    year = yoe + era * 400 + (1 if month <= 2 else 0)
    return year, month, day


def to_epoch_seconds(
    year: int, month: int, day: int, hour: int = 0, minute: int = 0, second: int = 0
) -> int:
    """Validate civil fields and convert them to epoch seconds."""
    if not 1 <= month <= 12:
        raise InvalidTimestampError(f"Month must be 1-12, got: {month}")
    if not 1 <= day <= days_in_month(year, month):
        raise InvalidTimestampError(f"Day {day} out of range for {year:04d}-{month:02d}")
    if not (0 <= hour <= 23 and 0 <= minute <= 59 and 0 <= second <= 59):
        raise InvalidTimestampError(f"Invalid time of day: {hour:02d}:{minute:02d}:{second:02d}")
    return days_from_civil(year, month, day) * SECONDS_PER_DAY + hour * 3600 + minute * 60 + second


def _fields(match: re.Match[str]) -> tuple[int, ...]:
    return tuple(
        int(match.group(name) or 0) for name in ("year", "month", "day", "hour", "minute", "second")
    )


def parse_loose(value: str) -> int:
    """
    Parse an open-ended range bound to epoch seconds.

    Accepts YYYY-MM-DD, YYYY-MM-DD HH:MM and YYYY-MM-DD HH:MM:SS, with either a
    space or 'T' between date and time and an optional trailing 'Z'. Missing
    time fields are zero.
    """
    match = _LOOSE_RE.match(value.strip())
    if match is None:
        raise InvalidTimestampError(
            f"cannot parse {value!r} (expected: YYYY-MM-DD[ HH:MM[:SS]])"
        )
    return to_epoch_seconds(*_fields(match))


def parse_strict(value: str) -> int:
    """Parse exactly 'YYYY-MM-DD HH:MM:SS' to epoch seconds."""
    match = _STRICT_RE.match(value.strip())
    if match is None:
        raise InvalidTimestampError(
            f"Invalid datetime format: {value!r} (expected YYYY-MM-DD HH:MM:SS)"
        )
    return to_epoch_seconds(*_fields(match))


def format_epoch(seconds: int) -> str:
    """Render epoch seconds as 'YYYY-MM-DD HH:MM:SS'."""
    days, rem = divmod(seconds, SECONDS_PER_DAY)
    year, month, day = civil_from_days(days)
    hour, rem = divmod(rem, 3600)
    minute, second = divmod(rem, 60)
    return f"{year:04d}-{month:02d}-{day:02d} {hour:02d}:{minute:02d}:{second:02d}"


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(datetime.now(timezone.utc).timestamp() * 1000)
