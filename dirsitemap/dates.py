"""
W3C datetime codec (https://www.w3.org/TR/NOTE-datetime) for <lastmod> values.

Date-only forms resolve to local midnight, full datetimes honour their
designator (Z or +hh:mm). Formatting always emits whole seconds in UTC.
"""

import logging
import re
from datetime import datetime, timedelta, timezone

from dirsitemap.errors import InvalidDateFormat

logger = logging.getLogger(__name__)

RE_YEAR = re.compile(r"^(\d{4})$")
RE_YEAR_MONTH = re.compile(r"^(\d{4})-(\d{2})$")
RE_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
RE_DATETIME = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2})(?::(\d{2})(\.\d+)?)?(Z|[+-]\d{2}:\d{2})$"
)
RE_OFFSET = re.compile(r"^([+-])(\d{2}):(\d{2})$")


def _local(year: int, month: int = 1, day: int = 1) -> datetime:
    # naive -> aware in the machine's local zone
    return datetime(year, month, day).astimezone()


def parse_date(text: str) -> datetime:
    """
    Parse a W3C datetime string into a timezone-aware datetime.

    Accepted forms, tried top-down:
        YYYY
        YYYY-MM
        YYYY-MM-DD
        YYYY-MM-DDThh:mm[:ss[.s+]](Z|+hh:mm|-hh:mm)

    Raises:
        InvalidDateFormat: text matches none of the forms above, or names
            a calendar date that does not exist.
    """
    if not isinstance(text, str):
        raise InvalidDateFormat(f"Unknown date format: {text!r}")

    try:
        m = RE_YEAR.match(text)
        if m:
            return _local(int(m.group(1)))

        m = RE_YEAR_MONTH.match(text)
        if m:
            return _local(int(m.group(1)), int(m.group(2)))

        m = RE_DATE.match(text)
        if m:
            return _local(int(m.group(1)), int(m.group(2)), int(m.group(3)))

        m = RE_DATETIME.match(text)
        if m:
            year, month, day, hour, minute = (int(g) for g in m.group(1, 2, 3, 4, 5))
            second = int(m.group(6)) if m.group(6) else 0
            millis = int(float(m.group(7) or "0") * 1000)
            value = datetime(year, month, day, hour, minute, second,
                             millis * 1000, tzinfo=timezone.utc)

            designator = m.group(8)
            if designator != "Z":
                sign, off_h, off_m = RE_OFFSET.match(designator).groups()
                offset = timedelta(hours=int(off_h), minutes=int(off_m))
                # local wall time minus its offset is the UTC instant
                value = value - offset if sign == "+" else value + offset
            return value
    except (ValueError, OverflowError) as e:
        # calendar-invalid fields, or an offset pushing the instant outside years 1-9999
        raise InvalidDateFormat(f"Unknown date format: {text} ({e})") from e

    raise InvalidDateFormat(f"Unknown date format: {text}")


def format_date(value: datetime) -> str:
    """Format a datetime as YYYY-MM-DDThh:mm:ssZ in UTC. Naive values are taken as local time."""
    try:
        utc = value.astimezone(timezone.utc)
    except (ValueError, OverflowError, OSError) as e:
        raise InvalidDateFormat(f"Date out of range: {value!r} ({e})") from e
    # strftime does not zero-pad years below 1000 on every platform
    return f"{utc.year:04d}-{utc.month:02d}-{utc.day:02d}T{utc.hour:02d}:{utc.minute:02d}:{utc.second:02d}Z"


def from_epoch_millis(millis: float) -> datetime:
    return datetime.fromtimestamp(millis / 1000.0, tz=timezone.utc)
