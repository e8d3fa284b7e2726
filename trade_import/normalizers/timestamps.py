"""
Trade Import - Timestamp Normalizer.

============================================================
RESPONSIBILITY
============================================================
Converts NT8 day-first timestamps into UTC datetimes.

Format: D/M/YYYY HH:mm:ss
Example: "2/9/2025 12:18:21" -> 2 September 2025, never 9 February.

============================================================
DESIGN PRINCIPLES
============================================================
- The interpretation zone is always supplied by the caller
- Ambiguous wall times (DST fall-back) take the first occurrence
- Wall times inside a DST gap do not exist and are rejected
- No dependency on the system clock or local zone

============================================================
"""

import calendar
import re
from datetime import datetime, timezone, tzinfo
from functools import lru_cache
from typing import Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from trade_import.errors import EmptyValueError, InvalidConfigError, TimestampParseError


_DIGITS = re.compile(r"^[0-9]+$")

_UTC_NAMES = {"UTC", "Z", "ETC/UTC", "GMT"}


@lru_cache(maxsize=64)
def resolve_zone(name: str) -> tzinfo:
    """
    Resolve an IANA zone name (or "UTC") into a tzinfo.

    Raises:
        InvalidConfigError: Unknown zone name
    """
    cleaned = (name or "").strip()
    if cleaned.upper() in _UTC_NAMES:
        return timezone.utc
    try:
        return ZoneInfo(cleaned)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidConfigError("timezone", name, f"unknown time zone ({e})") from e


def _components(part: str, sep: str, raw: str, max_widths: Tuple[int, int, int]) -> Tuple[int, int, int]:
    pieces = part.split(sep)
    if len(pieces) != 3:
        raise TimestampParseError(raw, "expected D/M/YYYY HH:mm:ss")

    values = []
    for piece, width in zip(pieces, max_widths):
        if not _DIGITS.match(piece) or len(piece) > width:
            raise TimestampParseError(raw, "expected D/M/YYYY HH:mm:ss")
        values.append(int(piece))
    return values[0], values[1], values[2]


def parse_timestamp(token: str, zone: Union[str, tzinfo] = timezone.utc) -> datetime:
    """
    Parse a D/M/YYYY HH:mm:ss token into an aware UTC datetime.

    Args:
        token: Raw field value
        zone: Zone the wall-clock time was recorded in

    Returns:
        Timezone-aware datetime in UTC

    Raises:
        EmptyValueError: token is empty
        TimestampParseError: wrong shape, non-numeric or out of range
    """
    if token is None or not token.strip():
        raise EmptyValueError(token or "")
    if isinstance(zone, str):
        zone = resolve_zone(zone)

    parts = token.split()
    if len(parts) != 2:
        raise TimestampParseError(token, "expected D/M/YYYY HH:mm:ss")
    date_part, time_part = parts

    day, month, year = _components(date_part, "/", token, (2, 2, 4))
    hour, minute, second = _components(time_part, ":", token, (2, 2, 2))

    if year < 1000:
        raise TimestampParseError(token, "year must have 4 digits")
    if not 1 <= month <= 12:
        raise TimestampParseError(token, f"month {month} out of range")
    if not 1 <= day <= calendar.monthrange(year, month)[1]:
        raise TimestampParseError(token, f"day {day} out of range for month {month}")
    if hour > 23 or minute > 59 or second > 59:
        raise TimestampParseError(token, "time out of range")

    wall = datetime(year, month, day, hour, minute, second)
    try:
        instant = wall.replace(tzinfo=zone, fold=0).astimezone(timezone.utc)
        round_trip = instant.astimezone(zone).replace(tzinfo=None)
    except (OverflowError, ValueError) as e:
        raise TimestampParseError(token, "date out of range") from e

    if round_trip != wall:
        raise TimestampParseError(token, f"time does not exist in {zone}")

    return instant
