"""Utility functions to handle datetime parsing."""

from datetime import datetime, timezone
from typing import Optional

from stac_fastapi.cmr.exceptions import TranslationError
from stac_fastapi.types.rfc3339 import rfc3339_str_to_datetime

OPEN_END = ".."


def _parse(dt: str) -> Optional[datetime]:
    """Parse one end of an interval, None for an open end."""
    dt = dt.strip()
    if not dt or dt == OPEN_END:
        return None
    try:
        return rfc3339_str_to_datetime(dt).astimezone(timezone.utc)
    except (ValueError, TypeError) as e:
        raise TranslationError(f"Invalid datetime [{dt}]: {e}")


def _to_cmr(dt: Optional[datetime]) -> str:
    return datetime_to_str(dt) if dt is not None else ""


def format_temporal_range(date_str: str) -> str:
    """
    Convert a STAC datetime or interval into a CMR temporal range.

    Args:
        date_str (str): A single RFC 3339 datetime, or two values separated by a '/'
            where either end may be '..' or empty for an open interval.

    Returns:
        str: 'start,end' with an empty string standing for an open end.

    Raises:
        TranslationError: If the value is not a valid datetime or interval.
    """
    if not isinstance(date_str, str) or not date_str.strip():
        raise TranslationError(f"Invalid datetime [{date_str}]")

    if "/" not in date_str:
        instant = _parse(date_str)
        if instant is None:
            raise TranslationError(f"Invalid datetime [{date_str}]")
        return f"{_to_cmr(instant)},{_to_cmr(instant)}"

    parts = date_str.split("/")
    if len(parts) != 2:
        raise TranslationError(f"Invalid datetime interval [{date_str}]")

    start, end = (_parse(part) for part in parts)
    if start is None and end is None:
        raise TranslationError(
            f"Invalid datetime interval [{date_str}], both ends are open"
        )
    if start is not None and end is not None and start > end:
        raise TranslationError(
            f"Invalid datetime interval [{date_str}], start is after end"
        )
    return f"{_to_cmr(start)},{_to_cmr(end)}"


def day_range(year: str, month: str, day: str) -> str:
    """Return the CMR temporal range covering one whole UTC day."""
    try:
        start = datetime(int(year), int(month), int(day), tzinfo=timezone.utc)
    except ValueError as e:
        raise TranslationError(f"Invalid date [{year}-{month}-{day}]: {e}")
    end = start.replace(hour=23, minute=59, second=59)
    return f"{datetime_to_str(start)},{datetime_to_str(end)}"


# Borrowed from pystac - https://github.com/stac-utils/pystac/blob/f5e4cf4a29b62e9ef675d4a4dac7977b09f53c8f/pystac/utils.py#L370-L394
def datetime_to_str(dt: datetime, timespec: str = "auto") -> str:
    """Convert a :class:`datetime.datetime` instance to an ISO8601 string in the `RFC 3339, section 5.6.

    <https://datatracker.ietf.org/doc/html/rfc3339#section-5.6>`__ format required by
    the :stac-spec:`STAC Spec <master/item-spec/common-metadata.md#date-and-time>`.

    Args:
        dt : The datetime to convert.
        timespec: An optional argument that specifies the number of additional
            terms of the time to include. Valid options are 'auto', 'hours',
            'minutes', 'seconds', 'milliseconds' and 'microseconds'. The default value
            is 'auto'.
    Returns:
        str: The ISO8601 (RFC 3339) formatted string representing the datetime.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    timestamp = dt.isoformat(timespec=timespec)
    zulu = "+00:00"
    if timestamp.endswith(zulu):
        timestamp = f"{timestamp[: -len(zulu)]}Z"

    return timestamp


def cmr_time_to_str(value: Optional[str]) -> Optional[str]:
    """Normalize a CMR time_start/time_end value, keeping None for open ends."""
    if not value:
        return None
    try:
        return datetime_to_str(rfc3339_str_to_datetime(value))
    except ValueError:
        return value
