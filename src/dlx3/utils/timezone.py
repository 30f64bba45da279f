"""Centralized timezone resolution utilities."""

import logging
from datetime import datetime
from typing import Optional, Union

import pytz
from pytz import BaseTzInfo

logger = logging.getLogger(__name__)


def resolve_pytz(tz_string: Optional[str]) -> BaseTzInfo:
    """Resolve an IANA timezone name to a pytz timezone object.

    Falls back to UTC with a warning if the name is missing or unknown.
    DLX3 headers written by older firmware sometimes carry an empty or
    non-IANA zone string, so the fallback is expected in practice.

    Args:
        tz_string: IANA timezone (e.g. 'Europe/Prague', 'Europe/Berlin').

    Returns:
        pytz timezone object (always valid).
    """
    if not tz_string:
        logger.warning("No timezone provided; falling back to UTC.")
        return pytz.utc

    try:
        return pytz.timezone(tz_string)
    except pytz.UnknownTimeZoneError:
        logger.warning(
            f"Unknown timezone '{tz_string}'; falling back to UTC.",
            extra={"timezone": tz_string},
        )
        return pytz.utc


def epoch_to_datetime(
    timestamp: int,
    tz: Union[str, BaseTzInfo, None] = None,
) -> Optional[datetime]:
    """Convert a DLX3 epoch-seconds field to an aware datetime.

    Args:
        timestamp: Unix epoch seconds; 0 means "not available".
        tz: Target timezone name or pytz object; UTC when ``None``.

    Returns:
        Timezone-aware datetime, or ``None`` for a zero timestamp.
    """
    if not timestamp:
        return None
    if tz is None:
        zone = pytz.utc
    elif isinstance(tz, str):
        zone = resolve_pytz(tz)
    else:
        zone = tz
    return datetime.fromtimestamp(timestamp, tz=pytz.utc).astimezone(zone)


def header_timezone(result) -> Optional[str]:
    """Timezone named by the FHDR block of a ``ParseResult``, if any."""
    header = result.header
    if header is None or not header.timezone:
        return None
    return header.timezone
