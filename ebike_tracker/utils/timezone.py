"""
Timezone utilities for consistent datetime handling.

The Problem:
- Requests arrive with server-local, naive, or aware timestamps
- The mileage ledger buckets by calendar day in ONE fixed zone
- A server hosted in UTC must still roll the day over at local midnight

The Solution:
- get_reference_zone() turns the configured zone into a tzinfo
- ensure_utc() converts any datetime to aware UTC
- to_reference_zone() converts an instant into the ledger's zone
"""

import re
from datetime import datetime, timedelta, timezone as tz, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ebike_tracker.exceptions import ConfigurationError

# "+08:00", "-0530", "UTC+8", "UTC-03:30"
_OFFSET_PATTERN = re.compile(r'^(?:UTC|GMT)?([+-])(\d{1,2})(?::?(\d{2}))?$', re.IGNORECASE)


def utc_now() -> datetime:
    """
    Get current UTC time as an aware datetime.

    Returns:
        Current UTC time with tzinfo
    """
    return datetime.now(tz.utc)


def get_reference_zone(name: str) -> tzinfo:
    """
    Resolve the configured ledger time zone.

    Accepts an IANA zone name ("Asia/Shanghai") or a fixed UTC offset
    ("+08:00", "UTC-5").

    Args:
        name: Zone name or offset string

    Returns:
        tzinfo for the zone

    Raises:
        ConfigurationError: If the zone cannot be resolved
    """
    if not name:
        raise ConfigurationError("Ledger time zone is empty", config_key='LEDGER_TIMEZONE')

    name = name.strip()
    if name.upper() in ('UTC', 'Z', 'GMT'):
        return tz.utc

    match = _OFFSET_PATTERN.match(name)
    if match:
        sign, hours, minutes = match.groups()
        offset = timedelta(hours=int(hours), minutes=int(minutes or 0))
        if offset >= timedelta(hours=24):
            raise ConfigurationError(f"UTC offset out of range: {name}", config_key='LEDGER_TIMEZONE')
        return tz(-offset if sign == '-' else offset)

    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigurationError(f"Unknown time zone: {name}", config_key='LEDGER_TIMEZONE') from e


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure a datetime is timezone-aware in UTC.

    Args:
        dt: A datetime that may or may not have timezone info

    Returns:
        Timezone-aware datetime in UTC, or None if input was None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # Assume naive datetimes are already UTC
        return dt.replace(tzinfo=tz.utc)

    return dt.astimezone(tz.utc)


def to_reference_zone(dt: datetime, zone: tzinfo) -> datetime:
    """Convert an instant to the ledger's reference zone (naive input is UTC)."""
    return ensure_utc(dt).astimezone(zone)
