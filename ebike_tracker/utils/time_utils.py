"""
Day key utilities for the mileage ledger.

Provides consistent handling of ledger bucket keys with:
- Day key formatting in the reference zone (YYYY-MM-DD)
- Strict day key parsing (malformed keys are reported, not guessed)
- Calendar month arithmetic for the retention window
"""

from datetime import date, datetime, tzinfo
from typing import Optional

from dateutil.relativedelta import relativedelta

from ebike_tracker.utils.timezone import to_reference_zone


DAY_KEY_FORMAT = "%Y-%m-%d"


def format_day_key(instant: datetime, zone: tzinfo) -> str:
    """
    Format the calendar day of an instant in the reference zone.

    Args:
        instant: Moment in time (naive values are treated as UTC)
        zone: Reference zone for day bucketing

    Returns:
        Day key string

    Example:
        >>> format_day_key(datetime(2024, 1, 1, 20, 0, tzinfo=timezone.utc), ZoneInfo("Asia/Shanghai"))
        '2024-01-02'
    """
    return to_reference_zone(instant, zone).strftime(DAY_KEY_FORMAT)


def parse_day_key(value) -> Optional[date]:
    """
    Parse a YYYY-MM-DD day key.

    Only the canonical zero-padded form is accepted so that keys compare
    the same way they sort.

    Args:
        value: Candidate day key

    Returns:
        date, or None if the value is not a valid day key
    """
    if not isinstance(value, str) or len(value) != 10:
        return None

    try:
        day = datetime.strptime(value, DAY_KEY_FORMAT).date()
    except ValueError:
        return None

    # strptime also accepts non-ASCII digits
    return day if day.isoformat() == value else None


def subtract_months(day: date, months: int) -> date:
    """
    Step back a number of calendar months.

    Month ends clamp to the shorter month:
        >>> subtract_months(date(2024, 8, 31), 6)
        datetime.date(2024, 2, 29)
    """
    return day - relativedelta(months=months)


def retention_cutoff(today: date, months: int) -> date:
    """
    Earliest day key kept in the ledger when today is ``today``.

    Windows that reach back before year 1 keep every day.
    """
    try:
        return subtract_months(today, months)
    except (ValueError, OverflowError):
        return date.min
