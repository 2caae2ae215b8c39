"""
E-bike document model.

One JSON document per user holds battery range, mileage since the last
full charge, destination presets and the per-day mileage ledger. Documents
are plain dicts so they round-trip through the record store unchanged.
"""

import copy
import math
from typing import Any, Dict, Mapping, Optional

# Fields of the document the accounting engine interprets
TOTAL_MILEAGE = 'totalMileage'
CURRENT_MILEAGE = 'currentMileage'
DESTINATIONS = 'destinations'
SELECTED_DESTINATIONS = 'selectedDestinations'
LAST_CHARGED = 'lastCharged'
DAILY_MILEAGE = 'dailyMileage'

# Command fields: accepted in a patch, never stored
FULL_CHARGE = 'fullCharge'
BATTERY_PERCENTAGE = 'batteryPercentage'
CLIENT_DATE = 'clientDate'
COMMAND_FIELDS = (FULL_CHARGE, BATTERY_PERCENTAGE, CLIENT_DATE)

DEFAULT_EBIKE_DATA = {
    TOTAL_MILEAGE: 60,
    CURRENT_MILEAGE: 0,
    DESTINATIONS: [
        {'name': 'Home', 'mileage': 7.7},
        {'name': 'Work', 'mileage': 1.7},
        {'name': 'Fangzhen', 'mileage': 3},
        {'name': 'LGD', 'mileage': 7.2},
    ],
    SELECTED_DESTINATIONS: [],
}


def default_document() -> Dict[str, Any]:
    """Return a fresh copy of the document a new user starts with."""
    return copy.deepcopy(DEFAULT_EBIKE_DATA)


def coerce_number(value: Any, default: float = 0) -> float:
    """
    Coerce a patch value to a finite number.

    Numeric strings are accepted; booleans, None, NaN, infinities and
    anything else fall back to ``default``.

    Example:
        >>> coerce_number("12.5")
        12.5
        >>> coerce_number("abc")
        0
    """
    if isinstance(value, bool) or value is None:
        return default

    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return default
    else:
        return default

    if isinstance(number, float) and not math.isfinite(number):
        return default
    return number


def merge_patch(previous: Optional[Mapping[str, Any]], patch: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Shallow-merge a patch over the previous document (or the defaults).

    Every key present in ``patch`` replaces the prior value; command fields
    are dropped from the result. Neither input is mutated.
    """
    base = copy.deepcopy(dict(previous)) if previous is not None else default_document()
    for key, value in patch.items():
        if key in COMMAND_FIELDS:
            continue
        base[key] = copy.deepcopy(value)
    return base


def summarize(document: Mapping[str, Any], today: Optional[str] = None) -> Dict[str, Any]:
    """
    Derive the battery view shown on the dashboard.

    Args:
        document: E-bike document
        today: Day key used to look up today's ledger entry

    Returns:
        Dict with total/current/remaining mileage, battery percent and today's mileage
    """
    total = coerce_number(document.get(TOTAL_MILEAGE))
    current = coerce_number(document.get(CURRENT_MILEAGE))

    battery_percent = 0
    if total > 0:
        battery_percent = round((1 - current / total) * 100, 2)

    daily = document.get(DAILY_MILEAGE)
    if not isinstance(daily, dict):
        daily = {}
    today_mileage = coerce_number(daily.get(today)) if today else 0

    return {
        'totalMileage': total,
        'currentMileage': round(current, 2),
        'remainingMileage': round(total - current, 2),
        'batteryPercent': battery_percent,
        'todayMileage': round(today_mileage, 2),
        'today': today,
        'lastCharged': document.get(LAST_CHARGED),
    }
