"""Utility modules for the e-bike tracker."""

from .timezone import (
    utc_now,
    ensure_utc,
    get_reference_zone,
    to_reference_zone,
)
from .time_utils import (
    format_day_key,
    parse_day_key,
    subtract_months,
    retention_cutoff,
)

__all__ = [
    'utc_now',
    'ensure_utc',
    'get_reference_zone',
    'to_reference_zone',
    'format_day_key',
    'parse_day_key',
    'subtract_months',
    'retention_cutoff',
]
