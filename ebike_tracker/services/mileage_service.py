"""
Mileage accounting service.

Turns the previous document plus an incoming patch into the next document:
merges fields, records full-charge events, buckets the mileage delta into
the day ledger in the reference zone, and prunes ledger days that fell out
of the retention window.

apply() is pure: the request time is always passed in, never read from a
clock, so the same inputs always give the same document.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ebike_tracker.config import Config, LedgerSettings
from ebike_tracker.models import (
    BATTERY_PERCENTAGE,
    CURRENT_MILEAGE,
    DAILY_MILEAGE,
    FULL_CHARGE,
    LAST_CHARGED,
    TOTAL_MILEAGE,
    coerce_number,
    default_document,
    merge_patch,
)
from ebike_tracker.utils.time_utils import format_day_key, parse_day_key, retention_cutoff
from ebike_tracker.utils.timezone import ensure_utc, get_reference_zone

logger = logging.getLogger(__name__)

LEDGER_PRECISION = 2


@dataclass
class MileageUpdate:
    """Result of applying one patch, with the numbers worth logging."""

    document: Dict[str, Any]
    day_key: str
    delta: float
    full_charge: bool = False
    client_date_used: bool = False
    pruned_keys: List[str] = field(default_factory=list)

    @property
    def ledger_size(self) -> int:
        return len(self.document.get(DAILY_MILEAGE, {}))


def resolve_day_key(
    reference_instant: datetime,
    client_date: Optional[str],
    zone,
) -> Tuple[str, date, bool]:
    """
    Pick the ledger bucket for this update.

    A valid client-supplied day key wins over the server's own day; an
    invalid one is ignored.

    Returns:
        Tuple of (day_key, day, client_date_used)
    """
    if client_date is not None:
        day = parse_day_key(client_date)
        if day is not None:
            return client_date, day, True
        logger.warning(f"Ignoring malformed client date {client_date!r}")

    day_key = format_day_key(reference_instant, zone)
    return day_key, parse_day_key(day_key), False


def mileage_from_battery_percentage(total_mileage: Any, percentage: Any) -> Optional[float]:
    """
    Mileage used so far for a given battery level.

    Args:
        total_mileage: Full-charge range
        percentage: Battery level, clamped to 0..100

    Returns:
        Mileage since full charge, or None if percentage is not a number
    """
    pct = coerce_number(percentage, default=None)
    if pct is None:
        return None
    pct = min(max(pct, 0), 100)
    return round(coerce_number(total_mileage) * (1 - pct / 100), LEDGER_PRECISION)


def prune_ledger(ledger: Mapping[str, Any], today: date, retention_months: int) -> Tuple[Dict[str, float], List[str]]:
    """
    Drop ledger days older than the retention window.

    The cutoff day itself is kept. Keys that are not valid day keys are
    dropped too; values are coerced to non-negative numbers.

    Returns:
        Tuple of (kept ledger, removed keys)
    """
    cutoff = retention_cutoff(today, retention_months)
    kept = {}
    removed = []

    for key, value in ledger.items():
        day = parse_day_key(key)
        if day is None:
            logger.debug(f"Dropping malformed ledger key {key!r}")
            removed.append(key)
            continue
        if day < cutoff:
            removed.append(key)
            continue
        kept[key] = max(coerce_number(value), 0)

    return kept, removed


def compute_update(
    previous: Optional[Mapping[str, Any]],
    patch: Mapping[str, Any],
    reference_instant: datetime,
    client_date: Optional[str] = None,
    settings: Optional[LedgerSettings] = None,
) -> MileageUpdate:
    """
    Apply a patch and report what changed.

    Args:
        previous: Last persisted document, or None for a new user
        patch: Partial document from the client (may carry fullCharge)
        reference_instant: Time of the request
        client_date: Optional YYYY-MM-DD day key from the client
        settings: Ledger settings (defaults come from Config)

    Returns:
        MileageUpdate holding the next document
    """
    settings = settings or LedgerSettings.from_config(Config)
    zone = get_reference_zone(settings.timezone)

    prior = previous if previous is not None else default_document()
    prior_mileage = coerce_number(prior.get(CURRENT_MILEAGE))

    document = merge_patch(previous, patch)

    if TOTAL_MILEAGE in patch:
        document[TOTAL_MILEAGE] = coerce_number(
            patch[TOTAL_MILEAGE], default=coerce_number(prior.get(TOTAL_MILEAGE))
        )
    if CURRENT_MILEAGE in patch:
        document[CURRENT_MILEAGE] = coerce_number(patch[CURRENT_MILEAGE])

    full_charge = bool(patch.get(FULL_CHARGE))
    if full_charge:
        document[LAST_CHARGED] = ensure_utc(reference_instant).isoformat()
        document[CURRENT_MILEAGE] = 0
    elif BATTERY_PERCENTAGE in patch:
        derived = mileage_from_battery_percentage(document.get(TOTAL_MILEAGE), patch[BATTERY_PERCENTAGE])
        if derived is not None:
            document[CURRENT_MILEAGE] = derived

    day_key, today, client_date_used = resolve_day_key(reference_instant, client_date, zone)

    delta = coerce_number(document.get(CURRENT_MILEAGE)) - prior_mileage

    ledger = document.get(DAILY_MILEAGE)
    ledger = dict(ledger) if isinstance(ledger, dict) else {}
    if delta > 0:
        bucket = max(coerce_number(ledger.get(day_key)), 0)
        # Unrounded: increments below display precision still add up
        ledger[day_key] = bucket + delta
    elif day_key not in ledger:
        ledger[day_key] = 0

    ledger, pruned_keys = prune_ledger(ledger, today, settings.retention_months)
    document[DAILY_MILEAGE] = ledger

    if pruned_keys:
        logger.debug(f"Pruned {len(pruned_keys)} ledger entries before {today.isoformat()}")

    return MileageUpdate(
        document=document,
        day_key=day_key,
        delta=round(delta, LEDGER_PRECISION),
        full_charge=full_charge,
        client_date_used=client_date_used,
        pruned_keys=pruned_keys,
    )


def apply(
    previous: Optional[Mapping[str, Any]],
    patch: Mapping[str, Any],
    reference_instant: datetime,
    client_date: Optional[str] = None,
    settings: Optional[LedgerSettings] = None,
) -> Dict[str, Any]:
    """Return the next e-bike document for a patch (see compute_update)."""
    return compute_update(previous, patch, reference_instant, client_date, settings).document


def load_document(store, user_id: str) -> Dict[str, Any]:
    """
    Get the user's document, falling back to defaults.

    Never writes: a new user's defaults are only persisted on first save.
    """
    document = store.get(user_id)
    if document is None:
        logger.debug(f"No stored document for user {user_id}, serving defaults")
        return default_document()
    return document


def save_patch(
    store,
    user_id: str,
    patch: Mapping[str, Any],
    reference_instant: datetime,
    client_date: Optional[str] = None,
    settings: Optional[LedgerSettings] = None,
) -> MileageUpdate:
    """
    Read, apply and persist one patch for a user.

    Store failures propagate as StorageError; nothing is retried here.
    """
    settings = settings or LedgerSettings.from_config(Config)

    previous = store.get(user_id)
    update = compute_update(previous, patch, reference_instant, client_date, settings)
    store.put(user_id, update.document, settings.ttl_seconds)

    logger.info(
        f"Saved document for user {user_id}: day {update.day_key}, "
        f"delta {update.delta}, ledger {update.ledger_size} days"
    )
    return update
