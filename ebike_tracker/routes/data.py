"""
E-bike data routes.

Handles reading the user's document and saving patches through the
mileage accounting service.
"""

import logging

from flask import Blueprint, g, jsonify, request

from ebike_tracker.exceptions import StorageError
from ebike_tracker.extensions import RateLimits, get_ledger_settings, get_record_store, limiter, now
from ebike_tracker.models import CLIENT_DATE, DAILY_MILEAGE, summarize
from ebike_tracker.routes.auth import login_required
from ebike_tracker.services.mileage_service import load_document, save_patch
from ebike_tracker.utils.error_codes import ErrorCode, StructuredError
from ebike_tracker.utils.time_utils import format_day_key
from ebike_tracker.utils.timezone import get_reference_zone
from ebike_tracker.utils.wide_events import WideEvent, track_operation

logger = logging.getLogger(__name__)

data_bp = Blueprint("data", __name__)


def _read_failed(e: StorageError):
    structured_error = StructuredError(
        ErrorCode.E200_STORE_READ_FAILED, "Failed to get data", exception=e, user_id=g.identity.user_id
    )
    logger.error(str(structured_error))
    return jsonify(structured_error.to_response()), 500


def _load_tracked(operation: str):
    """Load the user's document inside a wide event; StorageError propagates."""
    with track_operation(operation, user_id=g.identity.user_id, remote_addr=request.remote_addr) as event:
        with event.timer("store_read"):
            document = load_document(get_record_store(), g.identity.user_id)
        event.add_technical_metric("document_fields", len(document))
        ledger = document.get(DAILY_MILEAGE)
        event.add_business_metric("ledger_size", len(ledger) if isinstance(ledger, dict) else 0)
    return document


@data_bp.route("/data", methods=["GET"])
@login_required
@limiter.limit(RateLimits.READ_HEAVY)
def get_data():
    """Get the user's document, or the defaults if nothing is stored yet."""
    try:
        document = _load_tracked("data_load")
    except StorageError as e:
        return _read_failed(e)

    return jsonify(document)


@data_bp.route("/data/summary", methods=["GET"])
@login_required
@limiter.limit(RateLimits.READ_HEAVY)
def get_data_summary():
    """Get remaining range, battery percent and today's mileage."""
    try:
        document = _load_tracked("data_summary")
    except StorageError as e:
        return _read_failed(e)

    zone = get_reference_zone(get_ledger_settings().timezone)
    return jsonify(summarize(document, today=format_day_key(now(), zone)))


@data_bp.route("/data", methods=["POST"])
@login_required
@limiter.limit(RateLimits.WRITE_MODERATE)
def save_data():
    """
    Save a partial document.

    Request body (all optional):
        currentMileage: Mileage since the last full charge
        totalMileage: Full-charge range
        destinations: Destination presets
        selectedDestinations: Pending destination selection
        fullCharge: true to record a full charge
        batteryPercentage: Battery level to derive currentMileage from
        clientDate: YYYY-MM-DD day to book the mileage on
    """
    event = WideEvent("data_save", trace_id=g.identity.user_id)
    event.add_context(user_id=g.identity.user_id, remote_addr=request.remote_addr)

    patch = request.get_json(silent=True)
    if not isinstance(patch, dict):
        structured_error = StructuredError(ErrorCode.E003_INVALID_DATA_TYPE, "Request body must be a JSON object")
        event.add_error(structured_error)
        event.mark_failure("invalid_body")
        event.emit(level="warning", force=True)
        return jsonify(structured_error.to_response()), 400

    client_date = patch.get(CLIENT_DATE)
    event.add_context(patch_fields=sorted(patch.keys()))

    try:
        with event.timer("save_patch"):
            update = save_patch(
                get_record_store(),
                g.identity.user_id,
                patch,
                reference_instant=now(),
                client_date=client_date,
                settings=get_ledger_settings(),
            )
    except StorageError as e:
        structured_error = StructuredError(
            ErrorCode.E201_STORE_WRITE_FAILED, "Failed to save data", exception=e, user_id=g.identity.user_id
        )
        logger.error(str(structured_error))
        event.add_error(structured_error)
        event.mark_failure("storage_error")
        event.emit(level="error", force=True)
        return jsonify(structured_error.to_response()), 500

    if client_date is not None and not update.client_date_used:
        event.add_context(
            client_date_rejected=StructuredError(
                ErrorCode.E300_INVALID_DAY_KEY, "Client date ignored", client_date=str(client_date)
            ).to_dict()
        )

    event.add_context(day_key=update.day_key, client_date_used=update.client_date_used)
    event.add_business_metric("mileage_delta", update.delta)
    event.add_business_metric("ledger_size", update.ledger_size)
    event.add_business_metric("full_charge", update.full_charge)
    event.add_business_metric("ledger_pruned", len(update.pruned_keys))
    event.mark_success()
    event.emit()

    return jsonify({"message": "Data saved successfully", "updatedData": update.document})
