# Overview: Flask API routes for calls; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..services import call_service
from ..services.business_service import require_active_business
from ..services.call_service import CallError, CallNotFoundError
from ..validation import ValidationError, coerce_datetime
from vbms.time_utils import parse_iso_datetime


calls_bp = Blueprint("calls", __name__, url_prefix="/api/calls")


def _bool_arg(name: str):
    raw = request.args.get(name)
    if raw is None:
        return None
    return raw.strip().lower() in {"1", "true", "yes"}


@calls_bp.post("")
def create_call_route():
    """Record a call; call_id (CALL-YYYYMMDD-NNNN) is generated."""
    data = request.get_json(silent=True) or {}
    try:
        business = require_active_business(data.get("business_id"))
        payload = {k: v for k, v in data.items() if k != "business_id"}
        call = call_service.create_call(business.id, payload)
        return jsonify({"call": call.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except CallError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to create call")
        return jsonify({"error": "Internal server error"}), 500


@calls_bp.get("")
def list_calls_route():
    try:
        business = require_active_business(request.args.get("business_id"))
        calls, total = call_service.list_calls(
            business.id,
            purpose=request.args.get("purpose"),
            outcome=request.args.get("outcome"),
            follow_up_required=_bool_arg("follow_up_required"),
            from_date=parse_iso_datetime(request.args.get("from")),
            to_date=parse_iso_datetime(request.args.get("to")),
            limit=request.args.get("limit", 50, type=int),
            offset=request.args.get("offset", 0, type=int),
        )
        return jsonify({"calls": [c.to_dict() for c in calls], "total": total}), 200

    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list calls")
        return jsonify({"error": "Internal server error"}), 500


@calls_bp.get("/stats")
def call_stats_route():
    try:
        business = require_active_business(request.args.get("business_id"))
        stats = call_service.call_stats(
            business.id,
            from_date=parse_iso_datetime(request.args.get("from")),
            to_date=parse_iso_datetime(request.args.get("to")),
        )
        return jsonify({"stats": stats}), 200

    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to load call stats")
        return jsonify({"error": "Internal server error"}), 500


@calls_bp.get("/<call_id>")
def get_call_route(call_id: str):
    try:
        business = require_active_business(request.args.get("business_id"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    call = call_service.get_call(business.id, call_id)
    if not call:
        return jsonify({"error": "Call not found"}), 404
    return jsonify({"call": call.to_dict()}), 200


@calls_bp.post("/<call_id>/complete")
def complete_call_route(call_id: str):
    """Body: {"business_id": 1, "end_time": "2026-10-17T14:05:00Z", "summary": "..."}"""
    data = request.get_json(silent=True) or {}
    try:
        business = require_active_business(data.get("business_id"))
        call = call_service.complete_call(
            business.id,
            call_id,
            end_time=coerce_datetime(data.get("end_time"), "end_time"),
            summary=data.get("summary"),
        )
        return jsonify({"call": call.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except CallNotFoundError as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    except CallError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to complete call")
        return jsonify({"error": "Internal server error"}), 500
