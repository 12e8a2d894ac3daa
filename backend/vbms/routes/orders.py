# Overview: Flask API routes for orders; parses input and returns JSON responses.

# backend/vbms/routes/orders.py
"""
Order API routes.

Tenant context is explicit: every request names its business_id (body for
writes, query string for reads). Authentication is handled upstream.
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import order_service
from ..services.business_service import require_active_business
from ..services.order_service import OrderError, OrderNotFoundError, OrderTransitionError
from ..validation import ValidationError
from vbms.time_utils import parse_iso_datetime


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("")
def create_order_route():
    """Create a pending order; order_id is generated."""
    data = request.get_json(silent=True) or {}
    try:
        business = require_active_business(data.get("business_id"))
        payload = {k: v for k, v in data.items() if k != "business_id"}
        order = order_service.create_order(business.id, payload, updated_by=data.get("updated_by"))
        return jsonify({"order": order.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except OrderError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("")
def list_orders_route():
    try:
        business = require_active_business(request.args.get("business_id"))
        orders, total = order_service.list_orders(
            business.id,
            status=request.args.get("status"),
            source=request.args.get("source"),
            from_date=parse_iso_datetime(request.args.get("from")),
            to_date=parse_iso_datetime(request.args.get("to")),
            limit=request.args.get("limit", 50, type=int),
            offset=request.args.get("offset", 0, type=int),
        )
        return jsonify({
            "orders": [o.to_dict(include_items=False) for o in orders],
            "total": total,
        }), 200

    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list orders")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<order_id>")
def get_order_route(order_id: str):
    try:
        business = require_active_business(request.args.get("business_id"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    order = order_service.get_order(business.id, order_id)
    if not order:
        return jsonify({"error": "Order not found"}), 404
    return jsonify({"order": order.to_dict()}), 200


@orders_bp.post("/<order_id>/status")
def update_order_status_route(order_id: str):
    """
    Move an order through its lifecycle.

    Body: {"business_id": 1, "status": "confirmed", "note": "...", "updated_by": "..."}
    """
    data = request.get_json(silent=True) or {}
    if not data.get("status"):
        return jsonify({"error": "status required"}), 400

    try:
        business = require_active_business(data.get("business_id"))
        order = order_service.update_order_status(
            business.id,
            order_id,
            data["status"],
            note=data.get("note"),
            updated_by=data.get("updated_by"),
        )
        return jsonify({"order": order.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except OrderNotFoundError as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    except OrderTransitionError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except OrderError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to update order status")
        return jsonify({"error": "Internal server error"}), 500
