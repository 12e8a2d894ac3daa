# backend/vbms/routes/inventory.py
"""
Inventory management routes.

Derived fields (stock.available, pricing.margin_percent, alerts.*) are not
writable; they are recomputed by the service on every write.

Time semantics:
- API accepts ISO-8601 datetimes with Z/offsets; backend normalizes to UTC-naive internally.
"""
from flask import Blueprint, request, jsonify, current_app

from ..models import InventoryItem
from ..services import inventory_service
from ..services.business_service import require_active_business
from ..services.inventory_service import InventoryError, InventoryNotFoundError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    coerce_number,
    coerce_datetime,
    enforce_rules_inventory,
)


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")

INVENTORY_WRITABLE_FIELDS = {
    "name",
    "description",
    "sku",
    "barcode",
    "category",
    "subcategory",
    "cost_cents",
    "price_cents",
    "stock_current",
    "stock_reserved",
    "stock_minimum",
    "stock_maximum",
    "unit",
    "location",
    "supplier",
    "last_ordered",
    "expiration_date",
    "status",
}

INVENTORY_POLICY = ModelValidationPolicy(
    writable_fields=INVENTORY_WRITABLE_FIELDS,
    required_on_create={"name", "sku", "category", "cost_cents", "price_cents", "stock_current"},
)


def _item_error(e: InventoryError):
    status = 404 if isinstance(e, InventoryNotFoundError) else 400
    return jsonify({"error": str(e), "details": e.details}), status


@inventory_bp.post("")
def create_item_route():
    data = request.get_json(silent=True) or {}
    try:
        business = require_active_business(data.get("business_id"))
        payload = {k: v for k, v in data.items() if k != "business_id"}
        patch = validate_payload(model=InventoryItem, payload=payload, policy=INVENTORY_POLICY, partial=False)
        enforce_rules_inventory(patch)
        item = inventory_service.create_item(business.id, patch)
        return jsonify({"item": item.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except InventoryError as e:
        return _item_error(e)
    except Exception:
        current_app.logger.exception("Failed to create inventory item")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("")
def list_items_route():
    try:
        business = require_active_business(request.args.get("business_id"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    items, total = inventory_service.list_items(
        business.id,
        category=request.args.get("category"),
        status=request.args.get("status"),
        search=request.args.get("search"),
        limit=request.args.get("limit", 100, type=int),
        offset=request.args.get("offset", 0, type=int),
    )
    return jsonify({"items": [i.to_dict() for i in items], "total": total}), 200


@inventory_bp.get("/<int:item_id>")
def get_item_route(item_id: int):
    try:
        business = require_active_business(request.args.get("business_id"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    item = inventory_service.get_item(business.id, item_id)
    if not item:
        return jsonify({"error": "Inventory item not found"}), 404
    return jsonify({"item": item.to_dict()}), 200


@inventory_bp.put("/<int:item_id>")
def update_item_route(item_id: int):
    data = request.get_json(silent=True) or {}
    try:
        business = require_active_business(data.get("business_id"))
        payload = {k: v for k, v in data.items() if k != "business_id"}
        patch = validate_payload(model=InventoryItem, payload=payload, policy=INVENTORY_POLICY, partial=True)
        enforce_rules_inventory(patch)
        item = inventory_service.update_item(business.id, item_id, patch)
        return jsonify({"item": item.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except InventoryError as e:
        return _item_error(e)
    except Exception:
        current_app.logger.exception("Failed to update inventory item")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.delete("/<int:item_id>")
def discontinue_item_route(item_id: int):
    """Soft delete: marks the item discontinued."""
    try:
        business = require_active_business(request.args.get("business_id"))
        item = inventory_service.discontinue_item(business.id, item_id)
        return jsonify({"item": item.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except InventoryError as e:
        return _item_error(e)
    except Exception:
        current_app.logger.exception("Failed to discontinue inventory item")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/<int:item_id>/adjust")
def adjust_item_route(item_id: int):
    """Body: {"business_id": 1, "quantity_delta": -3, "reason": "spoilage"}"""
    data = request.get_json(silent=True) or {}
    try:
        business = require_active_business(data.get("business_id"))
        if data.get("quantity_delta") is None:
            raise ValidationError("quantity_delta is required")
        delta = coerce_number(data["quantity_delta"], "quantity_delta")
        item = inventory_service.adjust_stock(business.id, item_id, delta, reason=data.get("reason"))
        return jsonify({"item": item.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except InventoryError as e:
        return _item_error(e)
    except Exception:
        current_app.logger.exception("Failed to adjust inventory")
        return jsonify({"error": "Internal server error"}), 500


def _reservation_route(item_id: int, operation):
    data = request.get_json(silent=True) or {}
    try:
        business = require_active_business(data.get("business_id"))
        if data.get("quantity") is None:
            raise ValidationError("quantity is required")
        quantity = coerce_number(data["quantity"], "quantity")
        item = operation(business.id, item_id, quantity, reason=data.get("reason"))
        return jsonify({"item": item.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except InventoryError as e:
        return _item_error(e)
    except Exception:
        current_app.logger.exception("Failed to update reservation")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/<int:item_id>/reserve")
def reserve_item_route(item_id: int):
    return _reservation_route(item_id, inventory_service.reserve_stock)


@inventory_bp.post("/<int:item_id>/release")
def release_item_route(item_id: int):
    return _reservation_route(item_id, inventory_service.release_stock)


@inventory_bp.get("/alerts/<alert>")
def alerts_route(alert: str):
    queries = {
        "low-stock": inventory_service.low_stock_items,
        "out-of-stock": inventory_service.out_of_stock_items,
        "expiring": inventory_service.expiring_items,
    }
    query = queries.get(alert)
    if not query:
        return jsonify({"error": f"Unknown alert '{alert}'"}), 404

    try:
        business = require_active_business(request.args.get("business_id"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    items = query(business.id)
    return jsonify({"items": [i.to_dict() for i in items], "count": len(items)}), 200


@inventory_bp.get("/analytics/summary")
def summary_route():
    try:
        business = require_active_business(request.args.get("business_id"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"summary": inventory_service.inventory_summary(business.id)}), 200


@inventory_bp.get("/categories")
def categories_route():
    try:
        business = require_active_business(request.args.get("business_id"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"categories": inventory_service.list_categories(business.id)}), 200


@inventory_bp.get("/search/barcode/<barcode>")
def barcode_route(barcode: str):
    try:
        business = require_active_business(request.args.get("business_id"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    item = inventory_service.find_by_barcode(business.id, barcode)
    if not item:
        return jsonify({"error": "Inventory item not found"}), 404
    return jsonify({"item": item.to_dict()}), 200


def _transactions_response(business_id: int, item_id: int | None = None):
    rows, total = inventory_service.list_transactions(
        business_id,
        item_id=item_id,
        tx_type=request.args.get("type"),
        start=coerce_datetime(request.args.get("start_date"), "start_date"),
        end=coerce_datetime(request.args.get("end_date"), "end_date"),
        limit=request.args.get("limit", 20, type=int),
        offset=request.args.get("offset", 0, type=int),
    )
    return jsonify({"transactions": [t.to_dict() for t in rows], "total": total}), 200


@inventory_bp.get("/transactions")
def transactions_route():
    """Stock movement log for the business; filter with ?item_id=&type=&start_date=&end_date="""
    try:
        business = require_active_business(request.args.get("business_id"))
        return _transactions_response(business.id, item_id=request.args.get("item_id", type=int))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except InventoryError as e:
        return _item_error(e)


@inventory_bp.get("/<int:item_id>/transactions")
def item_transactions_route(item_id: int):
    try:
        business = require_active_business(request.args.get("business_id"))
        if not inventory_service.get_item(business.id, item_id):
            return jsonify({"error": "Inventory item not found"}), 404
        return _transactions_response(business.id, item_id=item_id)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except InventoryError as e:
        return _item_error(e)
