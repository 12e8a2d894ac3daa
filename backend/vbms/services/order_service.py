# Overview: Service-layer operations for orders; creation, numbering and status lifecycle.

"""
Order Service

STATE MACHINE:
    pending -> confirmed -> preparing -> ready -> out_for_delivery -> delivered -> completed
    ready -> completed                                     (pickup / dine-in)
    any non-terminal state -> cancelled

    completed and cancelled are terminal.

RULES:
1. Cannot skip states (pending -> ready is forbidden)
2. Cannot move backwards (ready -> preparing is forbidden)
3. Every transition appends one OrderStatusEvent; history is never rewritten
4. order_id is assigned once at creation (identifier_service) and never changes

Pricing (subtotal, tax, tip, fees, discount, total) is stored as supplied.
Only line totals are computed here: quantity * (unit price + modifier prices).

On completion, items carrying a SKU are counted as sold against the matching
inventory item (same commit).
"""

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..models import Order, OrderItem, OrderStatusEvent
from ..enums import OrderSource, OrderType, OrderStatus, PaymentStatus
from ..validation import ValidationError, coerce_int, coerce_datetime, coerce_enum, MAX_PRICE_CENTS
from vbms.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from .identifier_service import create_with_display_id, ORDER_DOCUMENT_TYPE
from .inventory_service import record_sale


TERMINAL_STATUSES = {OrderStatus.COMPLETED, OrderStatus.CANCELLED}

VALID_TRANSITIONS = {
    (OrderStatus.PENDING, OrderStatus.CONFIRMED),
    (OrderStatus.CONFIRMED, OrderStatus.PREPARING),
    (OrderStatus.PREPARING, OrderStatus.READY),
    (OrderStatus.READY, OrderStatus.OUT_FOR_DELIVERY),
    (OrderStatus.READY, OrderStatus.COMPLETED),
    (OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED),
    (OrderStatus.DELIVERED, OrderStatus.COMPLETED),
}

PRICING_FIELDS = (
    "subtotal_cents",
    "tax_cents",
    "tip_cents",
    "delivery_fee_cents",
    "service_fee_cents",
    "discount_cents",
    "total_cents",
)


class OrderError(Exception):
    """Raised for order operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class OrderNotFoundError(OrderError):
    """Raised when the order does not exist in the business."""


class OrderTransitionError(OrderError):
    """Raised when a status change violates the order state machine."""


def can_transition(from_status, to_status) -> bool:
    """
    Check a status change against the state machine.

    Same-state moves are rejected; callers should not record no-op history.
    """
    from_status = OrderStatus.parse(from_status)
    to_status = OrderStatus.parse(to_status)

    if from_status in TERMINAL_STATUSES:
        return False
    if to_status == OrderStatus.CANCELLED:
        return True
    return (from_status, to_status) in VALID_TRANSITIONS


# =============================================================================
# Input normalization
# =============================================================================

def _money(value, field: str, *, required: bool = False, default: int = 0) -> int:
    if value is None:
        if required:
            raise ValidationError(f"{field} is required")
        return default
    cents = coerce_int(value, field)
    if cents < 0:
        raise ValidationError(f"{field} must be >= 0")
    if cents > MAX_PRICE_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_PRICE_CENTS}")
    return cents


def _normalize_items(raw_items) -> list[dict]:
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("items must be a non-empty list")

    items = []
    for i, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{i}] must be an object")
        name = str(raw.get("name") or "").strip()
        if not name:
            raise ValidationError(f"items[{i}].name is required")

        quantity = coerce_int(raw.get("quantity"), f"items[{i}].quantity")
        if quantity < 1:
            raise ValidationError(f"items[{i}].quantity must be >= 1")
        unit_price = _money(raw.get("unit_price_cents"), f"items[{i}].unit_price_cents", required=True)

        modifiers = []
        for j, mod in enumerate(raw.get("modifiers") or []):
            if not isinstance(mod, dict) or not str(mod.get("name") or "").strip():
                raise ValidationError(f"items[{i}].modifiers[{j}].name is required")
            modifiers.append({
                "name": str(mod["name"]).strip(),
                "price_cents": _money(mod.get("price_cents"), f"items[{i}].modifiers[{j}].price_cents"),
            })

        per_unit = unit_price + sum(m["price_cents"] for m in modifiers)
        items.append({
            "position": i + 1,
            "name": name,
            "description": raw.get("description"),
            "sku": (str(raw["sku"]).strip() or None) if raw.get("sku") else None,
            "category": raw.get("category"),
            "quantity": quantity,
            "unit_price_cents": unit_price,
            "line_total_cents": quantity * per_unit,
            "modifiers": modifiers,
        })
    return items


def _normalize_order(data: dict) -> dict:
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")

    pricing = data.get("pricing") or {}
    customer = data.get("customer") or {}
    payment = data.get("payment") or {}
    notes = data.get("notes") or {}

    fields = {
        "source": coerce_enum(OrderSource, data.get("source") or OrderSource.MANUAL.value, "source"),
        "type": coerce_enum(OrderType, data.get("type") or OrderType.PICKUP.value, "type"),
        "external_id": data.get("external_id"),
        "customer_user_id": coerce_int(data["customer_user_id"], "customer_user_id")
        if data.get("customer_user_id") is not None else None,
        "customer_name": customer.get("name"),
        "customer_phone": customer.get("phone"),
        "customer_email": customer.get("email"),
        "customer_address": customer.get("address"),
        "estimated_time": coerce_datetime(data.get("estimated_time"), "estimated_time"),
        "payment_method": payment.get("method"),
        "payment_status": coerce_enum(PaymentStatus, payment.get("status") or PaymentStatus.PENDING.value, "payment.status"),
        "payment_transaction_id": payment.get("transaction_id"),
        "payment_amount_cents": _money(payment.get("amount_cents"), "payment.amount_cents", default=None),
        "customer_notes": notes.get("customer"),
        "internal_notes": notes.get("internal"),
        "delivery_notes": notes.get("delivery"),
    }
    for key in PRICING_FIELDS:
        required = key in ("subtotal_cents", "total_cents")
        fields[key] = _money(pricing.get(key), f"pricing.{key}", required=required)
    return fields


# =============================================================================
# Operations
# =============================================================================

def create_order(
    business_id: int,
    data: dict,
    *,
    updated_by: str | None = None,
    now: datetime | None = None,
) -> Order:
    """
    Create a pending order with a fresh display number.

    Raises ValidationError for bad input. A display-number collision that
    survives the retry budget propagates as IntegrityError.
    """
    now = now or utcnow()
    fields = _normalize_order(data)
    items = _normalize_items(data.get("items"))

    def build() -> Order:
        order = Order(
            business_id=business_id,
            status=OrderStatus.PENDING.value,
            order_time=now,
            created_at=now,
            updated_at=now,
            **fields,
        )
        order.items = [OrderItem(**item) for item in items]
        order.status_history = [
            OrderStatusEvent(
                status=OrderStatus.PENDING.value,
                note="Order created",
                updated_by=updated_by,
                occurred_at=now,
            )
        ]
        return order

    return create_with_display_id(ORDER_DOCUMENT_TYPE, build, now=now)


def get_order(business_id: int, order_id: str) -> Order | None:
    """Look up by display number within a business."""
    return db.session.query(Order).filter_by(business_id=business_id, order_id=order_id).first()


def list_orders(
    business_id: int,
    *,
    status: str | None = None,
    source: str | None = None,
    from_date: datetime | None = None,
    to_date: datetime | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Order], int]:
    q = db.session.query(Order).filter(Order.business_id == business_id)
    if status:
        q = q.filter(Order.status == coerce_enum(OrderStatus, status, "status"))
    if source:
        q = q.filter(Order.source == coerce_enum(OrderSource, source, "source"))
    if from_date:
        q = q.filter(Order.created_at >= from_date)
    if to_date:
        q = q.filter(Order.created_at <= to_date)

    total = q.count()
    limit = max(1, min(limit, 500))
    offset = max(0, offset)
    orders = q.order_by(Order.created_at.desc(), Order.id.desc()).offset(offset).limit(limit).all()
    return orders, total


def update_order_status(
    business_id: int,
    order_id: str,
    new_status,
    *,
    note: str | None = None,
    updated_by: str | None = None,
    now: datetime | None = None,
) -> Order:
    """
    Move an order to new_status and append the history entry.

    Stamps actual_time when the order becomes ready and delivery_time when it
    is delivered.
    """
    target = OrderStatus(coerce_enum(OrderStatus, new_status, "status"))

    def _op():
        when = now or utcnow()
        order = lock_for_update(
            db.session.query(Order).filter_by(business_id=business_id, order_id=order_id)
        ).first()
        if not order:
            raise OrderNotFoundError("Order not found", details={"order_id": order_id})

        if not can_transition(order.status, target):
            raise OrderTransitionError(
                f"Cannot change order status from {order.status} to {target.value}",
                details={"order_id": order_id, "from": order.status, "to": target.value},
            )

        order.status = target.value
        if target == OrderStatus.READY:
            order.actual_time = when
        elif target == OrderStatus.DELIVERED:
            order.delivery_time = when

        order.status_history.append(
            OrderStatusEvent(status=target.value, note=note, updated_by=updated_by, occurred_at=when)
        )

        if target == OrderStatus.COMPLETED:
            for item in order.items:
                if item.sku:
                    record_sale(
                        business_id, item.sku, item.quantity, order_id=order.order_id, now=when, commit=False
                    )

        db.session.commit()
        return order

    return run_with_retry(_op)
