from __future__ import annotations

from ..extensions import db
from ..enums import OrderSource, OrderType, OrderStatus, PaymentStatus
from vbms.time_utils import to_utc_z, utcnow

class Order(db.Model):
    """
    Customer order.

    order_id is the human-readable display number (VBMS-<year>-<seq>). It is
    assigned once by identifier_service before the first insert and never
    rewritten. Pricing fields are stored as supplied; nothing here derives them.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("order_id", name="uq_orders_order_id"),
        db.Index("ix_orders_business_status_created", "business_id", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    customer_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    # Display number, e.g. "VBMS-2026-000042"
    order_id = db.Column(db.String(32), nullable=False)
    external_id = db.Column(db.String(128), nullable=True)  # Uber Eats, Clover, ...
    source = db.Column(db.String(16), nullable=False, default=OrderSource.MANUAL.value, index=True)
    type = db.Column(db.String(16), nullable=False, default=OrderType.PICKUP.value)

    customer_name = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(32), nullable=True)
    customer_email = db.Column(db.String(255), nullable=True)
    customer_address = db.Column(db.JSON, nullable=True)

    # All amounts in cents
    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    tip_cents = db.Column(db.Integer, nullable=False, default=0)
    delivery_fee_cents = db.Column(db.Integer, nullable=False, default=0)
    service_fee_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(24), nullable=False, default=OrderStatus.PENDING.value, index=True)

    order_time = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    estimated_time = db.Column(db.DateTime(timezone=True), nullable=True)
    actual_time = db.Column(db.DateTime(timezone=True), nullable=True)
    delivery_time = db.Column(db.DateTime(timezone=True), nullable=True)

    payment_method = db.Column(db.String(32), nullable=True)
    payment_status = db.Column(db.String(16), nullable=False, default=PaymentStatus.PENDING.value)
    payment_transaction_id = db.Column(db.String(128), nullable=True)
    payment_amount_cents = db.Column(db.Integer, nullable=True)

    customer_notes = db.Column(db.Text, nullable=True)
    internal_notes = db.Column(db.Text, nullable=True)
    delivery_notes = db.Column(db.Text, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    business = db.relationship("Business", backref=db.backref("orders", lazy=True))
    items = db.relationship(
        "OrderItem",
        backref="order",
        order_by="OrderItem.position",
        cascade="all, delete-orphan",
        lazy=True,
    )
    status_history = db.relationship(
        "OrderStatusEvent",
        backref="order",
        order_by="OrderStatusEvent.id",
        cascade="all, delete-orphan",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Order id={self.id} order_id={self.order_id!r} status={self.status}>"

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "business_id": self.business_id,
            "customer_user_id": self.customer_user_id,
            "order_id": self.order_id,
            "external_id": self.external_id,
            "source": self.source,
            "type": self.type,
            "customer": {
                "name": self.customer_name,
                "phone": self.customer_phone,
                "email": self.customer_email,
                "address": self.customer_address,
            },
            "pricing": {
                "subtotal_cents": self.subtotal_cents,
                "tax_cents": self.tax_cents,
                "tip_cents": self.tip_cents,
                "delivery_fee_cents": self.delivery_fee_cents,
                "service_fee_cents": self.service_fee_cents,
                "discount_cents": self.discount_cents,
                "total_cents": self.total_cents,
            },
            "status": self.status,
            "timing": {
                "order_time": to_utc_z(self.order_time),
                "estimated_time": to_utc_z(self.estimated_time),
                "actual_time": to_utc_z(self.actual_time),
                "delivery_time": to_utc_z(self.delivery_time),
            },
            "payment": {
                "method": self.payment_method,
                "status": self.payment_status,
                "transaction_id": self.payment_transaction_id,
                "amount_cents": self.payment_amount_cents,
            },
            "notes": {
                "customer": self.customer_notes,
                "internal": self.internal_notes,
                "delivery": self.delivery_notes,
            },
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
            data["status_history"] = [event.to_dict() for event in self.status_history]
        return data


class OrderItem(db.Model):
    """Line item on an order. line_total_cents is computed when the order is created."""
    __tablename__ = "order_items"
    __table_args__ = (
        db.UniqueConstraint("order_pk", "position", name="uq_order_items_order_position"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_pk = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    sku = db.Column(db.String(64), nullable=True, index=True)
    category = db.Column(db.String(64), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    # [{"name": "Extra cheese", "price_cents": 150}, ...]
    modifiers = db.Column(db.JSON, nullable=False, default=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "position": self.position,
            "name": self.name,
            "description": self.description,
            "sku": self.sku,
            "category": self.category,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
            "modifiers": list(self.modifiers or []),
        }


class OrderStatusEvent(db.Model):
    """
    Append-only status history for an order.

    Rows are inserted by order_service on every transition and never updated.
    """
    __tablename__ = "order_status_events"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_pk = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    status = db.Column(db.String(24), nullable=False)
    note = db.Column(db.String(255), nullable=True)
    updated_by = db.Column(db.String(128), nullable=True)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "timestamp": to_utc_z(self.occurred_at),
            "note": self.note,
            "updated_by": self.updated_by,
        }
