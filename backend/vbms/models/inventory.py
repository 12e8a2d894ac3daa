from __future__ import annotations

from ..extensions import db
from ..enums import StockUnit, InventoryStatus, InventoryTransactionType
from vbms.time_utils import to_utc_z, utcnow

class InventoryItem(db.Model):
    """
    Stocked item for a business.

    DERIVED FIELDS:
    available, margin_percent and the four alert flags are stored, but they
    are never written by callers. inventory_service.derive_inventory_fields()
    recomputes them from the row's own values immediately before every
    insert/update. Reads never recompute.

    Stock quantities are floats because items may be tracked by weight or
    volume (lb, kg, gallon, ...).
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.UniqueConstraint("business_id", "sku", name="uq_inventory_business_sku"),
        db.Index("ix_inventory_business_category", "business_id", "category"),
        db.Index("ix_inventory_business_status", "business_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    sku = db.Column(db.String(64), nullable=False)
    barcode = db.Column(db.String(64), nullable=True, index=True)
    category = db.Column(db.String(64), nullable=False)
    subcategory = db.Column(db.String(64), nullable=True)

    cost_cents = db.Column(db.Integer, nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)
    # Derived. NULL when cost is zero, where the ratio is undefined (never stored as Infinity)
    margin_percent = db.Column(db.Float, nullable=True, default=0.0)

    stock_current = db.Column(db.Float, nullable=False)
    stock_reserved = db.Column(db.Float, nullable=False, default=0)
    # Derived
    stock_available = db.Column(db.Float, nullable=False, default=0)
    stock_minimum = db.Column(db.Float, nullable=False, default=5)
    stock_maximum = db.Column(db.Float, nullable=False, default=100)

    unit = db.Column(db.String(16), nullable=False, default=StockUnit.PIECE.value)
    location = db.Column(db.String(128), nullable=True)
    supplier = db.Column(db.String(255), nullable=True)
    last_ordered = db.Column(db.DateTime(timezone=True), nullable=True)
    last_received = db.Column(db.DateTime(timezone=True), nullable=True)
    expiration_date = db.Column(db.DateTime(timezone=True), nullable=True)

    # Derived
    alert_low_stock = db.Column(db.Boolean, nullable=False, default=False, index=True)
    alert_out_of_stock = db.Column(db.Boolean, nullable=False, default=False, index=True)
    alert_expiring_soon = db.Column(db.Boolean, nullable=False, default=False)
    alert_overstock = db.Column(db.Boolean, nullable=False, default=False)

    total_sold = db.Column(db.Float, nullable=False, default=0)
    last_sold = db.Column(db.DateTime(timezone=True), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=InventoryStatus.ACTIVE.value)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    business = db.relationship("Business", backref=db.backref("inventory_items", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<InventoryItem id={self.id} sku={self.sku!r} business_id={self.business_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "item": {
                "name": self.name,
                "description": self.description,
                "sku": self.sku,
                "barcode": self.barcode,
                "category": self.category,
                "subcategory": self.subcategory,
            },
            "pricing": {
                "cost_cents": self.cost_cents,
                "price_cents": self.price_cents,
                "margin_percent": self.margin_percent,
            },
            "stock": {
                "current": self.stock_current,
                "reserved": self.stock_reserved,
                "available": self.stock_available,
                "minimum": self.stock_minimum,
                "maximum": self.stock_maximum,
            },
            "tracking": {
                "unit": self.unit,
                "location": self.location,
                "supplier": self.supplier,
                "last_ordered": to_utc_z(self.last_ordered),
                "last_received": to_utc_z(self.last_received),
                "expiration_date": to_utc_z(self.expiration_date),
            },
            "alerts": {
                "low_stock": self.alert_low_stock,
                "out_of_stock": self.alert_out_of_stock,
                "expiring_soon": self.alert_expiring_soon,
                "overstock": self.alert_overstock,
            },
            "sales": {
                "total_sold": self.total_sold,
                "last_sold": to_utc_z(self.last_sold),
            },
            "status": self.status,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryTransaction(db.Model):
    """
    Append-only stock movement row for an inventory item.

    One row is written in the same transaction as every adjustment,
    reservation, release and completed-order sale. before/after columns
    snapshot current and reserved stock so the history can be audited
    without replaying it.
    """
    __tablename__ = "inventory_transactions"
    __table_args__ = (
        db.Index("ix_invtx_business_occurred", "business_id", "occurred_at"),
        db.Index("ix_invtx_item_occurred", "item_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)

    type = db.Column(db.String(16), nullable=False, index=True)
    # Signed for adjustments, positive for reserve/release/sale
    quantity = db.Column(db.Float, nullable=False)

    current_before = db.Column(db.Float, nullable=False)
    current_after = db.Column(db.Float, nullable=False)
    reserved_before = db.Column(db.Float, nullable=False)
    reserved_after = db.Column(db.Float, nullable=False)

    reason = db.Column(db.String(500), nullable=True)
    reference_type = db.Column(db.String(16), nullable=True)
    reference_id = db.Column(db.String(64), nullable=True, index=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    item = db.relationship("InventoryItem", backref=db.backref("transactions", lazy="dynamic"))

    def __repr__(self) -> str:
        return f"<InventoryTransaction id={self.id} item_id={self.item_id} type={self.type}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "item_id": self.item_id,
            "sku": self.item.sku if self.item else None,
            "type": InventoryTransactionType(self.type).value,
            "quantity": self.quantity,
            "current": {"before": self.current_before, "after": self.current_after},
            "reserved": {"before": self.reserved_before, "after": self.reserved_after},
            "reason": self.reason,
            "reference": {"type": self.reference_type, "id": self.reference_id},
            "occurred_at": to_utc_z(self.occurred_at),
            "created_at": to_utc_z(self.created_at),
        }
