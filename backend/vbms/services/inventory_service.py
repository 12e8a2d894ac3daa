# Overview: Service-layer operations for inventory; derived stock fields, adjustments and alerts.

# backend/vbms/services/inventory_service.py

"""
VBMS Inventory Invariants (authoritative)

Derived fields (recomputed by derive_inventory_fields before EVERY write):
- available      = current - reserved          (no floor; negative means over-reserved)
- margin_percent = (price - cost) / cost * 100  (NULL when cost is 0)
- low_stock      = available <= minimum
- out_of_stock   = available <= 0
- overstock      = current >= maximum
- expiring_soon  = 0 < days_until_expiration <= VBMS_EXPIRING_SOON_DAYS
                   only when expiration_date is set; otherwise left as-is

Derivation is a pure function of the row's own values: no other rows are read,
and running it twice on the same values gives the same result.

Time semantics:
- All internal datetimes are UTC-naive (tzinfo=None).
- expiring_soon depends on "now", so a stored flag can go stale between writes.
  recompute_all() refreshes every row (exposed as `flask inventory recompute`).

Writes:
- Every mutating function re-derives and commits once.
- Stock movements (adjust, reserve, release, sale) append one
  InventoryTransaction row in the same commit. Rows are never updated.
- A completed order counts as a sale: total_sold/last_sold move, on-hand
  stock does not. Stock leaves the shelf through adjust_stock.
- Concurrent writes to the same row are detected with version_id (optimistic
  locking) and retried by run_with_retry.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import InventoryItem, InventoryTransaction
from ..enums import InventoryStatus, InventoryTransactionType, StockUnit
from vbms.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry


DEFAULT_RESERVED = 0
DEFAULT_MINIMUM = 5
DEFAULT_MAXIMUM = 100
DEFAULT_EXPIRING_SOON_DAYS = 7

REQUIRED_ON_CREATE = ("name", "sku", "category", "cost_cents", "price_cents", "stock_current")

# Inputs read by derive_inventory_fields, and the outputs it writes.
DERIVATION_INPUTS = (
    "stock_current",
    "stock_reserved",
    "stock_minimum",
    "stock_maximum",
    "cost_cents",
    "price_cents",
    "expiration_date",
    "alert_expiring_soon",
)
DERIVED_FIELDS = (
    "stock_available",
    "margin_percent",
    "alert_low_stock",
    "alert_out_of_stock",
    "alert_overstock",
    "alert_expiring_soon",
)


class InventoryError(ValueError):
    """Raised for inventory operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class InventoryNotFoundError(InventoryError):
    """Raised when the item does not exist in the business."""


def _or_default(value, default):
    return default if value is None else value


def derive_inventory_fields(
    record: dict,
    *,
    now: datetime | None = None,
    expiring_soon_days: int = DEFAULT_EXPIRING_SOON_DAYS,
) -> dict:
    """
    Return a copy of record with the derived inventory fields recomputed.

    record uses InventoryItem attribute names (see DERIVATION_INPUTS). Missing
    reserved/minimum/maximum fall back to their column defaults.
    """
    now = now or utcnow()
    result = dict(record)

    current = record["stock_current"]
    reserved = _or_default(record.get("stock_reserved"), DEFAULT_RESERVED)
    minimum = _or_default(record.get("stock_minimum"), DEFAULT_MINIMUM)
    maximum = _or_default(record.get("stock_maximum"), DEFAULT_MAXIMUM)
    cost = record["cost_cents"]
    price = record["price_cents"]

    available = current - reserved
    result["stock_available"] = available

    if cost == 0:
        result["margin_percent"] = None
    else:
        result["margin_percent"] = (price - cost) / cost * 100

    result["alert_low_stock"] = available <= minimum
    result["alert_out_of_stock"] = available <= 0
    result["alert_overstock"] = current >= maximum

    expiration_date = record.get("expiration_date")
    if expiration_date is not None:
        days_until_expiration = (expiration_date - now) / timedelta(days=1)
        result["alert_expiring_soon"] = 0 < days_until_expiration <= expiring_soon_days
    else:
        result["alert_expiring_soon"] = bool(record.get("alert_expiring_soon", False))

    return result


def _expiring_soon_days() -> int:
    return int(current_app.config.get("VBMS_EXPIRING_SOON_DAYS", DEFAULT_EXPIRING_SOON_DAYS))


def apply_derived_fields(item: InventoryItem, *, now: datetime | None = None) -> InventoryItem:
    """Recompute item's derived columns in place. Call right before commit."""
    if item.stock_reserved is None:
        item.stock_reserved = DEFAULT_RESERVED
    if item.stock_minimum is None:
        item.stock_minimum = DEFAULT_MINIMUM
    if item.stock_maximum is None:
        item.stock_maximum = DEFAULT_MAXIMUM

    values = {name: getattr(item, name) for name in DERIVATION_INPUTS}
    derived = derive_inventory_fields(values, now=now, expiring_soon_days=_expiring_soon_days())
    for name in DERIVED_FIELDS:
        setattr(item, name, derived[name])
    return item


# =============================================================================
# CRUD
# =============================================================================

def get_item(business_id: int, item_id: int) -> InventoryItem | None:
    return db.session.query(InventoryItem).filter_by(id=item_id, business_id=business_id).first()


def _require_item(business_id: int, item_id: int, *, lock: bool = False) -> InventoryItem:
    q = db.session.query(InventoryItem).filter_by(id=item_id, business_id=business_id)
    if lock:
        q = lock_for_update(q)
    item = q.first()
    if not item:
        raise InventoryNotFoundError("Inventory item not found", details={"item_id": item_id})
    return item


def _check_enums(values: dict) -> None:
    try:
        if "unit" in values and values["unit"] is not None:
            values["unit"] = StockUnit.parse(values["unit"], field="unit").value
        if "status" in values and values["status"] is not None:
            values["status"] = InventoryStatus.parse(values["status"], field="status").value
    except ValueError as e:
        raise InventoryError(str(e))


def _sku_taken(business_id: int, sku: str, exclude_id: int | None = None) -> bool:
    q = db.session.query(InventoryItem.id).filter_by(business_id=business_id, sku=sku)
    if exclude_id is not None:
        q = q.filter(InventoryItem.id != exclude_id)
    return q.first() is not None


def create_item(business_id: int, values: dict, *, now: datetime | None = None) -> InventoryItem:
    """
    Create an inventory item. values holds writable InventoryItem attributes;
    derived fields in it are ignored.
    """
    values = {k: v for k, v in values.items() if k not in DERIVED_FIELDS}
    _check_enums(values)

    missing = [f for f in REQUIRED_ON_CREATE if values.get(f) is None]
    if missing:
        raise InventoryError(f"Missing required fields: {', '.join(missing)}")

    sku = values.get("sku")
    if sku and _sku_taken(business_id, sku):
        raise InventoryError(f"SKU '{sku}' already exists for this business", details={"sku": sku})

    item = InventoryItem(business_id=business_id, **values)
    apply_derived_fields(item, now=now)

    db.session.add(item)
    db.session.commit()
    return item


def update_item(business_id: int, item_id: int, patch: dict, *, now: datetime | None = None) -> InventoryItem:
    """Apply a partial update and re-derive."""
    patch = {k: v for k, v in patch.items() if k not in DERIVED_FIELDS}
    _check_enums(patch)

    def _op():
        item = _require_item(business_id, item_id, lock=True)
        sku = patch.get("sku")
        if sku and sku != item.sku and _sku_taken(business_id, sku, exclude_id=item.id):
            raise InventoryError(f"SKU '{sku}' already exists for this business", details={"sku": sku})

        for key, value in patch.items():
            setattr(item, key, value)
        apply_derived_fields(item, now=now)
        db.session.commit()
        return item

    return run_with_retry(_op)


def list_items(
    business_id: int,
    *,
    category: str | None = None,
    status: str | None = None,
    search: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[InventoryItem], int]:
    q = db.session.query(InventoryItem).filter(InventoryItem.business_id == business_id)
    if category:
        q = q.filter(InventoryItem.category == category)
    if status:
        q = q.filter(InventoryItem.status == status)
    if search:
        pattern = f"%{search.strip()}%"
        q = q.filter(
            db.or_(
                InventoryItem.name.ilike(pattern),
                InventoryItem.sku.ilike(pattern),
                InventoryItem.barcode.ilike(pattern),
            )
        )

    total = q.count()
    limit = max(1, min(limit, 500))
    offset = max(0, offset)
    items = q.order_by(InventoryItem.name.asc(), InventoryItem.id.asc()).offset(offset).limit(limit).all()
    return items, total


def find_by_barcode(business_id: int, barcode: str) -> InventoryItem | None:
    return (
        db.session.query(InventoryItem)
        .filter_by(business_id=business_id, barcode=barcode.strip())
        .first()
    )


def list_categories(business_id: int) -> list[str]:
    rows = (
        db.session.query(InventoryItem.category)
        .filter(InventoryItem.business_id == business_id)
        .distinct()
        .order_by(InventoryItem.category.asc())
        .all()
    )
    return [r[0] for r in rows]


def discontinue_item(business_id: int, item_id: int, *, now: datetime | None = None) -> InventoryItem:
    """Soft delete: items are kept for order history and marked discontinued."""
    return update_item(business_id, item_id, {"status": InventoryStatus.DISCONTINUED.value}, now=now)


# =============================================================================
# Stock movements
# =============================================================================

def _require_finite(value: float, field: str) -> None:
    if value is None or not math.isfinite(value):
        raise InventoryError(f"{field} must be a finite number", details={"field": field})


def _append_transaction(
    item: InventoryItem,
    tx_type: InventoryTransactionType,
    quantity: float,
    *,
    current_before: float,
    reserved_before: float,
    reason: str | None = None,
    reference_type: str | None = None,
    reference_id: str | None = None,
    now: datetime | None = None,
) -> InventoryTransaction:
    """Stage a movement row for item. The caller's commit persists it."""
    tx = InventoryTransaction(
        business_id=item.business_id,
        item_id=item.id,
        type=tx_type.value,
        quantity=quantity,
        current_before=current_before,
        current_after=item.stock_current,
        reserved_before=reserved_before,
        reserved_after=item.stock_reserved or 0,
        reason=reason,
        reference_type=reference_type,
        reference_id=reference_id,
        occurred_at=now or utcnow(),
    )
    db.session.add(tx)
    return tx


def adjust_stock(
    business_id: int,
    item_id: int,
    quantity_delta: float,
    *,
    reason: str | None = None,
    now: datetime | None = None,
) -> InventoryItem:
    """
    Change on-hand stock by quantity_delta.

    Positive deltas are receipts and stamp last_received. On-hand may not go
    below zero. The movement and its reason are kept in the transaction log.
    """
    _require_finite(quantity_delta, "quantity_delta")
    if not quantity_delta:
        raise InventoryError("quantity_delta must be non-zero")
    now = now or utcnow()

    def _op():
        item = _require_item(business_id, item_id, lock=True)
        current_before = item.stock_current
        new_current = current_before + quantity_delta
        if new_current < 0:
            raise InventoryError(
                "Adjustment would make stock negative",
                details={"current": current_before, "quantity_delta": quantity_delta, "reason": reason},
            )
        item.stock_current = new_current
        if quantity_delta > 0:
            item.last_received = now
        apply_derived_fields(item, now=now)
        _append_transaction(
            item,
            InventoryTransactionType.ADJUSTMENT,
            quantity_delta,
            current_before=current_before,
            reserved_before=item.stock_reserved,
            reason=reason,
            reference_type="adjustment",
            now=now,
        )
        db.session.commit()
        return item

    return run_with_retry(_op)


def reserve_stock(
    business_id: int,
    item_id: int,
    quantity: float,
    *,
    reason: str | None = None,
    now: datetime | None = None,
) -> InventoryItem:
    """
    Hold quantity for a pending order.

    Reservations are not capped by on-hand stock; over-reserving shows up as
    a negative available quantity and an out_of_stock alert.
    """
    _require_finite(quantity, "quantity")
    if quantity <= 0:
        raise InventoryError("quantity must be > 0")

    def _op():
        item = _require_item(business_id, item_id, lock=True)
        reserved_before = item.stock_reserved or 0
        item.stock_reserved = reserved_before + quantity
        apply_derived_fields(item, now=now)
        _append_transaction(
            item,
            InventoryTransactionType.RESERVE,
            quantity,
            current_before=item.stock_current,
            reserved_before=reserved_before,
            reason=reason,
            now=now,
        )
        db.session.commit()
        return item

    return run_with_retry(_op)


def release_stock(
    business_id: int,
    item_id: int,
    quantity: float,
    *,
    reason: str | None = None,
    now: datetime | None = None,
) -> InventoryItem:
    """Release a previous reservation."""
    _require_finite(quantity, "quantity")
    if quantity <= 0:
        raise InventoryError("quantity must be > 0")

    def _op():
        item = _require_item(business_id, item_id, lock=True)
        reserved_before = item.stock_reserved or 0
        if quantity > reserved_before:
            raise InventoryError(
                "Cannot release more than is reserved",
                details={"reserved": reserved_before, "quantity": quantity},
            )
        item.stock_reserved = reserved_before - quantity
        apply_derived_fields(item, now=now)
        _append_transaction(
            item,
            InventoryTransactionType.RELEASE,
            quantity,
            current_before=item.stock_current,
            reserved_before=reserved_before,
            reason=reason,
            now=now,
        )
        db.session.commit()
        return item

    return run_with_retry(_op)


def record_sale(
    business_id: int,
    sku: str,
    quantity: float,
    *,
    order_id: str | None = None,
    now: datetime | None = None,
    commit: bool = True,
) -> InventoryItem | None:
    """
    Count a completed sale against the item with this SKU.

    Bumps total_sold/last_sold, re-derives and logs a sale transaction that
    references order_id. On-hand stock is left alone, so a sale larger than
    stock_current is recorded in full rather than clipped. Returns None when
    the business has no item with that SKU.
    """
    now = now or utcnow()
    item = lock_for_update(
        db.session.query(InventoryItem).filter_by(business_id=business_id, sku=sku)
    ).first()
    if not item:
        return None

    item.total_sold = (item.total_sold or 0) + quantity
    item.last_sold = now
    apply_derived_fields(item, now=now)
    _append_transaction(
        item,
        InventoryTransactionType.SALE,
        quantity,
        current_before=item.stock_current,
        reserved_before=item.stock_reserved,
        reference_type="order" if order_id else None,
        reference_id=order_id,
        now=now,
    )
    if commit:
        db.session.commit()
    return item


def list_transactions(
    business_id: int,
    *,
    item_id: int | None = None,
    tx_type: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[InventoryTransaction], int]:
    """Movement history, newest first. start/end are inclusive on occurred_at."""
    q = db.session.query(InventoryTransaction).filter(InventoryTransaction.business_id == business_id)
    if item_id is not None:
        q = q.filter(InventoryTransaction.item_id == item_id)
    if tx_type:
        try:
            tx_type = InventoryTransactionType.parse(tx_type, field="type").value
        except ValueError as e:
            raise InventoryError(str(e))
        q = q.filter(InventoryTransaction.type == tx_type)
    if start is not None:
        q = q.filter(InventoryTransaction.occurred_at >= start)
    if end is not None:
        q = q.filter(InventoryTransaction.occurred_at <= end)

    total = q.count()
    limit = max(1, min(limit, 500))
    offset = max(0, offset)
    rows = (
        q.order_by(InventoryTransaction.occurred_at.desc(), InventoryTransaction.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return rows, total


# =============================================================================
# Alerts & analytics
# =============================================================================

def _active(business_id: int):
    return db.session.query(InventoryItem).filter(
        InventoryItem.business_id == business_id,
        InventoryItem.status != InventoryStatus.DISCONTINUED.value,
    )


def low_stock_items(business_id: int) -> list[InventoryItem]:
    return (
        _active(business_id)
        .filter(InventoryItem.alert_low_stock == True)  # noqa: E712
        .order_by(InventoryItem.stock_available.asc())
        .all()
    )


def out_of_stock_items(business_id: int) -> list[InventoryItem]:
    return (
        _active(business_id)
        .filter(InventoryItem.alert_out_of_stock == True)  # noqa: E712
        .order_by(InventoryItem.name.asc())
        .all()
    )


def expiring_items(business_id: int) -> list[InventoryItem]:
    return (
        _active(business_id)
        .filter(InventoryItem.alert_expiring_soon == True)  # noqa: E712
        .order_by(InventoryItem.expiration_date.asc())
        .all()
    )


def inventory_summary(business_id: int) -> dict:
    """Totals for the inventory dashboard. Values are in cents."""
    row = (
        _active(business_id)
        .with_entities(
            func.count(InventoryItem.id),
            func.coalesce(func.sum(InventoryItem.stock_current), 0),
            func.coalesce(func.sum(InventoryItem.stock_current * InventoryItem.cost_cents), 0),
            func.coalesce(func.sum(InventoryItem.stock_current * InventoryItem.price_cents), 0),
        )
        .one()
    )
    item_count, total_units, cost_value, retail_value = row

    def _count(flag):
        return _active(business_id).filter(flag == True).count()  # noqa: E712

    return {
        "business_id": business_id,
        "item_count": int(item_count),
        "total_units": float(total_units),
        "total_cost_value_cents": int(round(cost_value)),
        "total_retail_value_cents": int(round(retail_value)),
        "alerts": {
            "low_stock": _count(InventoryItem.alert_low_stock),
            "out_of_stock": _count(InventoryItem.alert_out_of_stock),
            "expiring_soon": _count(InventoryItem.alert_expiring_soon),
            "overstock": _count(InventoryItem.alert_overstock),
        },
    }


def recompute_all(business_id: int | None = None, *, now: datetime | None = None) -> int:
    """Re-derive every item (optionally one business). Returns rows touched."""
    now = now or utcnow()
    q = db.session.query(InventoryItem)
    if business_id is not None:
        q = q.filter(InventoryItem.business_id == business_id)

    count = 0
    for item in q.order_by(InventoryItem.id.asc()).all():
        apply_derived_fields(item, now=now)
        count += 1
    db.session.commit()
    return count
