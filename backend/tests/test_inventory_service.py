# Overview: Pytest coverage for inventory persistence, stock movements and alerts.

from datetime import datetime, timedelta

import pytest

from vbms.models import InventoryItem
from vbms.services import inventory_service
from vbms.services.inventory_service import InventoryError, InventoryNotFoundError


NOW = datetime(2026, 10, 17, 12, 0, 0)


def _create(business_id, **overrides):
    values = {
        "name": "Mozzarella",
        "sku": "CHS-MOZZ",
        "category": "cheese",
        "cost_cents": 400,
        "price_cents": 1000,
        "stock_current": 10,
        "stock_reserved": 2,
        "stock_minimum": 5,
        "stock_maximum": 100,
        "unit": "lb",
    }
    values.update(overrides)
    return inventory_service.create_item(business_id, values, now=NOW)


class TestCreateAndUpdate:

    def test_create_persists_derived_fields(self, db_session, business_a):
        item = _create(business_a.id)
        stored = db_session.get(InventoryItem, item.id)

        assert stored.stock_available == 8
        assert stored.margin_percent == pytest.approx(150.0)
        assert stored.alert_low_stock is False
        assert stored.alert_out_of_stock is False
        assert stored.alert_overstock is False

    def test_supplied_derived_values_are_ignored(self, db_session, business_a):
        item = _create(business_a.id, stock_available=999, alert_low_stock=True)
        assert item.stock_available == 8
        assert item.alert_low_stock is False

    def test_update_rederives(self, db_session, business_a):
        item = _create(business_a.id)
        updated = inventory_service.update_item(business_a.id, item.id, {"stock_reserved": 6}, now=NOW)

        assert updated.stock_available == 4
        assert updated.alert_low_stock is True

    def test_zero_cost_persists_null_margin(self, db_session, business_a):
        item = _create(business_a.id, cost_cents=0)
        assert db_session.get(InventoryItem, item.id).margin_percent is None

    def test_duplicate_sku_in_same_business_rejected(self, db_session, business_a):
        _create(business_a.id)
        with pytest.raises(InventoryError):
            _create(business_a.id, name="Other cheese")

    def test_same_sku_allowed_in_other_business(self, db_session, business_a, business_b):
        _create(business_a.id)
        other = _create(business_b.id)
        assert other.business_id == business_b.id

    def test_missing_required_fields(self, db_session, business_a):
        with pytest.raises(InventoryError):
            inventory_service.create_item(business_a.id, {"name": "Basil"}, now=NOW)

    def test_invalid_unit_rejected(self, db_session, business_a):
        with pytest.raises(InventoryError):
            _create(business_a.id, unit="bushel")

    def test_update_other_business_item_is_not_found(self, db_session, business_a, business_b):
        item = _create(business_a.id)
        with pytest.raises(InventoryNotFoundError):
            inventory_service.update_item(business_b.id, item.id, {"stock_current": 1})

    def test_discontinue_hides_from_alerts(self, db_session, business_a):
        item = _create(business_a.id, stock_current=0, stock_reserved=0)
        assert [i.id for i in inventory_service.out_of_stock_items(business_a.id)] == [item.id]

        inventory_service.discontinue_item(business_a.id, item.id, now=NOW)
        assert inventory_service.out_of_stock_items(business_a.id) == []


class TestStockMovements:

    def test_adjust_receipt_stamps_last_received(self, db_session, business_a):
        item = _create(business_a.id)
        adjusted = inventory_service.adjust_stock(business_a.id, item.id, 5, reason="delivery", now=NOW)

        assert adjusted.stock_current == 15
        assert adjusted.stock_available == 13
        assert adjusted.last_received == NOW

    def test_adjust_cannot_go_negative(self, db_session, business_a):
        item = _create(business_a.id)
        with pytest.raises(InventoryError):
            inventory_service.adjust_stock(business_a.id, item.id, -11, now=NOW)

    def test_adjust_zero_rejected(self, db_session, business_a):
        item = _create(business_a.id)
        with pytest.raises(InventoryError):
            inventory_service.adjust_stock(business_a.id, item.id, 0, now=NOW)

    def test_reserve_and_release(self, db_session, business_a):
        item = _create(business_a.id)

        reserved = inventory_service.reserve_stock(business_a.id, item.id, 4, now=NOW)
        assert reserved.stock_reserved == 6
        assert reserved.stock_available == 4
        assert reserved.alert_low_stock is True

        released = inventory_service.release_stock(business_a.id, item.id, 6, now=NOW)
        assert released.stock_reserved == 0
        assert released.stock_available == 10

    def test_release_more_than_reserved_rejected(self, db_session, business_a):
        item = _create(business_a.id)
        with pytest.raises(InventoryError):
            inventory_service.release_stock(business_a.id, item.id, 3, now=NOW)

    def test_record_sale_updates_counters(self, db_session, business_a):
        item = _create(business_a.id)
        sold = inventory_service.record_sale(business_a.id, "CHS-MOZZ", 3, order_id="VBMS-2026-000001", now=NOW)

        assert sold.id == item.id
        assert sold.stock_current == 10
        assert sold.total_sold == 3
        assert sold.last_sold == NOW

    def test_record_sale_unknown_sku(self, db_session, business_a):
        assert inventory_service.record_sale(business_a.id, "NOPE", 1, now=NOW) is None

    @pytest.mark.parametrize("delta", [float("nan"), float("inf"), float("-inf")])
    def test_adjust_rejects_non_finite(self, db_session, business_a, delta):
        item = _create(business_a.id)
        with pytest.raises(InventoryError):
            inventory_service.adjust_stock(business_a.id, item.id, delta, now=NOW)

        assert db_session.get(InventoryItem, item.id).stock_current == 10

    def test_reserve_rejects_nan(self, db_session, business_a):
        item = _create(business_a.id)
        with pytest.raises(InventoryError):
            inventory_service.reserve_stock(business_a.id, item.id, float("nan"), now=NOW)


class TestTransactionLog:

    def test_adjust_keeps_reason(self, db_session, business_a):
        item = _create(business_a.id)
        inventory_service.adjust_stock(business_a.id, item.id, -3, reason="spoilage", now=NOW)

        rows, total = inventory_service.list_transactions(business_a.id, item_id=item.id)

        assert total == 1
        tx = rows[0]
        assert tx.type == "adjustment"
        assert tx.quantity == -3
        assert tx.reason == "spoilage"
        assert (tx.current_before, tx.current_after) == (10, 7)
        assert (tx.reserved_before, tx.reserved_after) == (2, 2)
        assert tx.occurred_at == NOW

    def test_rejected_adjustment_is_not_logged(self, db_session, business_a):
        item = _create(business_a.id)
        with pytest.raises(InventoryError):
            inventory_service.adjust_stock(business_a.id, item.id, -11, reason="miscount", now=NOW)

        assert inventory_service.list_transactions(business_a.id)[1] == 0

    def test_reserve_release_and_sale_each_logged(self, db_session, business_a):
        item = _create(business_a.id)
        inventory_service.reserve_stock(business_a.id, item.id, 4, reason="order hold", now=NOW)
        inventory_service.release_stock(business_a.id, item.id, 1, now=NOW + timedelta(minutes=1))
        inventory_service.record_sale(
            business_a.id, "CHS-MOZZ", 2, order_id="VBMS-2026-000007", now=NOW + timedelta(minutes=2)
        )

        rows, total = inventory_service.list_transactions(business_a.id, item_id=item.id)

        assert total == 3
        assert [r.type for r in rows] == ["sale", "release", "reserve"]
        sale, release, reserve = rows
        assert (reserve.reserved_before, reserve.reserved_after) == (2, 6)
        assert (release.reserved_before, release.reserved_after) == (6, 5)
        assert sale.reference_type == "order"
        assert sale.reference_id == "VBMS-2026-000007"
        assert sale.current_before == sale.current_after == 10

    def test_filters_by_type_and_business(self, db_session, business_a, business_b):
        item = _create(business_a.id)
        other = _create(business_b.id)
        inventory_service.adjust_stock(business_a.id, item.id, 5, now=NOW)
        inventory_service.reserve_stock(business_a.id, item.id, 1, now=NOW)
        inventory_service.adjust_stock(business_b.id, other.id, 5, now=NOW)

        rows, total = inventory_service.list_transactions(business_a.id, tx_type="adjustment")
        assert total == 1
        assert rows[0].item_id == item.id

        with pytest.raises(InventoryError):
            inventory_service.list_transactions(business_a.id, tx_type="teleport")


class TestQueries:

    def test_alert_lists(self, db_session, business_a):
        low = _create(business_a.id, sku="A", name="Anchovies", stock_current=4, stock_reserved=0)
        out = _create(business_a.id, sku="B", name="Basil", stock_current=0, stock_reserved=0)
        _create(business_a.id, sku="C", name="Cheddar", stock_current=50, stock_reserved=0)
        expiring = _create(
            business_a.id, sku="D", name="Dough", stock_current=50, stock_reserved=0,
            expiration_date=NOW + timedelta(days=2),
        )

        assert {i.id for i in inventory_service.low_stock_items(business_a.id)} == {low.id, out.id}
        assert [i.id for i in inventory_service.out_of_stock_items(business_a.id)] == [out.id]
        assert [i.id for i in inventory_service.expiring_items(business_a.id)] == [expiring.id]

    def test_summary(self, db_session, business_a):
        _create(business_a.id, sku="A", stock_current=10, stock_reserved=0, cost_cents=100, price_cents=300)
        _create(business_a.id, sku="B", stock_current=2, stock_reserved=0, cost_cents=500, price_cents=900)

        summary = inventory_service.inventory_summary(business_a.id)

        assert summary["item_count"] == 2
        assert summary["total_units"] == 12
        assert summary["total_cost_value_cents"] == 10 * 100 + 2 * 500
        assert summary["total_retail_value_cents"] == 10 * 300 + 2 * 900
        assert summary["alerts"]["low_stock"] == 1

    def test_list_search_and_categories(self, db_session, business_a):
        _create(business_a.id, sku="CHS-1", name="Parmesan", category="cheese")
        _create(business_a.id, sku="VEG-1", name="Basil", category="produce", barcode="0123456789")

        items, total = inventory_service.list_items(business_a.id, search="parm")
        assert total == 1
        assert items[0].sku == "CHS-1"

        assert inventory_service.list_categories(business_a.id) == ["cheese", "produce"]
        assert inventory_service.find_by_barcode(business_a.id, "0123456789").sku == "VEG-1"

    def test_recompute_all_refreshes_expiry_flag(self, db_session, business_a):
        item = _create(business_a.id, expiration_date=NOW + timedelta(days=10))
        assert item.alert_expiring_soon is False

        touched = inventory_service.recompute_all(business_a.id, now=NOW + timedelta(days=5))

        assert touched == 1
        assert db_session.get(InventoryItem, item.id).alert_expiring_soon is True
