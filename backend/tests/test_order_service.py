# Overview: Pytest coverage for order creation and the status lifecycle.

from datetime import datetime

import pytest

from vbms.models import InventoryItem
from vbms.services import inventory_service, order_service
from vbms.services.order_service import (
    OrderNotFoundError,
    OrderTransitionError,
    can_transition,
)
from vbms.validation import ValidationError

from conftest import order_payload


NOW = datetime(2026, 10, 17, 18, 0, 0)


class TestTransitions:
    """State machine rules."""

    @pytest.mark.parametrize(
        "from_status,to_status",
        [
            ("pending", "confirmed"),
            ("confirmed", "preparing"),
            ("preparing", "ready"),
            ("ready", "out_for_delivery"),
            ("ready", "completed"),
            ("out_for_delivery", "delivered"),
            ("delivered", "completed"),
            ("pending", "cancelled"),
            ("out_for_delivery", "cancelled"),
        ],
    )
    def test_allowed(self, from_status, to_status):
        assert can_transition(from_status, to_status) is True

    @pytest.mark.parametrize(
        "from_status,to_status",
        [
            ("pending", "ready"),
            ("ready", "preparing"),
            ("pending", "pending"),
            ("completed", "cancelled"),
            ("cancelled", "pending"),
            ("delivered", "out_for_delivery"),
        ],
    )
    def test_forbidden(self, from_status, to_status):
        assert can_transition(from_status, to_status) is False


class TestCreateOrder:

    def test_line_totals_include_modifiers(self, db_session, business_a):
        payload = order_payload(items=[
            {
                "name": "Margherita",
                "quantity": 2,
                "unit_price_cents": 1200,
                "modifiers": [{"name": "Extra cheese", "price_cents": 150}],
            },
            {"name": "Soda", "quantity": 1, "unit_price_cents": 250},
        ])
        order = order_service.create_order(business_a.id, payload, now=NOW)

        assert [i.line_total_cents for i in order.items] == [2 * (1200 + 150), 250]
        assert [i.position for i in order.items] == [1, 2]

    def test_starts_pending_with_history(self, db_session, business_a):
        order = order_service.create_order(business_a.id, order_payload(), updated_by="agent", now=NOW)

        assert order.status == "pending"
        assert order.order_time == NOW
        assert len(order.status_history) == 1
        assert order.status_history[0].status == "pending"
        assert order.status_history[0].updated_by == "agent"

    def test_requires_items(self, db_session, business_a):
        with pytest.raises(ValidationError):
            order_service.create_order(business_a.id, order_payload(items=[]), now=NOW)

    def test_requires_total(self, db_session, business_a):
        with pytest.raises(ValidationError):
            order_service.create_order(business_a.id, order_payload(pricing={"subtotal_cents": 100}), now=NOW)

    def test_rejects_unknown_source(self, db_session, business_a):
        with pytest.raises(ValidationError):
            order_service.create_order(business_a.id, order_payload(source="fax"), now=NOW)

    def test_rejects_zero_quantity(self, db_session, business_a):
        payload = order_payload(items=[{"name": "Soda", "quantity": 0, "unit_price_cents": 250}])
        with pytest.raises(ValidationError):
            order_service.create_order(business_a.id, payload, now=NOW)


class TestUpdateStatus:

    def test_walks_delivery_lifecycle(self, db_session, business_a):
        order = order_service.create_order(business_a.id, order_payload(type="delivery"), now=NOW)

        for status in ("confirmed", "preparing", "ready", "out_for_delivery", "delivered"):
            order = order_service.update_order_status(business_a.id, order.order_id, status, now=NOW)

        assert order.status == "delivered"
        assert order.actual_time == NOW
        assert order.delivery_time == NOW
        assert [e.status for e in order.status_history] == [
            "pending", "confirmed", "preparing", "ready", "out_for_delivery", "delivered",
        ]

    def test_skip_is_rejected(self, db_session, business_a):
        order = order_service.create_order(business_a.id, order_payload(), now=NOW)
        with pytest.raises(OrderTransitionError):
            order_service.update_order_status(business_a.id, order.order_id, "ready", now=NOW)

    def test_unknown_status_is_validation_error(self, db_session, business_a):
        order = order_service.create_order(business_a.id, order_payload(), now=NOW)
        with pytest.raises(ValidationError):
            order_service.update_order_status(business_a.id, order.order_id, "teleported", now=NOW)

    def test_other_business_cannot_see_order(self, db_session, business_a, business_b):
        order = order_service.create_order(business_a.id, order_payload(), now=NOW)
        with pytest.raises(OrderNotFoundError):
            order_service.update_order_status(business_b.id, order.order_id, "confirmed", now=NOW)

    def test_cancel_then_terminal(self, db_session, business_a):
        order = order_service.create_order(business_a.id, order_payload(), now=NOW)
        order_service.update_order_status(business_a.id, order.order_id, "cancelled", note="Customer hung up", now=NOW)

        with pytest.raises(OrderTransitionError):
            order_service.update_order_status(business_a.id, order.order_id, "confirmed", now=NOW)

    def test_completion_records_inventory_sale(self, db_session, business_a):
        item = inventory_service.create_item(
            business_a.id,
            {
                "name": "Margherita kit",
                "sku": "PIZ-MARG",
                "category": "kits",
                "cost_cents": 300,
                "price_cents": 1200,
                "stock_current": 10,
            },
            now=NOW,
        )
        order = order_service.create_order(business_a.id, order_payload(), now=NOW)

        for status in ("confirmed", "preparing", "ready", "completed"):
            order_service.update_order_status(business_a.id, order.order_id, status, now=NOW)

        stored = db_session.get(InventoryItem, item.id)
        assert stored.stock_current == 10
        assert stored.total_sold == 2
        assert stored.last_sold == NOW

    def test_completion_selling_more_than_stock_is_recorded_in_full(self, db_session, business_a):
        item = inventory_service.create_item(
            business_a.id,
            {
                "name": "Margherita kit",
                "sku": "PIZ-MARG",
                "category": "kits",
                "cost_cents": 300,
                "price_cents": 1200,
                "stock_current": 1,
            },
            now=NOW,
        )
        order = order_service.create_order(business_a.id, order_payload(), now=NOW)

        for status in ("confirmed", "preparing", "ready", "completed"):
            order_service.update_order_status(business_a.id, order.order_id, status, now=NOW)

        stored = db_session.get(InventoryItem, item.id)
        assert stored.stock_current == 1
        assert stored.total_sold == 2

        rows, total = inventory_service.list_transactions(business_a.id, item_id=item.id, tx_type="sale")
        assert total == 1
        assert rows[0].quantity == 2
        assert rows[0].reference_id == order.order_id


class TestListOrders:

    def test_filters_by_status(self, db_session, business_a):
        first = order_service.create_order(business_a.id, order_payload(), now=NOW)
        order_service.create_order(business_a.id, order_payload(), now=NOW)
        order_service.update_order_status(business_a.id, first.order_id, "confirmed", now=NOW)

        orders, total = order_service.list_orders(business_a.id, status="confirmed")
        assert total == 1
        assert orders[0].order_id == first.order_id
