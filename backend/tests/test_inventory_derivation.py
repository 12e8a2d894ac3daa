# Overview: Pytest coverage for the pure inventory derivation function.

from datetime import datetime, timedelta

import pytest

from vbms.services.inventory_service import derive_inventory_fields, DERIVED_FIELDS


NOW = datetime(2026, 10, 17, 12, 0, 0)


def _record(**overrides):
    record = {
        "stock_current": 10,
        "stock_reserved": 2,
        "stock_minimum": 5,
        "stock_maximum": 100,
        "cost_cents": 400,
        "price_cents": 1000,
        "expiration_date": None,
        "alert_expiring_soon": False,
    }
    record.update(overrides)
    return record


class TestDeriveInventoryFields:

    def test_end_to_end_values(self):
        result = derive_inventory_fields(_record(), now=NOW)
        assert result["stock_available"] == 8
        assert result["margin_percent"] == pytest.approx(150.0)
        assert result["alert_low_stock"] is False
        assert result["alert_out_of_stock"] is False
        assert result["alert_overstock"] is False
        assert result["alert_expiring_soon"] is False

    def test_idempotent(self):
        once = derive_inventory_fields(_record(expiration_date=NOW + timedelta(days=3)), now=NOW)
        twice = derive_inventory_fields(once, now=NOW)
        assert {k: once[k] for k in DERIVED_FIELDS} == {k: twice[k] for k in DERIVED_FIELDS}

    def test_input_is_not_mutated(self):
        record = _record()
        derive_inventory_fields(record, now=NOW)
        assert "stock_available" not in record

    @pytest.mark.parametrize(
        "current,reserved,minimum,maximum",
        [
            (0, 0, 5, 100),
            (5, 0, 5, 100),
            (3, 5, 5, 100),
            (100, 0, 5, 100),
            (250.5, 10.25, 20, 200),
            (1, 0, 0, 1),
        ],
    )
    def test_alert_flags_follow_stock_levels(self, current, reserved, minimum, maximum):
        result = derive_inventory_fields(
            _record(stock_current=current, stock_reserved=reserved, stock_minimum=minimum, stock_maximum=maximum),
            now=NOW,
        )
        available = current - reserved
        assert result["stock_available"] == available
        assert result["alert_low_stock"] == (available <= minimum)
        assert result["alert_out_of_stock"] == (available <= 0)
        assert result["alert_overstock"] == (current >= maximum)

    def test_over_reserved_goes_negative(self):
        result = derive_inventory_fields(_record(stock_current=2, stock_reserved=5), now=NOW)
        assert result["stock_available"] == -3
        assert result["alert_out_of_stock"] is True
        assert result["alert_low_stock"] is True

    def test_missing_optional_stock_levels_use_defaults(self):
        record = _record()
        for key in ("stock_reserved", "stock_minimum", "stock_maximum"):
            record.pop(key)
        result = derive_inventory_fields(record, now=NOW)
        assert result["stock_available"] == 10
        assert result["alert_low_stock"] is False

    def test_zero_cost_has_no_margin(self):
        result = derive_inventory_fields(_record(cost_cents=0, price_cents=500), now=NOW)
        assert result["margin_percent"] is None

    def test_negative_margin_when_sold_below_cost(self):
        result = derive_inventory_fields(_record(cost_cents=1000, price_cents=750), now=NOW)
        assert result["margin_percent"] == pytest.approx(-25.0)


class TestExpiringSoon:

    def test_exactly_seven_days_is_expiring(self):
        result = derive_inventory_fields(_record(expiration_date=NOW + timedelta(days=7)), now=NOW)
        assert result["alert_expiring_soon"] is True

    def test_one_second_past_seven_days_is_not(self):
        result = derive_inventory_fields(
            _record(expiration_date=NOW + timedelta(days=7, seconds=1)), now=NOW
        )
        assert result["alert_expiring_soon"] is False

    def test_already_expired_is_not(self):
        result = derive_inventory_fields(_record(expiration_date=NOW - timedelta(seconds=1)), now=NOW)
        assert result["alert_expiring_soon"] is False

    def test_expiring_now_is_not(self):
        result = derive_inventory_fields(_record(expiration_date=NOW), now=NOW)
        assert result["alert_expiring_soon"] is False

    def test_window_is_configurable(self):
        result = derive_inventory_fields(
            _record(expiration_date=NOW + timedelta(days=10)), now=NOW, expiring_soon_days=14
        )
        assert result["alert_expiring_soon"] is True

    def test_no_expiration_keeps_previous_flag(self):
        assert derive_inventory_fields(_record(alert_expiring_soon=True), now=NOW)["alert_expiring_soon"] is True
        assert derive_inventory_fields(_record(alert_expiring_soon=False), now=NOW)["alert_expiring_soon"] is False
