# Overview: Pytest coverage for order/call display-number generation.

"""
Display Number Tests

Covers:
1. Format of order (VBMS-YYYY-NNNNNN) and call (CALL-YYYYMMDD-NNNN) numbers
2. Counting windows: all-time for orders, local day for calls
3. Numbers are assigned once and never change on later saves
4. Collision handling: retry with an advanced sequence, then give up
"""

from datetime import date, datetime

import pytest
from sqlalchemy.exc import IntegrityError

from vbms.extensions import db
from vbms.models import Order, DocumentSequence
from vbms.services import identifier_service, sequence_service
from vbms.services.call_service import create_call
from vbms.services.order_service import create_order

from conftest import order_payload, call_payload


NOW = datetime(2026, 10, 17, 15, 30)


def _insert_order(business_id, order_id, created_at=NOW):
    """Insert an order directly, bypassing numbering (imports, manual fixes)."""
    order = Order(
        business_id=business_id,
        order_id=order_id,
        subtotal_cents=1000,
        total_cents=1000,
        created_at=created_at,
        order_time=created_at,
    )
    db.session.add(order)
    db.session.commit()
    return order


class TestFormats:
    """Pure formatting helpers."""

    def test_order_id_is_next_count_padded_to_six(self):
        assert identifier_service.generate_order_id(0, 2026) == "VBMS-2026-000001"
        assert identifier_service.generate_order_id(41, 2026) == "VBMS-2026-000042"

    def test_order_id_overflows_padding_without_truncation(self):
        assert identifier_service.generate_order_id(1_000_000, 2027) == "VBMS-2027-1000001"

    def test_call_id_uses_compact_date(self):
        assert identifier_service.generate_call_id(0, date(2026, 10, 17)) == "CALL-20261017-0001"
        assert identifier_service.generate_call_id(6, date(2026, 1, 5)) == "CALL-20260105-0007"


class TestOrderNumbering:
    """Order numbers count every existing order."""

    def test_first_order(self, db_session, business_a):
        order = create_order(business_a.id, order_payload(), now=NOW)
        assert order.order_id == "VBMS-2026-000001"

    def test_n_existing_orders_gives_n_plus_one(self, db_session, business_a):
        for i in range(3):
            _insert_order(business_a.id, f"LEGACY-{i}")

        order = create_order(business_a.id, order_payload(), now=NOW)
        assert order.order_id == "VBMS-2026-000004"

    def test_count_is_global_across_businesses(self, db_session, business_a, business_b):
        create_order(business_a.id, order_payload(), now=NOW)
        order_b = create_order(business_b.id, order_payload(), now=NOW)
        assert order_b.order_id == "VBMS-2026-000002"

    def test_count_does_not_reset_with_year(self, db_session, business_a):
        create_order(business_a.id, order_payload(), now=datetime(2025, 12, 31, 23, 0))
        order = create_order(business_a.id, order_payload(), now=datetime(2026, 1, 1, 1, 0))
        assert order.order_id == "VBMS-2026-000002"

    def test_yearly_reset_flag_restarts_each_year(self, app, db_session, business_a, monkeypatch):
        monkeypatch.setitem(app.config, "VBMS_ORDER_ID_YEARLY_RESET", True)
        create_order(business_a.id, order_payload(), now=datetime(2025, 12, 31, 23, 0))
        order = create_order(business_a.id, order_payload(), now=datetime(2026, 1, 1, 1, 0))
        assert order.order_id == "VBMS-2026-000001"

    def test_resave_keeps_existing_number(self, db_session, business_a):
        order = create_order(business_a.id, order_payload(), now=NOW)
        original = order.order_id

        order.internal_notes = "Extra napkins"
        db_session.commit()

        assert identifier_service.assign_order_id(order, now=NOW) is None
        assert db_session.get(Order, order.id).order_id == original

    def test_consecutive_orders_are_unique(self, db_session, business_a):
        ids = {create_order(business_a.id, order_payload(), now=NOW).order_id for _ in range(5)}
        assert ids == {f"VBMS-2026-00000{i}" for i in range(1, 6)}


class TestCallNumbering:
    """Call numbers restart every local day."""

    def test_sequence_within_a_day(self, db_session, business_a):
        first = create_call(business_a.id, call_payload(), now=datetime(2026, 10, 17, 9, 0))
        second = create_call(business_a.id, call_payload(), now=datetime(2026, 10, 17, 18, 0))
        assert first.call_id == "CALL-20261017-0001"
        assert second.call_id == "CALL-20261017-0002"

    def test_new_day_restarts_at_one(self, db_session, business_a):
        for hour in (9, 10, 11):
            create_call(business_a.id, call_payload(), now=datetime(2026, 10, 17, hour, 0))

        call = create_call(business_a.id, call_payload(), now=datetime(2026, 10, 18, 0, 5))
        assert call.call_id == "CALL-20261018-0001"

    def test_day_boundary_follows_configured_timezone(self, app, db_session, business_a, monkeypatch):
        monkeypatch.setitem(app.config, "VBMS_DEFAULT_TIMEZONE", "America/New_York")
        # 03:00 UTC on the 17th is still the evening of the 16th in New York
        call = create_call(business_a.id, call_payload(), now=datetime(2026, 10, 17, 3, 0))
        assert call.call_id == "CALL-20261016-0001"


class TestCollisions:
    """Display-number collisions with rows created outside the sequence."""

    def test_collision_advances_sequence_and_retries(self, db_session, business_a):
        create_order(business_a.id, order_payload(), now=NOW)
        _insert_order(business_a.id, "VBMS-2026-000002")

        order = create_order(business_a.id, order_payload(), now=NOW)

        assert order.order_id == "VBMS-2026-000003"
        seq = db_session.query(DocumentSequence).filter_by(document_type="ORDER", window_key="ALL").one()
        assert seq.next_number == 4

    def test_exhausted_attempts_raise_integrity_error(self, app, db_session, business_a, monkeypatch):
        monkeypatch.setitem(app.config, "VBMS_ID_ALLOCATION_ATTEMPTS", 1)
        create_order(business_a.id, order_payload(), now=NOW)
        _insert_order(business_a.id, "VBMS-2026-000002")

        with pytest.raises(IntegrityError):
            create_order(business_a.id, order_payload(), now=NOW)

        # Nothing half-written survives the failed create
        assert db_session.query(Order).count() == 2


class TestSequenceService:
    """Atomic allocation helpers."""

    def test_first_allocation_seeds_from_count(self, db_session):
        number = sequence_service.allocate(document_type="ORDER", window_key="ALL", count_existing=lambda: 9)
        assert number == 10
        assert sequence_service.allocate(document_type="ORDER", window_key="ALL", count_existing=lambda: 0) == 11

    def test_windows_are_independent(self, db_session):
        sequence_service.allocate(document_type="CALL", window_key="20261017", count_existing=lambda: 0)
        number = sequence_service.allocate(document_type="CALL", window_key="20261018", count_existing=lambda: 0)
        assert number == 1

    def test_requires_window_key(self, db_session):
        with pytest.raises(sequence_service.SequenceError):
            sequence_service.allocate(document_type="CALL", window_key="", count_existing=lambda: 0)

    def test_advance_past_never_moves_backwards(self, db_session):
        sequence_service.allocate(document_type="ORDER", window_key="ALL", count_existing=lambda: 20)
        db_session.commit()

        sequence_service.advance_past(document_type="ORDER", window_key="ALL", number=5)

        seq = sequence_service.list_sequences("ORDER")[0]
        assert seq.next_number == 22
