# Overview: Pytest coverage for call records and file metadata.

from datetime import datetime

import pytest

from vbms.services import call_service, file_service, order_service
from vbms.services.call_service import CallError, CallNotFoundError
from vbms.services.file_service import FileRecordNotFoundError, format_file_size
from vbms.validation import ConflictError, ValidationError

from conftest import call_payload, order_payload


NOW = datetime(2026, 10, 17, 14, 0, 0)


class TestCalls:

    def test_create_defaults(self, db_session, business_a):
        call = call_service.create_call(business_a.id, call_payload(), now=NOW)

        assert call.call_id == "CALL-20261017-0001"
        assert call.cost_cents == call_service.DEFAULT_CALL_COST_CENTS
        assert call.customer_phone == "+15550002222"
        assert call.outcome == "answered"
        assert call.keywords == []

    def test_links_created_order(self, db_session, business_a):
        order = order_service.create_order(business_a.id, order_payload(), now=NOW)
        call = call_service.create_call(
            business_a.id,
            call_payload(business_action={"created_order_id": order.order_id}),
            now=NOW,
        )
        assert call.to_dict()["business_action"]["created_order_id"] == order.order_id

    def test_unknown_created_order_rejected(self, db_session, business_a):
        with pytest.raises(ValidationError):
            call_service.create_call(
                business_a.id,
                call_payload(business_action={"created_order_id": "VBMS-2026-999999"}),
                now=NOW,
            )

    def test_confidence_out_of_range(self, db_session, business_a):
        with pytest.raises(ValidationError):
            call_service.create_call(business_a.id, call_payload(ai_handling={"confidence": 101}), now=NOW)

    def test_requires_start_time(self, db_session, business_a):
        with pytest.raises(ValidationError):
            call_service.create_call(business_a.id, call_payload(timing={}), now=NOW)

    def test_complete_sets_duration(self, db_session, business_a):
        call = call_service.create_call(business_a.id, call_payload(), now=NOW)
        done = call_service.complete_call(
            business_a.id, call.call_id, end_time=datetime(2026, 10, 17, 14, 3, 30), summary="Ordered two pizzas"
        )

        assert done.duration_seconds == 210
        assert done.summary == "Ordered two pizzas"

        with pytest.raises(CallError):
            call_service.complete_call(business_a.id, call.call_id, end_time=datetime(2026, 10, 17, 14, 5))

    def test_complete_before_start_rejected(self, db_session, business_a):
        call = call_service.create_call(business_a.id, call_payload(), now=NOW)
        with pytest.raises(CallError):
            call_service.complete_call(business_a.id, call.call_id, end_time=datetime(2026, 10, 17, 13, 0))

    def test_complete_unknown_call(self, db_session, business_a):
        with pytest.raises(CallNotFoundError):
            call_service.complete_call(business_a.id, "CALL-20261017-9999")

    def test_stats(self, db_session, business_a):
        call_service.create_call(business_a.id, call_payload(duration_seconds=60), now=NOW)
        call_service.create_call(
            business_a.id,
            call_payload(
                purpose="complaint",
                duration_seconds=120,
                ai_handling={"transferred_to_human": True},
                business_action={"follow_up_required": True},
            ),
            now=NOW,
        )

        stats = call_service.call_stats(business_a.id)

        assert stats["total_calls"] == 2
        assert stats["handled_by_ai"] == 2
        assert stats["transferred_to_human"] == 1
        assert stats["follow_ups_required"] == 1
        assert stats["average_duration_seconds"] == 90.0
        assert stats["total_cost_cents"] == 60
        assert stats["by_purpose"] == {"order": 1, "complaint": 1}


def _file_values(**overrides):
    values = {
        "original_name": "menu.pdf",
        "file_name": "1697500000-menu.pdf",
        "file_key": "uploads/tony/menu.pdf",
        "file_url": "/uploads/tony/menu.pdf",
        "file_size": 1536,
        "mime_type": "application/pdf",
        "category": "documents",
    }
    values.update(overrides)
    return values


class TestFiles:

    @pytest.mark.parametrize(
        "size,expected",
        [
            (0, "0 Bytes"),
            (512, "512 Bytes"),
            (1024, "1 KB"),
            (1536, "1.5 KB"),
            (5 * 1024 * 1024, "5 MB"),
            (3 * 1024 ** 3, "3 GB"),
        ],
    )
    def test_format_file_size(self, size, expected):
        assert format_file_size(size) == expected

    def test_register_defaults(self, db_session, admin_a):
        record = file_service.register_file(admin_a.id, _file_values(metadata={"width": 10}), now=NOW)

        data = record.to_dict()
        assert data["storage"] == "local"
        assert data["access_level"] == "private"
        assert data["download_count"] == 0
        assert data["formatted_size"] == "1.5 KB"
        assert data["metadata"] == {"width": 10}

    def test_duplicate_key_conflict(self, db_session, admin_a):
        file_service.register_file(admin_a.id, _file_values(), now=NOW)
        with pytest.raises(ConflictError):
            file_service.register_file(admin_a.id, _file_values(original_name="copy.pdf"), now=NOW)

    def test_unknown_user_rejected(self, db_session):
        with pytest.raises(ValidationError):
            file_service.register_file(12345, _file_values(), now=NOW)

    def test_record_access_increments(self, db_session, admin_a):
        record = file_service.register_file(admin_a.id, _file_values(), now=NOW)
        later = datetime(2026, 10, 18, 9, 0)

        file_service.record_access(record.id, now=NOW)
        updated = file_service.record_access(record.id, now=later)

        assert updated.download_count == 2
        assert updated.last_accessed == later

    def test_record_access_missing_file(self, db_session):
        with pytest.raises(FileRecordNotFoundError):
            file_service.record_access(4242)
