# Overview: Service-layer operations for calls; creation, numbering, completion and stats.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import case, func

from ..extensions import db
from ..models import Call, Order
from ..enums import CallDirection, CallPurpose, CallOutcome, Sentiment, Priority
from ..validation import ValidationError, coerce_int, coerce_datetime, coerce_enum
from vbms.time_utils import utcnow
from .concurrency import run_with_retry
from .identifier_service import create_with_display_id, CALL_DOCUMENT_TYPE


DEFAULT_CALL_COST_CENTS = 30


class CallError(Exception):
    """Raised for call operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class CallNotFoundError(CallError):
    """Raised when the call does not exist in the business."""


def _bounded_int(value, field: str, low: int, high: int) -> int | None:
    if value is None:
        return None
    n = coerce_int(value, field)
    if n < low or n > high:
        raise ValidationError(f"{field} must be between {low} and {high}")
    return n


def _string_list(value, field: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError(f"{field} must be a list")
    return [str(v).strip() for v in value if str(v).strip()]


def _normalize_call(business_id: int, data: dict) -> dict:
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")

    customer = data.get("customer") or {}
    ai = data.get("ai_handling") or {}
    conversation = data.get("conversation") or {}
    action = data.get("business_action") or {}
    timing = data.get("timing") or {}
    recording = data.get("recording") or {}

    phone_number = str(data.get("phone_number") or "").strip()
    if not phone_number:
        raise ValidationError("phone_number is required")
    customer_phone = str(customer.get("phone") or phone_number).strip()

    if not data.get("direction"):
        raise ValidationError("direction is required")

    start_time = coerce_datetime(timing.get("start_time"), "timing.start_time")
    if start_time is None:
        raise ValidationError("timing.start_time is required")
    end_time = coerce_datetime(timing.get("end_time"), "timing.end_time")

    duration = coerce_int(data.get("duration_seconds", 0), "duration_seconds")
    if duration < 0:
        raise ValidationError("duration_seconds must be >= 0")
    cost = coerce_int(data.get("cost_cents", DEFAULT_CALL_COST_CENTS), "cost_cents")
    if cost < 0:
        raise ValidationError("cost_cents must be >= 0")

    created_order_pk = None
    if action.get("created_order_id"):
        order = (
            db.session.query(Order.id)
            .filter_by(business_id=business_id, order_id=str(action["created_order_id"]))
            .first()
        )
        if not order:
            raise ValidationError("business_action.created_order_id does not match an order")
        created_order_pk = order.id

    return {
        "vapi_call_id": data.get("vapi_call_id"),
        "phone_number": phone_number,
        "direction": coerce_enum(CallDirection, data.get("direction"), "direction"),
        "duration_seconds": duration,
        "cost_cents": cost,
        "customer_name": customer.get("name"),
        "customer_phone": customer_phone,
        "customer_email": customer.get("email"),
        "customer_is_returning": bool(customer.get("is_returning", False)),
        "purpose": coerce_enum(CallPurpose, data.get("purpose") or CallPurpose.INQUIRY.value, "purpose"),
        "outcome": coerce_enum(CallOutcome, data.get("outcome") or CallOutcome.ANSWERED.value, "outcome"),
        "handled_by_ai": bool(ai.get("handled_by_ai", True)),
        "ai_confidence": _bounded_int(ai.get("confidence"), "ai_handling.confidence", 0, 100),
        "transferred_to_human": bool(ai.get("transferred_to_human", False)),
        "transfer_reason": ai.get("transfer_reason"),
        "satisfaction": _bounded_int(ai.get("satisfaction"), "ai_handling.satisfaction", 1, 5),
        "transcript": conversation.get("transcript"),
        "summary": conversation.get("summary"),
        "sentiment": coerce_enum(Sentiment, conversation.get("sentiment") or Sentiment.NEUTRAL.value, "conversation.sentiment"),
        "keywords": _string_list(conversation.get("keywords"), "conversation.keywords"),
        "action_items": _string_list(conversation.get("action_items"), "conversation.action_items"),
        "created_order_pk": created_order_pk,
        "follow_up_required": bool(action.get("follow_up_required", False)),
        "follow_up_note": action.get("follow_up_note"),
        "priority": coerce_enum(Priority, action.get("priority") or Priority.LOW.value, "business_action.priority"),
        "start_time": start_time,
        "end_time": end_time,
        "time_zone": timing.get("time_zone"),
        "during_business_hours": bool(timing.get("during_business_hours", True)),
        "recording_url": recording.get("url"),
        "recording_duration_seconds": _bounded_int(recording.get("duration_seconds"), "recording.duration_seconds", 0, 86_400),
        "recording_available": bool(recording.get("available", False)),
    }


def create_call(business_id: int, data: dict, *, now: datetime | None = None) -> Call:
    """Record a call and give it the next CALL-<YYYYMMDD>-<seq> number for today."""
    now = now or utcnow()
    fields = _normalize_call(business_id, data)

    def build() -> Call:
        return Call(business_id=business_id, created_at=now, updated_at=now, **fields)

    return create_with_display_id(CALL_DOCUMENT_TYPE, build, now=now)


def get_call(business_id: int, call_id: str) -> Call | None:
    return db.session.query(Call).filter_by(business_id=business_id, call_id=call_id).first()


def list_calls(
    business_id: int,
    *,
    purpose: str | None = None,
    outcome: str | None = None,
    follow_up_required: bool | None = None,
    from_date: datetime | None = None,
    to_date: datetime | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Call], int]:
    q = db.session.query(Call).filter(Call.business_id == business_id)
    if purpose:
        q = q.filter(Call.purpose == coerce_enum(CallPurpose, purpose, "purpose"))
    if outcome:
        q = q.filter(Call.outcome == coerce_enum(CallOutcome, outcome, "outcome"))
    if follow_up_required is not None:
        q = q.filter(Call.follow_up_required == follow_up_required)
    if from_date:
        q = q.filter(Call.created_at >= from_date)
    if to_date:
        q = q.filter(Call.created_at <= to_date)

    total = q.count()
    limit = max(1, min(limit, 500))
    offset = max(0, offset)
    calls = q.order_by(Call.created_at.desc(), Call.id.desc()).offset(offset).limit(limit).all()
    return calls, total


def complete_call(
    business_id: int,
    call_id: str,
    *,
    end_time: datetime | None = None,
    summary: str | None = None,
) -> Call:
    """Close a call: set end_time and duration from start_time."""
    def _op():
        call = get_call(business_id, call_id)
        if not call:
            raise CallNotFoundError("Call not found", details={"call_id": call_id})
        if call.end_time is not None:
            raise CallError("Call already completed", details={"call_id": call_id})

        ended = end_time or utcnow()
        if ended < call.start_time:
            raise CallError(
                "end_time cannot be before start_time",
                details={"call_id": call_id},
            )
        call.end_time = ended
        call.duration_seconds = int((ended - call.start_time).total_seconds())
        if summary is not None:
            call.summary = summary
        db.session.commit()
        return call

    return run_with_retry(_op)


def call_stats(business_id: int, *, from_date: datetime | None = None, to_date: datetime | None = None) -> dict:
    q = db.session.query(Call).filter(Call.business_id == business_id)
    if from_date:
        q = q.filter(Call.created_at >= from_date)
    if to_date:
        q = q.filter(Call.created_at <= to_date)

    total, ai_handled, transferred, follow_ups, avg_duration, cost = q.with_entities(
        func.count(Call.id),
        func.coalesce(func.sum(case((Call.handled_by_ai == True, 1), else_=0)), 0),  # noqa: E712
        func.coalesce(func.sum(case((Call.transferred_to_human == True, 1), else_=0)), 0),  # noqa: E712
        func.coalesce(func.sum(case((Call.follow_up_required == True, 1), else_=0)), 0),  # noqa: E712
        func.avg(Call.duration_seconds),
        func.coalesce(func.sum(Call.cost_cents), 0),
    ).one()

    by_purpose = dict(
        q.with_entities(Call.purpose, func.count(Call.id)).group_by(Call.purpose).all()
    )

    return {
        "business_id": business_id,
        "total_calls": int(total),
        "handled_by_ai": int(ai_handled),
        "transferred_to_human": int(transferred),
        "follow_ups_required": int(follow_ups),
        "average_duration_seconds": round(float(avg_duration), 1) if avg_duration is not None else 0.0,
        "total_cost_cents": int(cost),
        "by_purpose": {purpose: int(n) for purpose, n in by_purpose.items()},
    }
