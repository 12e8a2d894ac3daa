# Overview: Service-layer operations for display identifiers (order and call numbers).

"""
Identifier Service - human-readable display numbers

FORMATS:
- Order: VBMS-<year>-<6-digit sequence>     e.g. VBMS-2026-000042
- Call:  CALL-<YYYYMMDD>-<4-digit sequence> e.g. CALL-20261017-0007

SEQUENCE WINDOWS:
- Orders count across the whole collection ("ALL"), not per year, even though
  the year is embedded in the number. VBMS_ORDER_ID_YEARLY_RESET switches the
  window to the current year.
- Calls count from local midnight of the current day (VBMS_DEFAULT_TIMEZONE),
  so the first call of each day is 0001.

ALLOCATION:
Numbers come from sequence_service (atomic per-window counter seeded from the
count of existing records). Creation additionally runs in a bounded retry
loop: if the insert still hits the unique constraint on the display number,
the sequence is advanced past the collided value and the record is rebuilt
with a fresh number. Once attempts are exhausted the IntegrityError
propagates unchanged.

An ID is only ever assigned to a record whose ID field is empty; saving an
existing record never renumbers it.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Callable, TypeVar

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Order, Call
from vbms.time_utils import utcnow, local_day_start
from . import sequence_service


ORDER_DOCUMENT_TYPE = "ORDER"
CALL_DOCUMENT_TYPE = "CALL"
ORDER_ID_PAD = 6
CALL_ID_PAD = 4

T = TypeVar("T")


def generate_order_id(existing_count: int, year: int) -> str:
    """Order display number for the (existing_count + 1)th order."""
    return f"VBMS-{year}-{existing_count + 1:0{ORDER_ID_PAD}d}"


def generate_call_id(existing_count: int, day: date) -> str:
    """Call display number for the (existing_count + 1)th call of day."""
    return f"CALL-{day.strftime('%Y%m%d')}-{existing_count + 1:0{CALL_ID_PAD}d}"


def _order_window(now: datetime) -> tuple[str, Callable[[], int]]:
    if current_app.config.get("VBMS_ORDER_ID_YEARLY_RESET"):
        start = datetime(now.year, 1, 1)
        end = datetime(now.year + 1, 1, 1)

        def count_in_year() -> int:
            return (
                db.session.query(Order)
                .filter(Order.created_at >= start, Order.created_at < end)
                .count()
            )

        return str(now.year), count_in_year

    def count_all() -> int:
        return db.session.query(Order).count()

    return "ALL", count_all


def _call_window(now: datetime) -> tuple[date, str, Callable[[], int]]:
    day, midnight = local_day_start(now, current_app.config.get("VBMS_DEFAULT_TIMEZONE"))

    def count_today() -> int:
        return db.session.query(Call).filter(Call.created_at >= midnight).count()

    return day, day.strftime("%Y%m%d"), count_today


def assign_order_id(order: Order, *, now: datetime | None = None) -> int | None:
    """
    Give order its display number if it has none.

    Returns the allocated sequence number, or None when the order already had
    an ID.
    """
    if order.order_id:
        return None
    now = now or utcnow()
    window_key, count_existing = _order_window(now)
    number = sequence_service.allocate(
        document_type=ORDER_DOCUMENT_TYPE,
        window_key=window_key,
        count_existing=count_existing,
    )
    order.order_id = generate_order_id(number - 1, now.year)
    return number


def assign_call_id(call: Call, *, now: datetime | None = None) -> int | None:
    """Give call its display number if it has none. See assign_order_id."""
    if call.call_id:
        return None
    now = now or utcnow()
    day, window_key, count_existing = _call_window(now)
    number = sequence_service.allocate(
        document_type=CALL_DOCUMENT_TYPE,
        window_key=window_key,
        count_existing=count_existing,
    )
    call.call_id = generate_call_id(number - 1, day)
    return number


def _is_collision(exc: IntegrityError, column: str) -> bool:
    message = str(getattr(exc, "orig", exc))
    return column in message


def _order_window_key(now: datetime) -> str:
    return _order_window(now)[0]


def _call_window_key(now: datetime) -> str:
    return _call_window(now)[1]


_KINDS = {
    ORDER_DOCUMENT_TYPE: ("order_id", assign_order_id, _order_window_key),
    CALL_DOCUMENT_TYPE: ("call_id", assign_call_id, _call_window_key),
}


def create_with_display_id(
    document_type: str,
    build: Callable[[], T],
    *,
    now: datetime | None = None,
    attempts: int | None = None,
) -> T:
    """
    Build, number and insert a record, retrying on display-number collisions.

    build() returns a new, unsaved record (including any children). It is
    called again on every attempt because a failed commit expunges the
    previous instance.
    """
    column, assign, window_key_for = _KINDS[document_type]
    if attempts is None:
        attempts = int(current_app.config.get("VBMS_ID_ALLOCATION_ATTEMPTS", 3))
    attempts = max(1, attempts)
    now = now or utcnow()

    for attempt in range(attempts):
        record = build()
        number = assign(record, now=now)
        db.session.add(record)
        try:
            db.session.commit()
            return record
        except IntegrityError as exc:
            db.session.rollback()
            if number is None or not _is_collision(exc, column) or attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "%s %s collided with an existing record; advancing sequence (attempt %d/%d)",
                document_type,
                getattr(record, column),
                attempt + 1,
                attempts,
            )
            sequence_service.advance_past(
                document_type=document_type,
                window_key=window_key_for(now),
                number=number,
            )
