# Overview: Service-layer operations for display-number sequences; atomic allocation per window.

from __future__ import annotations

from typing import Callable

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence


class SequenceError(Exception):
    """Raised when sequence allocation is called with bad arguments."""
    pass


def _bump(document_type: str, window_key: str) -> int | None:
    """Increment the row in place; return the allocated number or None if no row exists."""
    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.document_type == document_type,
            DocumentSequence.window_key == window_key,
        )
        .values(next_number=DocumentSequence.next_number + 1)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        return None
    db.session.flush()
    current = (
        db.session.query(DocumentSequence.next_number)
        .filter_by(document_type=document_type, window_key=window_key)
        .scalar()
    )
    return current - 1


def allocate(
    *,
    document_type: str,
    window_key: str,
    count_existing: Callable[[], int],
) -> int:
    """
    Allocate the next number in (document_type, window_key).

    The first allocation in a window seeds the row from count_existing(), the
    number of records already created in that window, so the first number
    handed out is count + 1. Later allocations only touch the sequence row.

    Runs inside the caller's transaction: the increment commits or rolls back
    together with the record that uses the number.
    """
    if not document_type:
        raise SequenceError("document_type is required")
    if not window_key:
        raise SequenceError("window_key is required")

    allocated = _bump(document_type, window_key)
    if allocated is not None:
        return allocated

    first = count_existing() + 1
    seq = DocumentSequence(document_type=document_type, window_key=window_key, next_number=first + 1)
    try:
        with db.session.begin_nested():
            db.session.add(seq)
    except IntegrityError:
        # Another writer created the row between our UPDATE and INSERT.
        allocated = _bump(document_type, window_key)
        if allocated is None:
            raise
        return allocated
    return first


def advance_past(*, document_type: str, window_key: str, number: int) -> None:
    """
    Move the sequence so its next number is greater than number.

    Used after a generated number collided with a row inserted outside the
    sequence (imports, manual fixes). Commits on its own so the move survives
    the rollback of the failed insert.
    """
    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.document_type == document_type,
            DocumentSequence.window_key == window_key,
            DocumentSequence.next_number <= number,
        )
        .values(next_number=number + 1)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        exists = (
            db.session.query(DocumentSequence.id)
            .filter_by(document_type=document_type, window_key=window_key)
            .first()
        )
        if not exists:
            db.session.add(DocumentSequence(document_type=document_type, window_key=window_key, next_number=number + 1))
    db.session.commit()


def list_sequences(document_type: str | None = None) -> list[DocumentSequence]:
    q = db.session.query(DocumentSequence)
    if document_type:
        q = q.filter(DocumentSequence.document_type == document_type)
    return q.order_by(DocumentSequence.document_type, DocumentSequence.window_key).all()
