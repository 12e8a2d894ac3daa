# Overview: Service-layer helpers for row locking and retrying concurrent writes.

from __future__ import annotations

import time
from typing import Callable, TypeVar

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


T = TypeVar("T")

RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    SELECT ... FOR UPDATE for stock and status changes.

    SQLite ignores the clause; there the version_id check on orders and
    inventory items catches the lost update instead.
    """
    return query.with_for_update()


def run_with_retry(
    operation: Callable[[], T],
    *,
    attempts: int = 3,
    backoff_base: float = 0.1,
) -> T:
    """
    Run a read-modify-write operation, retrying when a concurrent writer wins.

    Retries OperationalError (database locked, deadlock) and StaleDataError
    (version_id mismatch). The session is rolled back before each retry, so
    operation must load the rows it changes itself. Domain errors raised by
    operation propagate on the first attempt.
    """
    attempts = max(1, attempts)
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt == attempts:
                raise
            current_app.logger.warning(
                "Concurrent write conflict (%s); retrying %d/%d",
                type(exc).__name__,
                attempt,
                attempts - 1,
            )
            time.sleep(backoff_base * (2 ** (attempt - 1)))
