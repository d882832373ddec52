# Overview: Locking, compare-and-set and retry helpers for workflow transitions.

from __future__ import annotations

import time

from sqlalchemy import update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..time_utils import utcnow


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    Correctness never rests on this lock alone; see compare_and_set().
    """
    return query.with_for_update()


def compare_and_set(model, row_id: int, *, column: str, expected, new, **values) -> bool:
    """
    Atomically move `column` from `expected` to `new` on one row.

    Issues UPDATE ... WHERE id = :id AND column = :expected. Returns True when
    this call won the transition, False when the row no longer holds the
    expected value (someone else resolved it first).
    """
    col = getattr(model, column)
    stmt = (
        update(model)
        .where(model.id == row_id, col == expected)
        .values({column: new, **values})
        .execution_options(synchronize_session="fetch")
    )
    result = db.session.execute(stmt)
    return result.rowcount == 1


def resolve_pending(model, row_id: int, *, pending, resolved, processed_by: int) -> bool:
    """Compare-and-set a pending transfer row to its resolved status."""
    return compare_and_set(
        model,
        row_id,
        column="status",
        expected=pending,
        new=resolved,
        processed_by=processed_by,
        processed_at=utcnow(),
    )


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Domain errors propagate untouched.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def commit_or_rollback() -> None:
    """
    Commit the current session; on any failure roll back and re-raise.

    A failed commit is never retried here: the rollback discards the unit
    of work, so a second commit would succeed on an empty session. Retries
    belong around the whole operation (run_with_retry), not the commit.
    """
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
