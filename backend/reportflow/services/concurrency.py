# Overview: Concurrency primitives: row locks, retries, and compare-and-swap writes.

from __future__ import annotations

import time
from functools import wraps

from sqlalchemy import delete, update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on transient failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError.
    Workflow errors (including ConcurrencyConflict) are never retried here:
    the caller has to re-read state before trying again.
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


def rollback_on_error(func):
    """Roll the session back when a unit of work raises, then re-raise."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception:
            db.session.rollback()
            raise
    return wrapper


def compare_and_swap(model, *, key: int, expected: dict, changes: dict) -> bool:
    """
    UPDATE model SET changes WHERE id = key AND <every expected column matches>.

    Returns True when exactly one row was written. Does not commit.
    """
    conditions = [model.id == key]
    conditions.extend(getattr(model, column) == value for column, value in expected.items())

    stmt = (
        update(model)
        .where(*conditions)
        .values(**changes)
        .execution_options(synchronize_session="fetch")
    )
    result = db.session.execute(stmt)
    return result.rowcount == 1


def compare_and_delete(model, *, key: int, expected: dict) -> bool:
    """DELETE FROM model WHERE id = key AND <every expected column matches>. Does not commit."""
    conditions = [model.id == key]
    conditions.extend(getattr(model, column) == value for column, value in expected.items())

    stmt = delete(model).where(*conditions).execution_options(synchronize_session="fetch")
    result = db.session.execute(stmt)
    return result.rowcount == 1
