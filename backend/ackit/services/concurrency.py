# Overview: Row locking and bounded retry for lock/unlock transactions.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import TransientStoreError
from ..extensions import db

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for device and lock-ledger writes.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, busy database) and StaleDataError.
    func must own its whole transaction: it is re-run from scratch after a
    rollback.
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
            logger.warning("Retrying transaction after %s (attempt %d)", type(exc).__name__, attempt + 1)
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def run_transaction(func, *, description: str, attempts: int = 3, backoff_base: float = 0.1):
    """
    run_with_retry, then translate any remaining store failure into
    TransientStoreError after rolling back.
    """
    try:
        return run_with_retry(func, attempts=attempts, backoff_base=backoff_base)
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("%s failed; transaction rolled back", description)
        raise TransientStoreError(f"{description} failed, please retry") from exc
    except Exception:
        db.session.rollback()
        raise
