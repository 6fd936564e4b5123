# Overview: Service-layer helpers for row locking and retrying database units of work.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import StorageError
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1, description: str = "database operation"):
    """
    Execute a DB unit of work with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). When attempts are exhausted, or any other
    SQLAlchemyError occurs, the session is rolled back and StorageError is
    raised. Domain errors raised by ``func`` propagate unchanged after rollback.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                current_app.logger.exception("%s failed after %d attempts", description, attempts)
                raise StorageError(f"{description} failed", details={"attempts": attempts}) from exc
            current_app.logger.warning(
                "%s conflicted (attempt %d/%d): %s", description, attempt + 1, attempts, exc.__class__.__name__
            )
            time.sleep(backoff_base * (2 ** attempt))
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception("%s failed", description)
            raise StorageError(f"{description} failed") from exc
        except Exception:
            db.session.rollback()
            raise
    raise StorageError(f"{description} failed", details={"attempts": attempts})
