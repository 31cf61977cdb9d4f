# Overview: Transaction, locking and retry helpers shared by every mutating service.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConflictError, GarageError, StoreError, ValidationError
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for read-modify-write paths.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The version_id column still catches lost updates there.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts).
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


def run_in_transaction(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Run ``func`` and commit, as one unit of work.

    The whole read-modify-write is retried on concurrency failures. Any other
    exception rolls the session back before it propagates, so a failed
    mutation never leaves partial state behind:

    - GarageError subclasses propagate unchanged
    - persistent StaleDataError -> ConflictError
    - IntegrityError -> ConflictError
    - any other SQLAlchemyError -> StoreError
    """
    if attempts is None:
        attempts = current_app.config.get("WRITE_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("WRITE_RETRY_BACKOFF", 0.1)

    def _op():
        result = func()
        db.session.commit()
        return result

    try:
        return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
    except GarageError:
        db.session.rollback()
        raise
    except StaleDataError as exc:
        db.session.rollback()
        raise ConflictError("Record was modified concurrently, please retry") from exc
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError("Write violates a database constraint") from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreError("Database error") from exc
    except Exception:
        db.session.rollback()
        raise


def check_version(entity, expected_version) -> None:
    """Reject an update made against a stale copy of ``entity``."""
    if expected_version is None:
        return
    if isinstance(expected_version, bool) or not isinstance(expected_version, int):
        raise ValidationError("version_id must be an integer")
    if entity.version_id != expected_version:
        raise ConflictError(
            f"Version mismatch: expected {expected_version}, current {entity.version_id}"
        )
