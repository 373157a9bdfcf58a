"""
Shared helpers for module services.

Used by payroll_modules/*/service.py to own the transaction boundary the
same way in every service method: commit on success, roll back on any
failure, and surface database failures as ``PersistenceError``.

Architecture: Modules layer. Imports only from payroll_kernel.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from payroll_kernel.exceptions import PersistenceError
from payroll_kernel.logging_config import get_logger

logger = get_logger("modules.service_helpers")


@contextmanager
def commit_or_rollback(
    session: Session,
    operation: str,
    **log_fields: Any,
) -> Iterator[Session]:
    """
    Run one unit of work and commit it.

    Raises:
        PersistenceError: the database rejected a read or write; the
            session has been rolled back.
    """
    try:
        yield session
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error(
            "persistence_failed",
            extra={"operation": operation, "detail": str(exc), **log_fields},
        )
        raise PersistenceError(operation, str(exc)) from exc
    except Exception:
        session.rollback()
        raise
