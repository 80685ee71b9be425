"""Classify driver errors wrapped in SQLAlchemy exceptions."""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

# SQLSTATE for unique and primary-key conflicts on PostgreSQL.
UNIQUE_VIOLATION_SQLSTATE = "23505"
_UNIQUE_MESSAGE_MARKERS = (
    "duplicate key",  # postgres
    "unique constraint failed",  # sqlite
)


def is_unique_violation(error: IntegrityError) -> bool:
    """True when ``error`` comes from inserting a duplicate key.

    Used to tell a lost insert race (duplicate email, repeated block) apart from
    other integrity failures such as a missing referenced user.
    """
    driver_error = getattr(error, "orig", None)
    sqlstate = getattr(driver_error, "sqlstate", None) or getattr(driver_error, "pgcode", None)
    if sqlstate is not None:
        return sqlstate == UNIQUE_VIOLATION_SQLSTATE

    message = str(driver_error or error).lower()
    return any(marker in message for marker in _UNIQUE_MESSAGE_MARKERS)


__all__ = ["UNIQUE_VIOLATION_SQLSTATE", "is_unique_violation"]
