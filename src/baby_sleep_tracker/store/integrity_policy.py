"""
Integrity policy for classifying expected IntegrityError exceptions.

The sleep_entries table carries a partial unique index allowing at most one
open entry per baby. Hitting it is an expected outcome of two devices
starting a sleep at the same time and is reported to the caller as a
collision, not as a backend failure. Any other integrity violation is
unexpected.
"""

from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError  # type: ignore

from ..utils.logging_config import get_logger


logger = get_logger('database')

ACTIVE_SLEEP_INDEX = "uq_sleep_entries_one_active"


class ExpectedIntegrityTag(Enum):
    """Tags for expected integrity constraint violations."""

    ACTIVE_SLEEP_EXISTS = "active_sleep_exists"


# SQLite reports the indexed columns, PostgreSQL reports the index name
CONSTRAINT_TAG_MAP: Dict[str, ExpectedIntegrityTag] = {
    "sleep_entries.baby_id": ExpectedIntegrityTag.ACTIVE_SLEEP_EXISTS,
    ACTIVE_SLEEP_INDEX: ExpectedIntegrityTag.ACTIVE_SLEEP_EXISTS,
}


def _error_message(exc: IntegrityError) -> str:
    return str(exc.orig) if exc.orig else str(exc)


def is_unique_violation(exc: IntegrityError) -> bool:
    """Check if the IntegrityError is a unique constraint violation."""
    error_msg = _error_message(exc)
    return (
        "UNIQUE constraint failed" in error_msg
        or "duplicate key value violates unique constraint" in error_msg
    )


def extract_constraint_name(exc: IntegrityError) -> Optional[str]:
    """Extract the constraint name (or SQLite column list) from an IntegrityError."""
    error_msg = _error_message(exc)

    # SQLite: "UNIQUE constraint failed: table.column"
    if "UNIQUE constraint failed:" in error_msg:
        return error_msg.split("UNIQUE constraint failed:", 1)[1].strip()

    # PostgreSQL: 'duplicate key value violates unique constraint "name"'
    if "violates unique constraint" in error_msg:
        quoted = error_msg.split("violates unique constraint", 1)[1]
        parts = quoted.split('"')
        if len(parts) >= 2:
            return parts[1]

    return None


def classify_integrity_error(exc: IntegrityError) -> Optional[ExpectedIntegrityTag]:
    """
    Classify an IntegrityError to determine if it's an expected constraint violation.

    Args:
        exc: The IntegrityError exception to classify

    Returns:
        ExpectedIntegrityTag if this is an expected violation, None otherwise
    """
    if not is_unique_violation(exc):
        return None

    constraint_name = extract_constraint_name(exc)
    if constraint_name is None:
        return None

    return CONSTRAINT_TAG_MAP.get(constraint_name)


def log_expected_violation(
    tag: ExpectedIntegrityTag, exc: IntegrityError, context: Dict[str, Any]
) -> None:
    """Log an expected integrity violation at INFO level with structured context."""
    logger.info(
        "Expected integrity violation (reported as collision)",
        extra={
            "integrity_tag": tag.value,
            "constraint_name": extract_constraint_name(exc),
            "operation": context.get("operation", "unknown"),
            "baby_id": context.get("baby_id"),
            "entry_id": context.get("entry_id"),
        },
    )


def log_unexpected_violation(exc: IntegrityError, context: Dict[str, Any]) -> None:
    """Log an unexpected integrity violation at ERROR level."""
    logger.error(
        "Unexpected integrity violation",
        extra={
            "constraint_name": extract_constraint_name(exc),
            "operation": context.get("operation", "unknown"),
            "baby_id": context.get("baby_id"),
            "entry_id": context.get("entry_id"),
            "error_message": str(exc),
        },
        exc_info=exc,
    )
