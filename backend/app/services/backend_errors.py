"""
LensCritique Backend: Backend Error Classification
===================================================

What:  Recognizes the two backend failures that get special treatment:
       a missing relation (schema not installed) and a row-level policy
       denial. Everything else becomes a generic DatabaseError.
How:   Pattern-matching on the Postgres SQLSTATE when the driver exposes
       one, and on the error message text otherwise. The storage REST API
       only gives us message text, so the message check is the common path.
"""

import logging
import re
from typing import Optional

from app.exceptions import (
    DatabaseError,
    LensCritiqueError,
    PermissionDeniedError,
    SchemaMissingError,
)

logger = logging.getLogger(__name__)

UNDEFINED_TABLE = "42P01"
INSUFFICIENT_PRIVILEGE = "42501"

_RELATION_MISSING = re.compile(r'relation "(?:\w+\.)?(\w+)" does not exist', re.IGNORECASE)


def _sqlstate(exc: BaseException) -> Optional[str]:
    """SQLSTATE from a SQLAlchemy DBAPIError wrapping asyncpg, if any."""
    orig = getattr(exc, "orig", None)
    for candidate in (orig, getattr(orig, "__cause__", None), exc):
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if isinstance(code, str):
            return code
    return None


def missing_relation(exc: BaseException) -> Optional[str]:
    """
    Name of the missing table if `exc` is a relation-not-found error.

    Returns "" when the SQLSTATE says so but the message has no name.
    """
    match = _RELATION_MISSING.search(str(exc))
    if match:
        return match.group(1)
    if _sqlstate(exc) == UNDEFINED_TABLE:
        return ""
    return None


def is_policy_denial(message: Optional[str]) -> bool:
    return bool(message) and "row-level security" in message.lower()


def is_policy_denial_error(exc: BaseException) -> bool:
    # 42501 alone also covers plain GRANT problems; the message decides.
    if _sqlstate(exc) not in (None, INSUFFICIENT_PRIVILEGE):
        return False
    return is_policy_denial(str(exc))


def translate_db_error(
    exc: Exception,
    table: str,
    operation: str,
    denial_message: Optional[str] = None,
) -> LensCritiqueError:
    """
    Map a relational failure onto the application's error taxonomy.

    Args:
        exc:            The exception raised by SQLAlchemy / the driver.
        table:          Table the call targeted (used in messages).
        operation:      Short verb for logging ("insert", "select", ...).
        denial_message: User-facing text for a policy denial.
    """
    if isinstance(exc, LensCritiqueError):
        return exc

    relation = missing_relation(exc)
    if relation is not None:
        logger.error("Missing relation during %s on %s: %s", operation, table, exc)
        return SchemaMissingError(table=relation or table)

    if is_policy_denial_error(exc):
        logger.warning("Row-level policy denied %s on %s", operation, table)
        return PermissionDeniedError(
            message=denial_message or (
                f"Table Permission Denied: The '{table}' table is restricted. "
                "Apply the SQL Fix in the Admin Panel."
            ),
            resource=table,
        )

    logger.error("Database error during %s on %s: %s", operation, table, exc, exc_info=True)
    return DatabaseError(
        context={"table": table, "operation": operation, "error_type": type(exc).__name__},
    )
