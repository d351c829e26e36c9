"""
Centralized constants for the backend application.
Avoids magic strings and repeated literals.

Usage:
    from shared.config.constants import ActiveState, AuditAction

    if row.is_active == ActiveState.DELETED:
        ...
"""

from typing import Final


# =============================================================================
# Soft Delete States
# =============================================================================


class ActiveState:
    """
    Values of the tri-state active flag.

    Positive means active, anything else is soft-deleted. Restoration only
    accepts rows carrying the DELETED sentinel.
    """

    ACTIVE: Final[int] = 1
    DELETED: Final[int] = -1


# =============================================================================
# Audit Actions
# =============================================================================


class AuditAction:
    """Audit log action names."""

    CREATE: Final[str] = "CREATE"
    UPDATE: Final[str] = "UPDATE"
    DELETE: Final[str] = "DELETE"
    RESTORE: Final[str] = "RESTORE"


# =============================================================================
# Listing Limits
# =============================================================================


class Limits:
    """Limits for listing requests."""

    MAX_CONTAINS_TEXT_LENGTH: Final[int] = 200
    # Signed 64-bit range of integer id columns
    MIN_INTEGER_ID: Final[int] = -(2**63)
    MAX_INTEGER_ID: Final[int] = 2**63 - 1
