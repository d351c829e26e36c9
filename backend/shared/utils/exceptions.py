"""
HTTP exceptions raised by the row service handlers.

Each exception logs itself once, on construction, with its structured
context; handlers just raise. Subclasses pick their HTTP status and log
level through class attributes.

Usage:
    from shared.utils.exceptions import EntityNotFoundError, ValidationError

    raise EntityNotFoundError("products", 14)
    raise ValidationError("Unknown sort field 'color'", field="color")
"""

from typing import Any

from fastapi import HTTPException, status

from shared.config.logging import get_logger

logger = get_logger(__name__)


class AppException(HTTPException):
    """Base of every handler error; logs `detail` plus keyword context."""

    status_code_default: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    log_level: str = "warning"

    def __init__(
        self,
        detail: str,
        *,
        status_code: int | None = None,
        headers: dict[str, str] | None = None,
        **log_context: Any,
    ):
        code = status_code or self.status_code_default
        getattr(logger, self.log_level, logger.warning)(detail, status_code=code, **log_context)
        super().__init__(status_code=code, detail=detail, headers=headers)


# =============================================================================
# 404
# =============================================================================


class NotFoundError(AppException):
    """A registered row type, or a row of one, does not exist."""

    status_code_default = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str, entity_id: Any = None, **log_context: Any):
        self.entity = entity
        self.entity_id = entity_id
        detail = f"{entity} not found" if entity_id is None else f"{entity} with ID {entity_id} not found"
        super().__init__(detail, entity=entity, entity_id=entity_id, **log_context)


class EntityNotFoundError(NotFoundError):
    """
    Row missing, or changed by another transaction before it could be updated.

    Both reach the client as the same 404; `concurrent` tells them apart.
    """

    def __init__(self, entity: str, entity_id: Any, *, concurrent: bool = False, **log_context: Any):
        self.concurrent = concurrent
        super().__init__(entity, entity_id, concurrent=concurrent, **log_context)


# =============================================================================
# 401 / 403
# =============================================================================


class UnauthorizedError(AppException):
    """No logged in user."""

    status_code_default = status.HTTP_401_UNAUTHORIZED

    def __init__(self, detail: str = "Authentication required", **log_context: Any):
        super().__init__(detail, **log_context)


class PermissionDeniedError(UnauthorizedError):
    """Logged in, but without the required permission token."""

    status_code_default = status.HTTP_403_FORBIDDEN

    def __init__(self, permission: str, **log_context: Any):
        self.permission = permission
        super().__init__(f"Permission '{permission}' required", permission=permission, **log_context)


# =============================================================================
# 400
# =============================================================================


class ValidationError(AppException):
    """The request names unknown fields, selects nothing, or lacks a value."""

    status_code_default = status.HTTP_400_BAD_REQUEST


class RequiredFieldError(ValidationError):
    def __init__(self, field: str, **log_context: Any):
        self.field = field
        super().__init__(f"Field '{field}' is required", field=field, **log_context)


# =============================================================================
# 501
# =============================================================================


class NotSupportedError(AppException):
    """The row type lacks a capability the operation needs (identity, active state)."""

    status_code_default = status.HTTP_501_NOT_IMPLEMENTED
    log_level = "error"

    def __init__(self, entity: str, capability: str, **log_context: Any):
        self.entity = entity
        self.capability = capability
        super().__init__(
            f"{entity} does not support {capability}",
            entity=entity,
            capability=capability,
            **log_context,
        )
