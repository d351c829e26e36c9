"""
Utilities module: Exceptions.
"""

from shared.utils.exceptions import (
    AppException,
    NotFoundError,
    EntityNotFoundError,
    UnauthorizedError,
    PermissionDeniedError,
    ValidationError,
    RequiredFieldError,
)

__all__ = [
    "AppException",
    "NotFoundError",
    "EntityNotFoundError",
    "UnauthorizedError",
    "PermissionDeniedError",
    "ValidationError",
    "RequiredFieldError",
]
