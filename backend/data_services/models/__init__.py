"""
ORM models owned by the row services.
"""

from .base import Base, ActiveStateMixin, CaptureLogMixin
from .audit import AuditLog

__all__ = [
    "Base",
    "ActiveStateMixin",
    "CaptureLogMixin",
    "AuditLog",
]
