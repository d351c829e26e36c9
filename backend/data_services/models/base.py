"""
Base class and soft delete mixin for row models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, DateTime, Integer, SmallInteger, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from shared.config.constants import ActiveState


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class ActiveStateMixin:
    """
    Mixin providing the tri-state soft delete flag.

    is_active > 0 means active; ActiveState.DELETED (-1) marks a soft-deleted
    row that can be restored. Register the model with
    `is_active_field="is_active"` to enable filtering and restoration.
    """

    is_active: Mapped[int] = mapped_column(
        SmallInteger, default=ActiveState.ACTIVE, nullable=False, index=True
    )

    def soft_delete(self) -> None:
        """Mark the row as soft-deleted."""
        self.is_active = ActiveState.DELETED

    @property
    def is_deleted(self) -> bool:
        return self.is_active is not None and self.is_active <= 0

    def __repr__(self) -> str:
        class_name = self.__class__.__name__
        id_val = getattr(self, "id", None)
        state = "deleted" if self.is_deleted else "active"
        return f"<{class_name}(id={id_val}, {state})>"


class CaptureLogMixin:
    """
    Columns every capture log model carries besides the mirrored row fields.

    A capture log model mirrors the columns of the row it logs (same property
    names, including the row id) and gets its own `log_id` primary key.
    """

    log_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    change_type: Mapped[str] = mapped_column(String(10), nullable=False)
    change_user_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    change_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
