"""
Audit Log Model.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, DateTime, Index, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class AuditLog(Base):
    """
    Generic audit trail: who did what to which entity, and when.
    Used for row types that do not capture field-level changes.
    """

    __tablename__ = "audit_log"

    # SQLite only auto-increments INTEGER primary keys
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )

    # Who made the change
    user_id: Mapped[Optional[int]] = mapped_column(BigInteger, index=True)
    user_email: Mapped[Optional[str]] = mapped_column(Text)

    # What was changed
    entity_type: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    entity_id: Mapped[str] = mapped_column(Text, nullable=False)
    action: Mapped[str] = mapped_column(Text, nullable=False)  # CREATE, UPDATE, DELETE, RESTORE

    # Parent entity, when the row references one
    parent_type: Mapped[Optional[str]] = mapped_column(Text)
    parent_id: Mapped[Optional[str]] = mapped_column(Text)

    # Change details (JSON)
    old_values: Mapped[Optional[str]] = mapped_column(Text)
    new_values: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_audit_log_entity", "entity_type", "entity_id"),
    )
