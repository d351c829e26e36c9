"""
Unit of work: a transaction context with commit-scoped callbacks.

Side effects that must only happen once data is durable (cache generation
bumps) are queued with `on_commit` and run after a successful commit. A
rollback discards them.

Usage:
    with UnitOfWork(db) as uow:
        handler.process(uow, request)
    # committed here, commit callbacks have run
"""

from __future__ import annotations

from typing import Any, Callable

from sqlalchemy.orm import Session

from shared.config.logging import get_logger

logger = get_logger(__name__)

Callback = Callable[[], None]


class UnitOfWork:
    def __init__(self, session: Session):
        if session is None:
            raise ValueError("session is required")
        self._session = session
        self._commit_callbacks: list[Callback] = []
        self._rollback_callbacks: list[Callback] = []
        # Per transaction scratch space for collaborators (e.g. pending cache keys)
        self.items: dict[str, Any] = {}

    @property
    def session(self) -> Session:
        return self._session

    def on_commit(self, callback: Callback) -> None:
        """Run callback once after the next successful commit."""
        self._commit_callbacks.append(callback)

    def on_rollback(self, callback: Callback) -> None:
        """Run callback once if the transaction is rolled back."""
        self._rollback_callbacks.append(callback)

    def commit(self) -> None:
        """
        Commit the session, then run the commit callbacks.

        A failed commit rolls back (running rollback callbacks) and re-raises.
        A failing callback is logged and does not stop the others; the data
        is already committed at that point.
        """
        try:
            self._session.commit()
        except Exception:
            self.rollback()
            raise

        callbacks = self._commit_callbacks
        self._reset()
        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.error("Commit callback failed", callback=repr(callback), error=str(e), exc_info=True)

    def rollback(self) -> None:
        """Roll back the session and discard pending commit callbacks."""
        callbacks = self._rollback_callbacks
        self._reset()
        self._session.rollback()
        for callback in callbacks:
            callback()

    def _reset(self) -> None:
        self._commit_callbacks = []
        self._rollback_callbacks = []
        self.items = {}

    def __enter__(self) -> "UnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
