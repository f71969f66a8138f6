"""
History persistence for Burnout Buddy.

Two backends behind one protocol:

- ``LocalHistoryStore``: demo sessions. One camelCase JSON document per
  user under a data directory, the same shape ``export_history`` emits.
- ``DatabaseHistoryStore``: account sessions. SQLAlchemy tables
  ``check_ins``, ``reset_logs`` and ``user_settings``.

Both load a full ``History`` snapshot and save one back whole; the
session flow never mutates records in place.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.lib.exceptions import DatabaseError, SerializationError, ValidationError
from src.models.base import Base
from src.models.records import CheckInRecord, ResetLogRecord, UserSettingsRecord
from src.models.wellness import History

logger = logging.getLogger(__name__)

_SAFE_NAME = re.compile(r"[^A-Za-z0-9_-]")


class HistoryStore(Protocol):
    """Load/save/clear one user's history snapshot."""

    def load(self, user_id: str) -> History: ...

    def save(self, user_id: str, history: History) -> None: ...

    def clear(self, user_id: str) -> None: ...


def export_history(history: History) -> str:
    """Pretty-printed JSON export of check-ins, resets and settings."""
    return json.dumps(history.to_document(), indent=2)


@dataclass
class _HeldLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    holders: int = 0


class HistoryLocks:
    """
    One asyncio.Lock per user id, serializing load-modify-save sequences.

    Store I/O runs in worker threads, so two requests for the same user
    could otherwise interleave and drop a write. Entries are discarded
    once nobody holds or waits on them.
    """

    def __init__(self) -> None:
        self._locks: dict[str, _HeldLock] = {}

    @asynccontextmanager
    async def hold(self, user_id: str) -> AsyncIterator[None]:
        entry = self._locks.get(user_id)
        if entry is None:
            entry = self._locks[user_id] = _HeldLock()
        entry.holders += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.holders -= 1
            if entry.holders == 0:
                del self._locks[user_id]

    def __len__(self) -> int:
        return len(self._locks)


# =============================================================================
# Local (demo) store
# =============================================================================


class LocalHistoryStore:
    """JSON-file store keyed by user id."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, user_id: str) -> Path:
        if not user_id:
            raise ValidationError("user_id is required")
        return self.directory / f"{_SAFE_NAME.sub('_', user_id)}.json"

    def load(self, user_id: str) -> History:
        path = self._path(user_id)
        if not path.exists():
            return History()
        try:
            return History.from_document(json.loads(path.read_text(encoding="utf-8")))
        except (ValueError, SerializationError) as e:
            # Corrupt file: start over rather than locking the user out
            logger.warning("Unreadable history file %s: %s", path.name, e)
            return History()

    def save(self, user_id: str, history: History) -> None:
        path = self._path(user_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(export_history(history), encoding="utf-8")
        tmp.replace(path)

    def clear(self, user_id: str) -> None:
        self._path(user_id).unlink(missing_ok=True)


# =============================================================================
# Database (account) store
# =============================================================================


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """
    Build a sessionmaker and create missing tables.

    In-memory SQLite is pinned to a single connection so every session
    (and every worker thread) sees the same database.
    """
    kwargs: dict = {}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool

    engine = create_engine(database_url, **kwargs)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)


class DatabaseHistoryStore:
    """SQLAlchemy-backed store; each save replaces the user's rows atomically."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def load(self, user_id: str) -> History:
        try:
            with self._session_factory() as session:
                check_ins = (
                    session.query(CheckInRecord)
                    .filter(CheckInRecord.user_id == user_id)
                    .order_by(CheckInRecord.position)
                    .all()
                )
                resets = (
                    session.query(ResetLogRecord)
                    .filter(ResetLogRecord.user_id == user_id)
                    .order_by(ResetLogRecord.position)
                    .all()
                )
                settings = session.get(UserSettingsRecord, user_id)
                return History(
                    check_ins=tuple(r.to_domain() for r in check_ins),
                    resets=tuple(r.to_domain() for r in resets),
                    settings=settings.to_domain() if settings else History().settings,
                )
        except SQLAlchemyError as e:
            logger.error("Failed to load history: %s", e)
            raise DatabaseError(f"Failed to load history: {e}") from e
        except ValueError as e:
            raise SerializationError(f"Stored history is malformed: {e}") from e

    def save(self, user_id: str, history: History) -> None:
        try:
            with self._session_factory() as session, session.begin():
                self._delete_rows(session, user_id)
                session.add_all(
                    CheckInRecord.from_domain(user_id, i, c) for i, c in enumerate(history.check_ins)
                )
                session.add_all(
                    ResetLogRecord.from_domain(user_id, i, r) for i, r in enumerate(history.resets)
                )
                settings = session.get(UserSettingsRecord, user_id)
                if settings is None:
                    settings = UserSettingsRecord(user_id=user_id)
                    session.add(settings)
                settings.reduced_motion = history.settings.reduced_motion
                settings.display_name = history.settings.display_name
        except SQLAlchemyError as e:
            logger.error("Failed to save history: %s", e)
            raise DatabaseError(f"Failed to save history: {e}") from e

    def clear(self, user_id: str) -> None:
        try:
            with self._session_factory() as session, session.begin():
                self._delete_rows(session, user_id)
                session.query(UserSettingsRecord).filter(UserSettingsRecord.user_id == user_id).delete()
        except SQLAlchemyError as e:
            logger.error("Failed to clear history: %s", e)
            raise DatabaseError(f"Failed to clear history: {e}") from e

    @staticmethod
    def _delete_rows(session: Session, user_id: str) -> None:
        session.query(CheckInRecord).filter(CheckInRecord.user_id == user_id).delete()
        session.query(ResetLogRecord).filter(ResetLogRecord.user_id == user_id).delete()
        # Deletes must reach the database before re-inserting the same ids
        session.flush()


__all__ = [
    "DatabaseHistoryStore",
    "HistoryLocks",
    "HistoryStore",
    "LocalHistoryStore",
    "create_session_factory",
    "export_history",
]
