"""
Key-value persistence for the session engine.

Every document (templates, history, personal records...) is one JSON blob
stored under ``(scope, key)`` where ``scope`` is the user id. The engine runs
its commands synchronously and hands writes to a write-behind queue; the queue
keeps only the latest value per key and drains it on the running event loop.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from datetime import datetime, timezone
from typing import Any, Protocol

from pydantic import BaseModel, TypeAdapter
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.kv_entry import KeyValueEntry
from app.schemas.coaching import SessionContext
from app.schemas.events import PersistenceFailed
from app.schemas.history import WorkoutHistoryRecord
from app.schemas.pr import PersonalRecord
from app.schemas.preferences import WorkoutPreferences
from app.schemas.template import WorkoutTemplate

logger = logging.getLogger(__name__)

TEMPLATES_KEY = "templates"
HISTORY_KEY = "workout_history"
RECORDS_KEY = "personal_records"
CATEGORIES_KEY = "categories"
PREFERENCES_KEY = "preferences"
SESSION_CONTEXT_KEY = "active_session_context"
REST_TIMER_ENABLED_KEY = "rest_timer_enabled"
CUSTOM_REST_SECONDS_KEY = "custom_rest_seconds"

DEFAULT_CATEGORIES = ["Push Pull Legs"]

_templates_adapter = TypeAdapter(list[WorkoutTemplate])
_history_adapter = TypeAdapter(list[WorkoutHistoryRecord])
_records_adapter = TypeAdapter(list[PersonalRecord])


class KeyValueStore(Protocol):
    async def get(self, scope: str, key: str) -> Any | None: ...

    async def set(self, scope: str, key: str, value: Any) -> None: ...


class InMemoryKeyValueStore:
    """Process-local store; values are deep-copied in and out."""

    def __init__(self) -> None:
        self._data: dict[tuple[str, str], Any] = {}

    async def get(self, scope: str, key: str) -> Any | None:
        return copy.deepcopy(self._data.get((scope, key)))

    async def set(self, scope: str, key: str, value: Any) -> None:
        self._data[(scope, key)] = copy.deepcopy(value)


class SqlKeyValueStore:
    """Store backed by the ``kv_entries`` table."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self._session_maker = session_maker

    async def get(self, scope: str, key: str) -> Any | None:
        async with self._session_maker() as session:
            entry = await session.get(KeyValueEntry, (scope, key))
            return entry.value if entry is not None else None

    async def set(self, scope: str, key: str, value: Any) -> None:
        """Single-statement upsert, so concurrent first writes of a key cannot collide."""
        async with self._session_maker() as session:
            try:
                dialect = session.get_bind().dialect.name
                insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
                stmt = insert(KeyValueEntry).values(
                    scope=scope,
                    key=key,
                    value=value,
                    updated_at=datetime.now(timezone.utc),
                )
                stmt = stmt.on_conflict_do_update(
                    index_elements=["scope", "key"],
                    set_={"value": stmt.excluded["value"], "updated_at": stmt.excluded["updated_at"]},
                )
                await session.execute(stmt)
                await session.commit()
            except Exception:
                await session.rollback()
                raise


def to_jsonable(value: Any) -> Any:
    """Plain JSON structure for a model, a list of models, or a primitive."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


class WriteBehindQueue:
    """Latest-value-per-key write buffer drained by a detached task."""

    def __init__(self, store: KeyValueStore, scope: str) -> None:
        self._store = store
        self._scope = scope
        self._pending: dict[str, Any] = {}
        self._task: asyncio.Task | None = None
        self._failures: list[PersistenceFailed] = []
        self.last_error: str | None = None

    @property
    def pending_keys(self) -> list[str]:
        return list(self._pending)

    def enqueue(self, key: str, value: Any) -> None:
        self._pending[key] = to_jsonable(value)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: the value waits for the next flush()
            return
        if self._task is None or self._task.done():
            self._task = loop.create_task(self._drain())

    async def _drain(self) -> None:
        while self._pending:
            key = next(iter(self._pending))
            value = self._pending.pop(key)
            try:
                await self._store.set(self._scope, key, value)
            except Exception as exc:
                logger.exception("Failed to persist %s for %s", key, self._scope)
                self.last_error = f"{key}: {exc}"
                self._failures.append(PersistenceFailed(key=key, error=str(exc)))

    async def flush(self) -> None:
        """Wait until every queued write has been attempted."""
        task = self._task
        if task is not None and not task.done() and task.get_loop() is asyncio.get_running_loop():
            await task
        await self._drain()

    def discard(self, key: str) -> None:
        self._pending.pop(key, None)

    def take_failures(self) -> list[PersistenceFailed]:
        failures, self._failures = self._failures, []
        return failures


class WorkoutRepository:
    """Typed access to one user's documents."""

    def __init__(self, store: KeyValueStore, user_id: str) -> None:
        self.store = store
        self.user_id = user_id
        self.writer = WriteBehindQueue(store, user_id)

    async def _get(self, key: str) -> Any | None:
        return await self.store.get(self.user_id, key)

    async def save(self, key: str, value: Any) -> None:
        """Write-through; drops any older queued value for ``key``."""
        self.writer.discard(key)
        await self.store.set(self.user_id, key, to_jsonable(value))

    def queue(self, key: str, value: Any) -> None:
        self.writer.enqueue(key, value)

    async def flush(self) -> None:
        await self.writer.flush()

    async def load_templates(self) -> list[WorkoutTemplate]:
        raw = await self._get(TEMPLATES_KEY)
        return _templates_adapter.validate_python(raw) if raw else []

    async def load_history(self) -> list[WorkoutHistoryRecord]:
        raw = await self._get(HISTORY_KEY)
        return _history_adapter.validate_python(raw) if raw else []

    async def load_records(self) -> list[PersonalRecord]:
        raw = await self._get(RECORDS_KEY)
        return _records_adapter.validate_python(raw) if raw else []

    async def load_categories(self) -> list[str]:
        raw = await self._get(CATEGORIES_KEY)
        return list(raw) if raw is not None else list(DEFAULT_CATEGORIES)

    async def load_preferences(self) -> WorkoutPreferences:
        raw = await self._get(PREFERENCES_KEY)
        preferences = WorkoutPreferences.model_validate(raw) if raw else WorkoutPreferences()
        # The rest-timer toggles are stored under their own keys as well
        enabled = await self._get(REST_TIMER_ENABLED_KEY)
        custom = await self._get(CUSTOM_REST_SECONDS_KEY)
        update: dict[str, Any] = {}
        if enabled is not None:
            update["rest_timer_enabled"] = bool(enabled)
        if custom is not None:
            update["custom_default_rest_seconds"] = int(custom) or None
        return preferences.model_copy(update=update) if update else preferences

    async def save_preferences(self, preferences: WorkoutPreferences) -> None:
        await self.save(PREFERENCES_KEY, preferences)
        await self.save(REST_TIMER_ENABLED_KEY, preferences.rest_timer_enabled)
        await self.save(CUSTOM_REST_SECONDS_KEY, preferences.custom_default_rest_seconds or 0)

    async def load_session_context(self) -> SessionContext | None:
        raw = await self._get(SESSION_CONTEXT_KEY)
        return SessionContext.model_validate(raw) if raw else None
