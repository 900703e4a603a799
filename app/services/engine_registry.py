"""One SessionStore per user, each guarded by its own lock."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from app.core.config import Settings, get_settings
from app.services.clock import Clock, SystemClock
from app.services.session_store import SessionStore
from app.services.storage import KeyValueStore, WorkoutRepository

logger = logging.getLogger(__name__)


class EngineRegistry:
    def __init__(self, store: KeyValueStore, clock: Clock | None = None, settings: Settings | None = None):
        self.store = store
        self.clock = clock or SystemClock()
        self.settings = settings or get_settings()
        self._engines: dict[str, SessionStore] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock

    async def _load(self, user_id: str) -> SessionStore:
        engine = self._engines.get(user_id)
        if engine is None:
            engine = SessionStore(
                WorkoutRepository(self.store, user_id),
                self.clock,
                undo_window_seconds=self.settings.undo_window_seconds,
                rest_timer_max_seconds=self.settings.rest_timer_max_seconds,
                stale_session_hours=self.settings.stale_session_hours,
            )
            await engine.load()
            self._engines[user_id] = engine
            logger.info("Loaded session engine for %s", user_id)
        return engine

    @asynccontextmanager
    async def engine(self, user_id: str) -> AsyncIterator[SessionStore]:
        """Exclusive access to ``user_id``'s engine for the duration of one command."""
        async with self._lock_for(user_id):
            yield await self._load(user_id)

    async def flush_all(self) -> None:
        for engine in list(self._engines.values()):
            await engine.flush()
