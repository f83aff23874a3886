"""
Session context managers of the HTTP surface, one per client session (tab).

A client session is identified by the ``X-Session-ID`` it received from
``POST /session/initialize`` and is always scoped under the identity that
created it. Managers unused for ``SESSION_IDLE_TIMEOUT`` seconds are evicted.
"""

import time
import uuid
from collections.abc import Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from opsportal.config import settings
from opsportal.core.logging_config import get_logger
from opsportal.features.session.directory import SessionDirectory
from opsportal.features.session.manager import SessionContextManager

logger = get_logger(__name__)

SessionKey = tuple[str, str]


class SessionRegistry:
    """Owns the session managers of the process, keyed by (profile id, session id)."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        idle_timeout: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.directory = SessionDirectory(session_factory)
        self._idle_timeout = idle_timeout or settings.session_idle_timeout
        self._clock = clock
        self._managers: dict[SessionKey, SessionContextManager] = {}
        self._last_used: dict[SessionKey, float] = {}

    @staticmethod
    def new_session_id() -> str:
        return uuid.uuid4().hex

    def get_or_create(self, user_id: str, session_id: str) -> SessionContextManager:
        self.evict_idle()
        key = (user_id, session_id)
        manager = self._managers.get(key)
        if manager is None:
            manager = SessionContextManager(user_id, self.directory)
            self._managers[key] = manager
        self._last_used[key] = self._clock()
        return manager

    def get(self, user_id: str, session_id: str) -> SessionContextManager | None:
        return self._managers.get((user_id, session_id))

    def sessions_of(self, user_id: str) -> list[SessionContextManager]:
        return [manager for (owner, _), manager in self._managers.items() if owner == user_id]

    def discard(self, user_id: str, session_id: str) -> None:
        self._managers.pop((user_id, session_id), None)
        self._last_used.pop((user_id, session_id), None)

    def discard_user(self, user_id: str) -> int:
        """Drop every session of ``user_id`` (sign-out everywhere)."""
        keys = [key for key in self._managers if key[0] == user_id]
        for key in keys:
            self.discard(*key)
        return len(keys)

    def evict_idle(self) -> int:
        cutoff = self._clock() - self._idle_timeout
        stale = [key for key, used in self._last_used.items() if used < cutoff]
        for key in stale:
            self.discard(*key)
        if stale:
            logger.info("idle_sessions_evicted", count=len(stale))
        return len(stale)

    def __len__(self) -> int:
        return len(self._managers)
