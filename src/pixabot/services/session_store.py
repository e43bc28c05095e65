import logging
import time
from collections import OrderedDict
from contextlib import asynccontextmanager
from dataclasses import replace
from typing import Any, AsyncIterator, Callable, Set, Tuple

from ..models import Session
from ..settings import Settings, get_settings

logger = logging.getLogger(__name__)


class SessionStore:
    """In-memory session map bounded by size (LRU) and idle time (TTL).

    Records are immutable ``Session`` values; callers read a snapshot and
    write back a new value, so nothing outside the store mutates a record.
    """

    def __init__(
        self,
        max_entries: int,
        ttl_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_entries = max_entries
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[int, Tuple[Session, float]]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, chat_id: int) -> bool:
        # Membership checks leave LRU order and expired entries alone.
        entry = self._entries.get(chat_id)
        return entry is not None and not self._expired(entry[1])

    def _expired(self, touched_at: float) -> bool:
        return self._ttl > 0 and self._clock() - touched_at > self._ttl

    def get(self, chat_id: int) -> Session | None:
        """Return the session for chat_id, or None if missing or expired."""
        entry = self._entries.get(chat_id)
        if entry is None:
            return None
        session, touched_at = entry
        if self._expired(touched_at):
            del self._entries[chat_id]
            logger.debug("Session for chat %s expired", chat_id)
            return None
        self._entries.move_to_end(chat_id)
        return session

    def put(self, chat_id: int, session: Session) -> Session:
        """Store session for chat_id, evicting the least recently used entries."""
        self._entries[chat_id] = (session, self._clock())
        self._entries.move_to_end(chat_id)
        while len(self._entries) > self._max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Session for chat %s evicted", evicted)
        return session

    def update(self, chat_id: int, **changes: Any) -> Session | None:
        """Replace the named fields of an existing session; others are kept."""
        session = self.get(chat_id)
        if session is None:
            return None
        return self.put(chat_id, replace(session, **changes))

    def delete(self, chat_id: int) -> None:
        self._entries.pop(chat_id, None)


class ConversationGate:
    """Single-flight guard: at most one task per conversation at a time."""

    def __init__(self) -> None:
        self._busy: Set[int] = set()

    def is_busy(self, chat_id: int) -> bool:
        return chat_id in self._busy

    @asynccontextmanager
    async def claim(self, chat_id: int) -> AsyncIterator[bool]:
        """Yield True if chat_id was free and is now held, False if already busy.

        The hold is released on exit whatever the task's outcome.
        """
        if chat_id in self._busy:
            yield False
            return
        self._busy.add(chat_id)
        try:
            yield True
        finally:
            self._busy.discard(chat_id)


def get_session_store(settings: Settings | None = None) -> SessionStore:
    """Build a SessionStore sized from settings."""
    settings = settings or get_settings()
    return SessionStore(
        max_entries=settings.session_max_entries,
        ttl_seconds=settings.session_ttl_seconds,
    )
