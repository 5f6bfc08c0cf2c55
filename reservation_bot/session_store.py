"""
Session store: conversation id -> ConversationSession.

Sessions are loaded from a Storage backend at first use in a turn, mutated
in place by the turn, and written back by ``save`` when the turn ends.
A per-conversation lock keeps two turns of the same conversation from
interleaving; different conversations never share a lock.
"""

import copy
import logging
import threading
import time
from collections import OrderedDict
from contextlib import contextmanager
from typing import Any, Protocol

from reservation_bot.config import settings
from reservation_bot.conversation_state import SLOT_FIELDS, ConversationSession, ReservationState

logger = logging.getLogger(__name__)


class Storage(Protocol):
    """Key/value persistence for serialized conversation sessions."""

    def read(self, key: str) -> dict[str, Any] | None: ...

    def write(self, key: str, value: dict[str, Any]) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemoryStorage:
    """Process-local storage. Stores copies so callers cannot mutate saved state."""

    def __init__(self):
        self._items: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def read(self, key: str) -> dict[str, Any] | None:
        with self._lock:
            item = self._items.get(key)
            return copy.deepcopy(item) if item is not None else None

    def write(self, key: str, value: dict[str, Any]) -> None:
        with self._lock:
            self._items[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)


class SessionStore:
    """
    Owns every conversation's session.

    Memory is bounded the same way for every deployment:
    - sessions idle longer than ``ttl_seconds`` leave the cache
    - past ``max_sessions`` the least recently used session goes first

    Eviction only drops the cached copy. Whatever was saved stays in storage
    and is loaded again on the next ``get``, so a waiting dialog resumes.
    """

    def __init__(
        self,
        storage: Storage | None = None,
        max_sessions: int | None = None,
        ttl_seconds: int | None = None,
    ):
        self.storage = storage if storage is not None else InMemoryStorage()
        self.max_sessions = max_sessions if max_sessions is not None else settings.max_sessions
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.session_ttl_seconds

        # conversation id -> {"ts": last access, "session": ConversationSession}
        self._sessions: OrderedDict[str, dict[str, Any]] = OrderedDict()
        # conversation id -> [lock, number of holders and waiters]
        self._locks: dict[str, list] = {}
        self._guard = threading.Lock()

    @contextmanager
    def lock(self, conversation_id: str):
        """
        Hold the mutual-exclusion lock for one conversation.

        Every caller for the same id, waiting or holding, shares one lock.
        The entry is dropped once nobody uses it and the session is not cached.
        """
        with self._guard:
            entry = self._locks.setdefault(conversation_id, [threading.Lock(), 0])
            entry[1] += 1

        entry[0].acquire()
        try:
            yield
        finally:
            entry[0].release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0 and conversation_id not in self._sessions:
                    self._locks.pop(conversation_id, None)

    def get(self, conversation_id: str) -> ConversationSession:
        """Return the session, loading it from storage or creating a fresh one."""
        with self._guard:
            self._evict_expired()
            entry = self._sessions.get(conversation_id)
            if entry is None:
                data = self.storage.read(conversation_id)
                if data is not None:
                    session = ConversationSession.from_dict(data)
                    logger.debug(f"Loaded session {conversation_id} from storage")
                else:
                    session = ConversationSession(conversation_id=conversation_id)
                    logger.debug(f"Created session {conversation_id}")
                entry = {"ts": time.time(), "session": session}
                self._sessions[conversation_id] = entry

            entry["ts"] = time.time()
            self._sessions.move_to_end(conversation_id)
            self._evict_overflow()
            return entry["session"]

    def get_reservation(self, conversation_id: str) -> ReservationState:
        return self.get(conversation_id).reservation

    def set_slot(self, conversation_id: str, slot: str, value: str | None) -> None:
        """Write one slot. Callers validate before writing."""
        if slot not in SLOT_FIELDS:
            raise KeyError(slot)
        setattr(self.get_reservation(conversation_id), slot, value)

    def save(self, conversation_id: str) -> None:
        """Persist the conversation's current session."""
        session = self.get(conversation_id)
        self.storage.write(conversation_id, session.to_dict())

    def reset(self, conversation_id: str) -> None:
        """
        Forget everything about a conversation.

        Callers that may race a running turn hold ``lock(conversation_id)``
        around this; the lock entry itself is left to the lock's users.
        """
        with self._guard:
            self._sessions.pop(conversation_id, None)
            entry = self._locks.get(conversation_id)
            if entry is not None and entry[1] == 0:
                del self._locks[conversation_id]
        self.storage.delete(conversation_id)
        logger.info(f"Conversation reset for {conversation_id}")

    def __len__(self) -> int:
        return len(self._sessions)

    def _evict_expired(self) -> None:
        """Caller holds _guard."""
        now = time.time()

        expired = [
            cid for cid, entry in self._sessions.items() if now - entry["ts"] > self.ttl_seconds
        ]
        for cid in expired:
            self._evict(cid)

    def _evict_overflow(self) -> None:
        """Drop least recently used sessions past capacity. Caller holds _guard."""
        overflow = len(self._sessions) - self.max_sessions
        for cid in list(self._sessions)[: max(overflow, 0)]:
            self._evict(cid)

    def _evict(self, conversation_id: str) -> None:
        entry = self._locks.get(conversation_id)
        if entry is not None and entry[1] > 0:
            # A turn is running or waiting for it right now.
            return
        self._locks.pop(conversation_id, None)
        del self._sessions[conversation_id]
        logger.info(f"Evicted session {conversation_id} from cache")
