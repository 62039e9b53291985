"""
In-progress session working memory.

Sessions are transient: they live only in this process and are lost on
restart. A session is opened empty when a member joins, appended to on
every classified turn and cleared (never removed) when it terminates.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from loguru import logger

from src.core.models import InteractionRecord
from src.session.keyed_lock import KeyedLock


class SessionHandle:
    """Scoped view of one conversation's session, valid inside `SessionManager.turn`"""

    def __init__(self, manager: "SessionManager", conversation_id: str) -> None:
        self._manager = manager
        self.conversation_id = conversation_id

    def records(self) -> list[InteractionRecord]:
        return self._manager.records(self.conversation_id)

    def __len__(self) -> int:
        return len(self._manager.records(self.conversation_id))


class SessionManager:
    """Owns every open session, keyed by conversation id"""

    def __init__(self) -> None:
        self._sessions: dict[str, list[InteractionRecord]] = {}
        self._locks = KeyedLock()
        self.sessions_opened = 0

    def open(self, conversation_id: str) -> None:
        """Create an empty session; an already-open session is kept as is"""
        if conversation_id in self._sessions:
            logger.debug(f"Session {conversation_id} already open")
            return
        self._sessions[conversation_id] = []
        self.sessions_opened += 1
        logger.info(f"Opened session {conversation_id}")

    def exists(self, conversation_id: str) -> bool:
        return conversation_id in self._sessions

    def append(self, conversation_id: str, record: InteractionRecord) -> None:
        # Normally opened on member join; a turn on an unknown conversation starts one.
        self._sessions.setdefault(conversation_id, []).append(record)

    def records(self, conversation_id: str) -> list[InteractionRecord]:
        """Copy of the session's records in arrival order (empty if unknown)"""
        return list(self._sessions.get(conversation_id, ()))

    def clear(self, conversation_id: str) -> None:
        """Empty the session but keep it open for later turns"""
        self._sessions[conversation_id] = []

    @asynccontextmanager
    async def turn(self, conversation_id: str) -> AsyncIterator[SessionHandle]:
        """Hold the conversation's lock for the duration of one turn"""
        async with self._locks.hold(conversation_id):
            yield SessionHandle(self, conversation_id)

    def get_stats(self) -> dict[str, int]:
        return {
            "open_sessions": len(self._sessions),
            "sessions_opened": self.sessions_opened,
            "buffered_records": sum(len(r) for r in self._sessions.values()),
        }
