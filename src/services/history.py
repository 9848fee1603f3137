from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import AsyncIterator, Dict, List, Optional

from src.services.session_store import DEFAULT_SESSION_ID


@dataclass(frozen=True)
class ConversationTurn:
    role: str
    content: str
    session_id: str = DEFAULT_SESSION_ID
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    user_id: Optional[str] = None
    tools_called: List[str] = field(default_factory=list)

    def to_message(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {
            "role": self.role,
            "content": self.content,
            "sessionId": self.session_id,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.user_id:
            data["userId"] = self.user_id
        if self.tools_called:
            data["toolsCalled"] = list(self.tools_called)
        return data


@dataclass
class _KeyLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class ConversationHistoryStore:
    """Per-session conversation turns.

    Keeps the full history for retrieval and a bounded window of the most
    recent turns for prompting. Writes to one session are serialized.
    """

    def __init__(self, window_size: int = 10) -> None:
        self._window_size = window_size
        self._history: Dict[str, List[ConversationTurn]] = {}
        self._windows: Dict[str, List[ConversationTurn]] = {}
        self._locks: Dict[str, _KeyLock] = {}

    @staticmethod
    def _resolve(session_id: Optional[str]) -> str:
        return session_id or DEFAULT_SESSION_ID

    @asynccontextmanager
    async def _locked(self, sid: str) -> AsyncIterator[None]:
        # Dropped once no coroutine holds or waits on it.
        entry = self._locks.setdefault(sid, _KeyLock())
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if not entry.users:
                del self._locks[sid]

    async def append(self, session_id: Optional[str], *turns: ConversationTurn) -> None:
        """Append turns atomically so a user/assistant pair is never split."""
        sid = self._resolve(session_id)
        async with self._locked(sid):
            self._history.setdefault(sid, []).extend(turns)
            window = self._windows.setdefault(sid, [])
            window.extend(turns)
            del window[: max(0, len(window) - self._window_size)]

    def recent(self, session_id: Optional[str] = None, limit: Optional[int] = None) -> List[ConversationTurn]:
        window = list(self._windows.get(self._resolve(session_id), []))
        if limit is None:
            return window
        return window[-limit:] if limit > 0 else []

    def all(self, session_id: Optional[str] = None) -> List[ConversationTurn]:
        return list(self._history.get(self._resolve(session_id), []))

    async def clear(self, session_id: Optional[str] = None) -> None:
        sid = self._resolve(session_id)
        async with self._locked(sid):
            self._history.pop(sid, None)
            self._windows.pop(sid, None)

    async def clear_all(self) -> None:
        for sid in list(self._history):
            await self.clear(sid)
