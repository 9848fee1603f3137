from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, Optional

logger = logging.getLogger(__name__)

DEFAULT_SESSION_ID = "default"
DEFAULT_EXPIRES_IN = 3600


@dataclass
class _SessionRecord:
    token: Optional[str] = None
    user_id: Optional[str] = None
    expires_at: Optional[float] = None
    refresh_token: Optional[str] = None
    login_time: Optional[float] = None


@dataclass
class _KeyLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


@dataclass(frozen=True)
class SessionContext:
    """Read-only snapshot of a session's credentials."""

    session_id: str
    is_authenticated: bool = False
    token: Optional[str] = None
    user_id: Optional[str] = None
    expires_at: Optional[float] = None
    refresh_token: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "sessionId": self.session_id,
            "isAuthenticated": self.is_authenticated,
            "token": self.token,
            "userId": self.user_id,
            "expiresAt": self.expires_at,
            "refreshToken": self.refresh_token,
        }


class SessionStore:
    """Bearer credentials keyed by session id, with lazy expiry.

    Each session key has its own lock so a read-modify-write on one entry
    never interleaves with a write to the same entry, while different
    sessions proceed independently.
    """

    def __init__(
        self,
        default_expires_in: int = DEFAULT_EXPIRES_IN,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._sessions: Dict[str, _SessionRecord] = {}
        self._locks: Dict[str, _KeyLock] = {}
        self._registry_lock = threading.Lock()
        self._default_expires_in = default_expires_in
        self._clock = clock

    @staticmethod
    def _resolve(session_id: Optional[str]) -> str:
        return session_id or DEFAULT_SESSION_ID

    @contextmanager
    def _locked(self, sid: str) -> Iterator[None]:
        # A key's lock lives only while some caller holds or waits on it.
        with self._registry_lock:
            entry = self._locks.setdefault(sid, _KeyLock())
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._registry_lock:
                entry.users -= 1
                if not entry.users:
                    del self._locks[sid]

    def _is_expired(self, record: _SessionRecord) -> bool:
        return record.expires_at is not None and self._clock() > record.expires_at

    def set_token(
        self,
        token: str,
        user_id: Optional[str],
        session_id: Optional[str] = None,
        *,
        expires_in: Optional[int] = None,
        refresh_token: Optional[str] = None,
    ) -> None:
        sid = self._resolve(session_id)
        ttl = expires_in or self._default_expires_in
        now = self._clock()
        with self._locked(sid):
            self._sessions[sid] = _SessionRecord(
                token=token,
                user_id=user_id,
                expires_at=now + ttl,
                refresh_token=refresh_token,
                login_time=now,
            )
        logger.info("Token set for session %s, user %s, expires in %ss", sid, user_id, ttl)

    def get_token(self, session_id: Optional[str] = None) -> Optional[str]:
        sid = self._resolve(session_id)
        with self._locked(sid):
            record = self._sessions.get(sid)
            if record is None or not record.token:
                return None
            if self._is_expired(record):
                logger.warning("Token expired for session %s", sid)
                self._sessions.pop(sid, None)
                return None
            return record.token

    def get_session_context(self, session_id: Optional[str] = None) -> SessionContext:
        sid = self._resolve(session_id)
        with self._locked(sid):
            record = self._sessions.get(sid)
            if record is None:
                return SessionContext(session_id=sid)
            if record.token and self._is_expired(record):
                logger.warning("Token expired for session %s", sid)
                self._sessions.pop(sid, None)
                return SessionContext(session_id=sid)
            return SessionContext(
                session_id=sid,
                is_authenticated=bool(record.token),
                token=record.token,
                user_id=record.user_id,
                expires_at=record.expires_at,
                refresh_token=record.refresh_token,
            )

    def is_authenticated(self, session_id: Optional[str] = None) -> bool:
        return self.get_session_context(session_id).is_authenticated

    def set_refresh_token(self, refresh_token: str, session_id: Optional[str] = None) -> None:
        sid = self._resolve(session_id)
        with self._locked(sid):
            record = self._sessions.get(sid)
            if record is not None:
                record.refresh_token = refresh_token

    def clear_session(self, session_id: Optional[str] = None) -> None:
        sid = self._resolve(session_id)
        with self._locked(sid):
            if self._sessions.pop(sid, None) is not None:
                logger.info("Session cleared: %s", sid)

    def clear_all_sessions(self) -> None:
        with self._registry_lock:
            sids = list(self._sessions)
        for sid in sids:
            with self._locked(sid):
                self._sessions.pop(sid, None)
        logger.info("All sessions cleared")

    def describe_sessions(self) -> Dict[str, Dict[str, object]]:
        """Debug view of every session, without tokens."""
        with self._registry_lock:
            sids = list(self._sessions)
        info: Dict[str, Dict[str, object]] = {}
        for sid in sids:
            with self._locked(sid):
                record = self._sessions.get(sid)
                if record is None:
                    continue
                info[sid] = {
                    "userId": record.user_id,
                    "isExpired": self._is_expired(record),
                    "expiresAt": record.expires_at,
                    "loginTime": record.login_time,
                    "hasRefreshToken": bool(record.refresh_token),
                }
        return info
