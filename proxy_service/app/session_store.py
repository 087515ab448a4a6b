"""In-memory, origin-bound session store."""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
import logging
import secrets
from threading import RLock
import time
from typing import Callable, Deque, Dict, List, Literal, Optional

from .errors import QuotaExceeded

logger = logging.getLogger(__name__)

Author = Literal["user", "bot"]

SESSION_ID_BYTES = 32


@dataclass(frozen=True)
class Message:
    id: int
    text: str
    author: Author
    timestamp: float


@dataclass
class Session:
    id: str
    origin_key: str
    created_at: float
    last_activity_at: float
    messages: Deque[Message] = field(default_factory=deque)
    next_message_id: int = 1

    @property
    def message_count(self) -> int:
        return len(self.messages)


def generate_session_id() -> str:
    """Return a 43 character URL-safe token carrying 256 bits of entropy."""

    return secrets.token_urlsafe(SESSION_ID_BYTES)


class SessionStore:
    """Thread-safe in-memory store for chat sessions.

    Every read or mutation of the session map happens under one lock, so
    creation cannot double-count quota and resolve never observes a record
    that a concurrent sweep is removing.
    """

    def __init__(
        self,
        *,
        session_timeout: float = 1800.0,
        max_sessions_per_origin: int = 5,
        max_messages_per_session: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._sessions: Dict[str, Session] = {}
        self._lock = RLock()
        self._timeout = session_timeout
        self._max_per_origin = max_sessions_per_origin
        self._max_messages = max_messages_per_session
        self._clock = clock

    @property
    def session_timeout(self) -> float:
        return self._timeout

    def create(self, origin_key: str) -> str:
        with self._lock:
            now = self._clock()
            owned = sum(
                1
                for session in self._sessions.values()
                if session.origin_key == origin_key and not self._is_expired(session, now)
            )
            if owned >= self._max_per_origin:
                logger.warning(
                    "Session quota exceeded for origin %s (%d live sessions)",
                    origin_key,
                    owned,
                )
                raise QuotaExceeded()

            session_id = generate_session_id()
            while session_id in self._sessions:
                session_id = generate_session_id()
            self._sessions[session_id] = Session(
                id=session_id,
                origin_key=origin_key,
                created_at=now,
                last_activity_at=now,
                messages=deque(maxlen=self._max_messages),
            )
        logger.info("Created session %s for origin %s", _short(session_id), origin_key)
        return session_id

    def resolve(self, session_id: str, origin_key: str) -> Optional[Session]:
        """Validate access to a session and refresh its activity timestamp."""

        with self._lock:
            now = self._clock()
            session = self._validated(session_id, origin_key, now)
            if session is None:
                return None
            session.last_activity_at = max(session.last_activity_at, now)
            return session

    def peek(self, session_id: str, origin_key: str) -> Optional[Session]:
        """Validate access to a session without extending its lifetime."""

        with self._lock:
            return self._validated(session_id, origin_key, self._clock())

    def append(self, session_id: str, text: str, author: Author) -> Optional[Message]:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                logger.warning(
                    "Dropping %s message for vanished session %s", author, _short(session_id)
                )
                return None
            message = Message(
                id=session.next_message_id,
                text=text,
                author=author,
                timestamp=self._clock(),
            )
            session.next_message_id += 1
            session.messages.append(message)
            return message

    def history(self, session_id: str) -> List[Message]:
        with self._lock:
            session = self._sessions.get(session_id)
            return list(session.messages) if session else []

    def message_count(self, session_id: str) -> int:
        with self._lock:
            session = self._sessions.get(session_id)
            return session.message_count if session else 0

    def expires_in(self, session: Session) -> float:
        with self._lock:
            remaining = self._timeout - (self._clock() - session.last_activity_at)
        return max(0.0, remaining)

    def sweep_expired(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [
                session_id
                for session_id, session in self._sessions.items()
                if self._is_expired(session, now)
            ]
            for session_id in expired:
                del self._sessions[session_id]
        if expired:
            logger.info("Swept %d expired session(s)", len(expired))
        return len(expired)

    def count_active_sessions(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _validated(self, session_id: str, origin_key: str, now: float) -> Optional[Session]:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if session.origin_key != origin_key:
            logger.warning(
                "Possible session hijack: session %s bound to %s requested by %s",
                _short(session_id),
                session.origin_key,
                origin_key,
            )
            return None
        if self._is_expired(session, now):
            return None
        return session

    def _is_expired(self, session: Session, now: float) -> bool:
        return now - session.last_activity_at > self._timeout


def _short(session_id: str) -> str:
    return f"{session_id[:8]}..."
