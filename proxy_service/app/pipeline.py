"""End-to-end handling of a single chat turn."""
from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Dict, Optional

from .config import Settings
from .context import build_context
from .errors import InvalidInput, SessionInvalid
from .session_store import Session, SessionStore
from .webhook_client import WebhookClient

logger = logging.getLogger(__name__)


@dataclass
class ChatResult:
    body: Dict[str, Any]
    session_id: str
    created_session: bool


class ChatPipeline:
    """Validate, resolve the session, forward to the webhook and record both turns.

    The user turn is recorded before the webhook call so a failed call still
    leaves it in the history. No store lock is held while the call is in flight.
    """

    def __init__(self, store: SessionStore, webhook: WebhookClient, settings: Settings) -> None:
        self._store = store
        self._webhook = webhook
        self._settings = settings

    async def handle(self, message: Any, session_id: Any, origin_key: str) -> ChatResult:
        text = self._validate_message(message)
        requested_id = self._validate_session_id(session_id)

        session, created = self._resolve_session(requested_id, origin_key)
        context = build_context(
            self._store.history(session.id), self._settings.context_messages
        )
        self._store.append(session.id, text, "user")

        logger.info("Processing message: %s...", text[:50])
        reply = await self._webhook.forward(text, context, session.id)

        self._store.append(session.id, reply.text, "bot")
        body = reply.to_response()
        body.update(
            sessionId=session.id,
            messageCount=self._store.message_count(session.id),
            sessionExpiresIn=int(self._store.expires_in(session)),
        )
        return ChatResult(body=body, session_id=session.id, created_session=created)

    def _validate_message(self, message: Any) -> str:
        if not message or not isinstance(message, str):
            raise InvalidInput("Message is required and must be a string")
        limit = self._settings.max_message_length
        if len(message) > limit:
            raise InvalidInput(f"Message too long (max {limit} characters)")
        return message

    @staticmethod
    def _validate_session_id(session_id: Any) -> Optional[str]:
        if session_id is None or session_id == "":
            return None
        if not isinstance(session_id, str):
            raise InvalidInput("sessionId must be a string")
        return session_id

    def _resolve_session(self, session_id: Optional[str], origin_key: str) -> tuple[Session, bool]:
        if session_id is not None:
            session = self._store.resolve(session_id, origin_key)
            if session is not None:
                return session, False
            if self._settings.session_policy == "strict":
                raise SessionInvalid()
            logger.info("Replacing unknown or expired session for origin %s", origin_key)

        new_id = self._store.create(origin_key)
        session = self._store.resolve(new_id, origin_key)
        if session is None:
            # Only reachable with a non-positive session timeout.
            raise SessionInvalid()
        return session, True
