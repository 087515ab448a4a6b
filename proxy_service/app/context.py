"""Conversation context sent along with each forwarded message."""
from __future__ import annotations

from typing import Iterable

from .session_store import Message

DEFAULT_CONTEXT_MESSAGES = 10
ROLE_LABELS = {"user": "User", "bot": "Assistant"}


def build_context(messages: Iterable[Message], limit: int = DEFAULT_CONTEXT_MESSAGES) -> str:
    """Render the last ``limit`` messages as ``"<Role>: <text>"`` lines, oldest first."""

    if limit <= 0:
        return ""
    recent = list(messages)[-limit:]
    return "\n".join(f"{ROLE_LABELS[msg.author]}: {msg.text}" for msg in recent)
