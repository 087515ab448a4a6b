"""FastAPI dependency providers backed by objects created in the app factory."""
from __future__ import annotations

from fastapi import Request

from .config import Settings
from .pipeline import ChatPipeline
from .session_store import SessionStore


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def get_chat_pipeline(request: Request) -> ChatPipeline:
    return request.app.state.chat_pipeline


def get_origin_key(request: Request) -> str:
    """Network identity a session is bound to."""

    settings: Settings = request.app.state.settings
    if settings.trust_proxy_headers:
        forwarded = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    if request.client is None:
        return "unknown"
    return request.client.host
