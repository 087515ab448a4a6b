from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from ..deps import get_origin_key, get_session_store
from ..errors import SessionNotFound
from ..session_store import SessionStore
from .. import schemas

router = APIRouter(prefix="/api/session", tags=["session"])


@router.post(
    "/create",
    response_model=schemas.SessionCreateResponse,
    responses={429: {"model": schemas.ErrorBody}},
)
def create_session(
    store: SessionStore = Depends(get_session_store),
    origin_key: str = Depends(get_origin_key),
) -> schemas.SessionCreateResponse:
    session_id = store.create(origin_key)
    return schemas.SessionCreateResponse(
        sessionId=session_id, expiresIn=int(store.session_timeout)
    )


@router.get(
    "/{session_id}",
    response_model=schemas.SessionInfoResponse,
    responses={404: {"model": schemas.ErrorBody}},
)
def get_session(
    session_id: str,
    store: SessionStore = Depends(get_session_store),
    origin_key: str = Depends(get_origin_key),
) -> schemas.SessionInfoResponse:
    # Read-only: inspecting a session does not extend its lifetime.
    session = store.peek(session_id, origin_key)
    if session is None:
        raise SessionNotFound()
    return schemas.SessionInfoResponse(
        sessionId=session.id,
        messageCount=store.message_count(session.id),
        createdAt=_isoformat(session.created_at),
        lastActivity=_isoformat(session.last_activity_at),
        expiresIn=int(store.expires_in(session)),
    )


def _isoformat(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()
