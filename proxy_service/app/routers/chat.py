from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, Response

from ..deps import get_chat_pipeline, get_origin_key
from ..pipeline import ChatPipeline
from .. import schemas

router = APIRouter(prefix="/api", tags=["chat"])

SESSION_HEADER = "X-Session-ID"


@router.post(
    "/chat",
    responses={
        400: {"model": schemas.ErrorBody},
        401: {"model": schemas.ErrorBody},
        429: {"model": schemas.ErrorBody},
        502: {"model": schemas.ErrorBody},
    },
)
async def chat(
    payload: schemas.ChatRequest,
    response: Response,
    pipeline: ChatPipeline = Depends(get_chat_pipeline),
    origin_key: str = Depends(get_origin_key),
) -> Dict[str, Any]:
    result = await pipeline.handle(payload.message, payload.sessionId, origin_key)
    if result.created_session:
        response.headers[SESSION_HEADER] = result.session_id
    return result.body
