"""Request body size guard applied before routing and JSON parsing."""
from __future__ import annotations

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

BODY_METHODS = {"POST", "PUT", "PATCH"}


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject bodies larger than ``max_body_bytes`` with 413."""

    def __init__(self, app, max_body_bytes: int) -> None:
        super().__init__(app)
        self.max_body_bytes = max_body_bytes

    async def dispatch(self, request: Request, call_next):
        if request.method.upper() in BODY_METHODS and await self._too_large(request):
            logger.warning(
                "Rejected oversized body on %s (limit %d bytes)",
                request.url.path,
                self.max_body_bytes,
            )
            return JSONResponse(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                content={"error": "Request body too large"},
            )
        return await call_next(request)

    async def _too_large(self, request: Request) -> bool:
        declared = request.headers.get("content-length")
        if declared is not None and declared.isdigit():
            return int(declared) > self.max_body_bytes
        # Chunked or malformed length: measure the body itself.
        body = await request.body()
        return len(body) > self.max_body_bytes
