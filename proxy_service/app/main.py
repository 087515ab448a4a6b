from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, get_settings
from .errors import InternalFault, ProxyError
from .logging_config import configure_logging
from .middleware import BodySizeLimitMiddleware
from .pipeline import ChatPipeline
from .routers import chat, session
from .routers.chat import SESSION_HEADER
from .session_store import SessionStore
from .webhook_client import WebhookClient
from . import schemas

logger = logging.getLogger(__name__)


async def sweep_periodically(store: SessionStore, interval: float) -> None:
    """Remove expired sessions every ``interval`` seconds until cancelled."""

    while True:
        await asyncio.sleep(interval)
        try:
            store.sweep_expired()
        except Exception:
            logger.exception("Session sweep failed")


def create_app(
    settings: Optional[Settings] = None,
    *,
    session_store: Optional[SessionStore] = None,
    webhook_client: Optional[WebhookClient] = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    store = session_store or SessionStore(
        session_timeout=settings.session_timeout,
        max_sessions_per_origin=settings.max_sessions_per_origin,
        max_messages_per_session=settings.max_messages_per_session,
    )
    webhook = webhook_client or WebhookClient(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Chatbot proxy starting on port %s", settings.port)
        logger.info("Webhook URL: %s", settings.webhook_url or "Not configured")
        logger.info("JWT configured: %s", "Yes" if settings.webhook_jwt else "No")
        logger.info("CORS origin: %s", settings.allowed_origin)
        sweeper = asyncio.create_task(sweep_periodically(store, settings.cleanup_interval))
        try:
            yield
        finally:
            sweeper.cancel()
            try:
                await sweeper
            except asyncio.CancelledError:
                pass

    app = FastAPI(title="Chat Webhook Proxy", lifespan=lifespan)
    app.state.settings = settings
    app.state.session_store = store
    app.state.chat_pipeline = ChatPipeline(store, webhook, settings)

    app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=settings.max_body_bytes)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.allowed_origin],
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Authorization"],
        expose_headers=[SESSION_HEADER],
    )
    app.include_router(chat.router)
    app.include_router(session.router)
    _register_exception_handlers(app, settings)

    @app.get("/health", response_model=schemas.HealthResponse)
    async def healthcheck() -> schemas.HealthResponse:
        return schemas.HealthResponse(
            status="OK",
            timestamp=datetime.now(timezone.utc).isoformat(),
            activeSessions=store.count_active_sessions(),
        )

    return app


def _register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(ProxyError)
    async def proxy_error_handler(request: Request, exc: ProxyError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "%s %s failed: %s (%s)", request.method, request.url.path, exc.error, exc.details
            )
        return JSONResponse(status_code=exc.status_code, content=exc.to_body(settings.debug))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.warning("Rejected malformed body on %s: %s", request.url.path, exc.errors())
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid request body"},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content={"error": "Endpoint not found"},
            )
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        fault = InternalFault(details=str(exc))
        return JSONResponse(status_code=fault.status_code, content=fault.to_body(settings.debug))


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=get_settings().port)
