from functools import lru_cache
import os
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    webhook_url: Optional[str] = Field(
        default=None, description="Downstream webhook that produces chat replies"
    )
    webhook_jwt: Optional[str] = Field(
        default=None, description="Bearer credential sent to the webhook"
    )
    webhook_timeout: float = Field(
        default=30.0,
        description="Timeout (in seconds) for a single webhook call",
    )
    allowed_origin: str = Field(default="*", description="CORS allowed origin")
    app_env: str = Field(default="production")
    port: int = Field(default=3001)
    log_level: str = Field(default="INFO")

    session_timeout: float = Field(
        default=1800.0, description="Idle seconds before a session expires"
    )
    cleanup_interval: float = Field(
        default=300.0, description="Seconds between expired-session sweeps"
    )
    max_sessions_per_origin: int = Field(default=5)
    context_messages: int = Field(
        default=10, description="Number of recent messages sent as context"
    )
    max_message_length: int = Field(default=1000)
    max_body_bytes: int = Field(
        default=1024 * 1024, description="Largest accepted request body in bytes"
    )
    session_policy: Literal["strict", "auto_create"] = Field(
        default="strict",
        description="strict rejects unknown session ids, auto_create replaces them",
    )
    max_messages_per_session: Optional[int] = Field(
        default=None, description="Ring buffer size per session, unbounded when unset"
    )
    trust_proxy_headers: bool = Field(
        default=False, description="Use X-Forwarded-For as the client origin"
    )

    class Config:
        frozen = True

    @property
    def debug(self) -> bool:
        return self.app_env.lower() in {"dev", "development", "local"}


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_optional_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    if not value:
        return None
    return int(value)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached Settings instance."""

    defaults = Settings()
    return Settings(
        webhook_url=os.getenv("WEBHOOK_URL", defaults.webhook_url),
        webhook_jwt=os.getenv("WEBHOOK_JWT", defaults.webhook_jwt),
        webhook_timeout=float(os.getenv("WEBHOOK_TIMEOUT", defaults.webhook_timeout)),
        allowed_origin=os.getenv("ALLOWED_ORIGIN", defaults.allowed_origin),
        app_env=os.getenv("APP_ENV", defaults.app_env),
        port=int(os.getenv("PORT", defaults.port)),
        log_level=os.getenv("LOG_LEVEL", defaults.log_level),
        session_timeout=float(os.getenv("SESSION_TIMEOUT", defaults.session_timeout)),
        cleanup_interval=float(
            os.getenv("CLEANUP_INTERVAL", defaults.cleanup_interval)
        ),
        max_sessions_per_origin=int(
            os.getenv("MAX_SESSIONS_PER_ORIGIN", defaults.max_sessions_per_origin)
        ),
        context_messages=int(os.getenv("CONTEXT_MESSAGES", defaults.context_messages)),
        max_message_length=int(
            os.getenv("MAX_MESSAGE_LENGTH", defaults.max_message_length)
        ),
        max_body_bytes=int(os.getenv("MAX_BODY_BYTES", defaults.max_body_bytes)),
        session_policy=os.getenv("SESSION_POLICY", defaults.session_policy),
        max_messages_per_session=_env_optional_int("MAX_MESSAGES_PER_SESSION"),
        trust_proxy_headers=_env_bool(
            "TRUST_PROXY_HEADERS", defaults.trust_proxy_headers
        ),
    )
