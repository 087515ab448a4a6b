"""
Shared pytest configuration and fixtures.

Ensures the project root is importable so `import proxy_service.app` works
without installing the package, and provides helpers for faking the clock
and the downstream webhook.
"""

import sys
from pathlib import Path
from typing import Callable

import httpx
import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from proxy_service.app.config import Settings  # noqa: E402
from proxy_service.app.session_store import SessionStore  # noqa: E402
from proxy_service.app.webhook_client import WebhookClient  # noqa: E402

WEBHOOK_URL = "http://webhook.test/hook"


class FakeClock:
    """Manually advanced replacement for time.time."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(webhook_url=WEBHOOK_URL, webhook_jwt="test-jwt", session_timeout=1800.0)


@pytest.fixture
def store(clock: FakeClock) -> SessionStore:
    return SessionStore(session_timeout=1800.0, max_sessions_per_origin=5, clock=clock)


@pytest.fixture
def make_webhook(settings: Settings) -> Callable[..., WebhookClient]:
    def _make(handler, settings_override: Settings | None = None) -> WebhookClient:
        return WebhookClient(
            settings_override or settings, transport=httpx.MockTransport(handler)
        )

    return _make
