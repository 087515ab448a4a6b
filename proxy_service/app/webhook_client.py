"""HTTP client for forwarding chat messages to the downstream webhook."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import json
import logging
from typing import Any, Dict, Optional
import uuid

import httpx

from .config import Settings, get_settings
from .errors import GatewayError, GatewayUnavailable, InvalidUpstreamResponse

logger = logging.getLogger(__name__)

DEFAULT_ACKNOWLEDGEMENT = "Webhook processed successfully"
FALLBACK_REPLY = "Sorry, I couldn't process your request right now."


@dataclass
class NormalizedReply:
    text: str
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_response(self) -> Dict[str, Any]:
        body = dict(self.payload)
        body["response"] = self.text
        return body


def extract_reply_text(data: Any) -> str:
    """Pick the reply text out of the shapes the webhook is known to return."""

    if (
        isinstance(data, list)
        and data
        and isinstance(data[0], dict)
        and data[0].get("output") is not None
    ):
        return _as_text(data[0]["output"])
    if isinstance(data, dict) and "response" in data:
        return _as_text(data["response"])
    return FALLBACK_REPLY


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


class WebhookClient:
    """Single-attempt wrapper around the webhook HTTP API."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        settings = settings or get_settings()
        self._url = settings.webhook_url
        self._jwt = settings.webhook_jwt
        self._timeout = settings.webhook_timeout
        self._transport = transport

    async def forward(self, message: str, context: str, session_id: str) -> NormalizedReply:
        if not self._url:
            raise GatewayUnavailable(details="WEBHOOK_URL is not configured")

        request_id = uuid.uuid4().hex
        payload = {
            "message": message,
            "context": context,
            "sessionId": session_id,
            "requestId": request_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "proxy": True,
        }
        response = await self._post(payload, request_id)
        return self._normalize(response)

    async def _post(self, payload: Dict[str, Any], request_id: str) -> httpx.Response:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._jwt or ''}",
            "X-Proxy-Request": "true",
            "X-Request-ID": request_id,
        }
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                response = await client.post(self._url, json=payload, headers=headers)
        except httpx.RequestError as exc:
            logger.error("Error forwarding to webhook: %r", exc)
            raise GatewayUnavailable(details=str(exc) or type(exc).__name__) from exc

        logger.info(
            "Webhook response status: %s %s", response.status_code, response.reason_phrase
        )
        if not response.is_success:
            logger.error("Webhook error: %s %s", response.status_code, response.reason_phrase)
            raise GatewayError(response.status_code, details=response.text)
        return response

    def _normalize(self, response: httpx.Response) -> NormalizedReply:
        body = response.text
        if not body.strip():
            logger.info("Webhook returned empty response")
            return NormalizedReply(
                text=DEFAULT_ACKNOWLEDGEMENT, payload={"message": DEFAULT_ACKNOWLEDGEMENT}
            )

        try:
            data = json.loads(body)
        except ValueError as exc:
            logger.error("Failed to parse webhook response as JSON: %s", exc)
            raise InvalidUpstreamResponse(details=body) from exc

        payload = dict(data) if isinstance(data, dict) else {}
        return NormalizedReply(text=extract_reply_text(data), payload=payload)
