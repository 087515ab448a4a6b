"""Error taxonomy for the chat proxy.

Every failure a request can hit is raised as a ``ProxyError`` subclass and
rendered by a single exception handler into ``{"error": ..., "details": ...}``.
``details`` carries internal information and is only exposed in development;
``public_details`` is safe to show in production.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import status


class ProxyError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "Internal server error"
    public_details: Optional[str] = None

    def __init__(
        self,
        error: Optional[str] = None,
        *,
        details: Optional[str] = None,
        public_details: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        if error is not None:
            self.error = error
        if status_code is not None:
            self.status_code = status_code
        if public_details is not None:
            self.public_details = public_details
        self.details = details
        super().__init__(self.error)

    def to_body(self, debug: bool = False) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.error}
        if debug and self.details is not None:
            body["details"] = self.details
        elif self.public_details is not None:
            body["details"] = self.public_details
        return body


class InvalidInput(ProxyError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "Invalid request"


class SessionInvalid(ProxyError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error = "Invalid or expired session. Please create a new session."


class SessionNotFound(ProxyError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "Session not found or expired"


class QuotaExceeded(ProxyError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error = "Too many active sessions. Please try again later."


class GatewayUnavailable(ProxyError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "Failed to contact webhook service"
    public_details = "Internal server error"


class GatewayError(ProxyError):
    """Webhook answered with a non-success status; the status is passed through."""

    def __init__(self, upstream_status: int, *, details: Optional[str] = None) -> None:
        self.upstream_status = upstream_status
        super().__init__(
            f"Webhook error: {upstream_status}",
            details=details,
            status_code=upstream_status,
        )


class InvalidUpstreamResponse(ProxyError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "Webhook returned invalid JSON"
    public_details = "Invalid response format"


class InternalFault(ProxyError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "Internal server error"


__all__ = [
    "ProxyError",
    "InvalidInput",
    "SessionInvalid",
    "SessionNotFound",
    "QuotaExceeded",
    "GatewayUnavailable",
    "GatewayError",
    "InvalidUpstreamResponse",
    "InternalFault",
]
