"""Pydantic schemas shared across proxy routes."""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    # Types are checked by the pipeline so that bad input yields the proxy's own 400 messages.
    message: Any = None
    sessionId: Any = None


class SessionCreateResponse(BaseModel):
    sessionId: str
    expiresIn: int = Field(..., description="Seconds until the session expires when idle")
    message: str = "Session created successfully"


class SessionInfoResponse(BaseModel):
    sessionId: str
    messageCount: int
    createdAt: str
    lastActivity: str
    expiresIn: int


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    activeSessions: int


class ErrorBody(BaseModel):
    error: str
    details: Optional[str] = None
