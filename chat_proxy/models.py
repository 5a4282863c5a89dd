"""Request and response models for the chat proxy."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    """Incoming chat request body.

    ``message`` is untyped; the validator decides the 400 reason for a
    missing or non-string value.
    """

    model_config = ConfigDict(extra="ignore")

    message: Any = None


class ChatResponse(BaseModel):
    """Successful chat response."""

    response: str


class ErrorResponse(BaseModel):
    """Error response envelope."""

    error: str


class HealthResponse(BaseModel):
    """Liveness report."""

    status: str = "OK"
    timestamp: str
    uptime: float = Field(..., ge=0)
