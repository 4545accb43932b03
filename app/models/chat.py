"""Request and response models for the HTTP API."""

from datetime import datetime

from pydantic import BaseModel

from app.models.messages import Message


class ChatRequest(BaseModel):
    """Request model for the chat endpoint."""

    messages: list[Message]


class ApiKeyStatus(BaseModel):
    """Whether the model API key is configured."""

    success: bool


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    timestamp: datetime
    version: str
