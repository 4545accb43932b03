"""API endpoints for the chat agent."""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from app import __version__
from app.config import Settings, get_settings
from app.models.chat import ApiKeyStatus, ChatRequest, HealthResponse
from app.services.chat import ChatService, get_chat_service
from app.streaming.channel import DataStreamChannel, data_stream
from app.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()

DATA_STREAM_HEADERS = {"x-vercel-ai-data-stream": "v1"}


def provide_chat_service() -> ChatService:
    try:
        return get_chat_service()
    except ValueError as e:
        logger.error(f"Chat service unavailable: {e}")
        raise HTTPException(status_code=503, detail=str(e)) from e


@router.post("/chat", tags=["Chat"])
async def handle_chat(request: ChatRequest, service: ChatService = Depends(provide_chat_service)) -> StreamingResponse:
    """Stream the agent's reply to a conversation.

    Tool calls the user approved or denied since the last request are resolved
    first; their results lead the stream.
    """
    logger.info(f"Chat request with {len(request.messages)} messages")

    async def execute(channel: DataStreamChannel) -> None:
        await service.handle_chat(request.messages, channel)

    return StreamingResponse(
        data_stream(execute),
        media_type="text/plain; charset=utf-8",
        headers=DATA_STREAM_HEADERS,
    )


@router.get("/check-api-key", response_model=ApiKeyStatus, tags=["Health"])
async def check_api_key(settings: Settings = Depends(get_settings)) -> ApiKeyStatus:
    """Report whether the model API key is configured."""
    has_key = bool(settings.anthropic_api_key)
    if not has_key:
        logger.error("ANTHROPIC_API_KEY is not set, set it in the environment before starting the server")
    return ApiKeyStatus(success=has_key)


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        version=__version__,
    )
