"""Output channels for streaming updates back to the caller."""

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any, Protocol

from app.models.stream import ErrorStreamPart, StreamPart
from app.utils.logging import get_logger

logger = get_logger(__name__)

STREAM_ERROR_MESSAGE = "An error occurred while processing your request."


class ChannelClosedError(RuntimeError):
    """Raised when writing to a channel that has already been closed."""


class OutputChannel(Protocol):
    """Append-only sink for stream parts.

    Producers only ever call ``write``; ``close`` belongs to whoever owns the
    request/response lifetime.
    """

    def write(self, part: StreamPart) -> None: ...

    def close(self) -> None: ...


class DataStreamChannel:
    """Channel that queues parts as data stream frames for an HTTP response."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, part: StreamPart) -> None:
        """Queue a part for the consumer."""
        if self._closed:
            raise ChannelClosedError(f"Cannot write {type(part).__name__} to a closed channel")
        self._queue.put_nowait(part.frame())

    def close(self) -> None:
        """Signal end of stream. Closing twice is a no-op."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(None)

    async def frames(self) -> AsyncIterator[str]:
        """Yield frames in write order until the channel is closed."""
        while True:
            frame = await self._queue.get()
            if frame is None:
                return
            yield frame


async def data_stream(execute: Callable[[DataStreamChannel], Awaitable[Any]]) -> AsyncIterator[str]:
    """Run ``execute`` against a fresh channel and yield its frames as they arrive.

    The channel is always closed once ``execute`` finishes. An exception from
    ``execute`` is logged and reported to the client as an error frame.
    """
    channel = DataStreamChannel()

    async def run() -> None:
        try:
            await execute(channel)
        except Exception as e:
            logger.error(f"Data stream producer failed: {e}", exc_info=True)
            if not channel.closed:
                channel.write(ErrorStreamPart(message=STREAM_ERROR_MESSAGE))
        finally:
            channel.close()

    producer = asyncio.create_task(run())
    try:
        async for frame in channel.frames():
            yield frame
        await producer
    finally:
        if not producer.done():
            logger.info("Stream consumer went away, cancelling producer")
            producer.cancel()
            await asyncio.gather(producer, return_exceptions=True)
