"""Stream driver for concatenated-JSON generation streams.

Owns the read loop: pulls chunks from an async byte source, decodes them
incrementally, feeds the ObjectScanner and hands every completed object
to the EventDispatcher in stream order. Awaiting the next chunk is the
only suspension point; scanning and dispatch of one chunk's objects run
without yielding to other readers of the same stream.

Transport failures and stall timeouts are reported through ``on_error``
and end the call normally. Bad arguments raise before anything is read.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import time
from collections.abc import AsyncIterable, AsyncIterator, Iterable
from typing import Any

import httpx

from logostream.errors import StreamTimeoutError, TransportError
from logostream.schemas.streaming import StreamStats
from logostream.settings import StreamConfig
from logostream.stream.dispatcher import EventDispatcher, StreamCallbacks
from logostream.stream.scanner import ObjectScanner

logger = logging.getLogger(__name__)

# Failures of the byte source that end the stream without raising
_TRANSPORT_ERRORS = (
    OSError,
    TransportError,
    httpx.TransportError,
    httpx.StreamError,
)

_EOF = object()
_CANCELLED = object()

Chunk = bytes | bytearray | memoryview | str


def _as_async_iterator(stream: Any) -> AsyncIterator[Chunk]:
    """Accept an async or sync iterable of chunks; reject anything else."""
    if stream is None:
        raise TypeError("stream must not be None")
    if isinstance(stream, (str, bytes, bytearray, memoryview)):
        raise TypeError(
            "stream must be an iterable of chunks, not a single "
            f"{type(stream).__name__}; wrap it in a list"
        )
    if isinstance(stream, AsyncIterable):
        return aiter(stream)
    if isinstance(stream, Iterable):
        return _iterate_sync(stream)
    raise TypeError(f"stream must be an (async) iterable of chunks, got {type(stream).__name__}")


async def _iterate_sync(chunks: Iterable[Chunk]) -> AsyncIterator[Chunk]:
    for chunk in chunks:
        yield chunk


async def _read(iterator: AsyncIterator[Chunk]) -> Any:
    try:
        return await anext(iterator)
    except StopAsyncIteration:
        return _EOF


class StreamProcessor:
    """Processes concatenated-JSON progress streams.

    Every ``process_stream`` call owns its buffer, decoder and dispatcher,
    so one processor may serve many streams, sequentially or concurrently.
    ``cancel()`` stops every call currently running on this processor.

    Args:
        config: Stall timeout, truncation reporting and encoding settings.
    """

    def __init__(self, config: StreamConfig | None = None) -> None:
        self._config = config or StreamConfig()
        self._active: set[asyncio.Event] = set()

    @property
    def config(self) -> StreamConfig:
        return self._config

    def cancel(self) -> None:
        """Stop all in-flight streams before their next chunk is dispatched."""
        for event in list(self._active):
            event.set()

    async def process_stream(
        self,
        stream: AsyncIterable[Chunk] | Iterable[Chunk],
        callbacks: StreamCallbacks,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> StreamStats:
        """Read ``stream`` to the end, dispatching events to ``callbacks``.

        Args:
            stream: Async (or sync) iterable of ``bytes`` or ``str`` chunks,
                for example ``httpx.Response.aiter_bytes()``.
            callbacks: Handler table for this stream.
            cancel_event: Optional event; setting it cancels this call.

        Returns:
            Counters describing the processed stream.

        Raises:
            TypeError: If ``stream`` or ``callbacks`` is not usable.
        """
        source = _as_async_iterator(stream)
        stats = StreamStats()
        dispatcher = EventDispatcher(callbacks, stats)
        scanner = ObjectScanner()
        decoder = codecs.getincrementaldecoder(self._config.encoding)(errors="replace")
        cancel = cancel_event if cancel_event is not None else asyncio.Event()

        self._active.add(cancel)
        started = time.monotonic()
        try:
            while True:
                try:
                    chunk = await self._next_chunk(source, cancel)
                except _TRANSPORT_ERRORS as e:
                    await self._fail(e, scanner, dispatcher, stats)
                    break

                if chunk is _CANCELLED:
                    await self._cancelled(scanner, dispatcher, stats)
                    break

                if chunk is _EOF:
                    tail = decoder.decode(b"", final=True)
                    stats.objects += await self._feed(tail, scanner, dispatcher, cancel)
                    await self._drain(scanner, dispatcher, stats)
                    break

                stats.chunks += 1
                if isinstance(chunk, str):
                    encoded = chunk.encode(self._config.encoding, errors="replace")
                    stats.bytes_read += len(encoded)
                    text = chunk
                else:
                    stats.bytes_read += len(chunk)
                    text = decoder.decode(bytes(chunk))
                stats.objects += await self._feed(text, scanner, dispatcher, cancel)
        finally:
            self._active.discard(cancel)
            stats.duration = time.monotonic() - started
            await _close(source)

        logger.debug(
            "Stream finished: %d chunks, %d objects, %d dispatched, %d malformed",
            stats.chunks, stats.objects, stats.dispatched, stats.malformed,
        )
        return stats

    async def _next_chunk(self, source: AsyncIterator[Chunk], cancel: asyncio.Event) -> Any:
        """Wait for the next chunk, the cancel signal or the stall timeout."""
        if cancel.is_set():
            return _CANCELLED

        timeout = self._config.stall_timeout or None
        read = asyncio.ensure_future(_read(source))
        waiter = asyncio.ensure_future(cancel.wait())
        try:
            done, _ = await asyncio.wait(
                {read, waiter}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            waiter.cancel()
            if not read.done():
                read.cancel()
                await asyncio.gather(read, return_exceptions=True)

        if read in done:
            return read.result()
        if cancel.is_set():
            return _CANCELLED
        raise StreamTimeoutError(timeout)

    async def _feed(
        self,
        text: str,
        scanner: ObjectScanner,
        dispatcher: EventDispatcher,
        cancel: asyncio.Event,
    ) -> int:
        """Scan ``text`` and dispatch completed objects until cancelled.

        Returns:
            How many objects were handed to the dispatcher.
        """
        if not text:
            return 0
        objects = scanner.feed(text)
        for index, obj in enumerate(objects):
            if cancel.is_set():
                logger.debug("Cancelled with %d objects undispatched", len(objects) - index)
                return index
            await dispatcher.dispatch(obj)
        return len(objects)

    async def _drain(
        self, scanner: ObjectScanner, dispatcher: EventDispatcher, stats: StreamStats
    ) -> None:
        """Handle whatever is left in the buffer once the source is exhausted."""
        remainder = scanner.reset()
        if not remainder.strip():
            return

        stats.truncated_bytes = len(remainder)
        if self._config.report_truncated:
            logger.warning(
                "Stream ended inside an object; discarding %d characters", len(remainder)
            )
            await dispatcher.report_error(
                f"Stream ended with an incomplete object ({len(remainder)} bytes discarded)"
            )
        else:
            logger.debug("Discarding truncated trailing fragment: %s", remainder[:100])

    async def _fail(
        self,
        error: BaseException,
        scanner: ObjectScanner,
        dispatcher: EventDispatcher,
        stats: StreamStats,
    ) -> None:
        reason = str(error) or type(error).__name__
        stats.transport_error = reason
        stats.truncated_bytes = len(scanner.reset())
        logger.warning("Stream read failed: %s", reason)
        await dispatcher.report_error(f"Stream read error: {reason}")

    async def _cancelled(
        self, scanner: ObjectScanner, dispatcher: EventDispatcher, stats: StreamStats
    ) -> None:
        stats.cancelled = True
        scanner.reset()
        logger.info("Stream processing cancelled after %d chunks", stats.chunks)
        await dispatcher.notify_end("cancelled")


async def _close(source: AsyncIterator[Chunk]) -> None:
    """Close the source iterator if it supports it (async generators do)."""
    aclose = getattr(source, "aclose", None)
    if aclose is None:
        return
    try:
        await aclose()
    except Exception as e:
        logger.warning("Error closing stream source: %s", e)


async def process_stream(
    stream: AsyncIterable[Chunk] | Iterable[Chunk],
    callbacks: StreamCallbacks,
    config: StreamConfig | None = None,
) -> StreamStats:
    """Process one stream with a fresh StreamProcessor."""
    return await StreamProcessor(config).process_stream(stream, callbacks)
