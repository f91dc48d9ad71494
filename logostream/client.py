"""HTTP client for the streaming logo generation endpoint.

POSTs a LogoBrief and feeds the chunked response body through a
StreamProcessor. Opening the connection is retried with exponential
backoff; once the body is streaming, failures are reported through
``on_error`` instead, since replaying a half-consumed stream would
deliver duplicate events.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Any

import httpx

from logostream.cache import CacheKind, GenerationCache, brief_key
from logostream.errors import GenerationRequestError
from logostream.schemas.brief import LogoBrief
from logostream.schemas.events import CacheEvent, CompleteEvent
from logostream.schemas.streaming import StreamStats
from logostream.settings import ClientConfig, StreamConfig
from logostream.stream.dispatcher import EventDispatcher, StreamCallbacks
from logostream.stream.processor import StreamProcessor
from logostream.stream.writer import encode_event

logger = logging.getLogger(__name__)

# Failures opening the stream that are worth another attempt
_RECONNECTABLE = (
    httpx.ConnectError,
    httpx.ReadError,
    httpx.RemoteProtocolError,
    httpx.TimeoutException,
)


class GenerationClient:
    """Requests logo generations and streams their progress events.

    Args:
        config: Endpoint, timeouts and reconnect policy.
        stream_config: Settings for the StreamProcessor reading the body.
        cache: Optional result cache; a hit skips the HTTP request.
        http_client: Optional pre-built ``httpx.AsyncClient``. When omitted
            the client creates one and closes it in ``aclose()``.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        stream_config: StreamConfig | None = None,
        cache: GenerationCache | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config or ClientConfig()
        self._processor = StreamProcessor(stream_config)
        self._cache = cache
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(
            base_url=self._config.base_url,
            timeout=httpx.Timeout(
                self._config.request_timeout, connect=self._config.connect_timeout
            ),
        )

    @property
    def processor(self) -> StreamProcessor:
        return self._processor

    async def __aenter__(self) -> GenerationClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    def cancel(self) -> None:
        """Cancel any generation streams in progress."""
        self._processor.cancel()

    async def generate(self, brief: LogoBrief, callbacks: StreamCallbacks) -> StreamStats:
        """Run one generation and dispatch its events to ``callbacks``.

        Returns:
            StreamStats for the stream that was read. When the request could
            not be made, ``transport_error`` holds the reported message.

        Raises:
            TypeError: If ``callbacks`` is not a StreamCallbacks.
        """
        if not isinstance(callbacks, StreamCallbacks):
            raise TypeError(
                f"callbacks must be StreamCallbacks, got {type(callbacks).__name__}"
            )

        key = brief_key(brief)
        if self._cache is not None:
            cached = self._cache.get(key, CacheKind.GENERATION)
            if cached is not None:
                logger.info("Cache hit for brief %s", key[:12])
                return await self._replay_cached(cached, callbacks)
            callbacks = self._caching_callbacks(callbacks, key)

        payload = brief.model_dump(mode="json", exclude_none=True)
        path = self._config.generate_path
        max_retries = self._config.max_reconnect_attempts if self._config.auto_reconnect else 0
        last_error: Exception | None = None

        for attempt in range(max_retries + 1):
            try:
                async with self._http.stream("POST", path, json=payload) as response:
                    if response.status_code >= 400:
                        await response.aread()
                        return await self._report(
                            callbacks,
                            GenerationRequestError(
                                f"HTTP error {response.status_code}: {response.reason_phrase}",
                                status_code=response.status_code,
                            ),
                        )
                    return await self._processor.process_stream(
                        response.aiter_bytes(), callbacks
                    )
            except _RECONNECTABLE as e:
                last_error = e

            if attempt < max_retries:
                backoff = self._config.reconnect_delay * (2**attempt)
                logger.warning(
                    "Reconnect %d/%d to %s (%s, backoff: %.1fs)",
                    attempt + 1, max_retries, path,
                    type(last_error).__name__, backoff,
                )
                await asyncio.sleep(backoff)

        return await self._report(
            callbacks,
            GenerationRequestError(
                f"Connection to {path} failed after {max_retries + 1} attempts: {last_error}"
            ),
        )

    async def _replay_cached(self, cached: dict[str, Any], callbacks: StreamCallbacks) -> StreamStats:
        """Deliver a cached result through the normal dispatch path."""
        chunks = [
            encode_event(CacheEvent(is_cached=True, source="full")),
            encode_event(
                CompleteEvent(assets=cached["assets"], session_id=cached.get("sessionId", ""))
            ),
        ]
        return await self._processor.process_stream(chunks, callbacks)

    def _caching_callbacks(self, callbacks: StreamCallbacks, key: str) -> StreamCallbacks:
        """Wrap ``on_complete`` so fresh results are stored before delivery."""
        cache = self._cache
        wrapped = callbacks.on_complete

        async def on_complete(assets: dict[str, Any], session_id: str) -> None:
            cache.set(key, {"assets": assets, "sessionId": session_id}, CacheKind.GENERATION)
            if wrapped is not None:
                result = wrapped(assets, session_id)
                if asyncio.iscoroutine(result):
                    await result

        return dataclasses.replace(callbacks, on_complete=on_complete)

    async def _report(
        self, callbacks: StreamCallbacks, error: GenerationRequestError
    ) -> StreamStats:
        message = str(error)
        if error.status_code is not None:
            logger.warning("Generation request failed (status %d): %s", error.status_code, message)
        else:
            logger.warning("Generation request failed: %s", message)
        stats = StreamStats(transport_error=message)
        await EventDispatcher(callbacks, stats).report_error(message)
        return stats
