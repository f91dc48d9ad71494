"""Event dispatch for decoded stream objects.

Parses one extracted object, normalizes legacy envelopes, validates it
into a typed event and calls the matching callback. Nothing here raises
into the read loop: malformed objects, unknown types and failing
handlers are logged and counted so one bad object never aborts a stream.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, fields
from typing import Any

from pydantic import ValidationError

from logostream.schemas.events import (
    KNOWN_EVENT_TYPES,
    CacheEvent,
    CompleteEvent,
    EndEvent,
    ErrorEvent,
    HeartbeatEvent,
    InfoEvent,
    PreviewEvent,
    ProgressEvent,
    StageCompleteEvent,
    StartEvent,
    StreamEvent,
    WarningEvent,
    normalize_message,
    parse_event,
)
from logostream.schemas.streaming import StreamStats

logger = logging.getLogger(__name__)

# Characters of an offending object quoted in log messages
_LOG_SNIPPET = 100

Handler = Callable[..., Any]


@dataclass
class StreamCallbacks:
    """Handlers for stream events, one optional slot per event type.

    Handlers receive the payload fields, not the envelope. Sync and async
    callables are both accepted; coroutines are awaited before the next
    object is dispatched. ``on_event`` receives every validated event
    before its type-specific handler runs.
    """

    on_start: Handler | None = None          # (session_id)
    on_progress: Handler | None = None       # (GenerationProgress)
    on_preview: Handler | None = None        # (svg)
    on_complete: Handler | None = None       # (assets, session_id)
    on_error: Handler | None = None          # (message)
    on_cache: Handler | None = None          # (is_cached)
    on_stage_complete: Handler | None = None  # (StageCompleteEvent)
    on_warning: Handler | None = None        # (message)
    on_info: Handler | None = None           # (message)
    on_heartbeat: Handler | None = None      # ()
    on_end: Handler | None = None            # (status)
    on_event: Handler | None = None          # (StreamEvent)

    def __post_init__(self) -> None:
        for f in fields(self):
            handler = getattr(self, f.name)
            if handler is not None and not callable(handler):
                raise TypeError(f"{f.name} must be callable, got {type(handler).__name__}")


_HANDLER_ARGS: dict[type, tuple[str, Callable[[Any], tuple[Any, ...]]]] = {
    StartEvent: ("on_start", lambda e: (e.session_id,)),
    ProgressEvent: ("on_progress", lambda e: (e.progress,)),
    PreviewEvent: ("on_preview", lambda e: (e.svg,)),
    CompleteEvent: ("on_complete", lambda e: (e.assets, e.session_id)),
    ErrorEvent: ("on_error", lambda e: (e.message,)),
    CacheEvent: ("on_cache", lambda e: (e.is_cached,)),
    StageCompleteEvent: ("on_stage_complete", lambda e: (e,)),
    WarningEvent: ("on_warning", lambda e: (e.message,)),
    InfoEvent: ("on_info", lambda e: (e.message,)),
    HeartbeatEvent: ("on_heartbeat", lambda e: ()),
    EndEvent: ("on_end", lambda e: (e.status,)),
}


class EventDispatcher:
    """Routes extracted object texts to a StreamCallbacks table.

    One dispatcher serves one stream; its counters are written into the
    ``stats`` object it was given.
    """

    def __init__(
        self, callbacks: StreamCallbacks, stats: StreamStats | None = None
    ) -> None:
        if not isinstance(callbacks, StreamCallbacks):
            raise TypeError(
                f"callbacks must be StreamCallbacks, got {type(callbacks).__name__}"
            )
        self._callbacks = callbacks
        self.stats = stats if stats is not None else StreamStats()

    async def dispatch(self, object_text: str) -> StreamEvent | None:
        """Parse, validate and deliver a single object.

        Returns:
            The validated event, or None if the object was malformed or
            carried an unrecognized type.
        """
        try:
            data = json.loads(object_text)
        except json.JSONDecodeError as e:
            self.stats.malformed += 1
            logger.warning(
                "Skipping malformed stream object (%s): %s",
                e.msg, object_text[:_LOG_SNIPPET],
            )
            return None
        except RecursionError:
            self.stats.malformed += 1
            logger.warning(
                "Skipping stream object nested too deeply to decode (%d chars): %s",
                len(object_text), object_text[:_LOG_SNIPPET],
            )
            return None

        message = normalize_message(data)
        if message is None:
            self.stats.malformed += 1
            logger.warning(
                "Skipping non-object stream value: %s", object_text[:_LOG_SNIPPET]
            )
            return None

        kind = message.get("type")
        if not isinstance(kind, str):
            self.stats.unknown += 1
            logger.debug("Ignoring stream event with non-string type (%s)", type(kind).__name__)
            return None
        if kind not in KNOWN_EVENT_TYPES:
            self.stats.unknown += 1
            logger.debug("Ignoring stream event with unknown type %r", kind)
            return None

        try:
            event = parse_event(message)
        except ValidationError as e:
            self.stats.malformed += 1
            logger.warning(
                "Skipping invalid %r event (%d validation errors): %s",
                kind, e.error_count(), object_text[:_LOG_SNIPPET],
            )
            return None

        self.stats.dispatched += 1
        await self._invoke("on_event", (event,))
        name, payload = _HANDLER_ARGS[type(event)]
        await self._invoke(name, payload(event))
        return event

    async def report_error(self, message: str) -> None:
        """Deliver a locally generated error message to ``on_error``.

        Exceptions from the error handler itself are logged and dropped.
        """
        handler = self._callbacks.on_error
        if handler is None:
            return
        try:
            await _call(handler, (message,))
        except Exception:
            self.stats.handler_errors += 1
            logger.exception("on_error handler failed while reporting: %s", message)

    async def notify_end(self, status: str) -> None:
        """Call ``on_end`` for a locally decided termination (e.g. cancellation)."""
        await self._invoke("on_end", (status,))

    async def _invoke(self, name: str, args: tuple[Any, ...]) -> None:
        handler = getattr(self._callbacks, name)
        if handler is None:
            return
        try:
            await _call(handler, args)
        except Exception as e:
            self.stats.handler_errors += 1
            logger.exception("Stream callback %s raised", name)
            if name != "on_error":
                await self.report_error(f"{name} handler failed: {e}")


async def _call(handler: Handler, args: tuple[Any, ...]) -> None:
    result = handler(*args)
    if asyncio.iscoroutine(result):
        await result
