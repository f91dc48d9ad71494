"""Producer side of the generation stream.

Encodes events into the wire format the processor consumes: compact
JSON objects written back to back with no delimiter. EventWriter is the
queue a generation route writes into while a response body iterates it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Any

from pydantic import BaseModel

from logostream.schemas.events import StreamEvent, parse_event

logger = logging.getLogger(__name__)

_CLOSED = object()


def encode_event(event: StreamEvent | BaseModel) -> bytes:
    """Serialize one event to its UTF-8 wire form (camelCase, no nulls)."""
    return event.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")


class EventWriter:
    """Queue of encoded events consumed by async iteration.

    ``write()`` validates and enqueues; ``close()`` ends the iteration.
    Writes after close are dropped with a warning, matching a response
    body that has already been finished. Dicts are validated through the
    event union before encoding so an invalid event never reaches a client.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._closed = False
        self.written = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, event: StreamEvent | dict[str, Any]) -> None:
        """Validate and enqueue an event.

        Raises:
            pydantic.ValidationError: If a dict does not match any event type.
        """
        if self._closed:
            logger.warning("Dropping %s event written after close", _event_type(event))
            return
        if isinstance(event, dict):
            event = parse_event(event)
        self._queue.put_nowait(encode_event(event))
        self.written += 1

    def close(self) -> None:
        """Finish the stream; iteration ends after queued events drain."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    async def __aiter__(self) -> AsyncIterator[bytes]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item


def _event_type(event: StreamEvent | dict[str, Any]) -> str:
    if isinstance(event, dict):
        return str(event.get("type"))
    return event.type


async def iter_chunks(data: bytes, chunk_size: int) -> AsyncIterator[bytes]:
    """Yield ``data`` in fixed-size pieces, as a network read loop would see it.

    Raises:
        ValueError: If ``chunk_size`` is not positive.
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    for start in range(0, len(data), chunk_size):
        yield data[start:start + chunk_size]
        await asyncio.sleep(0)
