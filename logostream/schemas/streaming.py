"""Streaming schemas for stream-processing results.

Defines the StreamStats model returned by process_stream() so callers
and the CLI can report what happened to a stream after it ends.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class StreamStats(BaseModel):
    """Counters collected while processing a single stream."""

    chunks: int = Field(default=0, ge=0, description="Chunks read from the source")
    bytes_read: int = Field(default=0, ge=0, description="Raw bytes read from the source")
    objects: int = Field(
        default=0, ge=0, description="Complete objects extracted and passed to dispatch"
    )
    dispatched: int = Field(default=0, ge=0, description="Events delivered to callbacks")
    malformed: int = Field(default=0, ge=0, description="Objects that failed to parse or validate")
    unknown: int = Field(default=0, ge=0, description="Objects with an unrecognized type")
    handler_errors: int = Field(default=0, ge=0, description="Callbacks that raised")
    truncated_bytes: int = Field(
        default=0, ge=0, description="Length of the incomplete trailing fragment discarded"
    )
    transport_error: str | None = Field(
        default=None, description="Message of the transport error that ended the stream"
    )
    cancelled: bool = Field(default=False, description="True when the caller cancelled")
    duration: float = Field(default=0.0, ge=0.0, description="Wall time in seconds")

    @property
    def completed_cleanly(self) -> bool:
        """True when the stream ended without transport error or cancellation."""
        return self.transport_error is None and not self.cancelled
