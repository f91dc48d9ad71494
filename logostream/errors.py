"""Exception hierarchy for logostream.

Only conditions the caller must act on are raised. Malformed objects,
failing handlers and truncated trailing fragments are logged and counted
by the stream layer instead.
"""

from __future__ import annotations


class LogoStreamError(Exception):
    """Base exception for all logostream errors."""


class TransportError(LogoStreamError):
    """Raised when reading the underlying byte stream fails."""


class StreamTimeoutError(TransportError):
    """Raised when no chunk arrives within the configured stall timeout."""

    def __init__(self, seconds: float) -> None:
        super().__init__(
            f"Stream timeout - no data received for {seconds:g} seconds"
        )
        self.seconds = seconds


class GenerationRequestError(LogoStreamError):
    """Raised when a generation request cannot be completed over HTTP."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
