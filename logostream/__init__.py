"""logostream — client-side processing of AI logo generation progress streams."""

__version__ = "0.1.0"

from .cache import GenerationCache
from .client import GenerationClient
from .schemas import EventType, GenerationProgress, LogoBrief, StreamEvent, StreamStats
from .stream import StreamCallbacks, StreamProcessor, extract_objects, process_stream

__all__ = [
    "EventType",
    "GenerationCache",
    "GenerationClient",
    "GenerationProgress",
    "LogoBrief",
    "StreamCallbacks",
    "StreamEvent",
    "StreamProcessor",
    "StreamStats",
    "extract_objects",
    "process_stream",
]
