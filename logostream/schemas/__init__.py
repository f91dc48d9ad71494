"""logostream schema definitions.

Pydantic v2 models for stream events and stream-processing results.
"""

from logostream.schemas.events import (
    KNOWN_EVENT_TYPES,
    CacheEvent,
    CompleteEvent,
    EndEvent,
    ErrorEvent,
    EventType,
    GenerationProgress,
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
from logostream.schemas.brief import LogoBrief
from logostream.schemas.streaming import StreamStats

__all__ = [
    "KNOWN_EVENT_TYPES",
    "CacheEvent",
    "CompleteEvent",
    "EndEvent",
    "ErrorEvent",
    "EventType",
    "GenerationProgress",
    "HeartbeatEvent",
    "InfoEvent",
    "LogoBrief",
    "PreviewEvent",
    "ProgressEvent",
    "StageCompleteEvent",
    "StartEvent",
    "StreamEvent",
    "StreamStats",
    "WarningEvent",
    "normalize_message",
    "parse_event",
]
