"""Progress event schemas for the generation stream.

The generation endpoint writes a sequence of concatenated JSON objects,
each tagged by a ``type`` field. This module defines the tagged union of
those objects, the adapter used to validate them, and the normalization
step that maps older producer envelopes onto the canonical shapes.

Wire keys are camelCase; Python attributes are snake_case.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel


class EventType(StrEnum):
    """Discriminator values carried in the ``type`` field."""

    START = "start"
    PROGRESS = "progress"
    PREVIEW = "preview"
    COMPLETE = "complete"
    ERROR = "error"
    CACHE = "cache"
    STAGE_COMPLETE = "stage_complete"
    WARNING = "warning"
    INFO = "info"
    HEARTBEAT = "heartbeat"
    END = "end"


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class GenerationProgress(_WireModel):
    """Snapshot of pipeline progress carried by a ``progress`` event.

    Percentages outside 0-100 are clamped instead of rejected, since the
    producer's estimates occasionally overshoot.
    """

    current_stage: str = Field(default="", description="Name of the active stage")
    stage_progress: float = Field(default=0.0, description="Progress within the stage (0-100)")
    overall_progress: float = Field(default=0.0, description="Progress across all stages (0-100)")
    status_message: str = Field(default="", description="Human-readable status line")
    estimated_time_remaining: float | None = Field(
        default=None, description="Estimated milliseconds until completion"
    )
    elapsed_time: float | None = Field(
        default=None, description="Milliseconds since generation started"
    )

    @field_validator("stage_progress", "overall_progress")
    @classmethod
    def _clamp_percentage(cls, value: float) -> float:
        return min(100.0, max(0.0, value))


class _EventBase(_WireModel):
    timestamp: float | None = Field(default=None, description="Producer timestamp (ms)")


class StartEvent(_EventBase):
    """Generation accepted; the session id identifies it from now on."""

    type: Literal["start"] = "start"
    session_id: str
    estimated_time: int | None = None
    stages: list[str] = Field(default_factory=list)


class ProgressEvent(_EventBase):
    type: Literal["progress"] = "progress"
    progress: GenerationProgress


class PreviewEvent(_EventBase):
    """Intermediate SVG rendering of the logo."""

    type: Literal["preview"] = "preview"
    svg: str
    stage_id: str | None = None


class CompleteEvent(_EventBase):
    """Final generated assets."""

    type: Literal["complete"] = "complete"
    assets: dict[str, Any]
    session_id: str = ""


class ErrorEvent(_EventBase):
    type: Literal["error"] = "error"
    message: str
    code: str | None = None
    recoverable: bool = False
    retry_after: float | None = None


class CacheEvent(_EventBase):
    type: Literal["cache"] = "cache"
    is_cached: bool
    source: Literal["full", "partial"] | None = None


class StageCompleteEvent(_EventBase):
    type: Literal["stage_complete"] = "stage_complete"
    stage_id: str
    stage_name: str = ""
    duration: float = Field(default=0.0, ge=0.0, description="Stage duration in ms")
    success: bool = True


class WarningEvent(_EventBase):
    type: Literal["warning"] = "warning"
    message: str
    code: str | None = None


class InfoEvent(_EventBase):
    type: Literal["info"] = "info"
    message: str
    details: Any = None


class HeartbeatEvent(_EventBase):
    type: Literal["heartbeat"] = "heartbeat"


class EndEvent(_EventBase):
    type: Literal["end"] = "end"
    status: Literal["success", "error", "cancelled"] = "success"


StreamEvent = Annotated[
    Union[
        StartEvent,
        ProgressEvent,
        PreviewEvent,
        CompleteEvent,
        ErrorEvent,
        CacheEvent,
        StageCompleteEvent,
        WarningEvent,
        InfoEvent,
        HeartbeatEvent,
        EndEvent,
    ],
    Field(discriminator="type"),
]

_EVENT_ADAPTER: TypeAdapter[StreamEvent] = TypeAdapter(StreamEvent)

KNOWN_EVENT_TYPES = frozenset(e.value for e in EventType)


def parse_event(data: dict[str, Any]) -> StreamEvent:
    """Validate a normalized message into its event model.

    Raises:
        pydantic.ValidationError: If the message does not match any variant.
    """
    return _EVENT_ADAPTER.validate_python(data)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _normalize_error(msg: dict[str, Any]) -> dict[str, Any]:
    error = msg.get("error")
    out: dict[str, Any] = {"type": EventType.ERROR.value}
    if isinstance(error, dict):
        out["message"] = error.get("message") or msg.get("message") or "Unknown error"
        for key in ("code", "recoverable", "retryAfter"):
            if error.get(key) is not None:
                out[key] = error[key]
    else:
        out["message"] = str(error)
    if "timestamp" in msg:
        out["timestamp"] = msg["timestamp"]
    return out


def _normalize_progress(progress: dict[str, Any]) -> dict[str, Any]:
    out = dict(progress)
    out["currentStage"] = (
        progress.get("currentStage")
        or progress.get("currentStageId")
        or progress.get("stage")
        or ""
    )
    stage_progress = progress.get("stageProgress")
    out["stageProgress"] = stage_progress if _is_number(stage_progress) else 0
    overall = progress.get("overallProgress")
    if not _is_number(overall):
        overall = progress.get("progress")
    out["overallProgress"] = overall if _is_number(overall) else 0
    out["statusMessage"] = (
        progress.get("statusMessage") or progress.get("message") or "Processing..."
    )
    return out


def normalize_message(data: Any) -> dict[str, Any] | None:
    """Map a decoded stream object onto the canonical event shape.

    Older producers emitted error envelopes without a ``type``,
    ``svg_preview``/``result`` messages, and ``cached`` instead of
    ``isCached``. Canonical messages pass through unchanged.

    Returns:
        The normalized message, or None when ``data`` is not a JSON object.
    """
    if not isinstance(data, dict):
        return None

    msg = dict(data)
    kind = msg.get("type")

    if msg.get("error") and kind in (None, EventType.ERROR.value):
        return _normalize_error(msg)

    if kind == "svg_preview":
        msg["type"] = EventType.PREVIEW.value
        kind = EventType.PREVIEW.value
        msg.setdefault("svg", msg.get("previewSvg") or msg.get("preview"))
    elif kind is None and isinstance(msg.get("preview"), str):
        msg["type"] = EventType.PREVIEW.value
        kind = EventType.PREVIEW.value

    if kind == EventType.PREVIEW.value and "svg" not in msg:
        preview = msg.get("preview") or msg.get("previewSvg")
        if isinstance(preview, dict):
            msg["svg"] = preview.get("content")
            msg.setdefault("stageId", preview.get("stageId"))
        elif preview is not None:
            msg["svg"] = preview
        return msg

    if kind == "result" and isinstance(msg.get("result"), dict):
        result = msg["result"]
        return {
            "type": EventType.COMPLETE.value,
            "assets": result,
            "sessionId": result.get("sessionId") or msg.get("sessionId") or "",
        }

    if kind is None and msg.get("complete") is True and isinstance(msg.get("assets"), dict):
        msg["type"] = EventType.COMPLETE.value
        msg.pop("complete")
        msg.setdefault("sessionId", "")
        return msg

    if kind == EventType.CACHE.value and "isCached" not in msg and "is_cached" not in msg:
        msg["isCached"] = msg.get("cached") is True
        return msg

    if kind == EventType.PROGRESS.value and isinstance(msg.get("progress"), dict):
        msg["progress"] = _normalize_progress(msg["progress"])
        return msg

    return msg
