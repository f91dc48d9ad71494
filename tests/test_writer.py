"""Tests for logostream.stream.writer — the producer side of the stream."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from logostream.schemas.events import (
    GenerationProgress,
    PreviewEvent,
    ProgressEvent,
    StartEvent,
)
from logostream.stream.dispatcher import StreamCallbacks
from logostream.stream.processor import process_stream
from logostream.stream.writer import EventWriter, encode_event, iter_chunks


class TestEncodeEvent:
    def test_camel_case_without_nulls(self):
        data = json.loads(encode_event(StartEvent(session_id="abc")))
        assert data == {"type": "start", "sessionId": "abc", "stages": []}

    def test_nested_progress_uses_wire_names(self):
        event = ProgressEvent(progress=GenerationProgress(current_stage="x", stage_progress=50))
        data = json.loads(encode_event(event))
        assert data["progress"]["currentStage"] == "x"
        assert data["progress"]["stageProgress"] == 50
        assert "estimatedTimeRemaining" not in data["progress"]


class TestEventWriter:
    @pytest.mark.asyncio
    async def test_written_events_reach_processor(self):
        writer = EventWriter()
        writer.write(StartEvent(session_id="abc"))
        writer.write({"type": "preview", "svg": "<svg>{}</svg>"})
        writer.write({"type": "complete", "assets": {"logo": "<svg/>"}, "sessionId": "abc"})
        writer.close()

        on_start, on_preview, on_complete = MagicMock(), MagicMock(), MagicMock()
        stats = await process_stream(
            writer,
            StreamCallbacks(on_start=on_start, on_preview=on_preview, on_complete=on_complete),
        )

        on_start.assert_called_once_with("abc")
        on_preview.assert_called_once_with("<svg>{}</svg>")
        on_complete.assert_called_once_with({"logo": "<svg/>"}, "abc")
        assert stats.dispatched == 3
        assert writer.written == 3

    @pytest.mark.asyncio
    async def test_concurrent_producer(self):
        writer = EventWriter()
        seen = []

        async def produce():
            for i in range(5):
                writer.write(PreviewEvent(svg=f"<svg id='{i}'/>"))
                await asyncio.sleep(0)
            writer.close()

        await asyncio.gather(
            produce(),
            process_stream(writer, StreamCallbacks(on_preview=seen.append)),
        )
        assert seen == [f"<svg id='{i}'/>" for i in range(5)]

    def test_write_after_close_dropped(self, caplog):
        writer = EventWriter()
        writer.close()
        writer.write(StartEvent(session_id="late"))
        assert writer.written == 0
        assert writer.closed
        assert "after close" in caplog.text

    def test_close_is_idempotent(self):
        writer = EventWriter()
        writer.close()
        writer.close()
        assert writer.closed

    def test_invalid_dict_rejected(self):
        writer = EventWriter()
        with pytest.raises(ValidationError):
            writer.write({"type": "start"})
        assert writer.written == 0


class TestIterChunks:
    @pytest.mark.asyncio
    async def test_splits_into_fixed_pieces(self):
        chunks = [c async for c in iter_chunks(b"abcdefg", 3)]
        assert chunks == [b"abc", b"def", b"g"]

    @pytest.mark.asyncio
    async def test_empty_data(self):
        assert [c async for c in iter_chunks(b"", 4)] == []

    @pytest.mark.asyncio
    async def test_non_positive_size_rejected(self):
        with pytest.raises(ValueError, match="positive"):
            [c async for c in iter_chunks(b"abc", 0)]
