"""Concatenated-JSON stream processing: scanner, dispatcher, driver, writer."""

from logostream.stream.dispatcher import EventDispatcher, StreamCallbacks
from logostream.stream.processor import StreamProcessor, process_stream
from logostream.stream.scanner import ObjectScanner, ScanResult, append, extract_objects
from logostream.stream.writer import EventWriter, encode_event, iter_chunks

__all__ = [
    "EventDispatcher",
    "EventWriter",
    "ObjectScanner",
    "ScanResult",
    "StreamCallbacks",
    "StreamProcessor",
    "append",
    "encode_event",
    "extract_objects",
    "iter_chunks",
    "process_stream",
]
