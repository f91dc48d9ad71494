"""Object boundary scanning for concatenated JSON streams.

The generation endpoint writes JSON objects back to back with no
delimiter, so boundaries are found lexically: a brace-depth counter that
ignores braces inside string literals and honours backslash escapes.
The scanner never parses JSON and never fails; a substring that turns out
to be invalid JSON is the dispatcher's problem.
"""

from __future__ import annotations

import re
from typing import NamedTuple

# Characters that matter outside / inside a string literal
_STRUCTURAL_RE = re.compile(r'[{}"]')
_STRING_SPECIAL_RE = re.compile(r'["\\]')


class ScanResult(NamedTuple):
    """Complete objects found in a buffer plus the unconsumed tail."""

    objects: list[str]
    remainder: str


def append(buffer: str, chunk: str) -> str:
    """Return ``buffer`` with ``chunk`` appended."""
    return buffer + chunk


class ObjectScanner:
    """Incremental scanner that extracts top-level JSON objects.

    Scan state (depth, string and escape flags, offset) survives between
    ``feed()`` calls, so an object split across many chunks is scanned
    once rather than re-scanned from its opening brace on every chunk.

    Text before an opening brace at depth zero (whitespace, newlines,
    stray closing braces, other garbage) is skipped and discarded.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self._pos = 0
        self._start = -1
        self._depth = 0
        self._in_string = False
        self._escaped = False

    @property
    def remainder(self) -> str:
        """Unconsumed tail: the start of the current incomplete object, if any."""
        return self._buffer

    @property
    def pending(self) -> bool:
        """True while an object has been opened but not yet closed."""
        return self._depth > 0

    def feed(self, chunk: str) -> list[str]:
        """Append ``chunk`` and return every object completed by it, in order."""
        self._buffer = append(self._buffer, chunk)
        buf = self._buffer
        end = len(buf)
        i = self._pos
        objects: list[str] = []

        while i < end:
            if self._depth == 0:
                brace = buf.find("{", i)
                if brace == -1:
                    i = end
                    break
                self._start = brace
                self._depth = 1
                i = brace + 1
                continue

            if self._in_string:
                if self._escaped:
                    self._escaped = False
                    i += 1
                    continue
                match = _STRING_SPECIAL_RE.search(buf, i)
                if match is None:
                    i = end
                    break
                i = match.end()
                if match.group() == "\\":
                    self._escaped = True
                else:
                    self._in_string = False
                continue

            match = _STRUCTURAL_RE.search(buf, i)
            if match is None:
                i = end
                break
            i = match.end()
            char = match.group()
            if char == '"':
                self._in_string = True
            elif char == "{":
                self._depth += 1
            else:
                self._depth -= 1
                if self._depth == 0:
                    objects.append(buf[self._start:i])
                    self._start = -1

        # Drop everything consumed; keep only the open object's text
        if self._depth > 0:
            self._buffer = buf[self._start:]
            self._pos = i - self._start
            self._start = 0
        else:
            self._buffer = ""
            self._pos = 0
        return objects

    def reset(self) -> str:
        """Clear all state and return the discarded remainder."""
        remainder = self._buffer
        self._buffer = ""
        self._pos = 0
        self._start = -1
        self._depth = 0
        self._in_string = False
        self._escaped = False
        return remainder


def extract_objects(buffer: str) -> ScanResult:
    """Extract every complete top-level object from ``buffer``.

    Objects need no separator between them. The remainder starts at the
    opening brace of the first incomplete object, or is empty when the
    buffer ends on an object boundary or on skippable garbage.

    Example:
        >>> extract_objects('{"a":1}{"b":{"c":2}}{"d":')
        ScanResult(objects=['{"a":1}', '{"b":{"c":2}}'], remainder='{"d":')
    """
    scanner = ObjectScanner()
    objects = scanner.feed(buffer)
    return ScanResult(objects=objects, remainder=scanner.remainder)
