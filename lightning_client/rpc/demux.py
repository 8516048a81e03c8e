"""
Streaming JSON demultiplexer

The daemon writes responses back to back with no length prefix or delimiter;
each value ends where its own syntax closes. :class:`JSONStreamDemultiplexer`
scans the byte stream incrementally, keeping a nesting stack and string state
across chunk boundaries, and hands each complete top-level value to a
callback exactly once. Values nested inside arrays or objects are never
surfaced on their own.

Scanning works on raw bytes: every structural character is ASCII and UTF-8
continuation bytes never collide with ASCII, so a multi-byte character split
across two chunks is harmless.
"""

import json
import logging
from typing import Any, Callable, List

from lightning_client.exceptions import JSONStreamError

logger = logging.getLogger(__name__)

_QUOTE = ord('"')
_BACKSLASH = ord("\\")
_OPENERS = {ord("{"): ord("}"), ord("["): ord("]")}
_CLOSERS = frozenset(_OPENERS.values())
_WHITESPACE = frozenset(b" \t\r\n")
_SCALAR_START = frozenset(b"-0123456789tfn")
# A top-level scalar has no closing token; it ends at whitespace or structure
_SCALAR_END = _WHITESPACE | frozenset(b'{}[]",:')


class JSONStreamDemultiplexer:
    """Split an unframed byte stream into top-level JSON values"""

    def __init__(self, on_value: Callable[[Any], None]):
        """Initialize demultiplexer

        Args:
            on_value: Called with each decoded top-level value, in stream order
        """
        self._on_value = on_value
        self._buffer = bytearray()
        self._stack: List[int] = []
        self._in_string = False
        self._escape = False
        self._in_scalar = False

    @property
    def depth(self) -> int:
        return len(self._stack)

    @property
    def pending_bytes(self) -> int:
        """Bytes of the value currently being assembled"""
        return len(self._buffer)

    def reset(self) -> None:
        """Discard any partially received value"""
        if self._buffer:
            logger.debug(f"Discarding {len(self._buffer)} bytes of partial JSON")
        self._buffer = bytearray()
        self._stack = []
        self._in_string = False
        self._escape = False
        self._in_scalar = False

    def feed(self, data: bytes) -> None:
        """Consume a chunk of the stream

        Args:
            data: Arbitrary slice of the stream

        Raises:
            JSONStreamError: The stream is not valid concatenated JSON
        """
        for byte in data:
            if self._in_string:
                self._buffer.append(byte)
                if self._escape:
                    self._escape = False
                elif byte == _BACKSLASH:
                    self._escape = True
                elif byte == _QUOTE:
                    self._in_string = False
                    if not self._stack:
                        self._emit()
                continue

            if self._in_scalar:
                if byte not in _SCALAR_END:
                    self._buffer.append(byte)
                    continue
                self._emit()

            if not self._stack:
                self._start_value(byte)
                continue

            self._buffer.append(byte)
            if byte == _QUOTE:
                self._in_string = True
            elif byte in _OPENERS:
                self._stack.append(_OPENERS[byte])
            elif byte in _CLOSERS:
                expected = self._stack.pop()
                if byte != expected:
                    raise JSONStreamError(
                        f"Mismatched {chr(byte)!r}, expected {chr(expected)!r}"
                    )
                if not self._stack:
                    self._emit()

    def _start_value(self, byte: int) -> None:
        if byte in _WHITESPACE:
            return
        if byte in _OPENERS:
            self._stack.append(_OPENERS[byte])
        elif byte == _QUOTE:
            self._in_string = True
        elif byte in _SCALAR_START:
            self._in_scalar = True
        else:
            raise JSONStreamError(f"Unexpected {chr(byte)!r} between JSON values")
        self._buffer.append(byte)

    def _emit(self) -> None:
        raw = bytes(self._buffer)
        self._buffer = bytearray()
        self._in_scalar = False
        try:
            value = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise JSONStreamError(f"Invalid JSON value in stream: {e}") from e
        self._on_value(value)
