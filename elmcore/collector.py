"""Accumulates user input characters into command text and request bytes."""

from __future__ import annotations

import string

from .config import OBD_IN_MSG_DLEN

COLLECTOR_STR_LEN = 16
ALL_RESPONSES = 0xFFFFFFFF

_HEX = frozenset(string.hexdigits)


class DataCollector:
    """Collects one command line, keeping its text and, if all hex, its bytes."""

    def __init__(self, size: int, reserved: int = 0) -> None:
        self.limit = size
        self.reserved = reserved
        self._text: list[str] = []
        self._data = bytearray()
        self._previous = ""
        self._binary = True

    @property
    def text(self) -> str:
        return "".join(self._text)

    @property
    def data(self) -> bytes:
        return bytes(self._data)

    @property
    def length(self) -> int:
        return len(self._data)

    @property
    def is_data(self) -> bool:
        """True while every character seen is a hex digit."""
        return self._binary

    def put_char(self, ch: str) -> None:
        if len(ch) != 1:
            raise ValueError("put_char takes a single character")
        if ch in (" ", "\0"):
            return
        if ch.isascii():
            ch = ch.upper()
        self._binary = self._binary and ch in _HEX

        if len(self._text) < COLLECTOR_STR_LEN:
            self._text.append(ch)
        if len(self._data) < self.limit:
            if self._binary and self._previous:
                self._data.append(int(self._previous + ch, 16))
                self._previous = ""
            else:
                self._previous = ch

    def reset(self) -> None:
        self._text.clear()
        self._data.clear()
        self._previous = ""
        self._binary = True

    def is_huge_buffer(self) -> bool:
        return len(self._data) > OBD_IN_MSG_DLEN

    def num_of_responses(self) -> int:
        """The trailing odd digit gives the response count; otherwise all responses."""
        if self._previous and not self.is_huge_buffer():
            try:
                value = int(self._previous, 16)
            except ValueError:
                value = 0
            return value if value > 0 else ALL_RESPONSES
        return ALL_RESPONSES

    def copy(self, limit: int) -> DataCollector:
        """A copy with the given byte limit, its data cut to that limit."""
        other = DataCollector(limit)
        other._text = list(self._text)
        other._data = bytearray(self._data[:limit])
        other._previous = self._previous
        other._binary = self._binary
        return other