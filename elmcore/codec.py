"""Conversions between hex text and bytes used by the command interpreter."""

from __future__ import annotations

import string
from collections.abc import Iterable, Sequence

_HEX = frozenset(string.hexdigits)


def can_id_to_string(num: int, extended: bool, spaces: bool) -> str:
    """Render an 11-bit (3 digits) or 29-bit (4 bytes) CAN identifier."""
    if not extended:
        return f"{num & 0xFFF:03X}"
    parts = [f"{b:02X}" for b in (num & 0xFFFFFFFF).to_bytes(4, "big")]
    return (" " if spaces else "").join(parts)


def kwords_to_string(keywords: Sequence[int]) -> str:
    """Render the two ISO 9141/14230 keywords as ``1:XX 2:YY``."""
    if not keywords[0]:
        return "1:-- 2:--"
    return f"1:{keywords[0]:02X} 2:{keywords[1]:02X}"


def to_bytes(text: str) -> bytes:
    """Convert hex digit pairs to bytes; a trailing odd digit is skipped."""
    usable = len(text) - len(text) % 2
    pairs = [text[i : i + 2] for i in range(0, usable, 2)]
    for pair in pairs:
        if not set(pair) <= _HEX:
            raise ValueError(f"invalid hex pair {pair!r}")
    return bytes(int(pair, 16) for pair in pairs)


def to_ascii(data: Iterable[int], spaces: bool) -> str:
    """Render bytes as upper-case hex, optionally separated by spaces."""
    return (" " if spaces else "").join(f"{b:02X}" for b in data)


def _swap2(value: int) -> int:
    return ((value & 0xFF) << 8) | ((value & 0xFF00) >> 8)


def _swap4(value: int) -> int:
    return int.from_bytes((value & 0xFFFFFFFF).to_bytes(4, "little"), "big")


def auto_receive_parse(text: str) -> tuple[int, int]:
    """Turn a 3 or 8 digit receive address with ``X`` wildcards into (filter, mask).

    Both values come back with their bytes in reversed order, ready to be
    stored as byte properties.
    """
    if len(text) not in (3, 8):
        raise ValueError("receive address must have 3 or 8 digits")
    filter_value = 0
    mask = 0
    for ch in text:
        filter_value <<= 4
        mask <<= 4
        if ch == "X":
            continue
        if ch not in _HEX:
            raise ValueError(f"invalid hex digit {ch!r}")
        filter_value |= int(ch, 16)
        mask |= 0x0F
    if len(text) == 3:
        return _swap2(filter_value), _swap2(mask & 0x7FF)
    return _swap4(filter_value), _swap4(mask & 0x1FFFFFFF)


def reverse_bytes(data: bytes | bytearray) -> bytes:
    """Return the bytes in reverse order."""
    return bytes(data[::-1])