"""CAN frames and a ring log of the most recent ones for buffer dumps."""

from __future__ import annotations

from dataclasses import dataclass, field

from .codec import can_id_to_string, to_ascii

CAN_FRAME_LEN = 8
HISTORY_LEN = 16


def _frame_data(values: bytes | bytearray | list[int] = b"") -> bytes:
    raw = bytes(values)
    if len(raw) > CAN_FRAME_LEN:
        raise ValueError(f"CAN frame holds at most {CAN_FRAME_LEN} bytes")
    return raw + bytes(CAN_FRAME_LEN - len(raw))


@dataclass
class CanFrame:
    """A CAN frame; ``data`` is always 8 bytes."""

    id: int = 0
    extended: bool = False
    dlc: int = CAN_FRAME_LEN
    data: bytes = field(default_factory=lambda: bytes(CAN_FRAME_LEN))
    msgnum: int = 0

    def __post_init__(self) -> None:
        self.data = _frame_data(self.data)


@dataclass
class _Entry:
    id: int = 0
    sent: bool = False
    extended: bool = False
    dlc: int = 0
    mid: int = 0
    data: bytes = bytes(CAN_FRAME_LEN)


class CanHistory:
    """Keeps the last 16 CAN frames sent or received."""

    def __init__(self, spaces: bool = True) -> None:
        self.spaces = spaces
        self._log = [_Entry() for _ in range(HISTORY_LEN)]
        self._pos = 0
        self._count = 0

    def add(self, frame: CanFrame, sent: bool, mid: int) -> None:
        self._log[self._pos] = _Entry(
            frame.id, sent, frame.extended, frame.dlc, mid & 0xFF, bytes(frame.data)
        )
        self._pos = (self._pos + 1) % HISTORY_LEN
        self._count += 1

    def _ordered(self) -> list[_Entry]:
        start = 0 if self._count <= HISTORY_LEN else self._pos
        return self._log[start:] + self._log[:start]

    def dump(self) -> list[str]:
        """One line per slot, oldest first: id, direction, DLC, data and buffer id."""
        entries = self._ordered()
        extended = any(entry.extended for entry in entries)
        pos1 = 10 if extended else 5
        pos2 = pos1 + 3
        pos3 = pos2 + 3

        def fit(text: str, width: int) -> str:
            return text[:width].ljust(width)

        lines = []
        for entry in entries:
            out = can_id_to_string(entry.id, extended, False)
            out = fit(out, pos1) + ("S" if entry.sent else "R")
            out = fit(out, pos2) + chr(entry.dlc + ord("0"))
            out = fit(out, pos3) + to_ascii(entry.data, self.spaces)
            out += "  -> " + to_ascii([entry.mid], self.spaces)
            lines.append(out)
        return lines