"""ECU messages for the ISO 9141/14230 and J1850 VPW/PWM serial protocols."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from enum import IntEnum

from .codec import to_ascii

HEADER_SIZE = 3


class MessageType(IntEnum):
    """The protocol family a message is framed for."""

    ISO9141 = 1
    ISO14230 = 2
    PWM = 3
    VPW = 4


def iso_checksum(data: Iterable[int]) -> int:
    """ISO 9141/14230 checksum: the byte sum modulo 256."""
    return sum(data) & 0xFF


def j1850_crc(data: Iterable[int]) -> int:
    """SAE J1850 CRC-8 (polynomial 0x1D, initial 0xFF, inverted result)."""
    crc = 0xFF
    for value in data:
        value &= 0xFF
        for _ in range(8):
            if (value ^ crc) & 0x80:
                crc = (((crc ^ 0x0E) << 1) | 1) & 0xFF
            else:
                crc = (crc << 1) & 0xFF
            value = (value << 1) & 0xFF
    return ~crc & 0xFF


class EcuMessage(ABC):
    """A message exchanged with the ECU, with protocol specific framing."""

    kind: MessageType
    default_header: bytes

    def __init__(self, header: bytes | None = None) -> None:
        self.header = bytes(self.default_header)
        if header:
            self.header = (bytes(header[:HEADER_SIZE]) + bytes(HEADER_SIZE))[:HEADER_SIZE]
        self._data = bytearray()

    @property
    def data(self) -> bytes:
        return bytes(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def set_data(self, data: Iterable[int]) -> None:
        self._data = bytearray(data)

    def append(self, byte: int) -> None:
        self._data.append(byte & 0xFF)

    def _add_header(self, header_len: int) -> None:
        header = (self.header + b"\0")[:header_len]
        self._data[0:0] = header

    def _remove_header(self, header_len: int) -> None:
        if header_len > len(self._data):
            raise ValueError("message is shorter than its header")
        del self._data[:header_len]

    def _strip_checksum(self) -> None:
        if not self._data:
            raise ValueError("message has no checksum to strip")
        self._data.pop()

    def _iso_add_checksum(self) -> None:
        self._data.append(iso_checksum(self._data))

    def _j1850_add_checksum(self) -> None:
        self._data.append(j1850_crc(self._data))

    @abstractmethod
    def add_header_and_checksum(self) -> None:
        """Frame the payload with the header in front and the checksum behind."""

    @abstractmethod
    def add_checksum(self) -> None:
        """Append the checksum to the bytes as they are."""

    def header_length(self) -> int:
        return HEADER_SIZE

    def strip_header_and_checksum(self) -> bool:
        """Remove the framing, leaving the payload; True if the header is valid."""
        self._remove_header(self.header_length())
        self._strip_checksum()
        return True

    def format_reply(self, spaces: bool) -> str:
        """The message bytes as hex text, as sent back to the user."""
        return to_ascii(self._data, spaces)


class Iso9141Message(EcuMessage):
    kind = MessageType.ISO9141
    default_header = bytes([0x68, 0x6A, 0xF1])

    def add_header_and_checksum(self) -> None:
        self._add_header(HEADER_SIZE)
        self._iso_add_checksum()

    def add_checksum(self) -> None:
        self._iso_add_checksum()


class Iso14230Message(EcuMessage):
    kind = MessageType.ISO14230
    default_header = bytes([0xC0, 0x33, 0xF1])

    def add_header_and_checksum(self) -> None:
        fmt = self.header[0]
        header_size = 1 if fmt >> 6 == 0 else 3
        length_byte = len(self._data) > 63 or (fmt & 0x0F) == 0
        if length_byte:
            header_size += 1
        length = len(self._data) & 0xFF
        self._add_header(header_size)
        if length_byte:
            self._data[header_size - 1] = length
            self._data[0] &= 0xC0
        else:
            self._data[0] = (self._data[0] & 0xC0) | length
        self._iso_add_checksum()

    def add_checksum(self) -> None:
        self._iso_add_checksum()

    def header_length(self) -> int:
        if not self._data:
            raise ValueError("empty message has no header")
        fmt = self._data[0]
        header_len = 1 if fmt >> 6 == 0 else 3
        if fmt & 0x3F == 0:
            header_len += 1
        return header_len


class VpwMessage(EcuMessage):
    kind = MessageType.VPW
    default_header = bytes([0x68, 0x6A, 0xF1])

    def add_header_and_checksum(self) -> None:
        self._add_header(HEADER_SIZE)
        self._j1850_add_checksum()

    def add_checksum(self) -> None:
        self._j1850_add_checksum()


class PwmMessage(EcuMessage):
    kind = MessageType.PWM
    default_header = bytes([0x61, 0x6A, 0xF1])

    def add_header_and_checksum(self) -> None:
        self._add_header(HEADER_SIZE)
        self._j1850_add_checksum()

    def add_checksum(self) -> None:
        self._j1850_add_checksum()


_MESSAGE_CLASSES: dict[MessageType, type[EcuMessage]] = {
    MessageType.ISO9141: Iso9141Message,
    MessageType.ISO14230: Iso14230Message,
    MessageType.VPW: VpwMessage,
    MessageType.PWM: PwmMessage,
}


def create_message(kind: int, header: bytes | None = None) -> EcuMessage:
    """Make an empty message of the given type; a custom header replaces the default."""
    try:
        cls = _MESSAGE_CLASSES[MessageType(kind)]
    except ValueError:
        raise ValueError(f"unknown message type {kind!r}") from None
    return cls(header)