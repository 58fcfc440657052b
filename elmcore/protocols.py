"""Protocol adapter base, reply codes, protocol numbers and the shared message history.

Besides the abstract interface, an adapter may offer these optional
capabilities, which callers look up by name:

* ``send_heart_beat()`` keeps an idle connection alive.
* ``kw_display()`` returns the ISO key words as text.
* ``set_filter_and_mask()`` reloads the CAN receive filter.
* ``monitor(data=None, num_of_responses=...)`` runs a J1939 bus monitor.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from enum import IntEnum

from .codec import to_ascii
from .config import AdapterConfig, Param

# SAE J1979 timeouts, in milliseconds
W1_MAX_TIMEOUT = 300
W3_TIMEOUT = 20
W4_MAX_TIMEOUT = 50
P1_MAX_TIMEOUT = 20
P2_MAX_TIMEOUT = 50
P3_MIN_TIMEOUT = 55
W4_TIMEOUT = 33
P4_TIMEOUT = 7
KEEP_ALIVE_MAX_NUM = 5
DEFAULT_WAKEUP_TIME = 3000
P2_MAX_TIMEOUT_S = 5000  # P2* timeout

TESTER_ADDRESS = 0xF1

# SAE J1850 message limits
J1850_BYTES_MAX = 255  # 3 header + 251 data + 1 checksum
OBD2_BYTES_MIN = 5  # 3 header + 1 data + 1 checksum
OBD2_BYTES_MAX = 11  # 3 header + 7 data + 1 checksum
P2_J1850 = 100  # msec

# VPW timing, in microseconds
TV1_TX_NOM = 64
TV2_TX_NOM = 128
TV3_TX_NOM = 200
TV4_TX_MIN = 261
TV6_TX_MIN = 280
TV5_TX_NOM = 300
TV5_TX_MAX = 5000
TV6_TX_NOM = 300
TV1_TX_ADJ = 64
TV2_TX_ADJ = 128
TV1_RX_MIN = 34
TV2_RX_MAX = 163
TV3_RX_MIN = 163
TV3_RX_MAX = 239
TV5_RX_MIN = 239
TV6_RX_MIN = 280
VPW_RX_MID = 96

# PWM timing, in microseconds
TP1_TX_NOM = 8
TP2_TX_NOM = 16
TP3_TX_NOM = 24
TP4_TX_NOM = 48
TP5_TX_MIN = 70
TP6_TX_NOM = 96
TP7_TX_NOM = 32
TP8_TX_NOM = 40
TP9_TX_NOM = 120
TP1_RX_MAX = 10
TP2_RX_MIN = 12
TP2_RX_MAX = 19
TP3_RX_MAX = 27
TP4_RX_MIN = 46
TP4_RX_MAX = 63
TP7_RX_MIN = 30
TP7_RX_MAX = 35
TP8_RX_MAX = 43

HISTORY_LEN = 256
ITEM_LEN = 16


class ReplyStatus(IntEnum):
    """Completion codes of adapter operations."""

    OK = 1
    CMD_WRONG = 2
    DATA_ERROR = 3
    NO_DATA = 4
    ERROR = 5
    UNABLE_TO_CONNECT = 6
    NONE = 7
    BUS_BUSY = 8
    BUS_ERROR = 9
    CHKS_ERROR = 10
    WIRING_ERROR = 11


class Protocol(IntEnum):
    """OBD protocol numbers as used by ATSP/ATDPN."""

    AUTO = 0
    J1850_PWM = 1
    J1850_VPW = 2
    ISO9141 = 3
    ISO14230_5BPS = 4
    ISO14230 = 5
    ISO15765_1150 = 6
    ISO15765_2950 = 7
    ISO15765_1125 = 8
    ISO15765_2925 = 9
    J1939 = 0x0A
    ISO15765_USR_B = 0x0B


class AdapterKind(IntEnum):
    """The protocol adapter implementations."""

    AUTO = 1
    PWM = 2
    VPW = 3
    ISO = 4
    CAN = 5
    CAN_EXT = 6
    J1939 = 7


class MessageHistory:
    """A 256-byte log of the latest messages, 16 bytes per entry, for buffer dumps."""

    def __init__(self) -> None:
        self._buffer = bytearray(HISTORY_LEN)
        self._pos = 0

    def clear(self) -> None:
        self._buffer = bytearray(HISTORY_LEN)
        self._pos = 0

    def insert(self, data: bytes | bytearray) -> None:
        """Start a new trail with this message."""
        self.clear()
        self.append(data)

    def append(self, data: bytes | bytearray) -> None:
        """Add a message: one length byte followed by up to 15 data bytes."""
        if not data:
            return
        if self._pos + ITEM_LEN > HISTORY_LEN:
            self.clear()
        length = min(len(data), ITEM_LEN - 1)
        self._buffer[self._pos] = length
        self._buffer[self._pos + 1 : self._pos + 1 + length] = bytes(data[:length])
        self._pos += ITEM_LEN

    def _chunks(self) -> Iterator[bytes]:
        for start in range(0, HISTORY_LEN, ITEM_LEN):
            yield bytes(self._buffer[start : start + ITEM_LEN])

    def dump(self) -> list[bytes]:
        """All 16 entries of 16 bytes, in buffer order."""
        return list(self._chunks())


class ProtocolAdapter(ABC):
    """Base of every protocol implementation talking to the ECU.

    Without a ``reply`` callback, reply lines are kept in ``replies``.
    """

    protocol: int

    def __init__(
        self,
        config: AdapterConfig,
        history: MessageHistory | None = None,
        reply: Callable[[str], None] | None = None,
    ) -> None:
        self.config = config
        self.history = history if history is not None else MessageHistory()
        self.replies: list[str] = []
        self.reply = reply if reply is not None else self.replies.append
        self.connected = False
        self.status: int = ReplyStatus.NO_DATA

    @abstractmethod
    def on_connect_ecu(self, send_reply: bool) -> int:
        """Try to connect; return the protocol number, or 0 on failure."""

    @abstractmethod
    def on_request(self, data: bytes, num_of_responses: int) -> int:
        """Send a request and relay the replies; return a ReplyStatus."""

    @abstractmethod
    def description(self) -> str:
        """Protocol description as shown by ATDP."""

    @abstractmethod
    def description_num(self) -> str:
        """Protocol number as shown by ATDPN."""

    def open(self) -> None:
        self.connected = False

    def close(self) -> None:
        self.connected = False
        self.status = ReplyStatus.NO_DATA

    def set_protocol(self, protocol: int) -> None:
        self.connected = True

    def dump_buffer(self) -> list[str]:
        """The message history as hex lines."""
        spaces = self.config.get_bool(Param.SPACES)
        return [to_ascii(chunk, spaces) for chunk in self.history.dump()]

    def wiring_check(self) -> list[str]:
        return []


class AdapterRegistry:
    """Maps adapter kinds to their single instances."""

    def __init__(self) -> None:
        self._adapters: dict[AdapterKind, ProtocolAdapter] = {}

    def register(self, kind: int, adapter: ProtocolAdapter) -> None:
        self._adapters[AdapterKind(kind)] = adapter

    def get(self, kind: int) -> ProtocolAdapter:
        try:
            return self._adapters[AdapterKind(kind)]
        except (KeyError, ValueError):
            raise LookupError(f"no adapter registered for {kind!r}") from None

    def __contains__(self, kind: object) -> bool:
        try:
            return AdapterKind(kind) in self._adapters  # type: ignore[arg-type]
        except ValueError:
            return False