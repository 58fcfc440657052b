"""Adapter configuration: parameter identifiers, byte properties and the settings store."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum

# OBD message sizes
KWP_EXTRA_LEN = 5  # 4 header bytes + 1 checksum
OBD_IN_MSG_DLEN = 8
OBD_OUT_MSG_DLEN = 255
OBD_IN_MSG_LEN = OBD_IN_MSG_DLEN + KWP_EXTRA_LEN
OBD_OUT_MSG_LEN = OBD_OUT_MSG_DLEN + KWP_EXTRA_LEN

# J1850 message sizes
J1850_IN_MSG_DLEN = 2080
J1850_EXTRA_LEN = 4  # 3 header bytes + 1 checksum

TX_BUFFER_LEN = 128
RX_BUFFER_LEN = J1850_IN_MSG_DLEN
RX_RESERVED = J1850_EXTRA_LEN

# Parameter id ranges
BOOL_PROPS_START = 0
INT_PROPS_START = 100
BYTES_PROPS_START = 1000

_MAX_BOOL_ID = 64
_UINT32_MASK = 0xFFFFFFFF
_UINT64_MASK = 0xFFFFFFFFFFFFFFFF


class Param(IntEnum):
    """Identifiers of every adapter setting, grouped by value kind."""

    # boolean properties
    ADPTV_TIM0 = 0
    ADPTV_TIM1 = 1
    ADPTV_TIM2 = 2
    ALLOW_LONG = 3
    AUTO_RECEIVE = 4
    BUFFER_DUMP = 5
    BYPASS_INIT = 6
    CALIBRATE_VOLT = 7
    CAN_CAF = 8
    CAN_DLC = 9
    CAN_FLOW_CONTROL = 10
    CAN_SEND_RTR = 11
    CAN_SHOW_STATUS = 12
    CAN_SILENT_MODE = 13
    CAN_TIMEOUT_MLT = 14
    CAN_VALIDATE_DLC = 15
    CHIP_COPYRIGHT = 16
    DESCRIBE_PROTCL_N = 17
    DESCRIBE_PROTOCOL = 18
    DUMMY = 19
    ECHO = 20
    FAST_INIT = 21
    FORGET_EVENTS = 22
    GET_SERIAL = 23
    HEADER_SHOW = 24
    INFO = 25
    INFRAME_RESPONSE = 26
    ISO_BAUDRATE = 27
    J1939_DM1_MONITOR = 28
    J1939_FMT = 29
    J1939_HEADER = 30
    J1939_MONITOR = 31
    J1939_TIMEOUT_MLT = 32
    KW_CHECK = 33
    KW_DISPLAY = 34
    LINEFEED = 35
    LOW_POWER_MODE = 36
    MEMORY = 37
    PROTOCOL_CLOSE = 38
    READ_VOLT = 39
    RESET_CPU = 40
    RESPONSES = 41
    SET_DEFAULT = 42
    SLOW_INIT = 43
    SPACES = 44
    STD_SEARCH_MODE = 45
    TRY_PROTOCOL = 46
    USE_AUTO_SP = 47
    VERSION = 48
    WARMSTART = 49
    WIRING_TEST = 50
    # integer properties
    CAN_CFCPA = 100
    CAN_FLOW_CTRL_MD = 101
    CAN_SET_ADDRESS = 102
    CAN_TSTR_ADDRESS = 103
    ISO_INIT_ADDRESS = 104
    PROTOCOL = 105
    RECEIVE_ADDRESS = 106
    RECEIVE_FILTER = 107
    SET_BRD = 108
    TIMEOUT = 109
    TRY_BRD = 110
    VPW_SPEED = 111
    WAKEUP_VAL = 112
    # byte sequence properties
    CAN_EXT = 1000
    CAN_FILTER = 1001
    CAN_FLOW_CTRL_DAT = 1002
    CAN_FLOW_CTRL_HDR = 1003
    CAN_MASK = 1004
    CAN_PRIORITY_BITS = 1005
    HEADER_BYTES = 1006
    TESTER_ADDRESS = 1007
    USER_B = 1008
    WM_HEADER = 1009


BOOL_PROPS_END = Param.WIRING_TEST + 1
INT_PROPS_END = Param.WAKEUP_VAL + 1
BYTES_PROPS_END = Param.WM_HEADER + 1

ARRAY_SIZE = 7


@dataclass
class ByteArray:
    """A short byte sequence property; ``data`` is always 7 bytes, ``length`` tells how many count."""

    data: bytearray = field(default_factory=lambda: bytearray(ARRAY_SIZE))
    length: int = 0

    def __post_init__(self) -> None:
        raw = bytearray(self.data)
        if len(raw) > ARRAY_SIZE:
            raise ValueError(f"byte property holds at most {ARRAY_SIZE} bytes")
        if not 0 <= self.length <= ARRAY_SIZE:
            raise ValueError(f"byte property length must be 0..{ARRAY_SIZE}")
        self.data = raw + bytearray(ARRAY_SIZE - len(raw))

    @classmethod
    def of(cls, values: bytes | bytearray | list[int]) -> ByteArray:
        """Build a property whose length is the number of bytes given."""
        raw = bytes(values)
        return cls(bytearray(raw), len(raw))

    @property
    def payload(self) -> bytes:
        """The significant bytes."""
        return bytes(self.data[: self.length])

    def as_can_id(self) -> int:
        """Interpret the bytes as a CAN identifier (2 or 4 bytes), 0 otherwise."""
        d = self.data
        if self.length == 4:
            return d[3] | (d[2] << 8) | (d[2] << 16) | (d[0] << 24)
        if self.length == 2:
            return d[1] | (d[0] << 8)
        return 0

    def clear(self) -> None:
        self.length = 0
        self.data = bytearray(ARRAY_SIZE)

    def copy(self) -> ByteArray:
        return ByteArray(bytearray(self.data), self.length)


def _int_index(param: int) -> int:
    if not INT_PROPS_START <= param < INT_PROPS_END:
        raise ValueError(f"{param!r} is not an integer property")
    return int(param)


def _bytes_index(param: int) -> int:
    if not BYTES_PROPS_START <= param < BYTES_PROPS_END:
        raise ValueError(f"{param!r} is not a byte sequence property")
    return int(param)


class AdapterConfig:
    """Store of boolean, integer and byte sequence adapter settings."""

    def __init__(self) -> None:
        self._bools = 0
        self._ints: dict[int, int] = {}
        self._bytes: dict[int, ByteArray] = {}

    def set_bool(self, param: int, value: bool) -> None:
        if not 0 <= param <= _MAX_BOOL_ID:
            return
        bit = (1 << param) & _UINT64_MASK
        if value:
            self._bools |= bit
        else:
            self._bools &= ~bit

    def get_bool(self, param: int) -> bool:
        if not 0 <= param <= _MAX_BOOL_ID:
            return False
        return bool(self._bools & ((1 << param) & _UINT64_MASK))

    def set_int(self, param: int, value: int) -> None:
        self._ints[_int_index(param)] = value & _UINT32_MASK

    def get_int(self, param: int) -> int:
        return self._ints.get(_int_index(param), 0)

    def set_bytes(self, param: int, value: ByteArray) -> None:
        self._bytes[_bytes_index(param)] = value.copy()

    def get_bytes(self, param: int) -> ByteArray:
        stored = self._bytes.get(_bytes_index(param))
        return stored.copy() if stored is not None else ByteArray()

    def clear(self) -> None:
        self._bools = 0
        self._ints.clear()
        self._bytes.clear()