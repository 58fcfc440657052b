"""AT command handlers and the table that maps command names to them."""

from __future__ import annotations

import string
from collections.abc import Callable
from dataclasses import dataclass

from .codec import auto_receive_parse, to_bytes
from .config import AdapterConfig, ByteArray, Param
from .profile import OBDProfile
from .protocols import DEFAULT_WAKEUP_TIME, TESTER_ADDRESS, MessageHistory, Protocol, ReplyStatus
from .timeouts import AdaptiveMode, TimeoutManager

ERR_MESSAGE = "?"
OK_MESSAGE = "OK"
VERSION = "1.24"
INTERFACE = "ELM327 v2.1"
IDENTITY_LINES = ("OBD adapter command interpreter",)

_ACTUAL_VOLTAGE = 1212
_ADC_DIVIDER = 0x0A54

_ADAPTIVE_MODES = {
    Param.ADPTV_TIM0: AdaptiveMode.AT0,
    Param.ADPTV_TIM1: AdaptiveMode.AT1,
    Param.ADPTV_TIM2: AdaptiveMode.AT2,
}

Callback = Callable[[str, int], None]


def _parse_hex(text: str) -> int | None:
    if not text or not set(text) <= set(string.hexdigits):
        return None
    return int(text, 16)


def format_voltage(adc_value: int) -> str:
    """Convert a raw ADC reading to the ``12.3V`` form used by ATRV."""
    val = adc_value * _ACTUAL_VOLTAGE // _ADC_DIVIDER + 5
    return f"{val // 100}.{(val % 100) // 10}V"


@dataclass(frozen=True)
class CommandSpec:
    """One AT command: its name, parameter, allowed argument lengths and handler."""

    name: str
    param: int
    min_len: int
    max_len: int
    callback: Callback

    @property
    def takes_argument(self) -> bool:
        return self.min_len > 0

    def accepts(self, arg: str) -> bool:
        return self.min_len <= len(arg) <= self.max_len


class CommandHandlers:
    """The actions behind AT commands; replies go out through ``reply``."""

    def __init__(
        self,
        config: AdapterConfig,
        profile: OBDProfile,
        reply: Callable[[str], None],
        timeouts: TimeoutManager | None = None,
        history: MessageHistory | None = None,
        read_adc: Callable[[], int] | None = None,
        serial_number: Callable[[], str] | None = None,
    ) -> None:
        self.config = config
        self.profile = profile
        self.reply = reply
        self.timeouts = timeouts if timeouts is not None else TimeoutManager(config, profile.protocol)
        self.history = history
        self.read_adc = read_adc
        self.serial_number = serial_number
        self.identity_lines = IDENTITY_LINES

    # simple property setters

    def set_value_true(self, arg: str, param: int) -> None:
        self.config.set_bool(param, True)
        self.reply(OK_MESSAGE)

    def set_value_false(self, arg: str, param: int) -> None:
        self.config.set_bool(param, False)
        self.reply(OK_MESSAGE)

    def set_value_int(self, arg: str, param: int) -> None:
        value = _parse_hex(arg)
        if value is None:
            self.reply(ERR_MESSAGE)
            return
        self.config.set_int(param, value)
        self.reply(OK_MESSAGE)

    def reset_bytes(self, arg: str, param: int) -> None:
        self.config.set_bytes(param, ByteArray())
        self.reply(OK_MESSAGE)

    def set_bytes(self, arg: str, param: int) -> None:
        text = "0" + arg if len(arg) == 3 else arg
        try:
            data = to_bytes(text)
        except ValueError:
            data = b""
        if not data:
            self.reply(ERR_MESSAGE)
            return
        self.config.set_bytes(param, ByteArray.of(data))
        self.reply(OK_MESSAGE)

    def set_ok(self, arg: str, param: int) -> None:
        self.reply(OK_MESSAGE)

    def set_adaptive_timing(self, arg: str, param: int) -> None:
        self.timeouts.mode = _ADAPTIVE_MODES.get(param, AdaptiveMode.AT0)
        self.reply(OK_MESSAGE)

    def mark_requested(self, arg: str, param: int) -> None:
        """Note that the command was given, without any reply (ATCS, ATIB)."""
        self.config.set_bool(param, True)

    # CAN settings

    def set_receive_address(self, arg: str, param: int) -> None:
        if not arg:
            self.config.set_bytes(Param.CAN_FILTER, ByteArray())
            self.config.set_bytes(Param.CAN_MASK, ByteArray())
        elif len(arg) in (3, 8):
            try:
                filter_value, mask = auto_receive_parse(arg)
            except ValueError:
                self.reply(ERR_MESSAGE)
                return
            self.config.set_bytes(
                Param.CAN_FILTER, ByteArray(bytearray(filter_value.to_bytes(4, "little")), 2)
            )
            self.config.set_bytes(Param.CAN_MASK, ByteArray(bytearray(mask.to_bytes(4, "little")), 2))
        else:
            self.reply(ERR_MESSAGE)
            return
        self.profile.set_filter_and_mask()
        self.reply(OK_MESSAGE)

    def set_flow_control_mode(self, arg: str, param: int) -> None:
        header = self.config.get_bytes(Param.CAN_FLOW_CTRL_HDR)
        data = self.config.get_bytes(Param.CAN_FLOW_CTRL_DAT)
        mode = _parse_hex(arg)
        allowed = {0: True, 1: bool(header.length and data.length), 2: bool(data.length)}
        if mode not in allowed or not allowed[mode]:
            self.reply(ERR_MESSAGE)
            return
        self.config.set_int(Param.CAN_FLOW_CTRL_MD, mode)
        self.reply(OK_MESSAGE)

    def set_filter_and_mask(self, arg: str, param: int) -> None:
        self.set_bytes(arg, param)
        self.profile.set_filter_and_mask()

    def set_4_header_bytes(self, arg: str, param: int) -> None:
        priority_text, header_text = arg[:2], arg[2:]
        try:
            priority = to_bytes(priority_text)
            header = to_bytes(header_text)
        except ValueError:
            priority = header = b""
        if not priority or not header:
            self.reply(ERR_MESSAGE)
            return
        self.config.set_bytes(Param.CAN_PRIORITY_BITS, ByteArray.of(priority))
        self.config.set_bytes(Param.HEADER_BYTES, ByteArray.of(header))
        self.reply(OK_MESSAGE)

    def set_timeout_mult(self, arg: str, param: int) -> None:
        values = {"1": False, "5": True}
        if arg not in values:
            self.reply(ERR_MESSAGE)
            return
        self.config.set_bool(param, values[arg])
        self.reply(OK_MESSAGE)

    def set_vpw_speed(self, arg: str, param: int) -> None:
        if arg not in ("1", "4"):
            self.reply(ERR_MESSAGE)
            return
        self.config.set_int(Param.VPW_SPEED, int(arg))
        self.reply(OK_MESSAGE)

    # protocol control

    def set_protocol(self, arg: str, param: int) -> None:
        if arg[:1] == "A" and len(arg) == 2 and arg[1] != "B":
            protocol, use_auto = _parse_hex(arg[1]), True
        elif len(arg) == 1:
            protocol, use_auto = _parse_hex(arg), False
        elif arg == "00":
            protocol, use_auto = 0, True
        else:
            self.reply(ERR_MESSAGE)
            return

        self.config.set_bool(Param.USE_AUTO_SP, use_auto)
        status = (
            self.profile.set_protocol(protocol, True)
            if protocol is not None
            else ReplyStatus.CMD_WRONG
        )
        if status == ReplyStatus.OK:
            self.config.set_int(Param.PROTOCOL, protocol)
            self.reply(OK_MESSAGE)
        else:
            self.config.set_bool(Param.USE_AUTO_SP, False)
            self.reply(ERR_MESSAGE)

    def set_receive_filter(self, arg: str, param: int) -> None:
        self.config.set_bool(Param.AUTO_RECEIVE, False)
        self.set_value_int(arg, param)

    def protocol_close(self, arg: str, param: int) -> None:
        self.profile.close_protocol()
        self.reply(OK_MESSAGE)

    def describe_protocol(self, arg: str, param: int) -> None:
        self.reply(self.profile.protocol_description())

    def describe_protocol_num(self, arg: str, param: int) -> None:
        self.reply(self.profile.protocol_description_num())

    def buffer_dump(self, arg: str, param: int) -> None:
        for line in self.profile.dump_buffer():
            self.reply(line)

    def wiring_test(self, arg: str, param: int) -> None:
        for line in self.profile.wiring_check():
            self.reply(line)

    def kw_display(self, arg: str, param: int) -> None:
        keywords = self.profile.kw_display()
        if keywords is not None:
            self.reply(keywords)

    def monitor_dm1(self, arg: str, param: int) -> None:
        self.profile.monitor()

    def monitor_mp(self, arg: str, param: int) -> None:
        self.profile.monitor(arg)

    # information

    def send_identity(self, arg: str, param: int) -> None:
        for line in self.identity_lines:
            self.reply(line)

    def send_version(self, arg: str, param: int) -> None:
        self.reply(VERSION)

    def send_interface(self, arg: str, param: int) -> None:
        self.reply(INTERFACE)

    def get_serial(self, arg: str, param: int) -> None:
        if self.serial_number is not None:
            self.reply(self.serial_number())

    def read_voltage(self, arg: str, param: int) -> None:
        if self.read_adc is None:
            self.reply(ERR_MESSAGE)
            return
        self.reply(format_voltage(self.read_adc()))

    # defaults and reset

    def set_defaults(self) -> None:
        """Restore the factory settings and select automatic protocol search."""
        config = self.config
        self.profile.set_protocol(Protocol.AUTO, True)
        config.clear()
        for param, value in (
            (Param.HEADER_SHOW, False),
            (Param.LINEFEED, True),
            (Param.ECHO, True),
            (Param.SPACES, True),
            (Param.USE_AUTO_SP, True),
            (Param.KW_CHECK, True),
            (Param.CAN_DLC, False),
            (Param.CAN_FLOW_CONTROL, True),
            (Param.AUTO_RECEIVE, True),
            (Param.CAN_TIMEOUT_MLT, False),
            (Param.CAN_SILENT_MODE, True),
            (Param.J1939_HEADER, True),
            (Param.J1939_TIMEOUT_MLT, False),
        ):
            config.set_bool(param, value)
        config.set_int(Param.ISO_INIT_ADDRESS, 0x33)
        config.set_int(Param.WAKEUP_VAL, DEFAULT_WAKEUP_TIME // 20)
        config.set_int(Param.CAN_TSTR_ADDRESS, TESTER_ADDRESS)
        config.set_int(Param.VPW_SPEED, 1)
        config.set_int(Param.TIMEOUT, 0)

    def set_default(self, arg: str, param: int) -> None:
        self.set_defaults()
        self.reply(OK_MESSAGE)

    def reset(self, arg: str, param: int) -> None:
        self.set_defaults()
        if self.history is not None:
            self.history.clear()
        self.reply(INTERFACE)


def command_table(handlers: CommandHandlers) -> tuple[CommandSpec, ...]:
    """All AT commands in lookup order, bound to the given handlers."""
    h = handlers
    entries: list[tuple[str, int, int, int, Callback]] = [
        ("#1", Param.CHIP_COPYRIGHT, 0, 0, h.send_identity),
        ("#3", Param.WIRING_TEST, 0, 0, h.wiring_test),
        ("#RSN", Param.GET_SERIAL, 0, 0, h.get_serial),
        ("@1", Param.VERSION, 0, 0, h.send_version),
        ("AL", Param.ALLOW_LONG, 0, 0, h.set_value_true),
        ("AR", Param.AUTO_RECEIVE, 0, 0, h.set_value_true),
        ("AMC", Param.AUTO_RECEIVE, 0, 0, h.set_ok),
        ("AMT", Param.AUTO_RECEIVE, 2, 2, h.set_ok),
        ("AT0", Param.ADPTV_TIM0, 0, 0, h.set_adaptive_timing),
        ("AT1", Param.ADPTV_TIM1, 0, 0, h.set_adaptive_timing),
        ("AT2", Param.ADPTV_TIM2, 0, 0, h.set_adaptive_timing),
        ("BD", Param.BUFFER_DUMP, 0, 0, h.buffer_dump),
        ("BI", Param.BYPASS_INIT, 0, 0, h.set_value_true),
        ("BRD", Param.TRY_BRD, 2, 2, h.set_value_int),
        ("BRT", Param.SET_BRD, 2, 2, h.set_value_int),
        ("CAF0", Param.CAN_CAF, 0, 0, h.set_value_false),
        ("CAF1", Param.CAN_CAF, 0, 0, h.set_value_true),
        ("CEA", Param.CAN_EXT, 0, 0, h.reset_bytes),
        ("CEA", Param.CAN_EXT, 2, 2, h.set_bytes),
        ("CER", Param.CAN_TSTR_ADDRESS, 2, 2, h.set_value_int),
        ("CF", Param.CAN_FILTER, 3, 3, h.set_filter_and_mask),
        ("CF", Param.CAN_FILTER, 8, 8, h.set_filter_and_mask),
        ("CFC0", Param.CAN_FLOW_CONTROL, 0, 0, h.set_value_false),
        ("CFC1", Param.CAN_FLOW_CONTROL, 0, 0, h.set_value_true),
        ("CM", Param.CAN_MASK, 3, 3, h.set_filter_and_mask),
        ("CM", Param.CAN_MASK, 8, 8, h.set_filter_and_mask),
        ("CP", Param.CAN_PRIORITY_BITS, 2, 2, h.set_bytes),
        ("CRA", Param.CAN_SET_ADDRESS, 0, 0, h.set_receive_address),
        ("CRA", Param.CAN_SET_ADDRESS, 3, 3, h.set_receive_address),
        ("CRA", Param.CAN_SET_ADDRESS, 8, 8, h.set_receive_address),
        ("CS", Param.CAN_SHOW_STATUS, 0, 0, h.mark_requested),
        ("CSM0", Param.CAN_SILENT_MODE, 0, 0, h.set_value_false),
        ("CSM1", Param.CAN_SILENT_MODE, 0, 0, h.set_value_true),
        ("CTM", Param.CAN_TIMEOUT_MLT, 1, 1, h.set_timeout_mult),
        ("CV", Param.CALIBRATE_VOLT, 4, 4, h.set_ok),
        ("D", Param.SET_DEFAULT, 0, 0, h.set_default),
        ("D0", Param.CAN_DLC, 0, 0, h.set_value_false),
        ("D1", Param.CAN_DLC, 0, 0, h.set_value_true),
        ("DM1", Param.J1939_DM1_MONITOR, 0, 0, h.monitor_dm1),
        ("DP", Param.DESCRIBE_PROTOCOL, 0, 0, h.describe_protocol),
        ("DPN", Param.DESCRIBE_PROTCL_N, 0, 0, h.describe_protocol_num),
        ("E0", Param.ECHO, 0, 0, h.set_value_false),
        ("E1", Param.ECHO, 0, 0, h.set_value_true),
        ("FCSD", Param.CAN_FLOW_CTRL_DAT, 2, 10, h.set_bytes),
        ("FCSH", Param.CAN_FLOW_CTRL_HDR, 3, 3, h.set_bytes),
        ("FCSH", Param.CAN_FLOW_CTRL_HDR, 8, 8, h.set_bytes),
        ("FCSM", Param.CAN_FLOW_CTRL_MD, 1, 1, h.set_flow_control_mode),
        ("FE", Param.FORGET_EVENTS, 0, 0, h.set_ok),
        ("FI", Param.FAST_INIT, 0, 0, h.set_ok),
        ("H0", Param.HEADER_SHOW, 0, 0, h.set_value_false),
        ("H1", Param.HEADER_SHOW, 0, 0, h.set_value_true),
        ("I", Param.INFO, 0, 0, h.send_interface),
        ("IB", Param.ISO_BAUDRATE, 2, 2, h.mark_requested),
        ("IFR", Param.INFRAME_RESPONSE, 1, 1, h.set_ok),
        ("IIA", Param.ISO_INIT_ADDRESS, 2, 2, h.set_value_int),
        ("IGN", Param.INFRAME_RESPONSE, 0, 0, h.set_ok),
        ("JE", Param.J1939_FMT, 0, 0, h.set_value_false),
        ("JHF0", Param.J1939_HEADER, 0, 0, h.set_value_false),
        ("JHF1", Param.J1939_HEADER, 0, 0, h.set_value_true),
        ("JS", Param.J1939_FMT, 0, 0, h.set_value_true),
        ("JTM", Param.J1939_TIMEOUT_MLT, 1, 1, h.set_timeout_mult),
        ("KW", Param.KW_DISPLAY, 0, 0, h.kw_display),
        ("KW0", Param.KW_CHECK, 0, 0, h.set_value_false),
        ("KW1", Param.KW_CHECK, 0, 0, h.set_value_true),
        ("L0", Param.LINEFEED, 0, 0, h.set_value_false),
        ("L1", Param.LINEFEED, 0, 0, h.set_value_true),
        ("LP", Param.LOW_POWER_MODE, 0, 0, h.set_ok),
        ("M0", Param.MEMORY, 0, 0, h.set_value_false),
        ("M1", Param.MEMORY, 0, 0, h.set_value_true),
        ("MA", Param.RESPONSES, 0, 0, h.set_ok),
        ("MP", Param.J1939_MONITOR, 4, 7, h.monitor_mp),
        ("MR", Param.TESTER_ADDRESS, 2, 2, h.set_ok),
        ("MT", Param.TESTER_ADDRESS, 2, 2, h.set_ok),
        ("NL", Param.ALLOW_LONG, 0, 0, h.set_value_true),
        ("PB", Param.USER_B, 4, 4, h.set_bytes),
        ("PC", Param.PROTOCOL_CLOSE, 0, 0, h.protocol_close),
        ("PPFFON", Param.DUMMY, 0, 0, h.set_ok),
        ("PPFFOFF", Param.DUMMY, 0, 0, h.set_ok),
        ("PPS", Param.RESPONSES, 0, 0, h.set_ok),
        ("R0", Param.RESPONSES, 0, 0, h.set_value_false),
        ("R1", Param.RESPONSES, 0, 0, h.set_value_true),
        ("RA", Param.RECEIVE_ADDRESS, 2, 2, h.set_value_int),
        ("RD", Param.RESPONSES, 0, 0, h.set_ok),
        ("RTR", Param.CAN_SEND_RTR, 0, 0, h.set_ok),
        ("RV", Param.READ_VOLT, 0, 0, h.read_voltage),
        ("S0", Param.SPACES, 0, 0, h.set_value_false),
        ("S1", Param.SPACES, 0, 0, h.set_value_true),
        ("SD", Param.RECEIVE_ADDRESS, 2, 2, h.set_ok),
        ("SH", Param.HEADER_BYTES, 3, 3, h.set_bytes),
        ("SH", Param.HEADER_BYTES, 6, 6, h.set_bytes),
        ("SH", Param.HEADER_BYTES, 8, 8, h.set_4_header_bytes),
        ("SI", Param.SLOW_INIT, 0, 0, h.set_ok),
        ("SP", Param.PROTOCOL, 1, 2, h.set_protocol),
        ("SR", Param.RECEIVE_FILTER, 2, 2, h.set_receive_filter),
        ("SS", Param.STD_SEARCH_MODE, 0, 0, h.set_value_true),
        ("ST", Param.TIMEOUT, 2, 2, h.set_value_int),
        ("SW", Param.WAKEUP_VAL, 2, 2, h.set_value_int),
        ("TA", Param.TESTER_ADDRESS, 2, 2, h.set_value_int),
        ("TP", Param.TRY_PROTOCOL, 1, 1, h.set_protocol),
        ("TP", Param.TRY_PROTOCOL, 2, 2, h.set_protocol),
        ("V0", Param.CAN_VALIDATE_DLC, 0, 0, h.set_value_false),
        ("V1", Param.CAN_VALIDATE_DLC, 0, 0, h.set_value_true),
        ("VPW", Param.VPW_SPEED, 1, 1, h.set_vpw_speed),
        ("WM", Param.WM_HEADER, 2, 12, h.set_bytes),
        ("WS", Param.WARMSTART, 0, 0, h.reset),
        ("Z", Param.RESET_CPU, 0, 0, h.reset),
    ]
    return tuple(CommandSpec(*entry) for entry in entries)