import pytest

from elmcore.autoadapter import AutoAdapter
from elmcore.commands import (
    INTERFACE,
    OK_MESSAGE,
    ERR_MESSAGE,
    VERSION,
    CommandHandlers,
    command_table,
    format_voltage,
)
from elmcore.config import AdapterConfig, ByteArray, Param
from elmcore.profile import OBDProfile
from elmcore.protocols import (
    DEFAULT_WAKEUP_TIME,
    TESTER_ADDRESS,
    AdapterKind,
    AdapterRegistry,
    MessageHistory,
    Protocol,
    ProtocolAdapter,
    ReplyStatus,
)
from elmcore.timeouts import AdaptiveMode

_KIND_PROTOCOLS = {
    AdapterKind.PWM: Protocol.J1850_PWM,
    AdapterKind.VPW: Protocol.J1850_VPW,
    AdapterKind.ISO: Protocol.ISO9141,
    AdapterKind.CAN: Protocol.ISO15765_1150,
    AdapterKind.CAN_EXT: Protocol.ISO15765_2950,
    AdapterKind.J1939: Protocol.J1939,
}


class FakeAdapter(ProtocolAdapter):
    def __init__(self, config, protocol):
        super().__init__(config)
        self.protocol = protocol
        self.filter_calls = 0
        self.close_calls = 0

    def on_connect_ecu(self, send_reply):
        return 0

    def on_request(self, data, num_of_responses):
        return ReplyStatus.NO_DATA

    def description(self):
        return "FAKE"

    def description_num(self):
        return str(int(self.protocol))

    def set_filter_and_mask(self):
        self.filter_calls += 1

    def close(self):
        super().close()
        self.close_calls += 1


@pytest.fixture
def env():
    config = AdapterConfig()
    registry = AdapterRegistry()
    history = MessageHistory()
    registry.register(AdapterKind.AUTO, AutoAdapter(config, registry, history))
    fakes = {}
    for kind, protocol in _KIND_PROTOCOLS.items():
        fakes[kind] = FakeAdapter(config, protocol)
        registry.register(kind, fakes[kind])
    profile = OBDProfile(config, registry)
    replies = []
    handlers = CommandHandlers(
        config, profile, replies.append, history=history, read_adc=lambda: 0x0A54
    )
    return handlers, config, profile, replies, history, fakes


def _spec(handlers, name, arg=""):
    for spec in command_table(handlers):
        if spec.name == name and spec.takes_argument == bool(arg) and (not arg or spec.accepts(arg)):
            return spec
    raise LookupError(name)


def test_format_voltage_worked_example():
    assert format_voltage(0x0A54) == "12.1V"
    assert format_voltage(0) == "0.0V"


def test_set_defaults(env):
    handlers, config, profile, replies, _, _ = env
    config.set_bytes(Param.HEADER_BYTES, ByteArray.of(b"\x01\x02"))
    handlers.set_defaults()
    assert config.get_bool(Param.ECHO)
    assert config.get_bool(Param.LINEFEED)
    assert not config.get_bool(Param.HEADER_SHOW)
    assert config.get_int(Param.ISO_INIT_ADDRESS) == 0x33
    assert config.get_int(Param.WAKEUP_VAL) == DEFAULT_WAKEUP_TIME // 20
    assert config.get_int(Param.CAN_TSTR_ADDRESS) == TESTER_ADDRESS
    assert config.get_int(Param.VPW_SPEED) == 1
    assert config.get_bytes(Param.HEADER_BYTES).length == 0
    assert profile.protocol() == Protocol.AUTO
    assert replies == []


def test_set_value_int(env):
    handlers, config, _, replies, _, _ = env
    handlers.set_value_int("1F", Param.TIMEOUT)
    assert config.get_int(Param.TIMEOUT) == 0x1F
    handlers.set_value_int("ZZ", Param.TIMEOUT)
    assert replies == [OK_MESSAGE, ERR_MESSAGE]
    assert config.get_int(Param.TIMEOUT) == 0x1F


def test_set_bytes_pads_three_digits(env):
    handlers, config, _, replies, _, _ = env
    handlers.set_bytes("7E0", Param.HEADER_BYTES)
    stored = config.get_bytes(Param.HEADER_BYTES)
    assert stored.payload == bytes([0x07, 0xE0])
    assert stored.as_can_id() == 0x7E0
    handlers.set_bytes("GG", Param.HEADER_BYTES)
    assert replies == [OK_MESSAGE, ERR_MESSAGE]


def test_set_receive_address(env):
    handlers, config, _, replies, _, fakes = env
    handlers.set_protocol("6", Param.PROTOCOL)
    replies.clear()
    handlers.set_receive_address("7E8", Param.CAN_SET_ADDRESS)
    assert config.get_bytes(Param.CAN_FILTER).as_can_id() == 0x7E8
    assert config.get_bytes(Param.CAN_MASK).as_can_id() == 0x7FF
    assert fakes[AdapterKind.CAN].filter_calls == 1
    handlers.set_receive_address("", Param.CAN_SET_ADDRESS)
    assert config.get_bytes(Param.CAN_FILTER).length == 0
    handlers.set_receive_address("12345", Param.CAN_SET_ADDRESS)
    assert replies == [OK_MESSAGE, OK_MESSAGE, ERR_MESSAGE]


def test_flow_control_mode(env):
    handlers, config, _, replies, _, _ = env
    handlers.set_flow_control_mode("1", Param.CAN_FLOW_CTRL_MD)
    assert replies == [ERR_MESSAGE]
    config.set_bytes(Param.CAN_FLOW_CTRL_HDR, ByteArray.of(b"\x07\xe0"))
    config.set_bytes(Param.CAN_FLOW_CTRL_DAT, ByteArray.of(b"\x30\x00"))
    handlers.set_flow_control_mode("1", Param.CAN_FLOW_CTRL_MD)
    assert config.get_int(Param.CAN_FLOW_CTRL_MD) == 1
    handlers.set_flow_control_mode("3", Param.CAN_FLOW_CTRL_MD)
    assert replies == [ERR_MESSAGE, OK_MESSAGE, ERR_MESSAGE]


@pytest.mark.parametrize(
    "arg, protocol, auto",
    [("6", 6, False), ("A6", 6, True), ("00", 0, True)],
)
def test_set_protocol(env, arg, protocol, auto):
    handlers, config, profile, replies, _, _ = env
    handlers.set_protocol(arg, Param.PROTOCOL)
    assert replies == [OK_MESSAGE]
    assert config.get_int(Param.PROTOCOL) == protocol
    assert config.get_bool(Param.USE_AUTO_SP) is auto
    assert profile.protocol() == protocol


@pytest.mark.parametrize("arg", ["AB", "C", "G"])
def test_set_protocol_rejected(env, arg):
    handlers, config, _, replies, _, _ = env
    config.set_bool(Param.USE_AUTO_SP, True)
    handlers.set_protocol(arg, Param.PROTOCOL)
    assert replies == [ERR_MESSAGE]
    if arg != "AB":
        assert not config.get_bool(Param.USE_AUTO_SP)


def test_set_4_header_bytes(env):
    handlers, config, _, replies, _, _ = env
    handlers.set_4_header_bytes("18DB33F1", Param.HEADER_BYTES)
    assert config.get_bytes(Param.CAN_PRIORITY_BITS).payload == b"\x18"
    assert config.get_bytes(Param.HEADER_BYTES).payload == bytes([0xDB, 0x33, 0xF1])
    handlers.set_4_header_bytes("XXDB33F1", Param.HEADER_BYTES)
    assert replies == [OK_MESSAGE, ERR_MESSAGE]


def test_timeout_mult(env):
    handlers, config, _, replies, _, _ = env
    handlers.set_timeout_mult("5", Param.CAN_TIMEOUT_MLT)
    assert config.get_bool(Param.CAN_TIMEOUT_MLT)
    handlers.set_timeout_mult("1", Param.CAN_TIMEOUT_MLT)
    assert not config.get_bool(Param.CAN_TIMEOUT_MLT)
    handlers.set_timeout_mult("2", Param.CAN_TIMEOUT_MLT)
    assert replies == [OK_MESSAGE, OK_MESSAGE, ERR_MESSAGE]


def test_vpw_speed(env):
    handlers, config, _, replies, _, _ = env
    handlers.set_vpw_speed("4", Param.VPW_SPEED)
    assert config.get_int(Param.VPW_SPEED) == 4
    handlers.set_vpw_speed("2", Param.VPW_SPEED)
    assert config.get_int(Param.VPW_SPEED) == 4
    assert replies == [OK_MESSAGE, ERR_MESSAGE]


def test_reset_clears_history(env):
    handlers, _, _, replies, history, _ = env
    history.append(b"\x01\x02\x03")
    handlers.reset("", Param.RESET_CPU)
    assert all(chunk == bytes(16) for chunk in history.dump())
    assert replies == [INTERFACE]


def test_table_shape(env):
    handlers = env[0]
    table = command_table(handlers)
    assert all(spec.min_len <= spec.max_len for spec in table)
    assert any(spec.name == "Z" and spec.param == Param.RESET_CPU for spec in table)
    assert [s.min_len for s in table if s.name == "SH"] == [3, 6, 8]


def test_table_dispatches(env):
    handlers, config, _, replies, _, _ = env
    _spec(handlers, "E1").callback("", Param.ECHO)
    assert config.get_bool(Param.ECHO)
    spec = _spec(handlers, "E0")
    spec.callback("", spec.param)
    assert not config.get_bool(Param.ECHO)
    spec = _spec(handlers, "AT2")
    spec.callback("", spec.param)
    assert handlers.timeouts.mode == AdaptiveMode.AT2
    spec = _spec(handlers, "@1")
    spec.callback("", spec.param)
    assert replies[-1] == VERSION


def test_table_read_voltage_and_describe(env):
    handlers, _, _, replies, _, _ = env
    handlers.set_defaults()
    spec = _spec(handlers, "RV")
    spec.callback("", spec.param)
    spec = _spec(handlers, "DPN")
    spec.callback("", spec.param)
    spec = _spec(handlers, "DP")
    spec.callback("", spec.param)
    assert replies == ["12.1V", "A0", "AUTO"]


def test_protocol_close_closes_adapter(env):
    handlers, _, _, replies, _, fakes = env
    handlers.set_protocol("6", Param.PROTOCOL)
    handlers.protocol_close("", Param.PROTOCOL_CLOSE)
    assert fakes[AdapterKind.CAN].close_calls == 1
    assert replies == [OK_MESSAGE, OK_MESSAGE]