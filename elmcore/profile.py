"""OBD profile: routes requests to the active protocol adapter and reports errors."""

from __future__ import annotations

import string
from collections.abc import Callable
from typing import Any

from .codec import to_bytes
from .collector import ALL_RESPONSES, DataCollector
from .config import J1850_IN_MSG_DLEN, OBD_IN_MSG_DLEN, AdapterConfig, Param
from .protocols import AdapterKind, AdapterRegistry, Protocol, ProtocolAdapter, ReplyStatus

OBD_TEST_SEQ = "0100"
ATMP_LEN = 6

ERROR_MESSAGES: dict[int, str] = {
    ReplyStatus.CMD_WRONG: "?",
    ReplyStatus.DATA_ERROR: "DATA ERROR",
    ReplyStatus.NO_DATA: "NO DATA",
    ReplyStatus.ERROR: "ERROR",
    ReplyStatus.UNABLE_TO_CONNECT: "UNABLE TO CONNECT",
    ReplyStatus.BUS_BUSY: "BUS BUSY",
    ReplyStatus.BUS_ERROR: "BUS ERROR",
    ReplyStatus.CHKS_ERROR: "DATA ERROR>",
    ReplyStatus.WIRING_ERROR: "FB ERROR",
}
PROGRAM_ERROR = "Program Error"

_PROTOCOL_ADAPTERS: dict[int, AdapterKind] = {
    Protocol.AUTO: AdapterKind.AUTO,
    Protocol.J1850_PWM: AdapterKind.PWM,
    Protocol.J1850_VPW: AdapterKind.VPW,
    Protocol.ISO9141: AdapterKind.ISO,
    Protocol.ISO14230_5BPS: AdapterKind.ISO,
    Protocol.ISO14230: AdapterKind.ISO,
    Protocol.ISO15765_1150: AdapterKind.CAN,
    Protocol.ISO15765_USR_B: AdapterKind.CAN,
    Protocol.ISO15765_2950: AdapterKind.CAN_EXT,
    Protocol.J1939: AdapterKind.J1939,
}
_ISO_PROTOCOLS = frozenset({Protocol.ISO9141, Protocol.ISO14230_5BPS, Protocol.ISO14230})


def num_of_frames(text: str) -> int:
    """Response count given by a trailing odd hex digit; all responses otherwise."""
    if len(text) % 2 == 0:
        return ALL_RESPONSES
    digit = text[-1]
    if digit not in string.hexdigits:
        return ALL_RESPONSES
    value = int(digit, 16)
    return value if value > 0 else ALL_RESPONSES


def _capability(adapter: ProtocolAdapter, name: str) -> Callable[..., Any] | None:
    """The adapter's optional capability method, if it offers one."""
    method = getattr(adapter, name, None)
    return method if callable(method) else None


class OBDProfile:
    """Holds the active protocol adapter and runs user requests through it.

    Without a ``reply`` callback, error lines are kept in ``replies``.
    """

    def __init__(
        self,
        config: AdapterConfig,
        registry: AdapterRegistry,
        reply: Callable[[str], None] | None = None,
    ) -> None:
        self.config = config
        self.registry = registry
        self.replies: list[str] = []
        self.reply = reply if reply is not None else self.replies.append
        self.adapter: ProtocolAdapter = registry.get(AdapterKind.AUTO)

    def _is_adapter(self, kind: AdapterKind) -> bool:
        return kind in self.registry and self.adapter is self.registry.get(kind)

    def protocol_description(self) -> str:
        return self.adapter.description()

    def protocol_description_num(self) -> str:
        return self.adapter.description_num()

    def protocol(self) -> int:
        return self.adapter.protocol

    def set_protocol(self, num: int, refresh_connection: bool) -> int:
        """Switch to the adapter for a protocol number; CMD_WRONG if there is none."""
        kind = _PROTOCOL_ADAPTERS.get(num)
        if kind is None:
            return ReplyStatus.CMD_WRONG
        previous = self.adapter
        self.adapter = self.registry.get(kind)
        if num == Protocol.AUTO:
            if AdapterKind.ISO in self.registry:
                self.registry.get(AdapterKind.ISO).set_protocol(Protocol.AUTO)
        elif num in _ISO_PROTOCOLS and refresh_connection:
            self.adapter.set_protocol(num)
        if refresh_connection and previous is not self.adapter:
            previous.close()
            self.adapter.open()
        return ReplyStatus.OK

    def on_request(self, collector: DataCollector) -> int:
        """Run a hex request and report its error, if any, to the user."""
        result = self._request(collector)
        if result != ReplyStatus.NONE:
            self.reply(ERROR_MESSAGES.get(result, PROGRAM_ERROR))
        return result

    def _request(self, collector: DataCollector) -> int:
        num_of_resp = collector.num_of_responses()
        if not self.send_length_check(collector.length):
            return ReplyStatus.DATA_ERROR

        if self.adapter.connected:
            return self.adapter.on_request(collector.data, num_of_resp)

        send_reply = collector.text == OBD_TEST_SEQ and self.protocol() == Protocol.AUTO
        auto = self.registry.get(AdapterKind.AUTO)
        if self.adapter is auto:
            protocol = auto.on_connect_ecu(send_reply)
            status = self.adapter.status
        else:
            protocol = self.adapter.on_connect_ecu(send_reply)
            status = self.adapter.status
            use_auto_sp = self.config.get_bool(Param.USE_AUTO_SP)
            if protocol == 0 and use_auto_sp and status == ReplyStatus.NO_DATA:
                protocol = auto.on_connect_ecu(send_reply)
                status = auto.status

        if protocol:
            self.set_protocol(protocol, False)
            if not send_reply or Protocol.ISO9141 <= protocol <= Protocol.ISO14230:
                status = self.adapter.on_request(collector.data, num_of_resp)
            else:
                status = ReplyStatus.NONE  # already answered during the connect
        return status

    def send_length_check(self, length: int) -> bool:
        max_len = OBD_IN_MSG_DLEN
        if self._is_adapter(AdapterKind.ISO):
            max_len += 1
        elif self._is_adapter(AdapterKind.VPW):
            max_len = J1850_IN_MSG_DLEN
        return 0 < length <= max_len

    def close_protocol(self) -> None:
        self.adapter.close()

    def dump_buffer(self) -> list[str]:
        return self.adapter.dump_buffer()

    def send_heart_beat(self) -> bool:
        """Keep the connection alive if the active adapter can; True when it ran."""
        heart_beat = _capability(self.adapter, "send_heart_beat")
        if heart_beat is None:
            return False
        heart_beat()
        return True

    def kw_display(self) -> str | None:
        """ISO keywords; only the ISO 9141/14230 adapter knows them."""
        if AdapterKind.ISO not in self.registry:
            return None
        display = _capability(self.registry.get(AdapterKind.ISO), "kw_display")
        return display() if display is not None else None

    def wiring_check(self) -> list[str]:
        lines: list[str] = []
        for kind in (AdapterKind.PWM, AdapterKind.VPW, AdapterKind.ISO, AdapterKind.CAN):
            if kind in self.registry:
                lines.extend(self.registry.get(kind).wiring_check())
        return lines

    def set_filter_and_mask(self) -> bool:
        """Reload the CAN filter on the active adapter; True when it has one."""
        reload_filter = _capability(self.adapter, "set_filter_and_mask")
        if reload_filter is None:
            return False
        reload_filter()
        return True

    def monitor(self, text: str | None = None) -> bool:
        """Start J1939 monitoring: DM1 without text, ATMP with a PGN text.

        Returns False when the text is rejected.
        """
        run_monitor = _capability(self.adapter, "monitor")
        if text is None:
            if run_monitor is not None:
                run_monitor()
            return True
        if len(text) > ATMP_LEN * 2:
            return False
        num_of_resp = num_of_frames(text)
        try:
            data = to_bytes(text)
        except ValueError:
            return False
        if not self.send_length_check(len(data)):
            return False
        if run_monitor is not None:
            run_monitor(data, num_of_resp)
        return True