"""The automatic protocol search adapter."""

from __future__ import annotations

from collections.abc import Callable

from .config import AdapterConfig, Param
from .protocols import (
    AdapterKind,
    AdapterRegistry,
    MessageHistory,
    Protocol,
    ProtocolAdapter,
    ReplyStatus,
)

_SEARCH_ORDER = (
    AdapterKind.PWM,
    AdapterKind.VPW,
    AdapterKind.ISO,
    AdapterKind.CAN,
    AdapterKind.CAN_EXT,
)


class AutoAdapter(ProtocolAdapter):
    """Tries every protocol in turn until an ECU answers."""

    protocol = Protocol.AUTO

    def __init__(
        self,
        config: AdapterConfig,
        registry: AdapterRegistry,
        history: MessageHistory | None = None,
        reply: Callable[[str], None] | None = None,
    ) -> None:
        super().__init__(config, history, reply)
        self.registry = registry

    def description(self) -> str:
        return "AUTO"

    def description_num(self) -> str:
        return "A0" if self.config.get_bool(Param.USE_AUTO_SP) else "0"

    def on_request(self, data: bytes, num_of_responses: int) -> int:
        return ReplyStatus.NO_DATA

    def _do_connect(self, kind: AdapterKind, send_reply: bool) -> int:
        if kind not in self.registry:
            return 0
        adapter = self.registry.get(kind)
        protocol = adapter.on_connect_ecu(send_reply)
        if protocol != 0:
            self.status = adapter.status
            return protocol
        return 0

    def on_connect_ecu(self, send_reply: bool) -> int:
        """Search PWM, VPW, ISO, CAN 11 and CAN 29 in that order."""
        self.connected = False
        self.status = ReplyStatus.NO_DATA
        *first, last = _SEARCH_ORDER
        for kind in first:
            protocol = self._do_connect(kind, send_reply)
            if protocol > 0:
                return protocol
        return self._do_connect(last, send_reply)