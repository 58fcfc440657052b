"""Adaptive P2 timeout management."""

from __future__ import annotations

from collections.abc import Callable
from enum import IntEnum

from .config import AdapterConfig, Param

AT1_VALUE = 30
AT2_VALUE = 10
THRESHOLD = 2
DEFAULT_TIMEOUT = 200

# ISO 15765 protocol numbers to which the CAN timeout multiplier applies
_CAN_PROTOCOLS = frozenset({6, 7, 8, 9, 0x0B})


class AdaptiveMode(IntEnum):
    AT0 = 0
    AT1 = 1
    AT2 = 2


class TimeoutManager:
    """Learns ECU response times and derives the P2 timeout from them."""

    def __init__(
        self,
        config: AdapterConfig,
        current_protocol: Callable[[], int] | None = None,
    ) -> None:
        self.config = config
        self.current_protocol = current_protocol or (lambda: 0)
        self.mode = AdaptiveMode.AT1
        self.timeout = 0
        self.threshold = 0

    def reset(self) -> None:
        self.timeout = 0
        self.threshold = 0

    def record_p2(self, value: int) -> None:
        """Record a measured response time; the first few are skipped."""
        if self.threshold < THRESHOLD:
            self.threshold += 1
        else:
            self.timeout = min(max(self.timeout, value), self.at0_timeout())

    def p2_timeout(self) -> int:
        if self.timeout == 0:
            return self.at0_timeout()
        if self.mode == AdaptiveMode.AT1:
            return self.timeout + AT1_VALUE
        if self.mode == AdaptiveMode.AT2:
            return self.timeout + AT2_VALUE
        return self.at0_timeout()

    def at0_timeout(self) -> int:
        p2 = self.config.get_int(Param.TIMEOUT)
        factor = 5 if self._multiplier() else 1
        return p2 * 4 * factor if p2 else DEFAULT_TIMEOUT

    def _multiplier(self) -> bool:
        if self.current_protocol() in _CAN_PROTOCOLS:
            return self.config.get_bool(Param.CAN_TIMEOUT_MLT)
        return False