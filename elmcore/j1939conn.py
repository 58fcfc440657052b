"""J1939 transport protocol connection management (RTS/CTS, data, end-of-message ACK)."""

from __future__ import annotations

from collections.abc import Callable

from .canhistory import CanFrame

SendFrame = Callable[[bytes, int], bool]


class J1939ConnectionManager:
    """Answers multi-frame J1939 transfers on behalf of the adapter."""

    TP_CM_ACK_PGN = 0xE800
    TP_CM_CTRL_PGN = 0xEC00
    TP_CM_DT_PGN = 0xEB00
    TP_CM_RTS = 0x10
    TP_CM_CTS = 0x11
    TP_CM_ACK = 0x13

    _PRIORITY_BITS = 0x1C000000

    def __init__(self, send_frame: SendFrame, adapter_id: Callable[[], int]) -> None:
        self._send_frame = send_frame
        self._adapter_id = adapter_id
        self.n_frames = 0
        self.size = 0
        self.pgn = (0, 0, 0)
        self.src = 0
        self.dst = 0
        self.current = 0

    def set_pgn(self, pgn0: int, pgn1: int, pgn2: int) -> None:
        """Set the current parameter group number, least significant byte first."""
        self.pgn = (pgn0 & 0xFF, pgn1 & 0xFF, pgn2 & 0xFF)

    def is_valid_ack(self, frame: CanFrame) -> bool:
        return tuple(frame.data[5:8]) == self.pgn

    def rts(self, frame: CanFrame) -> bool:
        """Handle TP.CM_RTS and answer with TP.CM_CTS."""
        self.size = frame.data[1] | (frame.data[2] << 8)
        self.n_frames = frame.data[3]
        self.dst = frame.id & 0xFF
        self.src = self._adapter_id() & 0xFF
        self.current = 0
        cts = bytes([self.TP_CM_CTS, self.n_frames, 1, 0xFF, 0xFF, *self.pgn])
        cts_id = (
            self._PRIORITY_BITS | (self.TP_CM_CTRL_PGN << 8) | (self.dst << 8) | self.src
        )
        return self._send_frame(cts, cts_id)

    def data(self, frame: CanFrame) -> bool:
        """Handle TP.DT; the last expected frame is acknowledged."""
        self.current = (self.current + 1) & 0xFF
        if frame.data[0] != self.current:
            return False
        if self.current == self.n_frames:
            return self._send_ack()
        return True

    def _send_ack(self) -> bool:
        ack = bytes(
            [
                self.TP_CM_ACK,
                self.size & 0xFF,
                (self.size >> 8) & 0xFF,
                self.n_frames,
                0xFF,
                *self.pgn,
            ]
        )
        ack_id = (
            self._PRIORITY_BITS | (self.TP_CM_CTRL_PGN << 8) | (self.pgn[0] << 8) | self.src
        )
        return self._send_frame(ack, ack_id)