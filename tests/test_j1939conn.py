from elmcore.canhistory import CanFrame
from elmcore.j1939conn import J1939ConnectionManager


class _Recorder:
    def __init__(self, result=True):
        self.sent = []
        self.result = result

    def __call__(self, data, can_id):
        self.sent.append((data, can_id))
        return self.result


def _manager(result=True, adapter_id=0x18EAFFF9):
    rec = _Recorder(result)
    mgr = J1939ConnectionManager(rec, lambda: adapter_id)
    mgr.set_pgn(0xCA, 0xFE, 0x00)
    return rec, mgr


def _rts(size, frames, sender=0x00):
    data = [J1939ConnectionManager.TP_CM_RTS, size & 0xFF, size >> 8, frames, 0xFF, 0xCA, 0xFE, 0x00]
    return CanFrame(0x1CECFF00 | sender, True, 8, bytes(data))


def test_rts_sends_cts():
    rec, mgr = _manager()
    assert mgr.rts(_rts(20, 3, sender=0x17)) is True
    assert mgr.size == 20
    data, can_id = rec.sent[0]
    assert data[0] == J1939ConnectionManager.TP_CM_CTS
    assert data[1] == 3
    assert data[2] == 1
    assert data[5:] == bytes([0xCA, 0xFE, 0x00])
    assert can_id & 0xFF == 0xF9
    assert (can_id >> 8) & 0xFF == 0x17
    assert (can_id >> 16) & 0xFF == 0xEC


def test_data_sequence_then_ack():
    rec, mgr = _manager()
    mgr.rts(_rts(20, 3))
    for n in (1, 2):
        assert mgr.data(CanFrame(0x1CEBFF00, True, 8, bytes([n]))) is True
    assert len(rec.sent) == 1
    assert mgr.data(CanFrame(0x1CEBFF00, True, 8, bytes([3]))) is True
    ack, ack_id = rec.sent[-1]
    assert ack == bytes([J1939ConnectionManager.TP_CM_ACK, 20, 0, 3, 0xFF, 0xCA, 0xFE, 0x00])
    assert (ack_id >> 8) & 0xFF == 0xCA
    assert ack_id & 0xFF == 0xF9


def test_out_of_order_data_rejected():
    rec, mgr = _manager()
    mgr.rts(_rts(20, 3))
    assert mgr.data(CanFrame(0x1CEBFF00, True, 8, bytes([2]))) is False
    assert len(rec.sent) == 1


def test_send_failure_propagates():
    _, mgr = _manager(result=False)
    assert mgr.rts(_rts(10, 2)) is False


def test_valid_ack_matches_pgn():
    _, mgr = _manager()
    good = CanFrame(0x18E8FF00, True, 8, bytes([0, 0, 0, 0, 0, 0xCA, 0xFE, 0x00]))
    bad = CanFrame(0x18E8FF00, True, 8, bytes([0, 0, 0, 0, 0, 0xCA, 0xFE, 0x01]))
    assert mgr.is_valid_ack(good) is True
    assert mgr.is_valid_ack(bad) is False