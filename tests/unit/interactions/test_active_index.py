from datetime import datetime

from wme.db.models import SignalRow, SignalType
from wme.interactions.active_index import ActiveIndex, clamp_scan

T0 = datetime(2026, 6, 14, 12, 0, 0)


def _sig(target, signal_type=SignalType.LIKE, active=True, sid=None):
    return SignalRow(actor_id=1, target_id=target, type=signal_type, created_at=T0, updated_at=T0,
                     active=active, id=sid)


class _RecordingStore:
    def __init__(self, rows):
        self.rows = rows
        self.limits = []

    def list_active_by_actor(self, actor_id, limit):
        self.limits.append(limit)
        return list(self.rows)


def test_put_is_first_write_wins():
    index = ActiveIndex(1)
    first = _sig(2, sid=1)
    index.put(first)
    index.put(_sig(2, sid=2))
    assert index.get(SignalType.LIKE, 2) is first


def test_put_ignores_inactive_signal():
    index = ActiveIndex(1)
    index.put(_sig(2, active=False))
    assert index.get(SignalType.LIKE, 2) is None
    assert len(index) == 0


def test_constructor_keeps_most_recent_row_per_target():
    newest, older = _sig(2, sid=9), _sig(2, sid=3)
    index = ActiveIndex(1, [newest, older])
    assert index.get(SignalType.LIKE, 2).id == 9


def test_mark_inactive_removes_entry():
    index = ActiveIndex(1, [_sig(2), _sig(3, SignalType.FREEZE)])
    index.mark_inactive(SignalType.LIKE, 2)
    assert index.get(SignalType.LIKE, 2) is None
    assert index.targets_of_type(SignalType.FREEZE) == [3]
    # unknown type/target is a no-op
    index.mark_inactive(SignalType.BLOCK, 99)


def test_targets_of_type_preserves_read_order():
    index = ActiveIndex(1, [_sig(5), _sig(4), _sig(6, SignalType.DISLIKE)])
    assert index.targets_of_type(SignalType.LIKE) == [5, 4]
    assert index.targets_of_type(SignalType.DISLIKE) == [6]
    assert index.targets_of_type(SignalType.FREEZE) == []


def test_load_clamps_scan_limit():
    store = _RecordingStore([])
    ActiveIndex.load(store, 1, 10)
    ActiveIndex.load(store, 1, 100000)
    ActiveIndex.load(store, 1, 2000)
    assert store.limits == [50, 5000, 2000]
    assert clamp_scan(0) == 50


def test_snapshot_does_not_refresh_from_store():
    store = _RecordingStore([_sig(2)])
    index = ActiveIndex.load(store, 1, 2000)
    store.rows.append(_sig(3))
    assert index.get(SignalType.LIKE, 3) is None
