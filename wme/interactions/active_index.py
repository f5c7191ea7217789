from __future__ import annotations
"""Per-operation snapshot of an actor's active outgoing signals.

Built from one bulk read and never refreshed from the store afterwards.
Signals written during the same operation must be ``put`` explicitly.
"""
import logging
from typing import Dict, List, Optional

from ..db.interface import SignalStore
from ..db.models import SignalRow, SignalType

logger = logging.getLogger(__name__)

MIN_SCAN = 50
MAX_SCAN = 5000


def clamp_scan(max_scan: int) -> int:
    return max(MIN_SCAN, min(MAX_SCAN, int(max_scan)))


class ActiveIndex:
    def __init__(self, actor_id: int, signals: List[SignalRow] | None = None):
        self.actor_id = actor_id
        self._by_type: Dict[SignalType, Dict[int, SignalRow]] = {}
        # Input is most-recent first; the newest row per (type, target) wins.
        for signal in signals or []:
            self.put(signal)

    @classmethod
    def load(cls, store: SignalStore, actor_id: int, max_scan: int) -> ActiveIndex:
        limit = clamp_scan(max_scan)
        rows = store.list_active_by_actor(actor_id, limit)
        if len(rows) >= limit:
            logger.debug(f"Active index for user {actor_id} truncated at {limit} signals")
        return cls(actor_id, rows)

    def get(self, signal_type: SignalType, target_id: int) -> Optional[SignalRow]:
        return self._by_type.get(signal_type, {}).get(target_id)

    def put(self, signal: SignalRow) -> None:
        """Add an active signal; first write wins per (type, target)."""
        if not signal.active:
            return
        bucket = self._by_type.setdefault(signal.type, {})
        if signal.target_id not in bucket:
            bucket[signal.target_id] = signal

    def mark_inactive(self, signal_type: SignalType, target_id: int) -> None:
        bucket = self._by_type.get(signal_type)
        if bucket is None:
            return
        signal = bucket.pop(target_id, None)
        if signal is not None:
            signal.active = False

    def targets_of_type(self, signal_type: SignalType) -> List[int]:
        return list(self._by_type.get(signal_type, {}).keys())

    def signals_of_type(self, signal_type: SignalType) -> List[SignalRow]:
        return list(self._by_type.get(signal_type, {}).values())

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self._by_type.values())


__all__ = ["ActiveIndex", "clamp_scan", "MIN_SCAN", "MAX_SCAN"]
