from __future__ import annotations
"""Store interface abstraction for testability.

These interfaces define the contract used by the engine. A concrete SQLite
implementation (`Database`) and an in-memory mock used in unit tests both
implement `DatabaseInterface` for dependency injection.

Writes are explicit per-field operations (no generic update/execute) so the
engine's cancellation and guard logic is the only path that mutates rows.
"""
from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime
from typing import List, Optional

from .models import SignalRow, SignalType, MatchRow, MatchStatus, OpeningMessageRow, ProfileRow


class SignalStore(ABC):
    """Persistence for individual interaction records."""

    @abstractmethod
    def insert_signal(self, signal: SignalRow) -> SignalRow:
        """Persist a new signal and return it with its assigned id."""
        ...

    @abstractmethod
    def deactivate_signal(self, signal_id: int, at: datetime, reason: str | None = None) -> None:
        """Soft-deactivate a signal; a non-blank reason overwrites the stored one."""
        ...

    @abstractmethod
    def list_active_by_actor(self, actor_id: int, limit: int) -> List[SignalRow]:
        """Most-recent-first active outgoing signals of an actor (bulk read)."""
        ...

    @abstractmethod
    def list_active_by_target(self, target_id: int, signal_type: SignalType, limit: int) -> List[SignalRow]:
        """Most-recent-first active incoming signals of one type."""
        ...

    @abstractmethod
    def count_active_by_target(self, target_id: int, signal_type: SignalType) -> int: ...


class MatchStore(ABC):
    """Persistence for Match aggregates keyed by (user_low_id, user_high_id)."""

    @abstractmethod
    def insert_match(self, match: MatchRow) -> MatchRow: ...

    @abstractmethod
    def update_match(self, match: MatchRow) -> MatchRow: ...

    @abstractmethod
    def get_match(self, match_id: int) -> Optional[MatchRow]: ...

    @abstractmethod
    def get_match_by_pair(self, user_low_id: int, user_high_id: int) -> Optional[MatchRow]:
        """Lookup by canonical pair; callers must normalize the order first."""
        ...

    @abstractmethod
    def list_matches_for_user(self, user_id: int, limit: int) -> List[MatchRow]: ...

    @abstractmethod
    def list_matches_for_user_by_status(self, user_id: int, status: MatchStatus, limit: int) -> List[MatchRow]:
        """The user's matches whose derived status equals ``status``, filtered in the store."""
        ...

    @abstractmethod
    def list_matches_by_source(self, source: str, limit: int) -> List[MatchRow]: ...

    @abstractmethod
    def list_matches_by_min_score(self, min_score: float, limit: int) -> List[MatchRow]:
        """Matches scoring at or above min_score, highest score first."""
        ...

    @abstractmethod
    def list_matches_by_context(self, context_id: int, limit: int) -> List[MatchRow]:
        """Matches whose meeting or origin context equals context_id."""
        ...


class OpeningMessageStore(ABC):
    """Persistence for opening messages awaiting a recipient decision."""

    @abstractmethod
    def insert_opening(self, message: OpeningMessageRow) -> OpeningMessageRow: ...

    @abstractmethod
    def update_opening(self, message: OpeningMessageRow) -> OpeningMessageRow: ...

    @abstractmethod
    def get_opening(self, message_id: int) -> Optional[OpeningMessageRow]: ...

    @abstractmethod
    def has_pending_opening(self, sender_id: int, recipient_id: int) -> bool:
        """True if an undeleted opening message sender->recipient exists."""
        ...

    @abstractmethod
    def list_pending_openings_for(self, recipient_id: int, limit: int) -> List[OpeningMessageRow]: ...


class ProfileStore(ABC):
    """Profile rows backing the default ProfileState provider and cohort lookup."""

    @abstractmethod
    def upsert_profile(self, profile: ProfileRow) -> None: ...

    @abstractmethod
    def get_profile(self, user_id: int) -> Optional[ProfileRow]: ...

    @abstractmethod
    def list_profiles_by_event(self, event_id: int) -> List[ProfileRow]: ...


class DatabaseInterface(SignalStore, MatchStore, OpeningMessageStore, ProfileStore):

    @abstractmethod
    def transaction(self) -> AbstractContextManager:
        """Scope a unit of work: the outermost block commits or rolls back.

        Nested blocks join the enclosing transaction.
        """
        ...

    # --- Meta (key/value settings) ---
    @abstractmethod
    def set_meta(self, key: str, value: str) -> None: ...

    @abstractmethod
    def get_meta(self, key: str) -> Optional[str]: ...

    @abstractmethod
    def close(self) -> None: ...


__all__ = [
    "SignalStore",
    "MatchStore",
    "OpeningMessageStore",
    "ProfileStore",
    "DatabaseInterface",
]
