"""Match lifecycle: create/approve/block/freeze/unmatch over the match store.

State is derived from flags (see ``MatchRow.status``). Every mutation
re-applies ``blocked => not active, not mutual, chat closed`` before saving.
"""
from __future__ import annotations
import logging
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from ..db.interface import DatabaseInterface
from ..db.models import MatchRow, MatchStatus
from ..errors import ValidationError, ConflictError, RateLimitError
from ..providers.base import NotificationEvent, NotificationSink, safe_emit

logger = logging.getLogger(__name__)

SOURCE_WEDDING = "wedding"
SOURCE_GLOBAL = "global"
SOURCE_OPENING = "opening"

LIST_LIMIT_MAX = 500


def normalize_pair(user_a: int | None, user_b: int | None) -> Tuple[int, int]:
    """Return (low, high); rejects missing ids and self-pairs."""
    if user_a is None or user_b is None:
        raise ValidationError("Both user ids are required")
    if user_a == user_b:
        raise ValidationError("A match needs two different users")
    return (user_a, user_b) if user_a < user_b else (user_b, user_a)


def _enforce_block_invariant(match: MatchRow) -> None:
    if match.blocked:
        match.active = False
        match.mutual_approved = False
        match.chat_opened = False


class MatchLifecycle:
    def __init__(self, db: DatabaseInterface, notifier: NotificationSink | None = None,
                 clock: Callable[[], datetime] | None = None, list_limit_max: int = LIST_LIMIT_MAX,
                 message_cooldown_seconds: int = 0):
        self.db = db
        self.notifier = notifier
        self.clock = clock or datetime.now
        self.list_limit_max = list_limit_max
        # 0 disables the per-match anti-spam window
        self.message_cooldown_seconds = max(0, int(message_cooldown_seconds))

    # --- internals ---
    def _load(self, match_id: int) -> MatchRow:
        if match_id is None:
            raise ValidationError("match_id is required")
        match = self.db.get_match(match_id)
        if match is None:
            raise ConflictError(f"Match not found: {match_id}")
        return match

    @staticmethod
    def _require_member(match: MatchRow, user_id: int) -> None:
        if user_id is None or not match.involves(user_id):
            raise ValidationError(f"User {user_id} is not part of match {match.id}")

    @staticmethod
    def _require_open(match: MatchRow) -> None:
        if match.status == MatchStatus.CLOSED:
            raise ConflictError(f"Match {match.id} is closed")

    def _save(self, match: MatchRow) -> MatchRow:
        _enforce_block_invariant(match)
        match.updated_at = self.clock()
        return self.db.update_match(match)

    def _clamp(self, limit: int) -> int:
        return max(1, min(int(limit), self.list_limit_max))

    # --- creation ---
    def create_or_get(self, user_a: int, user_b: int, meeting_context_id: int | None = None,
                      origin_context_id: int | None = None, score: float | None = None,
                      source: str | None = None) -> MatchRow:
        """Return the pair's match, creating it or merging into the existing one."""
        match, _ = self.upsert(user_a, user_b, meeting_context_id, origin_context_id, score, source)
        return match

    def upsert(self, user_a: int, user_b: int, meeting_context_id: int | None = None,
               origin_context_id: int | None = None, score: float | None = None,
               source: str | None = None) -> Tuple[MatchRow, bool]:
        """Like ``create_or_get`` but also reports whether a new row was inserted."""
        low, high = normalize_pair(user_a, user_b)
        source = source.strip() if source and source.strip() else None
        with self.db.transaction():
            existing = self.db.get_match_by_pair(low, high)
            if existing is not None:
                if score is not None:
                    existing.score = score
                if existing.origin_context_id is None:
                    existing.origin_context_id = origin_context_id
                if existing.meeting_context_id is None:
                    existing.meeting_context_id = meeting_context_id
                if not existing.source or not existing.source.strip():
                    existing.source = source
                # Reactivation path for closed matches; a block still wins
                existing.active = True
                return self._save(existing), False

            now = self.clock()
            match = MatchRow(
                user_low_id=low,
                user_high_id=high,
                created_at=now,
                updated_at=now,
                meeting_context_id=meeting_context_id,
                origin_context_id=origin_context_id,
                score=score,
                source=source or (SOURCE_WEDDING if meeting_context_id is not None else SOURCE_GLOBAL),
            )
            self.db.insert_match(match)
        logger.info(f"Match {match.id} created for ({low}, {high}) source={match.source}")
        safe_emit(self.notifier, NotificationEvent.MATCH_CREATED,
                  {"match_id": match.id, "user_ids": [low, high], "source": match.source})
        return match, True

    def create_accepted(self, user_a: int, user_b: int, source: str = SOURCE_OPENING) -> MatchRow:
        """Insert a match both sides already consented to (accepted opening message)."""
        low, high = normalize_pair(user_a, user_b)
        now = self.clock()
        match = MatchRow(
            user_low_id=low,
            user_high_id=high,
            created_at=now,
            updated_at=now,
            score=0.0,
            source=source,
            user1_approved=True,
            user2_approved=True,
            mutual_approved=True,
            chat_opened=True,
        )
        with self.db.transaction():
            self.db.insert_match(match)
        logger.info(f"Match {match.id} created as accepted for ({low}, {high})")
        return match

    # --- approvals ---
    def approve(self, match_id: int, user_id: int) -> MatchRow:
        with self.db.transaction():
            match = self._load(match_id)
            self._require_member(match, user_id)
            self._require_open(match)
            was_mutual = match.mutual_approved
            if user_id == match.user_low_id:
                match.user1_approved = True
            else:
                match.user2_approved = True
            if match.user1_approved and match.user2_approved and not match.blocked:
                match.mutual_approved = True
                match.chat_opened = True
                match.unread_count = 0
            self._save(match)
        if match.mutual_approved and not was_mutual:
            logger.info(f"Match {match.id} became mutual")
            safe_emit(self.notifier, NotificationEvent.MATCH_MUTUAL,
                      {"match_id": match.id, "user_ids": [match.user_low_id, match.user_high_id]})
        return match

    def unapprove(self, match_id: int, user_id: int) -> MatchRow:
        """Withdraw the caller's approval; either side can end a mutual match."""
        with self.db.transaction():
            match = self._load(match_id)
            self._require_member(match, user_id)
            if user_id == match.user_low_id:
                match.user1_approved = False
            else:
                match.user2_approved = False
            match.mutual_approved = False
            match.chat_opened = False
            return self._save(match)

    # --- overlays ---
    def block(self, match_id: int) -> MatchRow:
        with self.db.transaction():
            match = self._load(match_id)
            match.blocked = True
            self._save(match)
        logger.info(f"Match {match.id} blocked")
        return match

    def unblock(self, match_id: int) -> MatchRow:
        with self.db.transaction():
            match = self._load(match_id)
            match.blocked = False
            return self._save(match)

    def freeze(self, match_id: int, reason: str | None = None) -> MatchRow:
        with self.db.transaction():
            match = self._load(match_id)
            match.frozen = True
            match.freeze_reason = reason.strip() if reason and reason.strip() else None
            return self._save(match)

    def unfreeze(self, match_id: int) -> MatchRow:
        with self.db.transaction():
            match = self._load(match_id)
            match.frozen = False
            match.freeze_reason = None
            return self._save(match)

    def archive(self, match_id: int) -> MatchRow:
        """Set the archive overlay; approvals and chat state are untouched."""
        with self.db.transaction():
            match = self._load(match_id)
            match.archived = True
            return self._save(match)

    def unarchive(self, match_id: int) -> MatchRow:
        with self.db.transaction():
            match = self._load(match_id)
            match.archived = False
            return self._save(match)

    def open_chat(self, match_id: int) -> MatchRow:
        with self.db.transaction():
            match = self._load(match_id)
            if match.blocked:
                raise ConflictError(f"Match {match.id} is blocked")
            self._require_open(match)
            match.chat_opened = True
            return self._save(match)

    def close_chat(self, match_id: int) -> MatchRow:
        with self.db.transaction():
            match = self._load(match_id)
            match.chat_opened = False
            return self._save(match)

    def unmatch(self, match_id: int, user_id: int) -> MatchRow:
        with self.db.transaction():
            match = self._load(match_id)
            self._require_member(match, user_id)
            match.user1_approved = False
            match.user2_approved = False
            match.mutual_approved = False
            match.chat_opened = False
            match.active = False
            self._save(match)
        logger.info(f"Match {match.id} closed by user {user_id}")
        safe_emit(self.notifier, NotificationEvent.MATCH_UNMATCHED,
                  {"match_id": match.id, "by_user_id": user_id, "other_user_id": match.other(user_id)})
        return match

    # --- chat bookkeeping ---
    def mark_read(self, match_id: int, user_id: int) -> MatchRow:
        with self.db.transaction():
            match = self._load(match_id)
            self._require_member(match, user_id)
            match.unread_count = 0
            return self._save(match)

    def record_message(self, match_id: int, sender_id: int) -> MatchRow:
        with self.db.transaction():
            match = self._load(match_id)
            self._require_member(match, sender_id)
            if not match.active or match.blocked or not match.chat_opened:
                raise ConflictError(f"Chat is not open for match {match.id}")
            now = self.clock()
            self._require_not_spam(match, now)
            match.unread_count += 1
            match.last_message_at = now
            return self._save(match)

    def _require_not_spam(self, match: MatchRow, now: datetime) -> None:
        cooldown = self.message_cooldown_seconds
        if not cooldown or match.last_message_at is None:
            return
        elapsed = (now - match.last_message_at).total_seconds()
        if elapsed < cooldown:
            raise RateLimitError(f"Wait {cooldown}s between messages in match {match.id}")

    def update_meeting_context(self, match_id: int, context_id: int | None) -> MatchRow:
        """Move the match to a new meeting context; the origin never changes."""
        with self.db.transaction():
            match = self._load(match_id)
            match.meeting_context_id = context_id
            return self._save(match)

    # --- queries ---
    def get(self, match_id: int) -> Optional[MatchRow]:
        return self.db.get_match(match_id)

    def between(self, user_a: int, user_b: int) -> Optional[MatchRow]:
        low, high = normalize_pair(user_a, user_b)
        return self.db.get_match_by_pair(low, high)

    def for_user(self, user_id: int, status: MatchStatus | None = None, limit: int = 100) -> List[MatchRow]:
        lim = self._clamp(limit)
        if status is None:
            return self.db.list_matches_for_user(user_id, lim)
        return self.db.list_matches_for_user_by_status(user_id, status, lim)

    def by_source(self, source: str, limit: int = 100) -> List[MatchRow]:
        return self.db.list_matches_by_source(source, self._clamp(limit))

    def by_min_score(self, min_score: float, limit: int = 100) -> List[MatchRow]:
        return self.db.list_matches_by_min_score(min_score, self._clamp(limit))

    def by_context(self, context_id: int, limit: int = 100) -> List[MatchRow]:
        return self.db.list_matches_by_context(context_id, self._clamp(limit))


__all__ = [
    "MatchLifecycle",
    "normalize_pair",
    "SOURCE_WEDDING",
    "SOURCE_GLOBAL",
    "SOURCE_OPENING",
]
