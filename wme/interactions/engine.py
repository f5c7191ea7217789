"""Interaction engine: turns user-to-user signals into consistent relationship state.

Every public operation runs in one store transaction and reads at most two
ActiveIndex snapshots (actor and target). Guard order is fixed:

1. basic guards (ids present, not self, both users known)  -> ValidationError
2. no active BLOCK in either direction                     -> ConflictError
3. profile-state gate                                      -> StateError

Cancellation writes and the new signal commit or roll back together. A like
that completes a mutual pair also creates (or reopens) the pair's Match and
records the actor's approval in the same transaction.
Signal notifications are dispatched after commit; no notification ever raises.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..config_types import InteractionConfig
from ..db.interface import DatabaseInterface
from ..db.models import (
    EXCLUSIVE_TYPES, MatchRow, SignalRow, SignalType, InteractionMode,
    SuperLikeMeta, FreezeMeta, DislikeMeta, ReportMeta, SignalMeta,
)
from ..errors import ValidationError, ConflictError, RateLimitError, StateError
from ..providers.base import (
    ProfileState, ProfileStateProvider, NotificationSink, NotificationEvent, SettingsProvider, safe_emit,
)
from ..matches.lifecycle import MatchLifecycle
from ..providers.profiles import DatabaseProfileStateProvider
from .active_index import ActiveIndex, clamp_scan

logger = logging.getLogger(__name__)

# SettingsProvider keys; values override InteractionConfig at call time
K_SUPER_LIKE_DAILY_CAP = "interaction.super_like.daily_cap"
K_UNDO_DISLIKE_MINUTES = "interaction.dislike.undo_minutes"
K_FREEZE_DEFAULT_DAYS = "interaction.freeze.default_days"
K_FREEZE_MAX_DAYS = "interaction.freeze.max_days"
K_MAX_SCAN = "interaction.scan.max_active"

RELATIONSHIP_TYPES = EXCLUSIVE_TYPES + (SignalType.BLOCK,)


@dataclass
class InteractionContext:
    """Where and how an interaction happens."""
    mode: InteractionMode = InteractionMode.GLOBAL
    context_id: Optional[int] = None
    origin_context_id: Optional[int] = None
    source: str = "user"
    live_event_rules: bool = False
    enforce_profile_gate: bool = True

    @property
    def relaxed(self) -> bool:
        """Live-event rules: both sides need only a primary photo."""
        return self.live_event_rules or self.mode == InteractionMode.LIVE_EVENT

    @property
    def effective_source(self) -> str:
        return self.source.strip() if self.source and self.source.strip() else "user"


@dataclass
class InteractionResult:
    record: Optional[SignalRow]
    mutual_now: Optional[bool] = None  # None for non-positive operations
    message: str = ""
    match: Optional[MatchRow] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record": self.record.to_dict() if self.record else None,
            "mutual_now": self.mutual_now,
            "message": self.message,
            "match_id": self.match.id if self.match else None,
        }


def _clean_reason(reason: str | None) -> str | None:
    return reason.strip() if reason and reason.strip() else None


def _others(keep: SignalType) -> Tuple[SignalType, ...]:
    return tuple(t for t in EXCLUSIVE_TYPES if t is not keep)


class InteractionEngine:
    def __init__(
        self,
        db: DatabaseInterface,
        config: InteractionConfig | None = None,
        profiles: ProfileStateProvider | None = None,
        notifier: NotificationSink | None = None,
        settings: SettingsProvider | None = None,
        clock: Callable[[], datetime] | None = None,
        lifecycle: MatchLifecycle | None = None,
    ):
        self.db = db
        self.config = config or InteractionConfig()
        self.profiles = profiles or DatabaseProfileStateProvider(db)
        self.notifier = notifier
        self.settings = settings
        self.clock = clock or datetime.now
        self.lifecycle = lifecycle or MatchLifecycle(
            db, notifier=notifier, clock=self.clock, list_limit_max=self.config.list_limit_max,
            message_cooldown_seconds=self.config.message_cooldown_seconds,
        )

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------
    def _setting(self, key: str, default: int) -> int:
        if self.settings is None:
            return default
        try:
            return int(self.settings.get_int(key, default))
        except Exception as e:
            logger.debug(f"Setting {key} unavailable ({e}); using {default}")
            return default

    @property
    def super_like_daily_cap(self) -> int:
        return self._setting(K_SUPER_LIKE_DAILY_CAP, self.config.super_like_daily_cap)

    @property
    def undo_dislike_minutes(self) -> int:
        return self._setting(K_UNDO_DISLIKE_MINUTES, self.config.undo_dislike_minutes)

    @property
    def max_scan(self) -> int:
        return clamp_scan(self._setting(K_MAX_SCAN, self.config.max_scan))

    def _clamp_limit(self, limit: int) -> int:
        return max(1, min(int(limit), self.config.list_limit_max))

    def _clamp_freeze_days(self, days: int | None) -> int:
        default_days = self._setting(K_FREEZE_DEFAULT_DAYS, self.config.freeze_default_days)
        max_days = self._setting(K_FREEZE_MAX_DAYS, self.config.freeze_max_days)
        requested = default_days if days is None else days
        return max(1, min(requested, max_days))

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------
    @staticmethod
    def _require_pair(actor_id: int | None, target_id: int | None) -> None:
        if actor_id is None or target_id is None:
            raise ValidationError("actor_id and target_id are required")
        if actor_id == target_id:
            raise ValidationError("A user cannot target themselves")

    def _require_known(self, user_id: int) -> ProfileState:
        state = self.profiles.get(user_id)
        if state is None:
            raise ValidationError(f"User not found: {user_id}")
        return state

    @staticmethod
    def _require_not_blocked(actor_index: ActiveIndex, target_index: ActiveIndex) -> None:
        if (actor_index.get(SignalType.BLOCK, target_index.actor_id) is not None
                or target_index.get(SignalType.BLOCK, actor_index.actor_id) is not None):
            raise ConflictError(
                f"Users {actor_index.actor_id} and {target_index.actor_id} are blocked"
            )

    @staticmethod
    def _require_positive_gate(actor: ProfileState, target: ProfileState, ctx: InteractionContext,
                               super_like: bool) -> None:
        if ctx.relaxed:
            if not actor.has_primary_photo or not target.has_primary_photo:
                raise StateError("In live-event mode both users must have a primary photo")
            if super_like and ctx.context_id is None:
                raise ValidationError("A super-like in live-event mode requires a context id")
            return
        if not ctx.enforce_profile_gate:
            return
        if actor.deletion_requested:
            raise StateError("Account deletion is pending")
        if not actor.has_primary_photo:
            raise StateError("A primary photo is required to like")

    @staticmethod
    def _require_neutral_gate(actor: ProfileState, ctx: InteractionContext) -> None:
        if ctx.relaxed:
            if not actor.has_primary_photo:
                raise StateError("A primary photo is required")
            return
        if not ctx.enforce_profile_gate:
            return
        if actor.deletion_requested or not actor.has_primary_photo:
            raise StateError("Action blocked by profile state")

    def _open(self, actor_id: int, target_id: int) -> Tuple[ProfileState, ProfileState, ActiveIndex, ActiveIndex]:
        """Basic guards, then the two bulk reads used by the rest of the operation."""
        self._require_pair(actor_id, target_id)
        actor = self._require_known(actor_id)
        target = self._require_known(target_id)
        scan = self.max_scan
        actor_index = ActiveIndex.load(self.db, actor_id, scan)
        target_index = ActiveIndex.load(self.db, target_id, scan)
        return actor, target, actor_index, target_index

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def _deactivate(self, index: ActiveIndex, target_id: int, types, now: datetime,
                    reason: str | None = None) -> int:
        changed = 0
        for signal_type in types:
            existing = index.get(signal_type, target_id)
            if existing is None:
                continue
            self.db.deactivate_signal(existing.id, now, reason)
            index.mark_inactive(signal_type, target_id)
            changed += 1
        if changed:
            logger.debug(f"Deactivated {changed} signal(s) {index.actor_id}->{target_id}")
        return changed

    def _record(self, index: ActiveIndex, target_id: int, signal_type: SignalType, ctx: InteractionContext,
                now: datetime, meta: SignalMeta | None = None, reason: str | None = None) -> SignalRow:
        row = SignalRow(
            actor_id=index.actor_id,
            target_id=target_id,
            type=signal_type,
            created_at=now,
            updated_at=now,
            reason=reason,
            meta=meta,
            source=ctx.effective_source,
            context_id=ctx.context_id,
            mode=ctx.mode.value,
        )
        self.db.insert_signal(row)
        index.put(row)
        logger.debug(f"Recorded {signal_type.value} {index.actor_id}->{target_id} (id={row.id})")
        return row

    def _audit(self, actor_id: int, target_id: int, signal_type: SignalType, now: datetime,
               reason: str | None) -> SignalRow:
        row = SignalRow(
            actor_id=actor_id,
            target_id=target_id,
            type=signal_type,
            created_at=now,
            updated_at=now,
            reason=reason,
            mode=InteractionMode.GLOBAL.value,
        )
        return self.db.insert_signal(row)

    # ------------------------------------------------------------------
    # Positive signals
    # ------------------------------------------------------------------
    def like(self, actor_id: int, target_id: int, ctx: InteractionContext | None = None) -> InteractionResult:
        ctx = ctx or InteractionContext()
        with self.db.transaction():
            actor, target, actor_index, target_index = self._open(actor_id, target_id)
            self._require_not_blocked(actor_index, target_index)
            self._require_positive_gate(actor, target, ctx, super_like=False)

            now = self.clock()
            existing = actor_index.get(SignalType.LIKE, target_id)
            created = existing is None
            if created:
                self._deactivate(actor_index, target_id, _others(SignalType.LIKE), now)
                record = self._record(actor_index, target_id, SignalType.LIKE, ctx, now)
            else:
                # Already liked (plain or super); keep the existing row
                record = existing
            mutual = target_index.get(SignalType.LIKE, actor_id) is not None
            match = self._attach_match(actor_id, target_id, ctx) if mutual and created else None

        if mutual:
            if created:
                self._notify_mutual(actor_id, target_id)
            return InteractionResult(record, True, "Mutual like detected", match)
        return InteractionResult(record, False, "Like recorded" if created else "Like already active")

    def super_like(self, actor_id: int, target_id: int, ctx: InteractionContext | None = None) -> InteractionResult:
        ctx = ctx or InteractionContext()
        with self.db.transaction():
            actor, target, actor_index, target_index = self._open(actor_id, target_id)
            self._require_not_blocked(actor_index, target_index)
            self._require_positive_gate(actor, target, ctx, super_like=True)

            now = self.clock()
            cap = self.super_like_daily_cap
            self._require_super_like_quota(actor_index, cap, now)

            # A super-like replaces any plain like, so every exclusive type goes
            self._deactivate(actor_index, target_id, EXCLUSIVE_TYPES, now)
            record = self._record(actor_index, target_id, SignalType.LIKE, ctx, now,
                                  meta=SuperLikeMeta(daily_cap=cap))
            mutual = target_index.get(SignalType.LIKE, actor_id) is not None
            match = self._attach_match(actor_id, target_id, ctx) if mutual else None

        safe_emit(self.notifier, NotificationEvent.SUPER_LIKE_RECEIVED,
                  {"actor_id": actor_id, "target_id": target_id, "signal_id": record.id})
        if mutual:
            self._notify_mutual(actor_id, target_id)
            return InteractionResult(record, True, "Mutual like detected (via super-like)", match)
        return InteractionResult(record, False, "Super-like recorded")

    def _require_super_like_quota(self, actor_index: ActiveIndex, cap: int, now: datetime) -> None:
        if cap <= 0:
            raise RateLimitError("Super-likes are disabled")
        today = now.date()
        used = sum(
            1 for s in actor_index.signals_of_type(SignalType.LIKE)
            if s.is_super_like and s.created_at.date() == today
        )
        if used >= cap:
            raise RateLimitError(f"Daily super-like limit reached ({cap})")

    def _attach_match(self, actor_id: int, target_id: int, ctx: InteractionContext) -> MatchRow:
        """Create or reopen the pair's Match and approve the actor's side."""
        origin = ctx.origin_context_id if ctx.origin_context_id is not None else ctx.context_id
        match = self.lifecycle.create_or_get(actor_id, target_id, ctx.context_id, origin)
        return self.lifecycle.approve(match.id, actor_id)

    def _notify_mutual(self, actor_id: int, target_id: int) -> None:
        safe_emit(self.notifier, NotificationEvent.MUTUAL_LIKE, {"user_ids": [actor_id, target_id]})

    # ------------------------------------------------------------------
    # Neutral / negative signals
    # ------------------------------------------------------------------
    def dislike(self, actor_id: int, target_id: int, ctx: InteractionContext | None = None) -> InteractionResult:
        ctx = ctx or InteractionContext()
        with self.db.transaction():
            actor, _, actor_index, target_index = self._open(actor_id, target_id)
            self._require_not_blocked(actor_index, target_index)
            self._require_neutral_gate(actor, ctx)

            now = self.clock()
            existing = actor_index.get(SignalType.DISLIKE, target_id)
            if existing is not None:
                return InteractionResult(existing, None, "Dislike already active")
            self._deactivate(actor_index, target_id, _others(SignalType.DISLIKE), now)
            record = self._record(actor_index, target_id, SignalType.DISLIKE, ctx, now,
                                  meta=DislikeMeta(undo_minutes=self.undo_dislike_minutes))
        return InteractionResult(record, None, "Dislike recorded")

    def freeze(self, actor_id: int, target_id: int, days: int | None = None,
               ctx: InteractionContext | None = None) -> InteractionResult:
        ctx = ctx or InteractionContext()
        with self.db.transaction():
            actor, _, actor_index, target_index = self._open(actor_id, target_id)
            self._require_not_blocked(actor_index, target_index)
            self._require_neutral_gate(actor, ctx)

            now = self.clock()
            clamped = self._clamp_freeze_days(days)
            # A new freeze replaces the current one so the window restarts
            self._deactivate(actor_index, target_id, EXCLUSIVE_TYPES, now)
            record = self._record(actor_index, target_id, SignalType.FREEZE, ctx, now,
                                  meta=FreezeMeta(days=clamped, until=now + timedelta(days=clamped)))
        return InteractionResult(record, None, f"Freeze recorded for {clamped} day(s)")

    def block(self, actor_id: int, target_id: int, reason: str | None = None,
              ctx: InteractionContext | None = None) -> InteractionResult:
        ctx = ctx or InteractionContext()
        with self.db.transaction():
            _, _, actor_index, target_index = self._open(actor_id, target_id)
            now = self.clock()
            self._deactivate(actor_index, target_id, RELATIONSHIP_TYPES, now)
            self._deactivate(target_index, actor_id, RELATIONSHIP_TYPES, now)
            record = self._record(actor_index, target_id, SignalType.BLOCK, ctx, now,
                                  reason=_clean_reason(reason))
        logger.info(f"User {actor_id} blocked {target_id}")
        return InteractionResult(record, None, "Blocked")

    def view_profile(self, viewer_id: int, profile_user_id: int, ctx: InteractionContext | None = None) -> int:
        """Record a profile view and return the profile's view count."""
        ctx = ctx or InteractionContext()
        if viewer_id is not None and viewer_id == profile_user_id:
            return self.profile_view_count(profile_user_id)
        with self.db.transaction():
            _, _, viewer_index, profile_index = self._open(viewer_id, profile_user_id)
            self._require_not_blocked(viewer_index, profile_index)
            # Views are never deduplicated, so bypass the index's first-write-wins put
            now = self.clock()
            self.db.insert_signal(SignalRow(
                actor_id=viewer_id,
                target_id=profile_user_id,
                type=SignalType.VIEW,
                created_at=now,
                updated_at=now,
                source=ctx.effective_source,
                context_id=ctx.context_id,
                mode=ctx.mode.value,
            ))
            return self.db.count_active_by_target(profile_user_id, SignalType.VIEW)

    def profile_view_count(self, profile_user_id: int | None) -> int:
        if profile_user_id is None:
            return 0
        return self.db.count_active_by_target(profile_user_id, SignalType.VIEW)

    def report_user(self, reporter_id: int, target_id: int, report_type: str | None = None,
                    details: str | None = None, ctx: InteractionContext | None = None) -> InteractionResult:
        """Record an audit-only report signal (type UNKNOWN with ReportMeta)."""
        ctx = ctx or InteractionContext()
        with self.db.transaction():
            _, _, reporter_index, target_index = self._open(reporter_id, target_id)
            self._require_not_blocked(reporter_index, target_index)
            detail_text = _clean_reason(details)
            if detail_text is not None:
                detail_text = detail_text[: self.config.report_details_max]
            meta = ReportMeta(report_type=_clean_reason(report_type), details=detail_text)
            now = self.clock()
            row = SignalRow(
                actor_id=reporter_id,
                target_id=target_id,
                type=SignalType.UNKNOWN,
                created_at=now,
                updated_at=now,
                meta=meta,
                source=ctx.effective_source,
                context_id=ctx.context_id,
                mode=ctx.mode.value,
            )
            self.db.insert_signal(row)
        logger.info(f"User {reporter_id} reported {target_id} ({meta.report_type or 'unspecified'})")
        return InteractionResult(row, None, "Report recorded")

    # ------------------------------------------------------------------
    # Reversals
    # ------------------------------------------------------------------
    def _cancel(self, actor_id: int, target_id: int, signal_type: SignalType, reason: str | None,
                predicate: Callable[[SignalRow], bool] | None = None) -> bool:
        self._require_pair(actor_id, target_id)
        with self.db.transaction():
            index = ActiveIndex.load(self.db, actor_id, self.max_scan)
            existing = index.get(signal_type, target_id)
            if existing is None or (predicate is not None and not predicate(existing)):
                return False
            self._deactivate(index, target_id, (signal_type,), self.clock(), _clean_reason(reason))
            return True

    def cancel_like(self, actor_id: int, target_id: int, reason: str | None = None) -> bool:
        return self._cancel(actor_id, target_id, SignalType.LIKE, reason)

    def cancel_super_like(self, actor_id: int, target_id: int, reason: str | None = None) -> bool:
        return self._cancel(actor_id, target_id, SignalType.LIKE, reason, lambda s: s.is_super_like)

    def cancel_freeze(self, actor_id: int, target_id: int, reason: str | None = None) -> bool:
        return self._cancel(actor_id, target_id, SignalType.FREEZE, reason)

    def cancel_dislike(self, actor_id: int, target_id: int, reason: str | None = None) -> bool:
        return self._cancel(actor_id, target_id, SignalType.DISLIKE, reason)

    def undo_dislike(self, actor_id: int, target_id: int) -> bool:
        """Withdraw a recent dislike.

        Returns False when there is nothing to undo; raises RateLimitError
        once the undo window has passed.
        """
        self._require_pair(actor_id, target_id)
        with self.db.transaction():
            index = ActiveIndex.load(self.db, actor_id, self.max_scan)
            dislike = index.get(SignalType.DISLIKE, target_id)
            if dislike is None:
                return False
            now = self.clock()
            window = timedelta(minutes=max(1, self.undo_dislike_minutes))
            if dislike.created_at < now - window:
                raise RateLimitError("Undo window for this dislike has expired")
            self._deactivate(index, target_id, (SignalType.DISLIKE,), now)
            return True

    def _lift(self, actor_id: int, target_id: int, signal_type: SignalType, audit_type: SignalType,
              reason: str | None) -> bool:
        self._require_pair(actor_id, target_id)
        reason = _clean_reason(reason)
        with self.db.transaction():
            index = ActiveIndex.load(self.db, actor_id, self.max_scan)
            if index.get(signal_type, target_id) is None:
                return False
            now = self.clock()
            self._deactivate(index, target_id, (signal_type,), now, reason)
            self._audit(actor_id, target_id, audit_type, now, reason)
        logger.info(f"User {actor_id} lifted {signal_type.value.lower()} on {target_id}")
        return True

    def unfreeze(self, actor_id: int, target_id: int, reason: str | None = None) -> bool:
        return self._lift(actor_id, target_id, SignalType.FREEZE, SignalType.UNFREEZE, reason)

    def unblock(self, actor_id: int, target_id: int, reason: str | None = None) -> bool:
        return self._lift(actor_id, target_id, SignalType.BLOCK, SignalType.UNBLOCK, reason)

    def cleanup_expired_freezes(self, actor_id: int | None) -> int:
        """Deactivate the actor's freezes whose ``until`` has passed."""
        if actor_id is None:
            return 0
        with self.db.transaction():
            index = ActiveIndex.load(self.db, actor_id, self.max_scan)
            now = self.clock()
            changed = 0
            for signal in index.signals_of_type(SignalType.FREEZE):
                meta = signal.meta
                if isinstance(meta, FreezeMeta) and meta.until is not None and meta.until < now:
                    changed += self._deactivate(index, signal.target_id, (SignalType.FREEZE,), now)
        if changed:
            logger.debug(f"Expired {changed} freeze(s) for user {actor_id}")
        return changed

    # ------------------------------------------------------------------
    # Read / list operations
    # ------------------------------------------------------------------
    def _targets(self, actor_id: int | None, signal_type: SignalType, limit: int,
                 predicate: Callable[[SignalRow], bool] | None = None) -> List[int]:
        if actor_id is None:
            return []
        lim = self._clamp_limit(limit)
        index = ActiveIndex.load(self.db, actor_id, self.max_scan)
        signals = index.signals_of_type(signal_type)
        if predicate is not None:
            signals = [s for s in signals if predicate(s)]
        return [s.target_id for s in signals[:lim]]

    def likes_given(self, actor_id: int, limit: int = 100) -> List[int]:
        return self._targets(actor_id, SignalType.LIKE, limit, lambda s: not s.is_super_like)

    def super_likes_given(self, actor_id: int, limit: int = 100) -> List[int]:
        return self._targets(actor_id, SignalType.LIKE, limit, lambda s: s.is_super_like)

    def dislikes_given(self, actor_id: int, limit: int = 100) -> List[int]:
        return self._targets(actor_id, SignalType.DISLIKE, limit)

    def freezes_given(self, actor_id: int, limit: int = 100) -> List[int]:
        self.cleanup_expired_freezes(actor_id)
        return self._targets(actor_id, SignalType.FREEZE, limit)

    def likes_received(self, user_id: int, limit: int = 100) -> List[int]:
        if user_id is None:
            return []
        lim = self._clamp_limit(limit)
        actors: List[int] = []
        for signal in self.db.list_active_by_target(user_id, SignalType.LIKE, self.max_scan):
            if signal.actor_id not in actors:
                actors.append(signal.actor_id)
            if len(actors) >= lim:
                break
        return actors

    def mutual_targets(self, actor_id: int, limit: int = 100) -> List[int]:
        """Users the actor likes who like the actor back, most recent first."""
        if actor_id is None:
            return []
        lim = self._clamp_limit(limit)
        scan = self.max_scan
        index = ActiveIndex.load(self.db, actor_id, scan)
        liked_by = {s.actor_id for s in self.db.list_active_by_target(actor_id, SignalType.LIKE, scan)}
        result = [t for t in index.targets_of_type(SignalType.LIKE) if t in liked_by]
        return result[:lim]


__all__ = [
    "InteractionContext",
    "InteractionResult",
    "InteractionEngine",
    "K_SUPER_LIKE_DAILY_CAP",
    "K_UNDO_DISLIKE_MINUTES",
    "K_FREEZE_DEFAULT_DAYS",
    "K_FREEZE_MAX_DAYS",
    "K_MAX_SCAN",
]
