"""Unit tests for InteractionEngine against the in-memory store."""
from datetime import timedelta

import pytest

from wme.config_types import InteractionConfig
from wme.db.models import (
    EXCLUSIVE_TYPES, MatchStatus, SignalType, InteractionMode, SuperLikeMeta, FreezeMeta, ReportMeta, DislikeMeta,
)
from wme.errors import ValidationError, ConflictError, RateLimitError, StateError
from wme.interactions.engine import (
    InteractionContext, InteractionEngine, K_SUPER_LIKE_DAILY_CAP, K_FREEZE_MAX_DAYS, K_MAX_SCAN,
)
from wme.providers.base import NotificationEvent
from wme.providers.settings import StaticSettings
from tests.mocks.collaborators import FailingSink, BrokenSettings


def _active_types(db, actor, target):
    return sorted(s.type.value for s in db.active_signals(actor, target))


class TestMutualDetection:

    def test_like_then_reverse_like_is_mutual(self, engine, sink):
        first = engine.like(10, 20)
        assert first.mutual_now is False
        assert first.record.type == SignalType.LIKE

        second = engine.like(20, 10)
        assert second.mutual_now is True
        assert sink.types().count(NotificationEvent.MUTUAL_LIKE) == 1

    def test_like_is_idempotent(self, engine, mock_db):
        first = engine.like(10, 20)
        again = engine.like(10, 20)
        assert again.record.id == first.record.id
        assert again.message == "Like already active"
        assert _active_types(mock_db, 10, 20) == ["LIKE"]

    def test_repeated_like_on_mutual_pair_does_not_renotify(self, engine, sink):
        engine.like(10, 20)
        engine.like(20, 10)
        result = engine.like(20, 10)
        assert result.mutual_now is True
        assert sink.types().count(NotificationEvent.MUTUAL_LIKE) == 1

    def test_operation_uses_two_bulk_reads(self, engine, mock_db):
        engine.like(20, 10)
        mock_db.call_log.clear()
        engine.like(10, 20)
        assert mock_db.call_log.count('list_active_by_actor') == 2


class TestMutualLikeCreatesMatch:

    def test_one_sided_like_leaves_no_match(self, engine, mock_db):
        result = engine.like(10, 20)
        assert result.match is None
        assert mock_db.matches == {}

    def test_reverse_like_creates_match_approved_by_actor(self, engine, mock_db, sink):
        engine.like(10, 20)
        result = engine.like(20, 10)

        assert len(mock_db.matches) == 1
        match = result.match
        assert (match.user_low_id, match.user_high_id) == (10, 20)
        assert match.user2_approved is True
        assert match.user1_approved is False
        assert match.status == MatchStatus.ONE_SIDED
        assert match.source == "global"
        assert result.to_dict()["match_id"] == match.id
        assert NotificationEvent.MATCH_CREATED in sink.types()

    def test_match_carries_meeting_and_origin_context(self, engine, mock_db):
        engine.like(10, 20, InteractionContext(context_id=7))
        match = engine.like(20, 10, InteractionContext(context_id=9, origin_context_id=4)).match
        assert match.meeting_context_id == 9
        assert match.origin_context_id == 4
        assert match.source == "wedding"

    def test_origin_defaults_to_current_context(self, engine):
        engine.like(10, 20)
        match = engine.like(20, 10, InteractionContext(context_id=9)).match
        assert match.origin_context_id == 9

    def test_repeated_like_leaves_match_alone(self, engine, mock_db):
        engine.like(10, 20)
        engine.like(20, 10)
        mock_db.call_log.clear()
        again = engine.like(20, 10)
        assert again.match is None
        assert 'update_match' not in mock_db.call_log
        assert 'insert_match' not in mock_db.call_log

    def test_mutual_like_reopens_closed_match(self, engine, lifecycle, mock_db):
        closed = lifecycle.create_or_get(10, 20)
        lifecycle.unmatch(closed.id, 10)
        engine.like(10, 20)
        match = engine.like(20, 10).match
        assert match.id == closed.id
        assert match.active is True
        assert match.user2_approved is True
        assert len(mock_db.matches) == 1

    def test_super_like_completing_pair_approves_actor_side(self, engine):
        engine.like(20, 10)
        result = engine.super_like(10, 20)
        assert result.match.user1_approved is True
        assert result.match.user2_approved is False

    def test_failed_match_write_rolls_back_like(self, engine, mock_db, monkeypatch):
        engine.like(10, 20)

        def boom(match):
            raise RuntimeError("disk full")

        monkeypatch.setattr(mock_db, "insert_match", boom)
        with pytest.raises(RuntimeError):
            engine.like(20, 10)
        assert _active_types(mock_db, 20, 10) == []
        assert mock_db.matches == {}


class TestCancellation:

    @pytest.mark.parametrize("first", EXCLUSIVE_TYPES)
    @pytest.mark.parametrize("second", EXCLUSIVE_TYPES)
    def test_one_exclusive_signal_per_direction(self, engine, mock_db, first, second):
        record = {
            SignalType.LIKE: engine.like,
            SignalType.DISLIKE: engine.dislike,
            SignalType.FREEZE: engine.freeze,
        }
        record[first](10, 30)
        record[second](10, 30)
        assert _active_types(mock_db, 10, 30) == [second.value]

    def test_block_scenario(self, engine, mock_db):
        assert engine.like(10, 20).mutual_now is False
        assert engine.like(20, 10).mutual_now is True

        result = engine.block(10, 20)
        assert result.record.type == SignalType.BLOCK
        assert _active_types(mock_db, 10, 20) == ["BLOCK"]
        assert _active_types(mock_db, 20, 10) == []

        with pytest.raises(ConflictError):
            engine.like(20, 10)
        with pytest.raises(ConflictError):
            engine.like(10, 20)

    def test_block_deactivates_everything_in_both_directions(self, engine, mock_db):
        engine.freeze(10, 20)
        engine.dislike(20, 10)
        engine.block(20, 10)
        engine.block(10, 20)
        assert _active_types(mock_db, 10, 20) == ["BLOCK"]
        assert _active_types(mock_db, 20, 10) == []

    def test_dislike_deactivates_like_only_in_its_direction(self, engine, mock_db):
        engine.like(10, 20)
        engine.like(20, 10)
        engine.dislike(10, 20)
        assert _active_types(mock_db, 10, 20) == ["DISLIKE"]
        assert _active_types(mock_db, 20, 10) == ["LIKE"]

    def test_dislike_deactivates_freeze(self, engine, mock_db):
        engine.freeze(10, 30)
        engine.dislike(10, 30)
        assert _active_types(mock_db, 10, 30) == ["DISLIKE"]

    def test_like_deactivates_dislike_and_freeze(self, engine, mock_db):
        engine.dislike(10, 20)
        engine.like(10, 20)
        assert _active_types(mock_db, 10, 20) == ["LIKE"]
        engine.freeze(10, 30)
        engine.like(10, 30)
        assert _active_types(mock_db, 10, 30) == ["LIKE"]

    def test_freeze_deactivates_like_and_dislike(self, engine, mock_db):
        engine.like(10, 20)
        engine.freeze(10, 20)
        assert _active_types(mock_db, 10, 20) == ["FREEZE"]

    def test_super_like_replaces_plain_like(self, engine, mock_db, sink):
        engine.like(10, 20)
        result = engine.super_like(10, 20)
        active = mock_db.active_signals(10, 20)
        assert len(active) == 1
        assert isinstance(active[0].meta, SuperLikeMeta)
        assert result.record.is_super_like
        assert NotificationEvent.SUPER_LIKE_RECEIVED in sink.types()

    def test_super_like_reports_mutual(self, engine):
        engine.like(20, 10)
        assert engine.super_like(10, 20).mutual_now is True

    def test_failed_write_rolls_back_cancellations(self, engine, mock_db, monkeypatch):
        engine.like(10, 20)

        def boom(signal):
            raise RuntimeError("disk full")

        monkeypatch.setattr(mock_db, "insert_signal", boom)
        with pytest.raises(RuntimeError):
            engine.dislike(10, 20)
        assert _active_types(mock_db, 10, 20) == ["LIKE"]
        assert mock_db.call_log[-1] == 'rollback'


class TestGuards:

    def test_self_and_missing_ids(self, engine):
        with pytest.raises(ValidationError):
            engine.like(10, 10)
        with pytest.raises(ValidationError):
            engine.like(None, 20)

    def test_unknown_user(self, engine):
        with pytest.raises(ValidationError):
            engine.like(10, 99)

    def test_profile_gate_requires_photo(self, engine, profiles):
        profiles.add(40, photo=False)
        with pytest.raises(StateError):
            engine.like(40, 20)
        with pytest.raises(StateError):
            engine.dislike(40, 20)

    def test_profile_gate_rejects_pending_deletion(self, engine, profiles):
        profiles.add(41, deletion=True)
        with pytest.raises(StateError):
            engine.like(41, 20)

    def test_block_check_runs_before_profile_gate(self, engine, profiles):
        profiles.add(40, photo=False)
        engine.block(20, 40)  # blocking needs no photo
        with pytest.raises(ConflictError):
            engine.like(40, 20)

    def test_gate_can_be_skipped_outside_live_mode(self, engine, profiles):
        profiles.add(40, photo=False)
        ctx = InteractionContext(enforce_profile_gate=False, source="admin")
        result = engine.like(40, 20, ctx)
        assert result.record.source == "admin"

    def test_blank_source_defaults_to_user(self, engine):
        result = engine.like(10, 20, InteractionContext(source="   "))
        assert result.record.source == "user"


class TestLiveEventRules:

    def test_live_mode_needs_photos_on_both_sides(self, engine, profiles):
        profiles.add(50, photo=False)
        live = InteractionContext(mode=InteractionMode.LIVE_EVENT, context_id=5)
        with pytest.raises(StateError):
            engine.like(10, 50, live)
        # outside live mode only the actor is gated
        assert engine.like(10, 50).record is not None

    def test_live_mode_ignores_pending_deletion(self, engine, profiles):
        profiles.add(41, deletion=True)
        live = InteractionContext(live_event_rules=True, context_id=5)
        assert engine.like(41, 20, live).record.context_id == 5

    def test_live_super_like_requires_context(self, engine):
        with pytest.raises(ValidationError):
            engine.super_like(10, 20, InteractionContext(mode=InteractionMode.LIVE_EVENT))
        result = engine.super_like(10, 20, InteractionContext(mode=InteractionMode.LIVE_EVENT, context_id=3))
        assert result.record.mode == "LIVE_EVENT"

    def test_past_event_mode_is_recorded_with_strict_gate(self, engine, profiles):
        profiles.add(42, deletion=True)
        past = InteractionContext(mode=InteractionMode.PAST_EVENT, context_id=4)
        with pytest.raises(StateError):
            engine.like(42, 20, past)
        record = engine.like(10, 20, past).record
        assert record.mode == "PAST_EVENT"
        assert record.context_id == 4


class TestRateLimits:

    def test_sixth_super_like_in_a_day_is_rejected(self, engine, profiles, clock):
        for target in range(101, 107):
            profiles.add(target)
        for target in range(101, 106):
            engine.super_like(10, target)
        with pytest.raises(RateLimitError):
            engine.super_like(10, 106)
        clock.advance(days=1)
        assert engine.super_like(10, 106).record.is_super_like

    def test_cap_zero_disables_super_likes(self, mock_db, profiles, clock):
        engine = InteractionEngine(mock_db, InteractionConfig(super_like_daily_cap=0), profiles=profiles, clock=clock)
        with pytest.raises(RateLimitError):
            engine.super_like(10, 20)

    def test_settings_override_config(self, mock_db, profiles, clock):
        settings = StaticSettings({K_SUPER_LIKE_DAILY_CAP: 1, K_FREEZE_MAX_DAYS: 7})
        engine = InteractionEngine(mock_db, profiles=profiles, settings=settings, clock=clock)
        engine.super_like(10, 20)
        with pytest.raises(RateLimitError):
            engine.super_like(10, 30)
        assert engine.freeze(10, 30, days=20).record.meta.days == 7

    def test_broken_settings_fall_back_to_config(self, mock_db, profiles, clock):
        engine = InteractionEngine(mock_db, profiles=profiles, settings=BrokenSettings(), clock=clock)
        assert engine.super_like(10, 20).record.meta.daily_cap == 5
        assert engine.freeze(10, 30).record.meta.days == 14

    def test_freeze_days_are_clamped(self, engine, clock):
        meta = engine.freeze(10, 20, days=90).record.meta
        assert isinstance(meta, FreezeMeta)
        assert meta.days == 30
        assert meta.until == clock.now + timedelta(days=30)
        assert engine.freeze(10, 20, days=0).record.meta.days == 1
        assert engine.freeze(10, 20).record.meta.days == 14

    def test_undo_dislike_window(self, engine, clock, mock_db):
        assert engine.undo_dislike(10, 20) is False

        result = engine.dislike(10, 20)
        assert isinstance(result.record.meta, DislikeMeta)
        clock.advance(minutes=5)
        assert engine.undo_dislike(10, 20) is True
        assert _active_types(mock_db, 10, 20) == []

        engine.dislike(10, 20)
        clock.advance(minutes=11)
        with pytest.raises(RateLimitError):
            engine.undo_dislike(10, 20)


class TestReversals:

    def test_cancel_like_is_idempotent(self, engine, mock_db):
        like = engine.like(10, 20).record
        assert engine.cancel_like(10, 20, reason="  changed mind ") is True
        assert engine.cancel_like(10, 20) is False
        assert mock_db.signals[like.id].reason == "changed mind"

    def test_cancel_super_like_ignores_plain_like(self, engine, mock_db):
        engine.like(10, 20)
        assert engine.cancel_super_like(10, 20) is False
        assert _active_types(mock_db, 10, 20) == ["LIKE"]
        engine.super_like(10, 30)
        assert engine.cancel_super_like(10, 30) is True

    def test_cancel_freeze_and_dislike(self, engine):
        engine.freeze(10, 20)
        engine.dislike(10, 30)
        assert engine.cancel_freeze(10, 20) is True
        assert engine.cancel_dislike(10, 30) is True
        assert engine.cancel_dislike(10, 30) is False

    def test_unfreeze_records_audit_signal(self, engine, mock_db):
        assert engine.unfreeze(10, 20) is False
        engine.freeze(10, 20)
        assert engine.unfreeze(10, 20, reason="met again") is True
        audit = mock_db.active_signals(10, 20)
        assert [s.type for s in audit] == [SignalType.UNFREEZE]
        assert audit[0].reason == "met again"

    def test_unblock_allows_new_signals(self, engine, mock_db):
        engine.block(10, 20)
        assert engine.unblock(10, 20) is True
        assert _active_types(mock_db, 10, 20) == ["UNBLOCK"]
        assert engine.like(20, 10).mutual_now is False

    def test_expired_freezes_are_cleaned_before_listing(self, engine, clock):
        engine.freeze(10, 20, days=1)
        assert engine.freezes_given(10) == [20]
        clock.advance(days=2)
        assert engine.freezes_given(10) == []

    def test_cleanup_reports_expired_count(self, engine, clock):
        engine.freeze(10, 20, days=1)
        engine.freeze(10, 30, days=5)
        clock.advance(days=2)
        assert engine.cleanup_expired_freezes(10) == 1
        assert engine.cleanup_expired_freezes(10) == 0
        assert engine.freezes_given(10) == [30]


class TestListsAndViews:

    def test_given_lists(self, engine, clock):
        engine.like(10, 20)
        clock.advance(seconds=1)
        engine.super_like(10, 30)
        assert engine.likes_given(10) == [20]
        assert engine.super_likes_given(10) == [30]
        engine.dislike(20, 30)
        assert engine.dislikes_given(20) == [30]

    def test_likes_received_most_recent_first(self, engine, clock):
        engine.like(10, 20)
        clock.advance(seconds=1)
        engine.like(30, 20)
        assert engine.likes_received(20) == [30, 10]
        assert engine.likes_received(20, limit=1) == [30]

    def test_mutual_targets(self, engine):
        engine.like(10, 20)
        engine.like(20, 10)
        engine.like(10, 30)
        assert engine.mutual_targets(10) == [20]

    def test_scan_setting_below_floor_is_clamped(self, mock_db, profiles, clock):
        engine = InteractionEngine(mock_db, profiles=profiles, settings=StaticSettings({K_MAX_SCAN: 0}), clock=clock)
        engine.like(10, 20)
        engine.like(20, 10)
        assert engine.max_scan == 50
        assert engine.likes_received(20) == [10]
        assert engine.mutual_targets(10) == [20]

    def test_limit_is_clamped(self, engine, clock):
        engine.like(10, 20)
        clock.advance(seconds=1)
        engine.like(10, 30)
        assert len(engine.likes_given(10, limit=0)) == 1
        assert len(engine.likes_given(10, limit=10_000)) == 2

    def test_views_are_counted_without_dedup(self, engine):
        assert engine.view_profile(10, 20) == 1
        assert engine.view_profile(30, 20) == 2
        assert engine.view_profile(10, 20) == 3
        # viewing yourself only reads the count
        assert engine.view_profile(20, 20) == 3
        assert engine.profile_view_count(20) == 3

    def test_blocked_viewer_is_rejected(self, engine):
        engine.block(20, 10)
        with pytest.raises(ConflictError):
            engine.view_profile(10, 20)

    def test_report_truncates_details(self, engine):
        result = engine.report_user(10, 20, report_type=" spam ", details="x" * 1000)
        assert result.record.type == SignalType.UNKNOWN
        meta = result.record.meta
        assert isinstance(meta, ReportMeta)
        assert meta.report_type == "spam"
        assert len(meta.details) == 800
        assert result.mutual_now is None


def test_notification_failure_never_breaks_signal(mock_db, profiles, clock):
    engine = InteractionEngine(mock_db, profiles=profiles, notifier=FailingSink(), clock=clock)
    engine.like(10, 20)
    assert engine.like(20, 10).mutual_now is True
    assert engine.super_like(10, 30).record.is_super_like
