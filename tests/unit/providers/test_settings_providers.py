import logging

from tests.mocks.collaborators import FailingSink, RecordingSink
from wme.providers.base import NotificationEvent, safe_emit
from wme.providers.notifications import LoggingNotificationSink, NullNotificationSink, build_sink
from wme.providers.profiles import DatabaseProfileStateProvider, DatabaseCohortSource
from wme.providers.settings import StaticSettings, DatabaseSettings, META_PREFIX


class TestStaticSettings:

    def test_values_and_defaults(self):
        settings = StaticSettings({"a": 3, "b": "7", "flag": "yes", "off": 0, "junk": "many"})
        assert settings.get_int("a", 1) == 3
        assert settings.get_int("b", 1) == 7
        assert settings.get_int("missing", 1) == 1
        assert settings.get_int("junk", 4) == 4
        assert settings.get_bool("flag", False) is True
        assert settings.get_bool("off", True) is False
        assert settings.get_bool("junk", True) is True

    def test_bool_is_not_an_int(self):
        assert StaticSettings({"cap": True}).get_int("cap", 5) == 5


class TestDatabaseSettings:

    def test_namespaced_meta_keys(self, mock_db):
        settings = DatabaseSettings(mock_db)
        settings.set("interaction.super_like.daily_cap", 2)
        assert mock_db.get_meta(META_PREFIX + "interaction.super_like.daily_cap") == "2"
        assert settings.get_int("interaction.super_like.daily_cap", 5) == 2
        assert settings.get_int("unset", 5) == 5

    def test_unparseable_value_uses_default(self, mock_db):
        mock_db.set_meta(META_PREFIX + "cap", "lots")
        mock_db.set_meta(META_PREFIX + "flag", "maybe")
        settings = DatabaseSettings(mock_db)
        assert settings.get_int("cap", 9) == 9
        assert settings.get_bool("flag", False) is False


class TestProfileProviders:

    def test_state_from_profile_rows(self, mock_db, sample_profile):
        mock_db.upsert_profile(sample_profile(1, has_primary_photo=False))
        provider = DatabaseProfileStateProvider(mock_db)
        state = provider.get(1)
        assert state.has_primary_photo is False
        assert state.basic_profile_completed is True
        assert provider.get(2) is None

    def test_cohort_members(self, mock_db, sample_profile):
        for user_id, event in ((3, 7), (1, 7), (2, 8)):
            mock_db.upsert_profile(sample_profile(user_id, last_event_id=event))
        assert [p.user_id for p in DatabaseCohortSource(mock_db).members(7)] == [1, 3]


class TestNotifications:

    def test_safe_emit_swallows_sink_failure(self, caplog):
        with caplog.at_level(logging.WARNING):
            safe_emit(FailingSink(), NotificationEvent.MATCH_CREATED, {"match_id": 1})
        assert "notification" in caplog.text.lower()

    def test_safe_emit_with_no_sink(self):
        safe_emit(None, NotificationEvent.MATCH_CREATED, {"match_id": 1})

    def test_recording(self):
        sink = RecordingSink()
        safe_emit(sink, NotificationEvent.OPENING_RECEIVED, {"message_id": 4})
        assert sink.events == [(NotificationEvent.OPENING_RECEIVED, {"message_id": 4})]

    def test_build_sink(self):
        assert isinstance(build_sink(True), LoggingNotificationSink)
        assert isinstance(build_sink(False), NullNotificationSink)

    def test_logging_sink_writes_payload(self, caplog):
        with caplog.at_level(logging.INFO, logger="wme.providers.notifications"):
            LoggingNotificationSink().emit(NotificationEvent.MUTUAL_LIKE, {"actor_id": 1, "target_id": 2})
        assert "MUTUAL_LIKE" in caplog.text
        assert '"target_id": 2' in caplog.text
