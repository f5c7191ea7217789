from __future__ import annotations
import pytest

from wme.config_types import InteractionConfig
from wme.db.models import ProfileRow
from wme.interactions.engine import InteractionEngine
from wme.matches.lifecycle import MatchLifecycle
from wme.matches.opening import OpeningMessageGate
from .collaborators import FakeClock, FakeProfiles, RecordingSink
from .mock_database import MockDatabase


@pytest.fixture
def mock_db():
    return MockDatabase()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def profiles():
    """Users 10, 20, 30 with complete profiles and photos."""
    fake = FakeProfiles()
    for user_id in (10, 20, 30):
        fake.add(user_id)
    return fake


@pytest.fixture
def engine(mock_db, profiles, sink, clock, lifecycle):
    return InteractionEngine(mock_db, InteractionConfig(), profiles=profiles, notifier=sink, clock=clock,
                             lifecycle=lifecycle)


@pytest.fixture
def lifecycle(mock_db, sink, clock):
    return MatchLifecycle(mock_db, notifier=sink, clock=clock)


@pytest.fixture
def gate(mock_db, lifecycle, profiles, sink, clock):
    return OpeningMessageGate(mock_db, lifecycle, profiles=profiles, notifier=sink, clock=clock)


@pytest.fixture
def sample_profile():
    def _make(user_id: int, **overrides) -> ProfileRow:
        values = dict(
            user_id=user_id,
            gender='f',
            age=28,
            preferred_age_min=25,
            preferred_age_max=35,
            area='Jerusalem',
            religious_level='traditional',
            last_event_id=7,
            has_primary_photo=True,
            basic_profile_completed=True,
        )
        values.update(overrides)
        return ProfileRow(**values)
    return _make
