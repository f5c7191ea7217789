"""Pytest fixtures for test configuration.

Engine fixtures (mock_db, engine, lifecycle, gate, clock ...) live in
tests/mocks/fixtures.py and are re-exported here.
"""
import pytest
from pathlib import Path
from typing import Dict, Any

from tests.mocks.fixtures import *  # noqa: F401,F403


@pytest.fixture
def test_config(tmp_path: Path) -> Dict[str, Any]:
    """Provide a minimal test configuration as a dict.

    Tests should pass cfg to CLI/modules directly rather than creating .env
    files or setting environment variables. The database path is isolated
    to tmp_path.
    """
    return {
        'log_level': 'DEBUG',
        'interaction': {
            'max_scan': 2000,
            'super_like_daily_cap': 5,
            'undo_dislike_minutes': 10,
            'freeze_default_days': 14,
            'freeze_max_days': 30,
            'list_limit_max': 500,
            'report_details_max': 800,
            'message_cooldown_seconds': 2,
        },
        'scoring': {
            'weight_opposite_gender': 30.0,
            'weight_age_per_direction': 20.0,
            'weight_same_area': 15.0,
            'weight_same_religious_level': 15.0,
        },
        'generation': {'min_score': 50.0, 'progress_interval': 500},
        'notifications': {'enabled': False},
        'database': {'path': str(tmp_path / 'db.sqlite')},
    }
