"""Profile-table backed collaborators."""
from __future__ import annotations
from typing import List, Optional

from ..db.interface import ProfileStore
from ..db.models import ProfileRow
from .base import ProfileState, ProfileStateProvider


class DatabaseProfileStateProvider(ProfileStateProvider):
    """Reads gate flags from the ``profiles`` table."""

    def __init__(self, store: ProfileStore):
        self.store = store

    def get(self, user_id: int) -> Optional[ProfileState]:
        row = self.store.get_profile(user_id)
        if row is None:
            return None
        return ProfileState(
            has_primary_photo=row.has_primary_photo,
            basic_profile_completed=row.basic_profile_completed,
            deletion_requested=row.deletion_requested,
        )


class DatabaseCohortSource:
    """Cohort membership: every profile whose last event is the cohort id."""

    def __init__(self, store: ProfileStore):
        self.store = store

    def members(self, cohort_id: int) -> List[ProfileRow]:
        return self.store.list_profiles_by_event(cohort_id)


__all__ = ["DatabaseProfileStateProvider", "DatabaseCohortSource"]
