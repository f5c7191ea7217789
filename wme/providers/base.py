"""Collaborator abstraction layer.

The engine depends on three collaborators that live outside of it:

- ProfileStateProvider: read-only gate input (photo, completeness, deletion)
- NotificationSink: fire-and-forget event delivery
- SettingsProvider: runtime overrides for tunables

Default implementations live next to this module; callers with their own
profile service, message bus or settings store implement the same ABCs.
"""
from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# ---------------- Domain Models -----------------

@dataclass(frozen=True)
class ProfileState:
    has_primary_photo: bool = False
    basic_profile_completed: bool = False
    deletion_requested: bool = False


class NotificationEvent(str, Enum):
    MUTUAL_LIKE = "MUTUAL_LIKE"
    SUPER_LIKE_RECEIVED = "SUPER_LIKE_RECEIVED"
    MATCH_CREATED = "MATCH_CREATED"
    MATCH_MUTUAL = "MATCH_MUTUAL"
    MATCH_UNMATCHED = "MATCH_UNMATCHED"
    OPENING_RECEIVED = "OPENING_RECEIVED"
    OPENING_ACCEPTED = "OPENING_ACCEPTED"
    OPENING_REJECTED = "OPENING_REJECTED"

# ---------------- Profile state -----------------

class ProfileStateProvider(ABC):
    """Source of profile gate flags for a user."""

    @abstractmethod
    def get(self, user_id: int) -> Optional[ProfileState]:
        """Return the user's gate flags, or None if the user is unknown."""

# ---------------- Notifications -----------------

class NotificationSink(ABC):
    """Delivery channel for engine events.

    Implementations may raise; the engine dispatches through
    ``safe_emit`` so a failing sink never affects relationship state.
    """

    @abstractmethod
    def emit(self, event_type: NotificationEvent, payload: Dict[str, Any]) -> None:
        """Deliver one event."""


def safe_emit(sink: NotificationSink | None, event_type: NotificationEvent, payload: Dict[str, Any]) -> None:
    """Emit an event, logging and swallowing any sink failure."""
    if sink is None:
        return
    try:
        sink.emit(event_type, payload)
    except Exception as e:
        logger.warning(f"Notification {event_type.value} failed: {e}")

# ---------------- Settings -----------------

class SettingsProvider(ABC):
    """Key-based tunables looked up at call time."""

    @abstractmethod
    def get_int(self, key: str, default: int) -> int: ...

    @abstractmethod
    def get_bool(self, key: str, default: bool) -> bool: ...


__all__ = [
    "ProfileState",
    "NotificationEvent",
    "ProfileStateProvider",
    "NotificationSink",
    "safe_emit",
    "SettingsProvider",
]
