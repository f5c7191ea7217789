"""Collaborator public API.

Abstract interfaces plus the default implementations the CLI wires up.
"""

from .base import (
    ProfileState,
    NotificationEvent,
    ProfileStateProvider,
    NotificationSink,
    SettingsProvider,
    safe_emit,
)
from .profiles import DatabaseProfileStateProvider, DatabaseCohortSource
from .notifications import LoggingNotificationSink, NullNotificationSink, build_sink
from .settings import StaticSettings, DatabaseSettings


__all__ = [
    "ProfileState",
    "NotificationEvent",
    "ProfileStateProvider",
    "NotificationSink",
    "SettingsProvider",
    "safe_emit",
    "DatabaseProfileStateProvider",
    "DatabaseCohortSource",
    "LoggingNotificationSink",
    "NullNotificationSink",
    "build_sink",
    "StaticSettings",
    "DatabaseSettings",
]
