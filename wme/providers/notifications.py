"""Default notification sinks."""
from __future__ import annotations
import json
import logging
from typing import Any, Dict

from .base import NotificationEvent, NotificationSink

logger = logging.getLogger(__name__)


class LoggingNotificationSink(NotificationSink):
    """Writes each event to the log at INFO."""

    def emit(self, event_type: NotificationEvent, payload: Dict[str, Any]) -> None:
        logger.info(f"[notify] {event_type.value} {json.dumps(payload, sort_keys=True, default=str)}")


class NullNotificationSink(NotificationSink):
    def emit(self, event_type: NotificationEvent, payload: Dict[str, Any]) -> None:
        return None


def build_sink(enabled: bool) -> NotificationSink:
    return LoggingNotificationSink() if enabled else NullNotificationSink()


__all__ = ["LoggingNotificationSink", "NullNotificationSink", "build_sink"]
