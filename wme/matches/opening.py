"""Opening-message gate: a first message that can precede a match.

Accepting an opening message is consent from both sides, so the match is
created already mutual with the chat open. Approval runs in one store
transaction and re-checks the pair, so concurrent approvals of the same
conversation produce a single match.
"""
from __future__ import annotations
import logging
from datetime import datetime
from typing import Callable, List

from ..db.interface import DatabaseInterface
from ..db.models import MatchRow, OpeningMessageRow, SignalType
from ..errors import ValidationError, ConflictError, StateError
from ..interactions.active_index import ActiveIndex
from ..providers.base import NotificationEvent, NotificationSink, ProfileStateProvider, safe_emit
from ..providers.profiles import DatabaseProfileStateProvider
from .lifecycle import MatchLifecycle, normalize_pair

logger = logging.getLogger(__name__)


class OpeningMessageGate:
    def __init__(self, db: DatabaseInterface, lifecycle: MatchLifecycle,
                 profiles: ProfileStateProvider | None = None, notifier: NotificationSink | None = None,
                 clock: Callable[[], datetime] | None = None, max_scan: int = 2000):
        self.db = db
        self.lifecycle = lifecycle
        self.profiles = profiles or DatabaseProfileStateProvider(db)
        self.notifier = notifier
        self.clock = clock or datetime.now
        self.max_scan = max_scan

    def _blocked_between(self, user_a: int, user_b: int) -> bool:
        a_index = ActiveIndex.load(self.db, user_a, self.max_scan)
        b_index = ActiveIndex.load(self.db, user_b, self.max_scan)
        return (a_index.get(SignalType.BLOCK, user_b) is not None
                or b_index.get(SignalType.BLOCK, user_a) is not None)

    def _load(self, message_id: int) -> OpeningMessageRow:
        message = self.db.get_opening(message_id)
        if message is None or message.deleted:
            raise ConflictError(f"Opening message not found: {message_id}")
        return message

    def send_opening(self, sender_id: int, recipient_id: int, content: str | None) -> OpeningMessageRow:
        low, high = normalize_pair(sender_id, recipient_id)
        text = (content or "").strip()
        if not text:
            raise ValidationError("Message content is required")
        sender = self.profiles.get(sender_id)
        if sender is None:
            raise ValidationError(f"User not found: {sender_id}")
        if self.profiles.get(recipient_id) is None:
            raise ValidationError(f"User not found: {recipient_id}")
        if not sender.basic_profile_completed or not sender.has_primary_photo:
            raise StateError("Complete your profile and add a photo before sending an opening message")

        with self.db.transaction():
            if self._blocked_between(sender_id, recipient_id):
                raise ConflictError(f"Users {sender_id} and {recipient_id} are blocked")
            if self.db.get_match_by_pair(low, high) is not None:
                raise ConflictError("A match already exists between these users")
            if self.db.has_pending_opening(sender_id, recipient_id):
                raise ConflictError("An opening message to this user is already pending")
            now = self.clock()
            message = OpeningMessageRow(
                sender_id=sender_id,
                recipient_id=recipient_id,
                content=text,
                created_at=now,
                updated_at=now,
            )
            self.db.insert_opening(message)
        logger.debug(f"Opening message {message.id} {sender_id}->{recipient_id}")
        safe_emit(self.notifier, NotificationEvent.OPENING_RECEIVED,
                  {"message_id": message.id, "sender_id": sender_id, "recipient_id": recipient_id})
        return message

    def approve(self, message_id: int, recipient_id: int) -> MatchRow:
        with self.db.transaction():
            message = self._load(message_id)
            if message.recipient_id != recipient_id:
                raise ValidationError("Only the recipient can accept an opening message")
            if message.match_id is not None:
                attached = self.db.get_match(message.match_id)
                if attached is not None:
                    return attached
            low, high = normalize_pair(message.sender_id, message.recipient_id)
            match = self.db.get_match_by_pair(low, high)
            if match is None:
                match = self.lifecycle.create_accepted(low, high)
            else:
                logger.debug(f"Reusing match {match.id} for opening message {message.id}")
            message.match_id = match.id
            message.opening = False
            message.updated_at = self.clock()
            self.db.update_opening(message)
        logger.info(f"Opening message {message.id} accepted; match {match.id}")
        safe_emit(self.notifier, NotificationEvent.OPENING_ACCEPTED,
                  {"message_id": message.id, "match_id": match.id, "sender_id": message.sender_id})
        return match

    def reject(self, message_id: int, recipient_id: int) -> OpeningMessageRow:
        with self.db.transaction():
            message = self._load(message_id)
            if message.recipient_id != recipient_id:
                raise ValidationError("Only the recipient can reject an opening message")
            message.deleted = True
            message.updated_at = self.clock()
            self.db.update_opening(message)
        safe_emit(self.notifier, NotificationEvent.OPENING_REJECTED,
                  {"message_id": message.id, "sender_id": message.sender_id})
        return message

    def pending_for(self, recipient_id: int, limit: int = 100) -> List[OpeningMessageRow]:
        return self.db.list_pending_openings_for(recipient_id, max(1, min(int(limit), 500)))


__all__ = ["OpeningMessageGate"]
