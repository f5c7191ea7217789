"""Domain model types for database entities.

These dataclasses provide type-safe representations of database rows and make
the data contracts of signals, matches, opening messages and profiles explicit.

Signal metadata is a typed, per-kind payload (``SuperLikeMeta``,
``FreezeMeta`` ...) serialized as tagged JSON in a single column.
"""
from __future__ import annotations
import json
import logging
from dataclasses import dataclass, asdict
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, Union

logger = logging.getLogger(__name__)


class SignalType(str, Enum):
    LIKE = "LIKE"
    DISLIKE = "DISLIKE"
    FREEZE = "FREEZE"
    UNFREEZE = "UNFREEZE"
    BLOCK = "BLOCK"
    UNBLOCK = "UNBLOCK"
    VIEW = "VIEW"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: str | None) -> SignalType:
        try:
            return cls(str(value).upper())
        except ValueError:
            return cls.UNKNOWN


# At most one active signal per (actor, target) across this set.
EXCLUSIVE_TYPES = (SignalType.LIKE, SignalType.DISLIKE, SignalType.FREEZE)


class InteractionMode(str, Enum):
    NONE = "NONE"
    LIVE_EVENT = "LIVE_EVENT"
    GLOBAL = "GLOBAL"
    PAST_EVENT = "PAST_EVENT"


class MatchStatus(str, Enum):
    """Derived match state. Overlays (closed, blocked, archived, frozen) win over approvals."""
    NEW = "NEW"
    ONE_SIDED = "ONE_SIDED"
    MUTUAL = "MUTUAL"
    BLOCKED = "BLOCKED"
    ARCHIVED = "ARCHIVED"
    FROZEN = "FROZEN"
    CLOSED = "CLOSED"


# --- Signal metadata payloads ----------------------------------------------

@dataclass(frozen=True)
class SuperLikeMeta:
    kind = "super_like"
    daily_cap: int = 0


@dataclass(frozen=True)
class FreezeMeta:
    kind = "freeze"
    days: int = 0
    until: Optional[datetime] = None


@dataclass(frozen=True)
class DislikeMeta:
    kind = "dislike"
    undo_minutes: int = 0


@dataclass(frozen=True)
class ReportMeta:
    kind = "report"
    report_type: Optional[str] = None
    details: Optional[str] = None


SignalMeta = Union[SuperLikeMeta, FreezeMeta, DislikeMeta, ReportMeta]

_META_KINDS = {cls.kind: cls for cls in (SuperLikeMeta, FreezeMeta, DislikeMeta, ReportMeta)}


def encode_meta(meta: SignalMeta | None) -> str | None:
    if meta is None:
        return None
    payload: Dict[str, Any] = {"kind": meta.kind}
    for key, value in asdict(meta).items():
        payload[key] = value.isoformat() if isinstance(value, datetime) else value
    return json.dumps(payload, sort_keys=True)


def decode_meta(text: str | None) -> SignalMeta | None:
    if not text:
        return None
    try:
        payload = json.loads(text)
    except ValueError:
        logger.debug(f"Ignoring unparseable signal metadata: {text!r}")
        return None
    cls = _META_KINDS.get(payload.pop("kind", None))
    if cls is None:
        return None
    if cls is FreezeMeta and payload.get("until"):
        payload["until"] = datetime.fromisoformat(payload["until"])
    return cls(**payload)


def _dt(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


# --- Rows ------------------------------------------------------------------

@dataclass
class SignalRow:
    """One recorded action from actor toward target."""
    actor_id: int
    target_id: int
    type: SignalType
    created_at: datetime
    updated_at: datetime
    active: bool = True
    reason: Optional[str] = None
    meta: Optional[SignalMeta] = None
    source: str = "user"
    context_id: Optional[int] = None
    mode: Optional[str] = None
    id: Optional[int] = None

    @property
    def is_super_like(self) -> bool:
        return self.type == SignalType.LIKE and isinstance(self.meta, SuperLikeMeta)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["type"] = self.type.value
        data["meta"] = json.loads(encode_meta(self.meta)) if self.meta else None
        return data

    @classmethod
    def from_row(cls, row) -> SignalRow:
        """Convert sqlite3.Row to SignalRow."""
        return cls(
            id=row['id'],
            actor_id=row['actor_id'],
            target_id=row['target_id'],
            type=SignalType.parse(row['type']),
            active=bool(row['active']),
            created_at=_dt(row['created_at']),
            updated_at=_dt(row['updated_at']),
            reason=row['reason'],
            meta=decode_meta(row['metadata']),
            source=row['source'] or "user",
            context_id=row['context_id'],
            mode=row['mode'],
        )


@dataclass
class MatchRow:
    """Match aggregate for an unordered user pair (low id first)."""
    user_low_id: int
    user_high_id: int
    created_at: datetime
    updated_at: datetime
    meeting_context_id: Optional[int] = None
    origin_context_id: Optional[int] = None
    score: Optional[float] = None
    source: Optional[str] = None
    user1_approved: bool = False
    user2_approved: bool = False
    mutual_approved: bool = False
    active: bool = True
    blocked: bool = False
    archived: bool = False
    frozen: bool = False
    freeze_reason: Optional[str] = None
    chat_opened: bool = False
    unread_count: int = 0
    last_message_at: Optional[datetime] = None
    id: Optional[int] = None

    def involves(self, user_id: int) -> bool:
        return user_id in (self.user_low_id, self.user_high_id)

    def other(self, user_id: int) -> int:
        return self.user_high_id if user_id == self.user_low_id else self.user_low_id

    @property
    def status(self) -> MatchStatus:
        if not self.active and not self.blocked:
            return MatchStatus.CLOSED
        if self.blocked:
            return MatchStatus.BLOCKED
        if self.archived:
            return MatchStatus.ARCHIVED
        if self.frozen:
            return MatchStatus.FROZEN
        if self.mutual_approved:
            return MatchStatus.MUTUAL
        if self.user1_approved or self.user2_approved:
            return MatchStatus.ONE_SIDED
        return MatchStatus.NEW

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data

    @classmethod
    def from_row(cls, row) -> MatchRow:
        """Convert sqlite3.Row to MatchRow."""
        return cls(
            id=row['id'],
            user_low_id=row['user_low_id'],
            user_high_id=row['user_high_id'],
            meeting_context_id=row['meeting_context_id'],
            origin_context_id=row['origin_context_id'],
            score=row['score'],
            source=row['source'],
            user1_approved=bool(row['user1_approved']),
            user2_approved=bool(row['user2_approved']),
            mutual_approved=bool(row['mutual_approved']),
            active=bool(row['active']),
            blocked=bool(row['blocked']),
            archived=bool(row['archived']),
            frozen=bool(row['frozen']),
            freeze_reason=row['freeze_reason'],
            chat_opened=bool(row['chat_opened']),
            unread_count=row['unread_count'] or 0,
            last_message_at=_dt(row['last_message_at']),
            created_at=_dt(row['created_at']),
            updated_at=_dt(row['updated_at']),
        )


@dataclass
class OpeningMessageRow:
    """First message sent without a match; pending until accepted or rejected."""
    sender_id: int
    recipient_id: int
    content: str
    created_at: datetime
    updated_at: datetime
    opening: bool = True
    deleted: bool = False
    match_id: Optional[int] = None
    id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_row(cls, row) -> OpeningMessageRow:
        return cls(
            id=row['id'],
            sender_id=row['sender_id'],
            recipient_id=row['recipient_id'],
            content=row['content'],
            opening=bool(row['opening']),
            deleted=bool(row['deleted']),
            match_id=row['match_id'],
            created_at=_dt(row['created_at']),
            updated_at=_dt(row['updated_at']),
        )


@dataclass
class ProfileRow:
    """Profile snapshot: gate flags plus the attributes used for scoring."""
    user_id: int
    gender: Optional[str] = None
    age: Optional[int] = None
    preferred_age_min: Optional[int] = None
    preferred_age_max: Optional[int] = None
    area: Optional[str] = None
    religious_level: Optional[str] = None
    last_event_id: Optional[int] = None
    has_primary_photo: bool = False
    basic_profile_completed: bool = False
    deletion_requested: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_row(cls, row) -> ProfileRow:
        return cls(
            user_id=row['user_id'],
            gender=row['gender'],
            age=row['age'],
            preferred_age_min=row['preferred_age_min'],
            preferred_age_max=row['preferred_age_max'],
            area=row['area'],
            religious_level=row['religious_level'],
            last_event_id=row['last_event_id'],
            has_primary_photo=bool(row['has_primary_photo']),
            basic_profile_completed=bool(row['basic_profile_completed']),
            deletion_requested=bool(row['deletion_requested']),
        )


__all__ = [
    'SignalType',
    'EXCLUSIVE_TYPES',
    'InteractionMode',
    'MatchStatus',
    'SuperLikeMeta',
    'FreezeMeta',
    'DislikeMeta',
    'ReportMeta',
    'SignalMeta',
    'encode_meta',
    'decode_meta',
    'SignalRow',
    'MatchRow',
    'OpeningMessageRow',
    'ProfileRow',
]
