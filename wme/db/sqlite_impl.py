from __future__ import annotations
import sqlite3
import logging
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator, List, Optional

from ..errors import ConflictError
from .interface import DatabaseInterface
from .models import (
    SignalRow, SignalType, MatchRow, MatchStatus, OpeningMessageRow, ProfileRow, encode_meta,
)

logger = logging.getLogger(__name__)

SCHEMA = [
    "PRAGMA journal_mode=WAL;",
    "CREATE TABLE IF NOT EXISTS signals (id INTEGER PRIMARY KEY AUTOINCREMENT, actor_id INTEGER NOT NULL, target_id INTEGER NOT NULL, type TEXT NOT NULL, active INTEGER NOT NULL DEFAULT 1, created_at TEXT NOT NULL, updated_at TEXT NOT NULL, reason TEXT, metadata TEXT, source TEXT NOT NULL DEFAULT 'user', context_id INTEGER, mode TEXT);",
    # Pair key is canonical (low id first); uniqueness is the only dedup mechanism.
    "CREATE TABLE IF NOT EXISTS matches (id INTEGER PRIMARY KEY AUTOINCREMENT, user_low_id INTEGER NOT NULL, user_high_id INTEGER NOT NULL, meeting_context_id INTEGER, origin_context_id INTEGER, score REAL, source TEXT, user1_approved INTEGER NOT NULL DEFAULT 0, user2_approved INTEGER NOT NULL DEFAULT 0, mutual_approved INTEGER NOT NULL DEFAULT 0, active INTEGER NOT NULL DEFAULT 1, blocked INTEGER NOT NULL DEFAULT 0, archived INTEGER NOT NULL DEFAULT 0, frozen INTEGER NOT NULL DEFAULT 0, freeze_reason TEXT, chat_opened INTEGER NOT NULL DEFAULT 0, unread_count INTEGER NOT NULL DEFAULT 0, last_message_at TEXT, created_at TEXT NOT NULL, updated_at TEXT NOT NULL, UNIQUE(user_low_id, user_high_id), CHECK(user_low_id < user_high_id));",
    "CREATE TABLE IF NOT EXISTS opening_messages (id INTEGER PRIMARY KEY AUTOINCREMENT, sender_id INTEGER NOT NULL, recipient_id INTEGER NOT NULL, content TEXT NOT NULL, opening INTEGER NOT NULL DEFAULT 1, deleted INTEGER NOT NULL DEFAULT 0, match_id INTEGER, created_at TEXT NOT NULL, updated_at TEXT NOT NULL);",
    "CREATE TABLE IF NOT EXISTS profiles (user_id INTEGER PRIMARY KEY, gender TEXT, age INTEGER, preferred_age_min INTEGER, preferred_age_max INTEGER, area TEXT, religious_level TEXT, last_event_id INTEGER, has_primary_photo INTEGER NOT NULL DEFAULT 0, basic_profile_completed INTEGER NOT NULL DEFAULT 0, deletion_requested INTEGER NOT NULL DEFAULT 0);",
    # Bulk read for ActiveIndex and incoming-signal lookups
    "CREATE INDEX IF NOT EXISTS idx_signals_actor_active ON signals(actor_id, active, created_at);",
    "CREATE INDEX IF NOT EXISTS idx_signals_target_type ON signals(target_id, type, active);",
    "CREATE INDEX IF NOT EXISTS idx_matches_low ON matches(user_low_id);",
    "CREATE INDEX IF NOT EXISTS idx_matches_high ON matches(user_high_id);",
    "CREATE INDEX IF NOT EXISTS idx_matches_source ON matches(source);",
    "CREATE INDEX IF NOT EXISTS idx_opening_pair ON opening_messages(sender_id, recipient_id, deleted);",
    "CREATE INDEX IF NOT EXISTS idx_profiles_event ON profiles(last_event_id);",
    "CREATE TABLE IF NOT EXISTS meta (key TEXT PRIMARY KEY, value TEXT);",
]

_SIGNAL_COLS = "id, actor_id, target_id, type, active, created_at, updated_at, reason, metadata, source, context_id, mode"
_MATCH_COLS = ("id, user_low_id, user_high_id, meeting_context_id, origin_context_id, score, source, "
               "user1_approved, user2_approved, mutual_approved, active, blocked, archived, frozen, freeze_reason, "
               "chat_opened, unread_count, last_message_at, created_at, updated_at")
_OPENING_COLS = "id, sender_id, recipient_id, content, opening, deleted, match_id, created_at, updated_at"
_PROFILE_COLS = ("user_id, gender, age, preferred_age_min, preferred_age_max, area, religious_level, "
                 "last_event_id, has_primary_photo, basic_profile_completed, deletion_requested")

# Mirrors MatchRow.status precedence: closed, blocked, archived, frozen, then approvals
_OVERLAYS_CLEAR = "active=1 AND blocked=0 AND archived=0 AND frozen=0"
_STATUS_WHERE = {
    MatchStatus.CLOSED: "(active=0 AND blocked=0)",
    MatchStatus.BLOCKED: "blocked=1",
    MatchStatus.ARCHIVED: "(active=1 AND blocked=0 AND archived=1)",
    MatchStatus.FROZEN: "(active=1 AND blocked=0 AND archived=0 AND frozen=1)",
    MatchStatus.MUTUAL: f"({_OVERLAYS_CLEAR} AND mutual_approved=1)",
    MatchStatus.ONE_SIDED: f"({_OVERLAYS_CLEAR} AND mutual_approved=0 AND (user1_approved=1 OR user2_approved=1))",
    MatchStatus.NEW: f"({_OVERLAYS_CLEAR} AND mutual_approved=0 AND user1_approved=0 AND user2_approved=0)",
}


def _ts(value: datetime | None) -> str | None:
    # Fixed precision keeps lexical ORDER BY equal to chronological order
    return value.isoformat(timespec='microseconds') if value is not None else None


class Database(DatabaseInterface):
    def __init__(self, path: Path):
        self.path = Path(path)
        if not self.path.parent.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
        # Autocommit mode; transaction() issues explicit BEGIN IMMEDIATE/COMMIT.
        self.conn = sqlite3.connect(self.path, timeout=30, isolation_level=None)
        self.conn.row_factory = sqlite3.Row
        self._closed = False
        self._tx_depth = 0
        self._init_schema()

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _init_schema(self) -> None:
        cur = self.conn.cursor()
        for stmt in SCHEMA:
            cur.execute(stmt)
        cur.execute("INSERT OR REPLACE INTO meta(key,value) VALUES('schema_version','1')")

    def _execute_with_lock_handling(self, sql: str, params: Any = None):
        """Execute SQL with better diagnostics on database lock (SQLite still retries)."""
        try:
            if params is not None:
                return self.conn.execute(sql, params)
            return self.conn.execute(sql)
        except sqlite3.OperationalError as e:
            if "database is locked" in str(e).lower():
                logger.warning("Database lock detected - another writer held the database for over 30 seconds")
                logger.warning("If this persists, check for long-running transactions in other processes")
            raise

    @contextmanager
    def transaction(self) -> Iterator["Database"]:
        if self._tx_depth:
            self._tx_depth += 1
            try:
                yield self
            finally:
                self._tx_depth -= 1
            return
        # IMMEDIATE takes the write lock up front so read-then-write sequences
        # (pair lookups, active index reads) are serialized across connections.
        self._execute_with_lock_handling("BEGIN IMMEDIATE")
        self._tx_depth = 1
        try:
            yield self
        except BaseException:
            self.conn.execute("ROLLBACK")
            raise
        else:
            self.conn.execute("COMMIT")
        finally:
            self._tx_depth = 0

    def commit(self):
        if self.conn.in_transaction and not self._tx_depth:
            self.conn.commit()

    # --- Signals ---
    def insert_signal(self, signal: SignalRow) -> SignalRow:
        cur = self._execute_with_lock_handling(
            "INSERT INTO signals(actor_id,target_id,type,active,created_at,updated_at,reason,metadata,source,context_id,mode) VALUES(?,?,?,?,?,?,?,?,?,?,?)",
            (
                signal.actor_id, signal.target_id, signal.type.value, int(signal.active),
                _ts(signal.created_at), _ts(signal.updated_at), signal.reason, encode_meta(signal.meta),
                signal.source, signal.context_id, signal.mode,
            ),
        )
        signal.id = cur.lastrowid
        return signal

    def deactivate_signal(self, signal_id: int, at: datetime, reason: str | None = None) -> None:
        if reason and reason.strip():
            self._execute_with_lock_handling(
                "UPDATE signals SET active=0, updated_at=?, reason=? WHERE id=?",
                (_ts(at), reason.strip(), signal_id),
            )
        else:
            self._execute_with_lock_handling(
                "UPDATE signals SET active=0, updated_at=? WHERE id=?", (_ts(at), signal_id)
            )

    def list_active_by_actor(self, actor_id: int, limit: int) -> List[SignalRow]:
        rows = self.conn.execute(
            f"SELECT {_SIGNAL_COLS} FROM signals WHERE actor_id=? AND active=1 ORDER BY created_at DESC, id DESC LIMIT ?",
            (actor_id, limit),
        ).fetchall()
        return [SignalRow.from_row(r) for r in rows]

    def list_active_by_target(self, target_id: int, signal_type: SignalType, limit: int) -> List[SignalRow]:
        rows = self.conn.execute(
            f"SELECT {_SIGNAL_COLS} FROM signals WHERE target_id=? AND type=? AND active=1 ORDER BY created_at DESC, id DESC LIMIT ?",
            (target_id, signal_type.value, limit),
        ).fetchall()
        return [SignalRow.from_row(r) for r in rows]

    def count_active_by_target(self, target_id: int, signal_type: SignalType) -> int:
        cur = self.conn.execute(
            "SELECT COUNT(*) FROM signals WHERE target_id=? AND type=? AND active=1",
            (target_id, signal_type.value),
        )
        return cur.fetchone()[0]

    # --- Matches ---
    def insert_match(self, match: MatchRow) -> MatchRow:
        try:
            cur = self._execute_with_lock_handling(
                "INSERT INTO matches(user_low_id,user_high_id,meeting_context_id,origin_context_id,score,source,user1_approved,user2_approved,mutual_approved,active,blocked,archived,frozen,freeze_reason,chat_opened,unread_count,last_message_at,created_at,updated_at) VALUES(?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?)",
                (
                    match.user_low_id, match.user_high_id, match.meeting_context_id, match.origin_context_id,
                    match.score, match.source, int(match.user1_approved), int(match.user2_approved),
                    int(match.mutual_approved), int(match.active), int(match.blocked), int(match.archived),
                    int(match.frozen), match.freeze_reason, int(match.chat_opened), match.unread_count,
                    _ts(match.last_message_at), _ts(match.created_at), _ts(match.updated_at),
                ),
            )
        except sqlite3.IntegrityError as e:
            raise ConflictError(
                f"Match already exists for pair ({match.user_low_id}, {match.user_high_id})"
            ) from e
        match.id = cur.lastrowid
        return match

    def update_match(self, match: MatchRow) -> MatchRow:
        self._execute_with_lock_handling(
            "UPDATE matches SET meeting_context_id=?, origin_context_id=?, score=?, source=?, user1_approved=?, user2_approved=?, mutual_approved=?, active=?, blocked=?, archived=?, frozen=?, freeze_reason=?, chat_opened=?, unread_count=?, last_message_at=?, updated_at=? WHERE id=?",
            (
                match.meeting_context_id, match.origin_context_id, match.score, match.source,
                int(match.user1_approved), int(match.user2_approved), int(match.mutual_approved),
                int(match.active), int(match.blocked), int(match.archived), int(match.frozen), match.freeze_reason,
                int(match.chat_opened), match.unread_count, _ts(match.last_message_at),
                _ts(match.updated_at), match.id,
            ),
        )
        return match

    def get_match(self, match_id: int) -> Optional[MatchRow]:
        row = self.conn.execute(f"SELECT {_MATCH_COLS} FROM matches WHERE id=?", (match_id,)).fetchone()
        return MatchRow.from_row(row) if row else None

    def get_match_by_pair(self, user_low_id: int, user_high_id: int) -> Optional[MatchRow]:
        row = self.conn.execute(
            f"SELECT {_MATCH_COLS} FROM matches WHERE user_low_id=? AND user_high_id=?",
            (user_low_id, user_high_id),
        ).fetchone()
        return MatchRow.from_row(row) if row else None

    def list_matches_for_user(self, user_id: int, limit: int) -> List[MatchRow]:
        rows = self.conn.execute(
            f"SELECT {_MATCH_COLS} FROM matches WHERE user_low_id=? OR user_high_id=? ORDER BY updated_at DESC, id DESC LIMIT ?",
            (user_id, user_id, limit),
        ).fetchall()
        return [MatchRow.from_row(r) for r in rows]

    def list_matches_for_user_by_status(self, user_id: int, status: MatchStatus, limit: int) -> List[MatchRow]:
        rows = self.conn.execute(
            f"SELECT {_MATCH_COLS} FROM matches WHERE (user_low_id=? OR user_high_id=?) AND {_STATUS_WHERE[status]} "
            "ORDER BY updated_at DESC, id DESC LIMIT ?",
            (user_id, user_id, limit),
        ).fetchall()
        return [MatchRow.from_row(r) for r in rows]

    def list_matches_by_source(self, source: str, limit: int) -> List[MatchRow]:
        rows = self.conn.execute(
            f"SELECT {_MATCH_COLS} FROM matches WHERE source=? ORDER BY created_at DESC, id DESC LIMIT ?",
            (source, limit),
        ).fetchall()
        return [MatchRow.from_row(r) for r in rows]

    def list_matches_by_min_score(self, min_score: float, limit: int) -> List[MatchRow]:
        rows = self.conn.execute(
            f"SELECT {_MATCH_COLS} FROM matches WHERE score IS NOT NULL AND score>=? ORDER BY score DESC, id ASC LIMIT ?",
            (min_score, limit),
        ).fetchall()
        return [MatchRow.from_row(r) for r in rows]

    def list_matches_by_context(self, context_id: int, limit: int) -> List[MatchRow]:
        rows = self.conn.execute(
            f"SELECT {_MATCH_COLS} FROM matches WHERE meeting_context_id=? OR origin_context_id=? ORDER BY created_at DESC, id DESC LIMIT ?",
            (context_id, context_id, limit),
        ).fetchall()
        return [MatchRow.from_row(r) for r in rows]

    # --- Opening messages ---
    def insert_opening(self, message: OpeningMessageRow) -> OpeningMessageRow:
        cur = self._execute_with_lock_handling(
            "INSERT INTO opening_messages(sender_id,recipient_id,content,opening,deleted,match_id,created_at,updated_at) VALUES(?,?,?,?,?,?,?,?)",
            (
                message.sender_id, message.recipient_id, message.content, int(message.opening),
                int(message.deleted), message.match_id, _ts(message.created_at), _ts(message.updated_at),
            ),
        )
        message.id = cur.lastrowid
        return message

    def update_opening(self, message: OpeningMessageRow) -> OpeningMessageRow:
        self._execute_with_lock_handling(
            "UPDATE opening_messages SET opening=?, deleted=?, match_id=?, updated_at=? WHERE id=?",
            (int(message.opening), int(message.deleted), message.match_id, _ts(message.updated_at), message.id),
        )
        return message

    def get_opening(self, message_id: int) -> Optional[OpeningMessageRow]:
        row = self.conn.execute(
            f"SELECT {_OPENING_COLS} FROM opening_messages WHERE id=?", (message_id,)
        ).fetchone()
        return OpeningMessageRow.from_row(row) if row else None

    def has_pending_opening(self, sender_id: int, recipient_id: int) -> bool:
        row = self.conn.execute(
            "SELECT 1 FROM opening_messages WHERE sender_id=? AND recipient_id=? AND opening=1 AND deleted=0 LIMIT 1",
            (sender_id, recipient_id),
        ).fetchone()
        return row is not None

    def list_pending_openings_for(self, recipient_id: int, limit: int) -> List[OpeningMessageRow]:
        rows = self.conn.execute(
            f"SELECT {_OPENING_COLS} FROM opening_messages WHERE recipient_id=? AND opening=1 AND deleted=0 ORDER BY created_at DESC, id DESC LIMIT ?",
            (recipient_id, limit),
        ).fetchall()
        return [OpeningMessageRow.from_row(r) for r in rows]

    # --- Profiles ---
    def upsert_profile(self, profile: ProfileRow) -> None:
        self._execute_with_lock_handling(
            f"INSERT INTO profiles({_PROFILE_COLS}) VALUES(?,?,?,?,?,?,?,?,?,?,?) ON CONFLICT(user_id) DO UPDATE SET gender=excluded.gender, age=excluded.age, preferred_age_min=excluded.preferred_age_min, preferred_age_max=excluded.preferred_age_max, area=excluded.area, religious_level=excluded.religious_level, last_event_id=excluded.last_event_id, has_primary_photo=excluded.has_primary_photo, basic_profile_completed=excluded.basic_profile_completed, deletion_requested=excluded.deletion_requested",
            (
                profile.user_id, profile.gender, profile.age, profile.preferred_age_min, profile.preferred_age_max,
                profile.area, profile.religious_level, profile.last_event_id, int(profile.has_primary_photo),
                int(profile.basic_profile_completed), int(profile.deletion_requested),
            ),
        )

    def get_profile(self, user_id: int) -> Optional[ProfileRow]:
        row = self.conn.execute(f"SELECT {_PROFILE_COLS} FROM profiles WHERE user_id=?", (user_id,)).fetchone()
        return ProfileRow.from_row(row) if row else None

    def list_profiles_by_event(self, event_id: int) -> List[ProfileRow]:
        rows = self.conn.execute(
            f"SELECT {_PROFILE_COLS} FROM profiles WHERE last_event_id=? ORDER BY user_id", (event_id,)
        ).fetchall()
        return [ProfileRow.from_row(r) for r in rows]

    # --- Meta ---
    def set_meta(self, key: str, value: str):
        self._execute_with_lock_handling(
            "INSERT INTO meta(key,value) VALUES(?,?) ON CONFLICT(key) DO UPDATE SET value=excluded.value", (key, value)
        )

    def get_meta(self, key: str) -> Optional[str]:
        row = self.conn.execute("SELECT value FROM meta WHERE key=?", (key,)).fetchone()
        return row[0] if row else None

    def close(self):
        if not self._closed:
            try:
                if self.conn.in_transaction:
                    self.conn.commit()
                self.conn.close()
            finally:
                self._closed = True


__all__ = ["Database", "SCHEMA"]
