from .interface import DatabaseInterface
from .sqlite_impl import Database
from .models import SignalRow, SignalType, MatchRow, MatchStatus, OpeningMessageRow, ProfileRow

__all__ = [
    "DatabaseInterface",
    "Database",
    "SignalRow",
    "SignalType",
    "MatchRow",
    "MatchStatus",
    "OpeningMessageRow",
    "ProfileRow",
]
