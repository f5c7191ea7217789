"""SettingsProvider implementations.

Both providers treat a missing or unparseable value as "use the default";
they never raise for bad data.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, Optional

from ..config import coerce_scalar
from .base import SettingsProvider

logger = logging.getLogger(__name__)

# Meta-table keys are namespaced so they cannot collide with bookkeeping keys
META_PREFIX = "setting:"


def _as_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        logger.debug(f"Ignoring non-integer setting value {value!r}")
        return default


def _as_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    coerced = coerce_scalar(str(value))
    if isinstance(coerced, bool):
        return coerced
    if coerced in (0, 1):
        return bool(coerced)
    return default


class StaticSettings(SettingsProvider):
    """Dict-backed settings (tests and embedding callers)."""

    def __init__(self, values: Optional[Dict[str, Any]] = None):
        self.values: Dict[str, Any] = dict(values or {})

    def get_int(self, key: str, default: int) -> int:
        if key not in self.values or self.values[key] is None:
            return default
        return _as_int(self.values[key], default)

    def get_bool(self, key: str, default: bool) -> bool:
        if key not in self.values or self.values[key] is None:
            return default
        return _as_bool(self.values[key], default)


class DatabaseSettings(SettingsProvider):
    """Settings stored in the ``meta`` key/value table under ``setting:<key>``."""

    def __init__(self, db):
        self.db = db

    def set(self, key: str, value: Any) -> None:
        self.db.set_meta(META_PREFIX + key, str(value))

    def get_int(self, key: str, default: int) -> int:
        raw = self.db.get_meta(META_PREFIX + key)
        return default if raw is None else _as_int(raw, default)

    def get_bool(self, key: str, default: bool) -> bool:
        raw = self.db.get_meta(META_PREFIX + key)
        return default if raw is None else _as_bool(raw, default)


__all__ = ["StaticSettings", "DatabaseSettings", "META_PREFIX"]
