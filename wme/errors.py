"""Error taxonomy surfaced by engine operations.

All errors are raised synchronously to the caller; the engine never retries.
"""
from __future__ import annotations


class EngineError(Exception):
    """Base class for every error raised by an engine operation."""


class ValidationError(EngineError, ValueError):
    """Null or self-referencing ids, unknown users, malformed input."""


class ConflictError(EngineError):
    """Blocked pair, duplicate opening message, or missing row for a mutation."""


class RateLimitError(EngineError):
    """A cap or cooldown window was exceeded."""


class StateError(EngineError):
    """The acting user's profile state does not allow the operation."""


__all__ = ["EngineError", "ValidationError", "ConflictError", "RateLimitError", "StateError"]
