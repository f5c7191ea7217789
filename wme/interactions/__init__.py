"""Signal recording: per-operation active index and the interaction engine."""
from .active_index import ActiveIndex
from .engine import InteractionContext, InteractionResult, InteractionEngine

__all__ = ["ActiveIndex", "InteractionContext", "InteractionResult", "InteractionEngine"]
