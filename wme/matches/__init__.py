"""Match aggregate: lifecycle, compatibility scoring, cohort generation, opening messages."""
from .lifecycle import MatchLifecycle, normalize_pair
from .scoring import CompatibilityScorer, ScoreBreakdown
from .generator import MatchGenerator, GenerationResult
from .opening import OpeningMessageGate

__all__ = [
    "MatchLifecycle",
    "normalize_pair",
    "CompatibilityScorer",
    "ScoreBreakdown",
    "MatchGenerator",
    "GenerationResult",
    "OpeningMessageGate",
]
