"""Pairwise compatibility scoring over two profile snapshots.

Pure and side-effect free: callers pass already-fetched ``ProfileRow``
objects. Used per pair online and in bulk by the cohort generator.

Additive components (default weights):
- opposite declared gender            +30
- age within the other's preference   +20 per direction
- same residence area                 +15
- same religious level                +15
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional

from ..config_types import ScoringConfig
from ..db.models import ProfileRow


@dataclass
class ScoreBreakdown:
    score: float
    opposite_gender: bool
    age_fits_first: bool   # second user's age within first user's preference
    age_fits_second: bool  # first user's age within second user's preference
    same_area: bool
    same_religious_level: bool
    notes: List[str] = field(default_factory=list)


def _norm(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    text = value.strip().lower()
    return text or None


def _same(a: Optional[str], b: Optional[str]) -> bool:
    na, nb = _norm(a), _norm(b)
    return na is not None and na == nb


def age_in_preference(chooser: ProfileRow, candidate: ProfileRow) -> bool:
    """True when the candidate's age falls inside the chooser's preferred range.

    A missing bound is unrestricted; a missing candidate age never fits.
    """
    if candidate.age is None:
        return False
    if chooser.preferred_age_min is not None and candidate.age < chooser.preferred_age_min:
        return False
    if chooser.preferred_age_max is not None and candidate.age > chooser.preferred_age_max:
        return False
    return True


class CompatibilityScorer:
    def __init__(self, config: ScoringConfig | None = None):
        self.config = config or ScoringConfig()

    def evaluate(self, first: ProfileRow, second: ProfileRow) -> ScoreBreakdown:
        cfg = self.config
        g1, g2 = _norm(first.gender), _norm(second.gender)
        opposite = g1 is not None and g2 is not None and g1 != g2
        fits_first = age_in_preference(first, second)
        fits_second = age_in_preference(second, first)
        same_area = _same(first.area, second.area)
        same_level = _same(first.religious_level, second.religious_level)

        score = 0.0
        notes: List[str] = []
        if opposite:
            score += cfg.weight_opposite_gender
            notes.append(f"gender+{cfg.weight_opposite_gender:g}")
        if fits_first:
            score += cfg.weight_age_per_direction
            notes.append(f"age({first.user_id}<-{second.user_id})+{cfg.weight_age_per_direction:g}")
        if fits_second:
            score += cfg.weight_age_per_direction
            notes.append(f"age({second.user_id}<-{first.user_id})+{cfg.weight_age_per_direction:g}")
        if same_area:
            score += cfg.weight_same_area
            notes.append(f"area+{cfg.weight_same_area:g}")
        if same_level:
            score += cfg.weight_same_religious_level
            notes.append(f"religious_level+{cfg.weight_same_religious_level:g}")

        return ScoreBreakdown(
            score=score,
            opposite_gender=opposite,
            age_fits_first=fits_first,
            age_fits_second=fits_second,
            same_area=same_area,
            same_religious_level=same_level,
            notes=notes,
        )

    def score(self, first: ProfileRow, second: ProfileRow) -> float:
        return self.evaluate(first, second).score


__all__ = ["CompatibilityScorer", "ScoreBreakdown", "age_in_preference"]
