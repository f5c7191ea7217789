"""Batch match generation for one cohort.

Full unordered pairwise scan (n*(n-1)/2 pairs), single-threaded. Runs over
the same cohort must not overlap; the pair key is the only dedup mechanism.
"""
from __future__ import annotations
import logging
import time
from itertools import combinations
from typing import List

from ..db.models import ProfileRow
from ..utils.logging_helpers import log_progress
from .lifecycle import MatchLifecycle, SOURCE_WEDDING
from .scoring import CompatibilityScorer

logger = logging.getLogger(__name__)


class GenerationResult:
    """Results from a cohort generation run."""

    def __init__(self, cohort_id: int):
        self.cohort_id = cohort_id
        self.members = 0
        self.pairs_scanned = 0
        self.qualifying = 0
        self.created = 0
        self.updated = 0
        self.duration_seconds = 0.0


class MatchGenerator:
    def __init__(self, cohort_source, scorer: CompatibilityScorer, lifecycle: MatchLifecycle,
                 progress_interval: int = 500):
        self.cohort_source = cohort_source
        self.scorer = scorer
        self.lifecycle = lifecycle
        self.progress_interval = max(1, progress_interval)

    def generate_for_cohort(self, cohort_id: int, min_score: float) -> GenerationResult:
        result = GenerationResult(cohort_id)
        start = time.time()
        members: List[ProfileRow] = sorted(self.cohort_source.members(cohort_id), key=lambda p: p.user_id)
        result.members = len(members)
        total = len(members) * (len(members) - 1) // 2
        logger.info(f"Generating matches for cohort {cohort_id}: {len(members)} members, {total} pairs")

        for first, second in combinations(members, 2):
            result.pairs_scanned += 1
            score = self.scorer.score(first, second)
            if score >= min_score:
                result.qualifying += 1
                _, created = self.lifecycle.upsert(
                    first.user_id, second.user_id,
                    meeting_context_id=cohort_id,
                    origin_context_id=cohort_id,
                    score=score,
                    source=SOURCE_WEDDING,
                )
                if created:
                    result.created += 1
                else:
                    result.updated += 1
            if result.pairs_scanned % self.progress_interval == 0:
                log_progress(
                    processed=result.pairs_scanned,
                    total=total,
                    new=result.created,
                    updated=result.updated,
                    qualifying=result.qualifying,
                    elapsed_seconds=time.time() - start,
                    item_name="pairs",
                )

        result.duration_seconds = time.time() - start
        logger.debug(f"Cohort {cohort_id}: {result.qualifying} qualifying pair(s) at min score {min_score}")
        return result


__all__ = ["MatchGenerator", "GenerationResult"]
