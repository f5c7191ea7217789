"""Generation service: orchestrate batch match generation for a cohort.

Builds the scorer/lifecycle/generator from configuration, runs the pairwise
scan and records the run in the meta table.
"""

from __future__ import annotations
import time
import logging
from typing import Dict, Any

from ..config_types import AppConfig
from ..db.interface import DatabaseInterface
from ..matches.generator import GenerationResult
from .components import build_components

logger = logging.getLogger(__name__)


def run_generation(
    db: DatabaseInterface,
    config: Dict[str, Any] | AppConfig,
    cohort_id: int,
    min_score: float | None = None,
) -> GenerationResult:
    """Generate matches for every qualifying pair in a cohort.

    Args:
        db: Database instance
        config: Full configuration dict (or typed AppConfig)
        cohort_id: Event id whose attendees form the cohort
        min_score: Threshold override (defaults to generation.min_score)

    Returns:
        GenerationResult with scan statistics
    """
    typed = config if isinstance(config, AppConfig) else AppConfig.from_dict(config)
    threshold = typed.generation.min_score if min_score is None else float(min_score)

    components = build_components(db, typed)
    result = components.generator.generate_for_cohort(cohort_id, threshold)

    logger.info(
        f"Cohort {cohort_id}: scanned {result.pairs_scanned} pair(s), "
        f"{result.qualifying} >= {threshold:g} ({result.created} new, {result.updated} updated) "
        f"in {result.duration_seconds:.2f}s"
    )

    db.set_meta(f'last_generation:{cohort_id}', str(time.time()))
    logger.debug("Generation run recorded in meta table")
    return result


__all__ = ["run_generation"]
