"""Typed configuration dataclasses for wedding-match-engine.

Every tunable the engine uses lives here and is injected into components at
construction time; there are no numeric defaults scattered through modules.
"""
from __future__ import annotations
from dataclasses import dataclass, field, asdict, fields
from typing import Dict, Any


def _pick(cls, data: Dict[str, Any] | None):
    """Build dataclass ``cls`` from ``data`` ignoring unknown keys."""
    data = data or {}
    names = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in data.items() if k in names})


@dataclass
class InteractionConfig:
    """Caps, windows and scan limits for the interaction engine."""
    max_scan: int = 2000  # most-recent active signals loaded per ActiveIndex
    super_like_daily_cap: int = 5  # <= 0 disables super-likes
    undo_dislike_minutes: int = 10
    freeze_default_days: int = 14
    freeze_max_days: int = 30
    list_limit_max: int = 500
    report_details_max: int = 800
    message_cooldown_seconds: int = 2  # per-match anti-spam window, 0 disables

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ScoringConfig:
    """Weights for the pairwise compatibility score (max 100 with defaults)."""
    weight_opposite_gender: float = 30.0
    weight_age_per_direction: float = 20.0
    weight_same_area: float = 15.0
    weight_same_religious_level: float = 15.0

    @property
    def max_score(self) -> float:
        return (self.weight_opposite_gender + 2 * self.weight_age_per_direction
                + self.weight_same_area + self.weight_same_religious_level)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class GenerationConfig:
    """Batch cohort generation settings."""
    min_score: float = 50.0
    progress_interval: int = 500  # log progress every N pairs

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class NotificationsConfig:
    enabled: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class DatabaseConfig:
    path: str = "data/db/matches.db"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class AppConfig:
    """Root application configuration with all subsections."""
    log_level: str = "INFO"
    interaction: InteractionConfig = field(default_factory=InteractionConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the nested dictionary shape produced by load_config."""
        return {
            "log_level": self.log_level,
            "interaction": self.interaction.to_dict(),
            "scoring": self.scoring.to_dict(),
            "generation": self.generation.to_dict(),
            "notifications": self.notifications.to_dict(),
            "database": self.database.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> AppConfig:
        """Create typed config from a dictionary (from load_config).

        Unknown keys are ignored so older .env files keep working.
        """
        return cls(
            log_level=data.get("log_level", "INFO"),
            interaction=_pick(InteractionConfig, data.get("interaction")),
            scoring=_pick(ScoringConfig, data.get("scoring")),
            generation=_pick(GenerationConfig, data.get("generation")),
            notifications=_pick(NotificationsConfig, data.get("notifications")),
            database=_pick(DatabaseConfig, data.get("database")),
        )


__all__ = [
    "InteractionConfig",
    "ScoringConfig",
    "GenerationConfig",
    "NotificationsConfig",
    "DatabaseConfig",
    "AppConfig",
]
