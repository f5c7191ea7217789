"""Wire engine components from configuration.

One place builds the interaction engine, lifecycle, gate and generator with
the same store, notification sink and settings, so the CLI and embedding
callers get identical behavior.
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from ..config_types import AppConfig
from ..db.interface import DatabaseInterface
from ..interactions.engine import InteractionEngine
from ..matches.generator import MatchGenerator
from ..matches.lifecycle import MatchLifecycle
from ..matches.opening import OpeningMessageGate
from ..matches.scoring import CompatibilityScorer
from ..providers.base import NotificationSink, ProfileStateProvider, SettingsProvider
from ..providers.notifications import build_sink
from ..providers.profiles import DatabaseCohortSource, DatabaseProfileStateProvider
from ..providers.settings import DatabaseSettings


@dataclass
class EngineComponents:
    interactions: InteractionEngine
    lifecycle: MatchLifecycle
    scorer: CompatibilityScorer
    generator: MatchGenerator
    openings: OpeningMessageGate


def build_components(
    db: DatabaseInterface,
    config: AppConfig | None = None,
    profiles: ProfileStateProvider | None = None,
    notifier: NotificationSink | None = None,
    settings: SettingsProvider | None = None,
    clock: Callable[[], datetime] | None = None,
) -> EngineComponents:
    config = config or AppConfig()
    profiles = profiles or DatabaseProfileStateProvider(db)
    notifier = notifier or build_sink(config.notifications.enabled)
    settings = settings or DatabaseSettings(db)
    clock = clock or datetime.now

    lifecycle = MatchLifecycle(db, notifier=notifier, clock=clock,
                               list_limit_max=config.interaction.list_limit_max,
                               message_cooldown_seconds=config.interaction.message_cooldown_seconds)
    scorer = CompatibilityScorer(config.scoring)
    return EngineComponents(
        interactions=InteractionEngine(db, config.interaction, profiles=profiles, notifier=notifier,
                                       settings=settings, clock=clock, lifecycle=lifecycle),
        lifecycle=lifecycle,
        scorer=scorer,
        generator=MatchGenerator(DatabaseCohortSource(db), scorer, lifecycle,
                                 progress_interval=config.generation.progress_interval),
        openings=OpeningMessageGate(db, lifecycle, profiles=profiles, notifier=notifier, clock=clock,
                                    max_scan=config.interaction.max_scan),
    )


__all__ = ["EngineComponents", "build_components"]
