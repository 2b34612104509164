from datetime import datetime, timedelta
from typing import Callable

from backend.app.domains.catalog.schemas import Entity
from backend.app.domains.regeneration.schemas import (
    RegenerationDecision,
    Scenario,
    StalenessCause,
)
from backend.app.infrastructure.datetime_utils import ensure_utc, utc_now


class StalenessEvaluator:
    """Decides whether cached content may be served again.

    Pure: reads the entity and the clock, never touches storage.
    """

    def __init__(
        self,
        staleness_window: timedelta,
        clock: Callable[[], datetime] = utc_now,
    ):
        if staleness_window <= timedelta(0):
            raise ValueError("staleness_window must be positive")
        self.staleness_window = staleness_window
        self._clock = clock

    def decide(
        self,
        entity: Entity,
        scenario: Scenario,
        effective_language: str | None,
        now: datetime | None = None,
    ) -> RegenerationDecision:
        if entity.cached_content is None:
            return RegenerationDecision.regenerate(StalenessCause.MISSING_CONTENT)

        # Content in the wrong language is incorrect, not merely stale.
        override = entity.manual_language_override
        if override and override != entity.cached_language:
            return RegenerationDecision.regenerate(StalenessCause.LANGUAGE_MISMATCH)

        if scenario == Scenario.FORCE:
            return RegenerationDecision.regenerate(StalenessCause.FORCED)

        if scenario == Scenario.REGENERATE_ALL:
            if effective_language is not None and effective_language != entity.cached_language:
                return RegenerationDecision.regenerate(StalenessCause.LANGUAGE_MISMATCH)
            if self.is_stale(entity, now):
                return RegenerationDecision.regenerate(StalenessCause.STALE)
            return RegenerationDecision.reuse()

        if scenario == Scenario.DEFAULT:
            return RegenerationDecision.reuse()

        raise ValueError(f"Unhandled scenario: {scenario!r}")

    def is_stale(self, entity: Entity, now: datetime | None = None) -> bool:
        if entity.last_generated_at is None:
            return True
        current = ensure_utc(now or self._clock())
        return current - ensure_utc(entity.last_generated_at) > self.staleness_window
