from datetime import datetime, timedelta
from enum import Enum as PyEnum

from pydantic import BaseModel, ConfigDict, Field

from backend.app.domains.catalog.schemas import Entity


class Scenario(str, PyEnum):
    REGENERATE_ALL = "regenerate_all"
    FORCE = "force"
    DEFAULT = "default"


class DecisionKind(str, PyEnum):
    REUSE = "reuse"
    REGENERATE = "regenerate"
    SKIPPED = "skipped"


class StalenessCause(str, PyEnum):
    MISSING_CONTENT = "missing_content"
    LANGUAGE_MISMATCH = "language_mismatch"
    STALE = "stale"
    FORCED = "forced"


class SkipReason(str, PyEnum):
    COST_LIMIT = "cost_limit"
    GENERATION_FAILED = "generation_failed"
    GENERATION_TIMEOUT = "generation_timeout"
    PERSIST_FAILED = "persist_failed"
    INFRASTRUCTURE = "infrastructure"
    CANCELLED = "cancelled"


# Skips that mean something went wrong, as opposed to admission control.
FAILURE_REASONS = frozenset(
    {SkipReason.GENERATION_FAILED, SkipReason.GENERATION_TIMEOUT, SkipReason.PERSIST_FAILED}
)


class ReservationOutcome(str, PyEnum):
    GRANTED = "granted"
    DENIED = "denied"


class BatchStatus(str, PyEnum):
    COMPLETED = "COMPLETED"
    PARTIALLY_COMPLETED = "PARTIALLY_COMPLETED"
    FAILED = "FAILED"
    ABORTED = "ABORTED"
    CANCELLED = "CANCELLED"


class RegenerationEngineConfig(BaseModel):
    """Engine settings, fixed for the lifetime of a RegenerationService."""

    model_config = ConfigDict(frozen=True)

    staleness_window: timedelta = Field(default=timedelta(days=30))
    cost_budget: float = Field(default=10.0, ge=0.0)
    default_entity_cost: float = Field(default=1.0, ge=0.0)
    worker_pool_size: int = Field(default=3, ge=1)
    generation_timeout_seconds: float = Field(default=30.0, gt=0.0)
    infrastructure_failure_threshold: int = Field(default=3, ge=1)
    max_batch_size: int = Field(default=10, ge=1)
    max_name_length: int = Field(default=200, ge=1)
    supported_languages: tuple[str, ...] = ("ro", "en")

    @classmethod
    def from_settings(cls, settings) -> "RegenerationEngineConfig":
        return cls(
            staleness_window=timedelta(hours=settings.staleness_window_hours),
            cost_budget=settings.default_cost_budget,
            default_entity_cost=settings.default_entity_cost,
            worker_pool_size=settings.worker_pool_size,
            generation_timeout_seconds=settings.generation_timeout_seconds,
            infrastructure_failure_threshold=settings.infrastructure_failure_threshold,
            max_batch_size=settings.max_batch_size,
            supported_languages=settings.language_tags,
        )


class RegenerationRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    entities: list[Entity] = Field(default_factory=list)
    scenario: Scenario = Scenario.DEFAULT
    respect_cost_limits: bool = True
    cost_budget: float | None = Field(
        default=None,
        ge=0.0,
        description="Budget units for this batch; engine default when omitted",
    )
    cost_weights: dict[str, float] = Field(
        default_factory=dict,
        description="Per-entity budget units; engine default cost when an entity is absent",
    )
    correlation_id: str | None = None


class RegenerationDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: DecisionKind
    cause: StalenessCause | None = None
    skip_reason: SkipReason | None = None

    @classmethod
    def reuse(cls) -> "RegenerationDecision":
        return cls(kind=DecisionKind.REUSE)

    @classmethod
    def regenerate(cls, cause: StalenessCause) -> "RegenerationDecision":
        return cls(kind=DecisionKind.REGENERATE, cause=cause)

    @classmethod
    def skipped(cls, reason: SkipReason, cause: StalenessCause | None = None):
        return cls(kind=DecisionKind.SKIPPED, cause=cause, skip_reason=reason)


class EntityOutcome(BaseModel):
    position: int
    entity_id: str
    decision: DecisionKind
    cause: StalenessCause | None = None
    skip_reason: SkipReason | None = None
    language: str | None = None
    new_content: str | None = None
    error: str | None = None
    error_code: str | None = None
    cost_units: float = 0.0
    estimated_cost_usd: float = 0.0
    tokens_used: int = 0

    @property
    def is_failure(self) -> bool:
        return self.skip_reason in FAILURE_REASONS


class BatchReport(BaseModel):
    batch_id: str
    scenario: Scenario
    respect_cost_limits: bool
    status: BatchStatus
    outcomes: list[EntityOutcome] = Field(default_factory=list)
    regenerated: int = 0
    reused: int = 0
    skipped: int = 0
    failed: int = 0
    cost_consumed: float = 0.0
    cost_budget: float = 0.0
    estimated_cost_usd: float = 0.0
    tokens_used: int = 0
    aborted: bool = False
    cancelled: bool = False
    started_at: datetime
    completed_at: datetime
    processing_time_ms: float = 0.0
    correlation_id: str | None = None

    @property
    def success(self) -> bool:
        return self.failed == 0 and not self.aborted and not self.cancelled
