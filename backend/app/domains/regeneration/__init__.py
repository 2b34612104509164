"""
Regeneration domain module.

Decides, per product, whether a cached AI description may be reused or
must be regenerated, and drives a batch of such decisions to completion:
- Override Resolver (language.resolve_language)
- Staleness Evaluator (staleness.StalenessEvaluator)
- Cost Guard (cost_guard.CostGuard)
- Cache Writer (cache_writer.CacheWriter)
- Batch Orchestrator (service.RegenerationService)
"""

from backend.app.domains.regeneration.cache_writer import CacheWriter, CommitAck
from backend.app.domains.regeneration.cost_guard import CostGuard
from backend.app.domains.regeneration.errors import (
    CachePersistError,
    EntityNotFoundError,
    InvalidRegenerationRequestError,
    RegenerationError,
)
from backend.app.domains.regeneration.language import resolve_language
from backend.app.domains.regeneration.schemas import (
    BatchReport,
    BatchStatus,
    DecisionKind,
    EntityOutcome,
    RegenerationDecision,
    RegenerationEngineConfig,
    RegenerationRequest,
    ReservationOutcome,
    Scenario,
    SkipReason,
    StalenessCause,
)
from backend.app.domains.regeneration.service import InfrastructureMonitor, RegenerationService
from backend.app.domains.regeneration.staleness import StalenessEvaluator

__all__ = [
    "BatchReport",
    "BatchStatus",
    "CacheWriter",
    "CachePersistError",
    "CommitAck",
    "CostGuard",
    "DecisionKind",
    "EntityNotFoundError",
    "EntityOutcome",
    "InfrastructureMonitor",
    "InvalidRegenerationRequestError",
    "RegenerationDecision",
    "RegenerationEngineConfig",
    "RegenerationError",
    "RegenerationRequest",
    "RegenerationService",
    "ReservationOutcome",
    "Scenario",
    "SkipReason",
    "StalenessCause",
    "StalenessEvaluator",
    "resolve_language",
]
