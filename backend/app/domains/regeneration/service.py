import asyncio
import time
from datetime import datetime
from typing import Callable, Sequence

from backend.app.domains.catalog.repository import ProductStore
from backend.app.domains.catalog.schemas import Entity
from backend.app.domains.generation.errors import DescriptionGenerationError
from backend.app.domains.generation.llm_client import BaseDescriptionGenerator
from backend.app.domains.generation.schemas import GeneratedDescription
from backend.app.domains.regeneration.cache_writer import CacheWriter
from backend.app.domains.regeneration.cost_guard import CostGuard
from backend.app.domains.regeneration.errors import (
    CachePersistError,
    EntityNotFoundError,
    InvalidRegenerationRequestError,
)
from backend.app.domains.regeneration.language import resolve_language
from backend.app.domains.regeneration.schemas import (
    BatchReport,
    BatchStatus,
    DecisionKind,
    EntityOutcome,
    RegenerationEngineConfig,
    RegenerationRequest,
    ReservationOutcome,
    SkipReason,
    StalenessCause,
)
from backend.app.domains.regeneration.staleness import StalenessEvaluator
from backend.app.infrastructure.datetime_utils import utc_now
from backend.app.infrastructure.errors import (
    GenerationFailureError,
    GenerationTimeoutError,
    PersistFailureError,
    StoreUnavailableError,
    StructuredError,
)
from backend.app.logging_config import (
    LogContext,
    generate_batch_id,
    generate_correlation_id,
    get_correlation_id,
    get_logger,
)

logger = get_logger("app.domains.regeneration.service")


class InfrastructureMonitor:
    """Trips once the store fails the same way ``threshold`` times in a row."""

    def __init__(self, threshold: int):
        self.threshold = threshold
        self._last_key: tuple[str, str] | None = None
        self._count = 0
        self.tripped = False

    def record_failure(self, error: CachePersistError) -> bool:
        if not error.is_infrastructure:
            self.record_success()
            return self.tripped

        cause = error.__cause__ or error
        key = (type(cause).__name__, error.reason)
        if key == self._last_key:
            self._count += 1
        else:
            self._last_key = key
            self._count = 1

        if self._count >= self.threshold:
            self.tripped = True
        return self.tripped

    def record_success(self) -> None:
        self._last_key = None
        self._count = 0


class _BatchRun:
    """Mutable state shared by the workers of one batch."""

    def __init__(
        self,
        request: RegenerationRequest,
        batch_id: str,
        correlation_id: str,
        guard: CostGuard,
        monitor: InfrastructureMonitor,
        cancel_event: asyncio.Event | None,
        now: datetime,
    ):
        self.request = request
        self.batch_id = batch_id
        self.correlation_id = correlation_id
        self.guard = guard
        self.monitor = monitor
        self.cancel_event = cancel_event
        self.now = now

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()


class RegenerationService:
    """Runs a batch of products through the reuse-or-regenerate policy."""

    def __init__(
        self,
        generator: BaseDescriptionGenerator,
        store: ProductStore,
        config: RegenerationEngineConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.generator = generator
        self.store = store
        self.config = config or RegenerationEngineConfig()
        self._clock = clock
        self.evaluator = StalenessEvaluator(self.config.staleness_window, clock=clock)
        self.cache_writer = CacheWriter(store, clock=clock)

    async def load_entities(self, entity_ids: Sequence[str]) -> list[Entity]:
        """Fetch products from the store in request order.

        Raises EntityNotFoundError listing every id the store does not know.
        """
        found = await self.store.get_many(entity_ids)
        missing = [entity_id for entity_id in entity_ids if entity_id not in found]
        if missing:
            raise EntityNotFoundError(missing)
        return [found[entity_id] for entity_id in entity_ids]

    def validate(self, request: RegenerationRequest) -> None:
        entities = request.entities
        if not entities:
            raise InvalidRegenerationRequestError("At least one product is required")
        if len(entities) > self.config.max_batch_size:
            raise InvalidRegenerationRequestError(
                f"Maximum {self.config.max_batch_size} products per batch",
                details={"count": len(entities), "max_batch_size": self.config.max_batch_size},
            )

        seen: set[str] = set()
        duplicates: list[str] = []
        for position, entity in enumerate(entities):
            if not entity.id.strip():
                raise InvalidRegenerationRequestError(
                    f"Product at position {position} has an empty id",
                    details={"position": position},
                )
            name = entity.name.strip()
            if not name:
                raise InvalidRegenerationRequestError(
                    f"Product {entity.id} has an empty name",
                    details={"entity_id": entity.id},
                )
            if len(name) > self.config.max_name_length:
                raise InvalidRegenerationRequestError(
                    f"Product name too long (max {self.config.max_name_length} characters)",
                    details={"entity_id": entity.id, "length": len(name)},
                )
            override = entity.manual_language_override
            if override and override not in self.config.supported_languages:
                raise InvalidRegenerationRequestError(
                    f"Unsupported language override '{override}' for product {entity.id}",
                    details={
                        "entity_id": entity.id,
                        "supported_languages": list(self.config.supported_languages),
                    },
                )
            if entity.id in seen:
                duplicates.append(entity.id)
            seen.add(entity.id)

        if duplicates:
            raise InvalidRegenerationRequestError(
                "Duplicate product ids in batch",
                details={"duplicates": duplicates},
            )

        unknown = sorted(set(request.cost_weights) - seen)
        if unknown:
            raise InvalidRegenerationRequestError(
                "Cost weights given for products outside the batch",
                details={"entity_ids": unknown},
            )
        negative = sorted(k for k, v in request.cost_weights.items() if v < 0)
        if negative:
            raise InvalidRegenerationRequestError(
                "Cost weights must be non-negative",
                details={"entity_ids": negative},
            )

    def plan(self, request: RegenerationRequest) -> list[EntityOutcome]:
        """Dry run: staleness decisions only, no cost reserved and nothing generated."""
        self.validate(request)
        now = self._clock()
        outcomes = []
        for position, entity in enumerate(request.entities):
            language = resolve_language(entity)
            decision = self.evaluator.decide(entity, request.scenario, language, now=now)
            outcomes.append(
                EntityOutcome(
                    position=position,
                    entity_id=entity.id,
                    decision=decision.kind,
                    cause=decision.cause,
                    language=language,
                    cost_units=(
                        self._entity_cost(request, entity)
                        if decision.kind == DecisionKind.REGENERATE
                        else 0.0
                    ),
                )
            )
        return outcomes

    async def run(
        self,
        request: RegenerationRequest,
        cancel_event: asyncio.Event | None = None,
    ) -> BatchReport:
        self.validate(request)

        started_at = utc_now()
        start_time = time.time()
        batch_id = generate_batch_id()
        correlation_id = (
            request.correlation_id or get_correlation_id() or generate_correlation_id()
        )
        budget = (
            request.cost_budget if request.cost_budget is not None else self.config.cost_budget
        )
        batch = _BatchRun(
            request=request,
            batch_id=batch_id,
            correlation_id=correlation_id,
            guard=CostGuard(budget, enforce=request.respect_cost_limits),
            monitor=InfrastructureMonitor(self.config.infrastructure_failure_threshold),
            cancel_event=cancel_event,
            now=self._clock(),
        )

        with LogContext(correlation_id=correlation_id, batch_id=batch_id):
            logger.info(
                f"Starting regeneration batch of {len(request.entities)} products, "
                f"scenario: {request.scenario.value}, "
                f"respect_cost_limits: {request.respect_cost_limits}, budget: {budget}"
            )

            semaphore = asyncio.Semaphore(self.config.worker_pool_size)
            results: list[EntityOutcome | None] = [None] * len(request.entities)

            async def _run(position: int, entity: Entity) -> None:
                with LogContext(entity_id=entity.id):
                    results[position] = await self._process(batch, semaphore, position, entity)

            async with asyncio.TaskGroup() as group:
                for position, entity in enumerate(request.entities):
                    group.create_task(_run(position, entity))

            outcomes = [outcome for outcome in results if outcome is not None]
            report = self._build_report(batch, outcomes, budget, started_at, start_time)

            logger.info(
                f"Regeneration batch finished with status {report.status.value}: "
                f"{report.regenerated} regenerated, {report.reused} reused, "
                f"{report.skipped} skipped, {report.failed} failed, "
                f"cost consumed: {report.cost_consumed}, "
                f"duration: {report.processing_time_ms:.0f}ms"
            )
            return report

    async def _process(
        self,
        batch: _BatchRun,
        semaphore: asyncio.Semaphore,
        position: int,
        entity: Entity,
    ) -> EntityOutcome:
        language = resolve_language(entity)
        decision = self.evaluator.decide(entity, batch.request.scenario, language, now=batch.now)

        if decision.kind == DecisionKind.REUSE:
            logger.debug(f"Reusing cached description for product {entity.id}")
            return EntityOutcome(
                position=position,
                entity_id=entity.id,
                decision=DecisionKind.REUSE,
                language=entity.cached_language,
            )

        async with semaphore:
            if batch.cancelled:
                return self._skipped(position, entity, decision.cause, SkipReason.CANCELLED)
            if batch.monitor.tripped:
                return self._skipped(
                    position,
                    entity,
                    decision.cause,
                    SkipReason.INFRASTRUCTURE,
                    error="Batch aborted after repeated product store failures",
                )

            cost = self._entity_cost(batch.request, entity)
            if await batch.guard.reserve(cost) == ReservationOutcome.DENIED:
                logger.info(f"Cost limit reached, skipping product {entity.id}")
                return self._skipped(position, entity, decision.cause, SkipReason.COST_LIMIT)

            return await self._regenerate(batch, position, entity, language, decision.cause, cost)

    async def _regenerate(
        self,
        batch: _BatchRun,
        position: int,
        entity: Entity,
        language: str | None,
        cause: StalenessCause | None,
        cost: float,
    ) -> EntityOutcome:
        timeout = self.config.generation_timeout_seconds
        try:
            generated = await self._generate(entity, language, batch.cancel_event)
        except asyncio.TimeoutError:
            return self._failed(
                batch,
                position,
                entity,
                cause,
                SkipReason.GENERATION_TIMEOUT,
                GenerationTimeoutError(entity.id, timeout, batch.batch_id, batch.correlation_id),
                cost,
            )
        except DescriptionGenerationError as e:
            return self._failed(
                batch,
                position,
                entity,
                cause,
                SkipReason.GENERATION_FAILED,
                GenerationFailureError(entity.id, e.message, batch.batch_id, batch.correlation_id),
                cost,
            )
        except Exception as e:
            logger.error(f"Unexpected generator error for product {entity.id}: {e}", exc_info=True)
            return self._failed(
                batch,
                position,
                entity,
                cause,
                SkipReason.GENERATION_FAILED,
                GenerationFailureError(
                    entity.id, f"Unexpected error: {e}", batch.batch_id, batch.correlation_id
                ),
                cost,
            )

        if generated is None or batch.cancelled:
            logger.info(f"Discarding generation for product {entity.id}, batch cancelled")
            return self._skipped(position, entity, cause, SkipReason.CANCELLED, cost=cost)

        try:
            await self.cache_writer.commit(entity.id, generated.text, generated.detected_language)
        except CachePersistError as e:
            tripped_before = batch.monitor.tripped
            if batch.monitor.record_failure(e) and not tripped_before:
                logger.error(
                    f"Product store failed {batch.monitor.threshold} times in a row, "
                    f"aborting remaining products"
                )
            structured_cls = StoreUnavailableError if e.is_infrastructure else PersistFailureError
            return self._failed(
                batch,
                position,
                entity,
                cause,
                SkipReason.PERSIST_FAILED,
                structured_cls(entity.id, e.reason, batch.batch_id, batch.correlation_id),
                cost,
                generated=generated,
            )

        batch.monitor.record_success()

        if batch.cancelled:
            return self._skipped(
                position,
                entity,
                cause,
                SkipReason.CANCELLED,
                error="Batch cancelled before the commit was confirmed",
                cost=cost,
                generated=generated,
            )

        logger.info(
            f"Regenerated description for product {entity.id} "
            f"({generated.detected_language}), cause: {cause.value if cause else None}"
        )
        return EntityOutcome(
            position=position,
            entity_id=entity.id,
            decision=DecisionKind.REGENERATE,
            cause=cause,
            language=generated.detected_language,
            new_content=generated.text,
            cost_units=cost,
            estimated_cost_usd=generated.usage.estimated_cost_usd,
            tokens_used=generated.usage.tokens_used,
        )

    async def _generate(
        self,
        entity: Entity,
        language: str | None,
        cancel_event: asyncio.Event | None,
    ) -> GeneratedDescription | None:
        """Call the generator under the timeout; ``None`` if the batch was cancelled first."""
        call = asyncio.wait_for(
            self.generator.generate(entity.name, language),
            timeout=self.config.generation_timeout_seconds,
        )
        if cancel_event is None:
            return await call

        generation = asyncio.ensure_future(call)
        cancelled = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {generation, cancelled}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            cancelled.cancel()
            if not generation.done():
                generation.cancel()

        if generation in done:
            return generation.result()
        return None

    def _entity_cost(self, request: RegenerationRequest, entity: Entity) -> float:
        return request.cost_weights.get(entity.id, self.config.default_entity_cost)

    def _skipped(
        self,
        position: int,
        entity: Entity,
        cause: StalenessCause | None,
        reason: SkipReason,
        error: str | None = None,
        cost: float = 0.0,
        generated: GeneratedDescription | None = None,
    ) -> EntityOutcome:
        return EntityOutcome(
            position=position,
            entity_id=entity.id,
            decision=DecisionKind.SKIPPED,
            cause=cause,
            skip_reason=reason,
            error=error,
            cost_units=cost,
            estimated_cost_usd=generated.usage.estimated_cost_usd if generated else 0.0,
            tokens_used=generated.usage.tokens_used if generated else 0,
        )

    def _failed(
        self,
        batch: _BatchRun,
        position: int,
        entity: Entity,
        cause: StalenessCause | None,
        reason: SkipReason,
        error: StructuredError,
        cost: float,
        generated: GeneratedDescription | None = None,
    ) -> EntityOutcome:
        logger.error(
            f"Product {entity.id} skipped ({reason.value}): {error.message}",
            extra=error.to_log_dict(),
        )
        outcome = self._skipped(
            position, entity, cause, reason, error=error.message, cost=cost, generated=generated
        )
        return outcome.model_copy(update={"error_code": error.code})

    def _build_report(
        self,
        batch: _BatchRun,
        outcomes: list[EntityOutcome],
        budget: float,
        started_at: datetime,
        start_time: float,
    ) -> BatchReport:
        regenerated = sum(1 for o in outcomes if o.decision == DecisionKind.REGENERATE)
        reused = sum(1 for o in outcomes if o.decision == DecisionKind.REUSE)
        failed = sum(1 for o in outcomes if o.is_failure)
        skipped = sum(
            1 for o in outcomes if o.decision == DecisionKind.SKIPPED and not o.is_failure
        )

        cancelled = batch.cancelled
        aborted = batch.monitor.tripped
        if cancelled:
            status = BatchStatus.CANCELLED
        elif aborted:
            status = BatchStatus.ABORTED
        elif failed == 0 and skipped == 0:
            status = BatchStatus.COMPLETED
        elif failed and regenerated == 0 and reused == 0:
            status = BatchStatus.FAILED
        else:
            status = BatchStatus.PARTIALLY_COMPLETED

        return BatchReport(
            batch_id=batch.batch_id,
            scenario=batch.request.scenario,
            respect_cost_limits=batch.request.respect_cost_limits,
            status=status,
            outcomes=outcomes,
            regenerated=regenerated,
            reused=reused,
            skipped=skipped,
            failed=failed,
            cost_consumed=batch.guard.consumed,
            cost_budget=budget,
            estimated_cost_usd=sum(o.estimated_cost_usd for o in outcomes),
            tokens_used=sum(o.tokens_used for o in outcomes),
            aborted=aborted,
            cancelled=cancelled,
            started_at=started_at,
            completed_at=utc_now(),
            processing_time_ms=(time.time() - start_time) * 1000,
            correlation_id=batch.correlation_id,
        )
