"""
Tests for batch orchestration.

Verifies:
- Outcomes keep request order and aggregate counts add up
- Reused products cost nothing and never reach the generator
- The cost budget admits exactly as many regenerations as it can pay for
- Invalid requests are rejected before any processing
- The dry-run plan has no side effects
"""

from datetime import timedelta

import pytest

from backend.app.domains.catalog.schemas import Entity
from backend.app.domains.generation.llm_client import MockDescriptionGenerator
from backend.app.domains.regeneration.errors import (
    EntityNotFoundError,
    InvalidRegenerationRequestError,
)
from backend.app.domains.regeneration.schemas import (
    BatchStatus,
    DecisionKind,
    RegenerationRequest,
    Scenario,
    SkipReason,
    StalenessCause,
)


def _missing(make_entity, entity_id: str, name: str | None = None) -> Entity:
    return make_entity(
        entity_id=entity_id,
        name=name or f"Produs {entity_id}",
        cached_content=None,
        cached_language=None,
        last_generated_at=None,
    )


class TestBatchOrdering:
    @pytest.mark.asyncio
    async def test_outcomes_follow_request_order(self, make_service, product_store, make_entity):
        entities = [
            make_entity(entity_id="a"),
            _missing(make_entity, "b"),
            make_entity(entity_id="c"),
            _missing(make_entity, "d"),
        ]
        for entity in entities:
            product_store.add(entity)
        service = make_service()

        report = await service.run(RegenerationRequest(entities=entities))

        assert [o.entity_id for o in report.outcomes] == ["a", "b", "c", "d"]
        assert [o.position for o in report.outcomes] == [0, 1, 2, 3]
        assert [o.decision for o in report.outcomes] == [
            DecisionKind.REUSE,
            DecisionKind.REGENERATE,
            DecisionKind.REUSE,
            DecisionKind.REGENERATE,
        ]
        assert report.regenerated == 2
        assert report.reused == 2
        assert report.skipped == 0
        assert report.failed == 0
        assert report.status == BatchStatus.COMPLETED
        assert report.success is True

    @pytest.mark.asyncio
    async def test_reuse_costs_nothing_and_skips_generator(
        self, make_service, product_store, make_entity, mock_generator
    ):
        entity = make_entity(entity_id="1")
        product_store.add(entity)
        service = make_service()

        report = await service.run(RegenerationRequest(entities=[entity]))

        assert report.outcomes[0].decision == DecisionKind.REUSE
        assert report.outcomes[0].language == "ro"
        assert report.cost_consumed == 0
        assert mock_generator.invocation_count == 0
        assert product_store.update_calls == []

    @pytest.mark.asyncio
    async def test_regenerated_content_is_reported_and_stored(
        self, make_service, product_store, make_entity, fixed_now
    ):
        entity = _missing(make_entity, "1", name="Burger with fries")
        product_store.add(entity)
        generator = MockDescriptionGenerator(
            response_map={"Burger with fries": "Juicy beef burger."},
            language_map={"Burger with fries": "en"},
            cost_usd=0.0002,
        )
        service = make_service(generator=generator)

        report = await service.run(RegenerationRequest(entities=[entity]))

        outcome = report.outcomes[0]
        assert outcome.decision == DecisionKind.REGENERATE
        assert outcome.cause == StalenessCause.MISSING_CONTENT
        assert outcome.new_content == "Juicy beef burger."
        assert outcome.language == "en"
        assert report.estimated_cost_usd == pytest.approx(0.0002)
        assert report.tokens_used > 0

        stored = product_store.snapshot("1")
        assert stored.cached_content == "Juicy beef burger."
        assert stored.cached_language == "en"
        assert stored.last_generated_at == fixed_now

    @pytest.mark.asyncio
    async def test_generator_receives_effective_language(
        self, make_service, product_store, make_entity, mock_generator
    ):
        unset = _missing(make_entity, "1", name="Papanași")
        overridden = make_entity(
            entity_id="2", name="Pizza", cached_language="en", manual_language_override="ro"
        )
        for entity in (unset, overridden):
            product_store.add(entity)
        service = make_service()

        await service.run(RegenerationRequest(entities=[unset, overridden]))

        assert sorted(mock_generator.invocations) == [("Papanași", None), ("Pizza", "ro")]

    @pytest.mark.asyncio
    async def test_correlation_id_is_carried_to_report(
        self, make_service, product_store, make_entity
    ):
        entity = make_entity(entity_id="1")
        product_store.add(entity)
        service = make_service()

        report = await service.run(
            RegenerationRequest(entities=[entity], correlation_id="corr-test-1")
        )

        assert report.correlation_id == "corr-test-1"
        assert report.batch_id.startswith("batch-")


class TestCostLimits:
    @pytest.mark.asyncio
    async def test_budget_admits_exactly_budget_entities(
        self, make_service, product_store, make_entity
    ):
        entities = [_missing(make_entity, str(i)) for i in range(5)]
        for entity in entities:
            product_store.add(entity)
        service = make_service()

        report = await service.run(
            RegenerationRequest(entities=entities, respect_cost_limits=True, cost_budget=3)
        )

        regenerated = [o for o in report.outcomes if o.decision == DecisionKind.REGENERATE]
        limited = [o for o in report.outcomes if o.skip_reason == SkipReason.COST_LIMIT]
        assert len(regenerated) == 3
        assert len(limited) == 2
        assert report.regenerated == 3
        assert report.skipped == 2
        assert report.failed == 0
        assert report.cost_consumed == 3
        assert report.status == BatchStatus.PARTIALLY_COMPLETED
        assert len(product_store.update_calls) == 3

    @pytest.mark.asyncio
    async def test_cost_limits_ignored_when_not_respected(
        self, make_service, product_store, make_entity
    ):
        entities = [_missing(make_entity, str(i)) for i in range(5)]
        for entity in entities:
            product_store.add(entity)
        service = make_service()

        report = await service.run(
            RegenerationRequest(entities=entities, respect_cost_limits=False, cost_budget=1)
        )

        assert report.regenerated == 5
        assert report.cost_consumed == 5
        assert report.cost_budget == 1

    @pytest.mark.asyncio
    async def test_force_still_honors_cost_guard(self, make_service, product_store, make_entity):
        entities = [make_entity(entity_id=str(i)) for i in range(3)]
        for entity in entities:
            product_store.add(entity)
        service = make_service()

        report = await service.run(
            RegenerationRequest(entities=entities, scenario=Scenario.FORCE, cost_budget=1)
        )

        assert report.regenerated == 1
        assert sum(1 for o in report.outcomes if o.skip_reason == SkipReason.COST_LIMIT) == 2

    @pytest.mark.asyncio
    async def test_cost_weights_replace_default_cost(
        self, make_service, product_store, make_entity
    ):
        entities = [_missing(make_entity, "heavy"), _missing(make_entity, "light")]
        for entity in entities:
            product_store.add(entity)
        service = make_service(worker_pool_size=1)

        report = await service.run(
            RegenerationRequest(
                entities=entities,
                cost_budget=3,
                cost_weights={"heavy": 2.5, "light": 1},
            )
        )

        assert report.outcomes[0].decision == DecisionKind.REGENERATE
        assert report.outcomes[0].cost_units == 2.5
        assert report.outcomes[1].skip_reason == SkipReason.COST_LIMIT
        assert report.cost_consumed == 2.5

    @pytest.mark.asyncio
    async def test_default_budget_comes_from_config(
        self, make_service, product_store, make_entity
    ):
        entities = [_missing(make_entity, str(i)) for i in range(3)]
        for entity in entities:
            product_store.add(entity)
        service = make_service(cost_budget=2)

        report = await service.run(RegenerationRequest(entities=entities))

        assert report.cost_budget == 2
        assert report.regenerated == 2


class TestRequestValidation:
    @pytest.mark.asyncio
    async def test_empty_batch_is_rejected(self, make_service):
        service = make_service()

        with pytest.raises(InvalidRegenerationRequestError):
            await service.run(RegenerationRequest(entities=[]))

    @pytest.mark.asyncio
    async def test_batch_over_limit_is_rejected(self, make_service, make_entity, mock_generator):
        entities = [_missing(make_entity, str(i)) for i in range(11)]
        service = make_service()

        with pytest.raises(InvalidRegenerationRequestError) as exc_info:
            await service.run(RegenerationRequest(entities=entities))

        assert exc_info.value.details["max_batch_size"] == 10
        assert mock_generator.invocation_count == 0

    @pytest.mark.asyncio
    async def test_duplicate_ids_are_rejected(self, make_service, make_entity):
        service = make_service()
        entities = [_missing(make_entity, "1"), _missing(make_entity, "1")]

        with pytest.raises(InvalidRegenerationRequestError) as exc_info:
            await service.run(RegenerationRequest(entities=entities))

        assert exc_info.value.details["duplicates"] == ["1"]

    @pytest.mark.parametrize(
        "overrides",
        [
            {"name": "   "},
            {"name": "x" * 201},
            {"manual_language_override": "fr"},
        ],
    )
    def test_invalid_product_fields_are_rejected(self, make_service, make_entity, overrides):
        service = make_service()
        entity = make_entity(entity_id="1").model_copy(update=overrides)

        with pytest.raises(InvalidRegenerationRequestError):
            service.validate(RegenerationRequest(entities=[entity]))

    @pytest.mark.parametrize(
        "weights",
        [{"1": -1.0}, {"other": 1.0}],
    )
    def test_invalid_cost_weights_are_rejected(self, make_service, make_entity, weights):
        service = make_service()

        with pytest.raises(InvalidRegenerationRequestError):
            service.validate(
                RegenerationRequest(entities=[make_entity(entity_id="1")], cost_weights=weights)
            )


class TestLoadEntities:
    @pytest.mark.asyncio
    async def test_loads_in_requested_order(self, make_service, product_store, make_entity):
        for entity_id in ("1", "2", "3"):
            product_store.add(make_entity(entity_id=entity_id))
        service = make_service()

        entities = await service.load_entities(["3", "1"])

        assert [e.id for e in entities] == ["3", "1"]

    @pytest.mark.asyncio
    async def test_unknown_ids_are_reported_together(
        self, make_service, product_store, make_entity
    ):
        product_store.add(make_entity(entity_id="1"))
        service = make_service()

        with pytest.raises(EntityNotFoundError) as exc_info:
            await service.load_entities(["1", "404", "405"])

        assert exc_info.value.entity_ids == ["404", "405"]


class TestPlan:
    def test_plan_has_no_side_effects(
        self, make_service, product_store, make_entity, mock_generator, fixed_now
    ):
        entities = [
            make_entity(entity_id="fresh"),
            make_entity(entity_id="old", last_generated_at=fixed_now - timedelta(days=90)),
            _missing(make_entity, "new"),
        ]
        service = make_service()

        outcomes = service.plan(
            RegenerationRequest(entities=entities, scenario=Scenario.REGENERATE_ALL)
        )

        assert [(o.entity_id, o.decision, o.cause) for o in outcomes] == [
            ("fresh", DecisionKind.REUSE, None),
            ("old", DecisionKind.REGENERATE, StalenessCause.STALE),
            ("new", DecisionKind.REGENERATE, StalenessCause.MISSING_CONTENT),
        ]
        assert [o.cost_units for o in outcomes] == [0.0, 1.0, 1.0]
        assert mock_generator.invocation_count == 0
        assert product_store.update_calls == []


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_forced_regeneration_applies_manual_override(
        self, make_service, product_store
    ):
        entity = Entity(
            id=584,
            name="Spicy Crispy Chicken",
            manual_language_override="ro",
            cached_language="en",
            cached_content="...",
        )
        product_store.add(entity)
        generator = MockDescriptionGenerator(default_response="Pui crocant și picant.")
        service = make_service(generator=generator)

        report = await service.run(
            RegenerationRequest(
                entities=[entity],
                scenario=Scenario.FORCE,
                respect_cost_limits=True,
                cost_budget=1,
            )
        )

        assert len(report.outcomes) == 1
        assert report.outcomes[0].entity_id == "584"
        assert report.outcomes[0].decision == DecisionKind.REGENERATE
        assert report.regenerated == 1
        assert generator.invocations == [("Spicy Crispy Chicken", "ro")]

        stored = product_store.snapshot("584")
        assert stored.cached_language == "ro"
        assert stored.cached_content == "Pui crocant și picant."
        assert stored.manual_language_override == "ro"
