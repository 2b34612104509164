"""
Regeneration API endpoints.

Provides endpoints for:
- Batch regeneration of product descriptions
- Dry-run preview of which products would be regenerated
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field, field_validator

from backend.app.api.deps import get_regeneration_service
from backend.app.domains.catalog.errors import ProductStoreUnavailableError
from backend.app.domains.catalog.schemas import Entity
from backend.app.domains.regeneration.errors import (
    EntityNotFoundError,
    InvalidRegenerationRequestError,
    RegenerationError,
)
from backend.app.domains.regeneration.schemas import (
    BatchReport,
    BatchStatus,
    DecisionKind,
    EntityOutcome,
    RegenerationRequest,
    Scenario,
    SkipReason,
    StalenessCause,
)
from backend.app.domains.regeneration.service import RegenerationService
from backend.app.logging_config import get_logger

router = APIRouter()
logger = get_logger("app.api.v1.regeneration")

RegenerationServiceDep = Annotated[RegenerationService, Depends(get_regeneration_service)]


class ProductItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    manual_language_override: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class ProductRegenerationBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    products: list[ProductItem] = Field(min_length=1)
    scenario: Scenario = Scenario.DEFAULT
    respect_cost_limits: bool = True
    cost_budget: float | None = Field(default=None, ge=0.0)
    cost_weights: dict[str, float] = Field(default_factory=dict)


class ProductResult(BaseModel):
    position: int
    id: str
    status: DecisionKind
    cause: StalenessCause | None = None
    skip_reason: SkipReason | None = None
    language: str | None = None
    description: str | None = None
    error: str | None = None
    error_code: str | None = None
    cost_units: float = 0.0

    @classmethod
    def from_outcome(cls, outcome: EntityOutcome) -> "ProductResult":
        return cls(
            position=outcome.position,
            id=outcome.entity_id,
            status=outcome.decision,
            cause=outcome.cause,
            skip_reason=outcome.skip_reason,
            language=outcome.language,
            description=outcome.new_content,
            error=outcome.error,
            error_code=outcome.error_code,
            cost_units=outcome.cost_units,
        )


class RegenerationSummary(BaseModel):
    status: BatchStatus
    total: int
    regenerated: int
    reused: int
    skipped: int
    failed: int
    cost_consumed: float
    cost_budget: float
    estimated_cost_usd: float
    tokens_used: int
    aborted: bool
    cancelled: bool
    processing_time_ms: float


class ProductRegenerationResponse(BaseModel):
    success: bool
    batch_id: str
    results: list[ProductResult]
    summary: RegenerationSummary

    @classmethod
    def from_report(cls, report: BatchReport) -> "ProductRegenerationResponse":
        return cls(
            success=report.success,
            batch_id=report.batch_id,
            results=[ProductResult.from_outcome(o) for o in report.outcomes],
            summary=RegenerationSummary(
                status=report.status,
                total=len(report.outcomes),
                regenerated=report.regenerated,
                reused=report.reused,
                skipped=report.skipped,
                failed=report.failed,
                cost_consumed=report.cost_consumed,
                cost_budget=report.cost_budget,
                estimated_cost_usd=report.estimated_cost_usd,
                tokens_used=report.tokens_used,
                aborted=report.aborted,
                cancelled=report.cancelled,
                processing_time_ms=report.processing_time_ms,
            ),
        )


class PreviewSummary(BaseModel):
    total: int
    to_regenerate: int
    to_reuse: int
    estimated_cost_units: float


class RegenerationPreviewResponse(BaseModel):
    success: bool = True
    results: list[ProductResult]
    summary: PreviewSummary


def _error_detail(error: RegenerationError) -> dict:
    return {"code": error.code, "message": error.message, "details": error.details}


async def _build_request(
    body: ProductRegenerationBody,
    service: RegenerationService,
    correlation_id: str | None,
) -> RegenerationRequest:
    """Validate the body, then load the stored products it refers to.

    The stored product is authoritative; the body only selects products.
    """
    options = {
        "scenario": body.scenario,
        "respect_cost_limits": body.respect_cost_limits,
        "cost_budget": body.cost_budget,
        "cost_weights": body.cost_weights,
        "correlation_id": correlation_id,
    }
    try:
        service.validate(
            RegenerationRequest(
                entities=[
                    Entity(id=p.id, name=p.name, manual_language_override=p.manual_language_override)
                    for p in body.products
                ],
                **options,
            )
        )
        entities = await service.load_entities([p.id for p in body.products])
    except InvalidRegenerationRequestError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=_error_detail(e))
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_error_detail(e))
    except ProductStoreUnavailableError as e:
        logger.error(f"Product store unavailable while loading batch: {e.message}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"code": e.code, "message": e.message, "details": e.details},
        )

    return RegenerationRequest(entities=entities, **options)


@router.post(
    "/products",
    response_model=ProductRegenerationResponse,
    status_code=status.HTTP_200_OK,
    summary="Regenerate product descriptions",
    description="Reuse or regenerate AI descriptions for a batch of products.",
)
async def regenerate_products(
    body: ProductRegenerationBody,
    service: RegenerationServiceDep,
    x_correlation_id: Annotated[str | None, Header()] = None,
) -> ProductRegenerationResponse:
    """
    Regenerate descriptions for a batch of products.

    - `default` only fills products without a description
    - `regenerate_all` also refreshes stale and wrong-language descriptions
    - `force` regenerates everything, still within the cost budget
    - A manual language override that disagrees with the stored language
      always triggers regeneration
    """
    if not service.generator.is_configured:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "code": "AI_SERVICE_UNAVAILABLE",
                "message": "AI service not configured",
                "details": {},
            },
        )

    logger.info(
        f"Regeneration requested for {len(body.products)} products, "
        f"scenario: {body.scenario.value}"
    )

    request = await _build_request(body, service, x_correlation_id)
    try:
        report = await service.run(request)
    except InvalidRegenerationRequestError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=_error_detail(e))

    if not report.success:
        logger.warning(
            f"Regeneration batch {report.batch_id} finished with {report.failed} failures, "
            f"status: {report.status.value}"
        )

    return ProductRegenerationResponse.from_report(report)


@router.post(
    "/products/preview",
    response_model=RegenerationPreviewResponse,
    status_code=status.HTTP_200_OK,
    summary="Preview product regeneration",
    description="Show which products would be regenerated without calling the AI service.",
)
async def preview_products(
    body: ProductRegenerationBody,
    service: RegenerationServiceDep,
    x_correlation_id: Annotated[str | None, Header()] = None,
) -> RegenerationPreviewResponse:
    request = await _build_request(body, service, x_correlation_id)
    outcomes = service.plan(request)

    to_regenerate = [o for o in outcomes if o.decision == DecisionKind.REGENERATE]
    return RegenerationPreviewResponse(
        results=[ProductResult.from_outcome(o) for o in outcomes],
        summary=PreviewSummary(
            total=len(outcomes),
            to_regenerate=len(to_regenerate),
            to_reuse=len(outcomes) - len(to_regenerate),
            estimated_cost_units=sum(o.cost_units for o in to_regenerate),
        ),
    )
