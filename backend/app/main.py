from contextlib import asynccontextmanager

from fastapi import FastAPI
from pydantic import ValidationError

from backend.app.api.v1 import router as api_v1_router
from backend.app.config import get_settings
from backend.app.infrastructure.database import check_database_connectivity
from backend.app.logging_config import get_logger, setup_logging

try:
    settings = get_settings()
except ValidationError as e:
    missing_fields = [err["loc"][0] for err in e.errors() if err["type"] == "missing"]
    if missing_fields:
        raise SystemExit(
            f"Missing required environment variables: {', '.join(str(f).upper() for f in missing_fields)}. "
            f"Please check your .env file or environment configuration."
        ) from e
    raise

setup_logging(settings.log_dir)
logger = get_logger("app.main")


async def verify_infrastructure() -> dict:
    logger.info("Starting infrastructure connectivity verification")
    db_status = await check_database_connectivity()

    results = {
        "database": db_status,
        "ai_service": settings.ai_enabled,
    }

    if all(results.values()):
        logger.info("All infrastructure connectivity checks passed")
    else:
        failed = [k for k, v in results.items() if not v]
        logger.warning(f"Infrastructure checks failed for: {', '.join(failed)}")

    return results


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting Menu Description Engine in {settings.app_env} environment")
    connectivity = await verify_infrastructure()
    app.state.infrastructure_status = connectivity
    yield
    logger.info("Shutting down Menu Description Engine")


app = FastAPI(
    title="Menu Description Engine",
    description="AI product description regeneration for restaurant catalogs",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(api_v1_router)


@app.get("/health")
async def health_check() -> dict:
    return {"status": "healthy"}


@app.get("/health/infrastructure")
async def infrastructure_health() -> dict:
    return {
        "status": "healthy" if all(app.state.infrastructure_status.values()) else "degraded",
        "components": app.state.infrastructure_status,
    }
