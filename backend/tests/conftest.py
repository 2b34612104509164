"""
Pytest configuration and shared fixtures for all tests.

This module provides:
- Database session fixtures on in-memory SQLite
- In-memory product store with injectable failures
- Mock description generators and engine configuration
- Sample product factories
"""

import asyncio
import os
import sys
from collections.abc import AsyncGenerator, Sequence
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Add the workspace root to the Python path for absolute imports
workspace_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, workspace_root)

# Set test environment variables BEFORE importing app modules
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_DIR", "/tmp/test_logs")

from backend.app.config import Settings  # noqa: E402
from backend.app.domains.catalog.errors import (  # noqa: E402
    ProductNotFoundError,
    ProductStoreError,
    ProductStoreUnavailableError,
)
from backend.app.domains.catalog.models import Product  # noqa: E402, F401
from backend.app.domains.catalog.schemas import Entity  # noqa: E402
from backend.app.domains.generation.llm_client import MockDescriptionGenerator  # noqa: E402
from backend.app.domains.regeneration.schemas import RegenerationEngineConfig  # noqa: E402
from backend.app.infrastructure.database import Base  # noqa: E402

FIXED_NOW = datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)


# ============================================================================
# Test Settings
# ============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings with in-memory database."""
    return Settings(
        app_env="test",
        database_url="sqlite+aiosqlite:///:memory:",
        log_dir="/tmp/test_logs",
    )


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def engine_config() -> RegenerationEngineConfig:
    return RegenerationEngineConfig(
        staleness_window=timedelta(days=30),
        cost_budget=10.0,
        default_entity_cost=1.0,
        worker_pool_size=3,
        generation_timeout_seconds=1.0,
        infrastructure_failure_threshold=3,
        max_batch_size=10,
    )


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest_asyncio.fixture
async def async_engine():
    """Create async SQLite engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session with automatic rollback after each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def product_repository(session_factory):
    """Create a product repository over the test engine."""
    from backend.app.domains.catalog.repository import ProductRepository

    return ProductRepository(session_factory)


# ============================================================================
# In-memory Product Store
# ============================================================================


class InMemoryProductStore:
    """In-memory stand-in for ProductRepository.

    Writes replace the whole entity at once, so a reader never sees a
    partially updated record.
    """

    def __init__(self, entities: list[Entity] | None = None):
        self._entities: dict[str, Entity] = {e.id: e for e in entities or []}
        self.update_calls: list[tuple[str, str, str, datetime]] = []
        self.failures: dict[str, Exception] = {}
        self.unavailable_reason: str | None = None
        self.commit_delay: float = 0.0

    def add(self, entity: Entity) -> None:
        self._entities[entity.id] = entity

    async def get_many(self, entity_ids: Sequence[str]) -> dict[str, Entity]:
        if self.unavailable_reason:
            raise ProductStoreUnavailableError(self.unavailable_reason)
        return {i: self._entities[i] for i in entity_ids if i in self._entities}

    async def update_generated_content(
        self,
        entity_id: str,
        content: str,
        language: str,
        generated_at: datetime,
    ) -> None:
        self.update_calls.append((entity_id, content, language, generated_at))
        if self.commit_delay:
            await asyncio.sleep(self.commit_delay)
        if self.unavailable_reason:
            raise ProductStoreUnavailableError(self.unavailable_reason)
        if entity_id in self.failures:
            raise self.failures[entity_id]
        current = self._entities.get(entity_id)
        if current is None:
            raise ProductNotFoundError(entity_id)
        self._entities[entity_id] = current.model_copy(
            update={
                "cached_content": content,
                "cached_language": language,
                "last_generated_at": generated_at,
            }
        )

    def fail_on(self, entity_id: str, message: str = "constraint violated") -> None:
        self.failures[entity_id] = ProductStoreError(message)

    def snapshot(self, entity_id: str) -> Entity | None:
        return self._entities.get(entity_id)


@pytest.fixture
def product_store() -> InMemoryProductStore:
    """Provide an empty in-memory product store."""
    return InMemoryProductStore()


@pytest.fixture
def mock_generator() -> MockDescriptionGenerator:
    return MockDescriptionGenerator(default_response="Descriere generată.")


# ============================================================================
# Sample Data Factories
# ============================================================================


@pytest.fixture
def make_entity():
    """Factory for products with a fresh Romanian description by default."""

    def _create(
        entity_id: str = "1",
        name: str = "Ciorbă de burtă",
        cached_content: str | None = "Descriere existentă.",
        cached_language: str | None = "ro",
        manual_language_override: str | None = None,
        last_generated_at: datetime | None = FIXED_NOW - timedelta(days=1),
    ) -> Entity:
        return Entity(
            id=entity_id,
            name=name,
            cached_content=cached_content,
            cached_language=cached_language,
            manual_language_override=manual_language_override,
            last_generated_at=last_generated_at,
        )

    return _create
