from datetime import datetime
from typing import Protocol, Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.app.domains.catalog.errors import (
    ProductNotFoundError,
    ProductStoreError,
    ProductStoreUnavailableError,
)
from backend.app.domains.catalog.models import Product
from backend.app.domains.catalog.schemas import Entity
from backend.app.logging_config import get_logger

logger = get_logger("app.domains.catalog.repository")


class ProductStore(Protocol):
    async def get_many(self, entity_ids: Sequence[str]) -> dict[str, Entity]: ...

    async def update_generated_content(
        self,
        entity_id: str,
        content: str,
        language: str,
        generated_at: datetime,
    ) -> None: ...


def _is_connection_error(error: SQLAlchemyError) -> bool:
    if isinstance(error, (OperationalError, InterfaceError)):
        return True
    return isinstance(error, DBAPIError) and bool(error.connection_invalidated)


class ProductRepository:
    """Product store backed by SQLAlchemy.

    Each call runs in its own session. Batch workers write concurrently,
    and a rollback must only ever undo the write that failed.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get_many(self, entity_ids: Sequence[str]) -> dict[str, Entity]:
        if not entity_ids:
            return {}
        stmt = select(Product).where(Product.id.in_(list(entity_ids)))
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return {
                    product.id: Entity.from_product(product)
                    for product in result.scalars().all()
                }
        except SQLAlchemyError as e:
            raise self._translate(e) from e

    async def update_generated_content(
        self,
        entity_id: str,
        content: str,
        language: str,
        generated_at: datetime,
    ) -> None:
        # Single statement so readers see either all three cache fields or none.
        stmt = (
            update(Product)
            .where(Product.id == entity_id)
            .values(
                generated_description=content,
                generated_language=language,
                ai_generated_at=generated_at,
                ai_last_updated=generated_at,
            )
            .execution_options(synchronize_session=False)
        )
        async with self._session_factory() as session:
            try:
                result = await session.execute(stmt)
                if result.rowcount == 0:
                    await session.rollback()
                    raise ProductNotFoundError(entity_id)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise self._translate(e) from e

        logger.debug(f"Stored generated description for product {entity_id} ({language})")

    def _translate(self, error: SQLAlchemyError) -> ProductStoreError:
        if _is_connection_error(error):
            origin = getattr(error, "orig", None) or error
            return ProductStoreUnavailableError(f"{error.__class__.__name__}: {origin}")
        return ProductStoreError(f"Database error: {error}", details={"error": str(error)})
