from datetime import datetime
from typing import Callable

from pydantic import BaseModel, ConfigDict

from backend.app.domains.catalog.errors import ProductStoreError, ProductStoreUnavailableError
from backend.app.domains.catalog.repository import ProductStore
from backend.app.domains.regeneration.errors import CachePersistError
from backend.app.infrastructure.datetime_utils import utc_now
from backend.app.logging_config import get_logger

logger = get_logger("app.domains.regeneration.cache_writer")


class CommitAck(BaseModel):
    model_config = ConfigDict(frozen=True)

    entity_id: str
    language: str
    generated_at: datetime


class CacheWriter:
    """Stores a regeneration result through the product store.

    Content, language and timestamp are handed to the store in a single
    update; the manual language override is never part of the write.
    """

    def __init__(self, store: ProductStore, clock: Callable[[], datetime] = utc_now):
        self.store = store
        self._clock = clock

    async def commit(self, entity_id: str, content: str, detected_language: str) -> CommitAck:
        generated_at = self._clock()
        try:
            await self.store.update_generated_content(
                entity_id,
                content=content,
                language=detected_language,
                generated_at=generated_at,
            )
        except ProductStoreUnavailableError as e:
            raise CachePersistError(entity_id, e.message, is_infrastructure=True) from e
        except ProductStoreError as e:
            raise CachePersistError(entity_id, e.message) from e
        except Exception as e:
            logger.error(f"Unexpected store error for product {entity_id}: {e}", exc_info=True)
            raise CachePersistError(entity_id, f"Unexpected error: {e}") from e

        logger.info(
            f"Committed description for product {entity_id}",
            extra={"language": detected_language, "generated_at": generated_at.isoformat()},
        )
        return CommitAck(entity_id=entity_id, language=detected_language, generated_at=generated_at)
