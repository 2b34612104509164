from backend.app.domains.catalog.errors import (
    ProductNotFoundError,
    ProductStoreError,
    ProductStoreUnavailableError,
)
from backend.app.domains.catalog.schemas import Entity

__all__ = [
    "Entity",
    "ProductNotFoundError",
    "ProductStoreError",
    "ProductStoreUnavailableError",
]
