from typing import Any


class ProductStoreError(Exception):
    def __init__(self, message: str, code: str = "STORE_ERROR", details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class ProductNotFoundError(ProductStoreError):
    def __init__(self, entity_id: str):
        super().__init__(
            message=f"Product {entity_id} not found",
            code="PRODUCT_NOT_FOUND",
            details={"entity_id": entity_id},
        )
        self.entity_id = entity_id


class ProductStoreUnavailableError(ProductStoreError):
    """The store cannot be reached at all; every further call would fail the same way."""

    def __init__(self, reason: str):
        super().__init__(
            message=f"Product store unavailable: {reason}",
            code="STORE_UNAVAILABLE",
            details={"reason": reason},
        )
        self.reason = reason
