from typing import Any


class RegenerationError(Exception):

    def __init__(self, message: str, code: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class InvalidRegenerationRequestError(RegenerationError):

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            code="INVALID_REGENERATION_REQUEST",
            details=details,
        )


class EntityNotFoundError(RegenerationError):

    def __init__(self, entity_ids: list[str]):
        super().__init__(
            message=f"Products not found: {', '.join(entity_ids)}",
            code="PRODUCT_NOT_FOUND",
            details={"entity_ids": entity_ids},
        )
        self.entity_ids = entity_ids


class CachePersistError(RegenerationError):
    """A generated description could not be stored.

    ``is_infrastructure`` marks failures of the store itself, which the
    orchestrator counts towards the batch short-circuit.
    """

    def __init__(self, entity_id: str, reason: str, is_infrastructure: bool = False):
        super().__init__(
            message=f"Failed to store description for product {entity_id}: {reason}",
            code="STORE_UNAVAILABLE" if is_infrastructure else "PERSIST_FAILURE",
            details={"entity_id": entity_id, "reason": reason},
        )
        self.entity_id = entity_id
        self.reason = reason
        self.is_infrastructure = is_infrastructure
