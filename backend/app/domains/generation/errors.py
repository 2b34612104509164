from typing import Any


class DescriptionGenerationError(Exception):
    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class GeneratorNotConfiguredError(DescriptionGenerationError):
    def __init__(self, reason: str = "OpenAI API key not configured"):
        super().__init__(message=reason, details={"reason": reason})


class ProviderResponseError(DescriptionGenerationError):
    def __init__(self, product_name: str, reason: str, status_code: int | None = None):
        super().__init__(
            message=f"Description generation failed for '{product_name}': {reason}",
            details={
                "product_name": product_name,
                "reason": reason,
                "status_code": status_code,
            },
        )
        self.product_name = product_name
        self.reason = reason
        self.status_code = status_code


class MalformedProviderOutputError(DescriptionGenerationError):
    def __init__(self, product_name: str, raw_output: str):
        super().__init__(
            message=f"Could not parse generated description for '{product_name}'",
            details={"product_name": product_name, "raw_output": raw_output[:500]},
        )
        self.product_name = product_name
        self.raw_output = raw_output
