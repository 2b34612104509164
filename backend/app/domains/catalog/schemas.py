from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:
    from backend.app.domains.catalog.models import Product


class Entity(BaseModel):
    """Catalog product as seen by the regeneration engine."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(min_length=1)
    name: str
    cached_content: str | None = None
    cached_language: str | None = None
    manual_language_override: str | None = None
    last_generated_at: datetime | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("cached_language", "manual_language_override")
    @classmethod
    def _normalize_language(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip().lower()
        return value or None

    @classmethod
    def from_product(cls, product: "Product") -> "Entity":
        return cls(
            id=product.id,
            name=product.name,
            cached_content=product.generated_description,
            cached_language=product.generated_language,
            manual_language_override=product.manual_language_override,
            last_generated_at=product.ai_generated_at,
        )
