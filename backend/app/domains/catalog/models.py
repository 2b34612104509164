from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.infrastructure.database import Base
from backend.app.infrastructure.datetime_utils import utc_now


class Product(Base):
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    # Written by the regeneration engine, always together.
    generated_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    generated_language: Mapped[str | None] = mapped_column(String(8), nullable=True)
    ai_generated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    ai_last_updated: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Owned by product editing; read-only for the engine.
    manual_language_override: Mapped[str | None] = mapped_column(String(8), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    __table_args__ = (
        Index("ix_products_ai_generated_at", "ai_generated_at"),
        CheckConstraint(
            "(generated_description IS NULL) = (ai_generated_at IS NULL)",
            name="ck_products_description_timestamp",
        ),
    )
