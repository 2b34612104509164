from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    app_env: str = Field(
        ...,
        description="Application environment (development, staging, production)",
    )

    database_url: str = Field(
        ...,
        description="PostgreSQL connection string for the product catalog",
    )

    log_dir: str = Field(
        default="./logs",
        description="Directory for log files",
    )

    openai_api_key: str | None = Field(
        default=None,
        description="OpenAI API key for product description generation",
    )
    openai_api_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="OpenAI API base URL (or compatible API endpoint)",
    )
    openai_model: str = Field(
        default="gpt-4o-mini",
        description="OpenAI model used for description generation",
    )
    openai_max_tokens: int = Field(
        default=1000,
        ge=1,
        description="Maximum completion tokens per description",
    )
    openai_temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for description generation",
    )
    openai_prompt_cost: float = Field(
        default=0.00000015,
        ge=0.0,
        description="USD price per prompt token",
    )
    openai_completion_cost: float = Field(
        default=0.00000060,
        ge=0.0,
        description="USD price per completion token",
    )

    staleness_window_hours: float = Field(
        default=720.0,
        gt=0.0,
        description="Age after which cached descriptions are stale under regenerate_all",
    )
    default_cost_budget: float = Field(
        default=10.0,
        ge=0.0,
        description="Budget units available to a single regeneration batch",
    )
    default_entity_cost: float = Field(
        default=1.0,
        ge=0.0,
        description="Budget units reserved per regenerated product",
    )
    worker_pool_size: int = Field(
        default=3,
        ge=1,
        le=64,
        description="Maximum number of concurrent generation calls per batch",
    )
    generation_timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        description="Timeout for a single generation call",
    )
    infrastructure_failure_threshold: int = Field(
        default=3,
        ge=1,
        description="Consecutive identical store failures that abort the rest of a batch",
    )
    max_batch_size: int = Field(
        default=10,
        ge=1,
        description="Maximum number of products per regeneration request",
    )
    supported_languages: str = Field(
        default="ro,en",
        description="Comma-separated language tags accepted as overrides and generation targets",
    )

    @field_validator("supported_languages")
    @classmethod
    def _validate_languages(cls, value: str) -> str:
        if not [part for part in value.split(",") if part.strip()]:
            raise ValueError("at least one supported language is required")
        return value

    @property
    def language_tags(self) -> tuple[str, ...]:
        return tuple(
            part.strip().lower() for part in self.supported_languages.split(",") if part.strip()
        )

    @property
    def ai_enabled(self) -> bool:
        return bool(self.openai_api_key)


def get_settings() -> Settings:
    return Settings()
