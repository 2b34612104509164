from pydantic import BaseModel, ConfigDict, Field


class GenerationUsage(BaseModel):
    model_config = ConfigDict(frozen=True)

    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)
    estimated_cost_usd: float = Field(default=0.0, ge=0.0)
    processing_time_ms: float = Field(default=0.0, ge=0.0)

    @property
    def tokens_used(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class GeneratedDescription(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str = Field(..., description="Generated product description")
    detected_language: str = Field(
        ...,
        min_length=2,
        description="Language the description was actually written in",
    )
    usage: GenerationUsage = Field(default_factory=GenerationUsage)


class DescriptionPrompt(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_name: str
    language: str
    system_prompt: str
    user_prompt: str
