from backend.app.domains.generation.errors import (
    DescriptionGenerationError,
    GeneratorNotConfiguredError,
    MalformedProviderOutputError,
    ProviderResponseError,
)
from backend.app.domains.generation.language_detector import (
    LanguageDetectionResult,
    detect_language,
)
from backend.app.domains.generation.llm_client import (
    BaseDescriptionGenerator,
    MockDescriptionGenerator,
    OpenAIDescriptionGenerator,
    is_bottled_drink,
)
from backend.app.domains.generation.schemas import GeneratedDescription, GenerationUsage

__all__ = [
    "BaseDescriptionGenerator",
    "MockDescriptionGenerator",
    "OpenAIDescriptionGenerator",
    "GeneratedDescription",
    "GenerationUsage",
    "LanguageDetectionResult",
    "detect_language",
    "is_bottled_drink",
    "DescriptionGenerationError",
    "GeneratorNotConfiguredError",
    "MalformedProviderOutputError",
    "ProviderResponseError",
]
