import asyncio
import json
import re
import time
from abc import ABC, abstractmethod
from typing import Any

import httpx

from backend.app.config import Settings
from backend.app.domains.generation.errors import (
    DescriptionGenerationError,
    GeneratorNotConfiguredError,
    MalformedProviderOutputError,
    ProviderResponseError,
)
from backend.app.domains.generation.language_detector import detect_language
from backend.app.domains.generation.schemas import (
    DescriptionPrompt,
    GeneratedDescription,
    GenerationUsage,
)
from backend.app.logging_config import get_logger

logger = get_logger("app.domains.generation.llm_client")

BOTTLED_DRINK_PATTERNS = [
    re.compile(r"\b(pepsi|coca|cola|coke|fanta|sprite|7up|mirinda)\b"),
    re.compile(r"\b(beer|bere|heineken|corona|stella|budweiser|becks|carlsberg)\b"),
    re.compile(r"\b(water|apa|evian|perrier|san pellegrino|aqua)\b"),
    re.compile(r"\b(wine|vin|prosecco|champagne|sauvignon|chardonnay)\b"),
    re.compile(r"\b(juice|suc|tropicana|innocent)\b"),
    re.compile(r"\b(energy|red bull|monster|burn|hell)\b"),
    re.compile(r"\b(bottle|sticla|330ml|500ml|250ml|0\.5l|0\.33l)\b"),
]


def is_bottled_drink(product_name: str) -> bool:
    name = product_name.lower()
    return any(pattern.search(name) for pattern in BOTTLED_DRINK_PATTERNS)


class BaseDescriptionGenerator(ABC):
    @property
    def is_configured(self) -> bool:
        return True

    @abstractmethod
    async def generate(self, name: str, language: str | None) -> GeneratedDescription:
        """Generate a description for ``name``; ``language=None`` lets the generator decide."""

    async def aclose(self) -> None:
        return None


class MockDescriptionGenerator(BaseDescriptionGenerator):
    def __init__(
        self,
        default_response: str | None = None,
        failure_names: list[str] | None = None,
        response_map: dict[str, str] | None = None,
        language_map: dict[str, str] | None = None,
        delay_seconds: float = 0.0,
        delay_map: dict[str, float] | None = None,
        default_language: str = "ro",
        cost_usd: float = 0.0,
    ):
        self._default_response = default_response or "Generated description."
        self._failure_names = failure_names or []
        self._response_map = response_map or {}
        self._language_map = language_map or {}
        self._delay_seconds = delay_seconds
        self._delay_map = delay_map or {}
        self._default_language = default_language
        self._cost_usd = cost_usd
        self._invocations: list[tuple[str, str | None]] = []

    async def generate(self, name: str, language: str | None) -> GeneratedDescription:
        self._invocations.append((name, language))

        delay = self._delay_map.get(name, self._delay_seconds)
        if delay:
            await asyncio.sleep(delay)

        if name in self._failure_names:
            raise DescriptionGenerationError(
                f"Simulated generation failure for '{name}'",
                details={"product_name": name, "simulated": True},
            )

        detected = self._language_map.get(name) or language or self._default_language
        return GeneratedDescription(
            text=self._response_map.get(name, self._default_response),
            detected_language=detected,
            usage=GenerationUsage(
                prompt_tokens=len(name.split()),
                completion_tokens=10,
                estimated_cost_usd=self._cost_usd,
            ),
        )

    @property
    def invocation_count(self) -> int:
        return len(self._invocations)

    @property
    def invocations(self) -> list[tuple[str, str | None]]:
        return self._invocations.copy()

    def reset(self) -> None:
        self._invocations = []


class OpenAIDescriptionGenerator(BaseDescriptionGenerator):
    SYSTEM_PROMPT = """You write short, appetizing menu descriptions for restaurant products.

RULES:
1. Write 1-3 sentences, at most 300 characters.
2. Write ONLY in the requested language. Never mix languages.
3. Describe taste, texture and main ingredients. Do not invent prices or portion sizes.
4. Plain text only: no markdown, no emojis, no quotation marks around the description.

OUTPUT FORMAT (valid JSON only):
{
  "description": "the description",
  "language": "two-letter language tag of the description"
}

Only output valid JSON. No other text."""

    LANGUAGE_NAMES = {"ro": "Romanian", "en": "English"}

    def __init__(
        self,
        api_key: str | None,
        api_base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-4o-mini",
        max_tokens: int = 1000,
        temperature: float = 0.7,
        prompt_token_cost: float = 0.00000015,
        completion_token_cost: float = 0.00000060,
        supported_languages: tuple[str, ...] = ("ro", "en"),
        timeout_seconds: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.api_base_url = api_base_url.rstrip("/")
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.prompt_token_cost = prompt_token_cost
        self.completion_token_cost = completion_token_cost
        self.supported_languages = supported_languages
        self.timeout_seconds = timeout_seconds
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "OpenAIDescriptionGenerator":
        return cls(
            api_key=settings.openai_api_key,
            api_base_url=settings.openai_api_base_url,
            model=settings.openai_model,
            max_tokens=settings.openai_max_tokens,
            temperature=settings.openai_temperature,
            prompt_token_cost=settings.openai_prompt_cost,
            completion_token_cost=settings.openai_completion_cost,
            supported_languages=settings.language_tags,
            timeout_seconds=settings.generation_timeout_seconds,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout_seconds)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def generate(self, name: str, language: str | None) -> GeneratedDescription:
        if not self.api_key:
            raise GeneratorNotConfiguredError()

        target = language or detect_language(name).language

        if is_bottled_drink(name):
            logger.info(f"Skipping model call for bottled drink '{name}'")
            return GeneratedDescription(text="", detected_language=target)

        prompt = self._build_prompt(name, target)
        start_time = time.time()
        data = await self._call_model(prompt)
        duration_ms = (time.time() - start_time) * 1000

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise MalformedProviderOutputError(name, json.dumps(data)[:500]) from e

        description, answered_language = self._parse_output(name, content)
        if language:
            detected = language
        elif answered_language in self.supported_languages:
            detected = answered_language
        else:
            detected = target

        usage = self._usage_from_response(data, duration_ms)
        logger.info(
            f"Generated description for '{name}' ({detected}), "
            f"tokens: {usage.tokens_used}, cost: ${usage.estimated_cost_usd:.6f}, "
            f"duration: {duration_ms:.0f}ms"
        )
        return GeneratedDescription(text=description, detected_language=detected, usage=usage)

    def _build_prompt(self, name: str, language: str) -> DescriptionPrompt:
        language_name = self.LANGUAGE_NAMES.get(language, language)
        return DescriptionPrompt(
            product_name=name,
            language=language,
            system_prompt=self.SYSTEM_PROMPT,
            user_prompt=(
                f'Write the description for the product "{name}" in {language_name} '
                f'(language tag "{language}").'
            ),
        )

    async def _call_model(self, prompt: DescriptionPrompt) -> dict[str, Any]:
        client = self._get_client()
        try:
            response = await client.post(
                f"{self.api_base_url}/chat/completions",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "model": self.model,
                    "messages": [
                        {"role": "system", "content": prompt.system_prompt},
                        {"role": "user", "content": prompt.user_prompt},
                    ],
                    "max_tokens": self.max_tokens,
                    "temperature": self.temperature,
                },
            )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise ProviderResponseError(
                prompt.product_name,
                f"OpenAI API error: {e.response.status_code} - {e.response.text[:200]}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise ProviderResponseError(prompt.product_name, f"OpenAI request failed: {e}") from e
        except json.JSONDecodeError as e:
            raise ProviderResponseError(prompt.product_name, "OpenAI returned invalid JSON") from e

    def _parse_output(self, name: str, content: str | None) -> tuple[str, str | None]:
        if not content:
            raise MalformedProviderOutputError(name, "")

        start = content.find("{")
        end = content.rfind("}") + 1
        if start == -1 or end == 0:
            raise MalformedProviderOutputError(name, content)

        try:
            parsed = json.loads(content[start:end])
        except json.JSONDecodeError as e:
            raise MalformedProviderOutputError(name, content) from e

        description = parsed.get("description")
        if not isinstance(description, str):
            raise MalformedProviderOutputError(name, content)

        answered = parsed.get("language")
        answered = answered.strip().lower() if isinstance(answered, str) else None
        return description.strip(), answered

    def _usage_from_response(self, data: dict[str, Any], duration_ms: float) -> GenerationUsage:
        usage = data.get("usage") or {}
        prompt_tokens = int(usage.get("prompt_tokens") or 0)
        completion_tokens = int(usage.get("completion_tokens") or 0)
        return GenerationUsage(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            estimated_cost_usd=(
                prompt_tokens * self.prompt_token_cost
                + completion_tokens * self.completion_token_cost
            ),
            processing_time_ms=duration_ms,
        )
