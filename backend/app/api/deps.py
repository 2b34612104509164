from functools import lru_cache
from typing import Annotated, AsyncGenerator

from fastapi import Depends

from backend.app.config import get_settings
from backend.app.domains.catalog.repository import ProductRepository
from backend.app.domains.generation.llm_client import (
    BaseDescriptionGenerator,
    OpenAIDescriptionGenerator,
)
from backend.app.domains.regeneration.schemas import RegenerationEngineConfig
from backend.app.domains.regeneration.service import RegenerationService
from backend.app.infrastructure.database import AsyncSessionLocal


@lru_cache
def get_engine_config() -> RegenerationEngineConfig:
    return RegenerationEngineConfig.from_settings(get_settings())


def get_product_repository() -> ProductRepository:
    return ProductRepository(AsyncSessionLocal)


async def get_description_generator() -> AsyncGenerator[BaseDescriptionGenerator, None]:
    generator = OpenAIDescriptionGenerator.from_settings(get_settings())
    try:
        yield generator
    finally:
        await generator.aclose()


def get_regeneration_service(
    generator: Annotated[BaseDescriptionGenerator, Depends(get_description_generator)],
    repo: Annotated[ProductRepository, Depends(get_product_repository)],
    config: Annotated[RegenerationEngineConfig, Depends(get_engine_config)],
) -> RegenerationService:
    return RegenerationService(generator, repo, config)
