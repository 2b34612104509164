import pytest

from backend.app.domains.regeneration.service import RegenerationService


@pytest.fixture
def make_service(product_store, mock_generator, engine_config, clock):
    """Build a RegenerationService over the in-memory store."""

    def _create(generator=None, config=None, **config_overrides) -> RegenerationService:
        config = config or engine_config
        if config_overrides:
            config = config.model_copy(update=config_overrides)
        return RegenerationService(
            generator=generator or mock_generator,
            store=product_store,
            config=config,
            clock=clock,
        )

    return _create
