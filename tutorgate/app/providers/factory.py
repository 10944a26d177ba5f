"""Provider factory for creating text-generation provider instances.

The application lifespan builds one provider from settings and shares it
through the request gateway.
"""

from enum import Enum
from typing import Optional

import httpx

from tutorgate.app.core.config import Settings, settings
from tutorgate.app.core.logging import get_logger
from tutorgate.app.providers.base import BaseProvider
from tutorgate.app.providers.mock import MockProvider
from tutorgate.app.providers.openai import OpenAIProvider

logger = get_logger(__name__)


class ProviderType(str, Enum):
    """Supported provider types."""
    OPENAI = "openai"
    MOCK = "mock"


def create_provider(
    config: Optional[Settings] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> BaseProvider:
    """Create a provider instance from settings.

    Args:
        config: Settings to read (global settings if None)
        http_client: Optional shared HTTP client for connection pooling

    Returns:
        Configured provider
    """
    config = config or settings
    provider_type = ProviderType(config.provider)

    if provider_type == ProviderType.MOCK:
        logger.info("Using mock provider")
        return MockProvider(
            temperature=config.temperature,
            max_tokens=config.max_tokens,
        )

    if not config.provider_api_key:
        logger.warning("PROVIDER_API_KEY is not set; provider calls will fail")

    logger.info(
        f"Using {provider_type.value} provider with model {config.provider_model}",
        extra={"provider": provider_type.value},
    )
    return OpenAIProvider(
        api_key=config.provider_api_key,
        base_url=config.provider_base_url,
        model=config.provider_model,
        temperature=config.temperature,
        max_tokens=config.max_tokens,
        timeout=config.provider_timeout,
        http_client=http_client,
    )
