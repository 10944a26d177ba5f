"""OpenAI-compatible provider implementation.

Works with the OpenAI API and any endpoint exposing the chat completions
protocol (Gemini's OpenAI compatibility layer, DeepSeek, local servers).
"""

from typing import AsyncIterator, Optional

import httpx
from openai import AsyncOpenAI

from tutorgate.app.core.logging import get_logger
from tutorgate.app.exceptions import ProviderError
from tutorgate.app.providers.base import BaseProvider

logger = get_logger(__name__)


class OpenAIProvider(BaseProvider):
    """Provider backed by the ``openai`` SDK's async client.

    Transport and status errors raised by the SDK are left to the retry
    layer, which classifies them.
    """

    name = "openai"

    def __init__(
        self,
        api_key: str,
        base_url: str,
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 2000,
        timeout: float = 60.0,
        http_client: Optional[httpx.AsyncClient] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        """Initialize the provider.

        Args:
            api_key: Provider API key
            base_url: OpenAI-compatible API base URL
            model: Model name
            temperature: Default sampling temperature
            max_tokens: Default output token ceiling
            timeout: Request timeout in seconds
            http_client: Optional shared HTTP client for connection pooling
            client: Preconfigured SDK client (tests)
        """
        super().__init__(model, temperature, max_tokens)
        self.base_url = base_url
        self.timeout = timeout
        self._client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            http_client=http_client,
        )

    async def generate(
        self,
        prompt: str,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        system: Optional[str] = None,
    ) -> str:
        logger.debug(f"Calling {self.name} with model {self.model}")

        response = await self._client.chat.completions.create(
            model=self.model,
            messages=self._build_messages(prompt, system),
            temperature=self.temperature if temperature is None else temperature,
            max_tokens=max_tokens or self.max_tokens,
            stream=False,
        )

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ProviderError("Empty response from provider")

        total_tokens = response.usage.total_tokens if response.usage else 0
        logger.info(
            f"Request completed: provider={self.name}, model={response.model}, "
            f"tokens={total_tokens}",
            extra={"provider": self.name},
        )
        return content

    async def generate_stream(
        self,
        prompt: str,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        system: Optional[str] = None,
    ) -> AsyncIterator[str]:
        response = await self._client.chat.completions.create(
            model=self.model,
            messages=self._build_messages(prompt, system),
            temperature=self.temperature if temperature is None else temperature,
            max_tokens=max_tokens or self.max_tokens,
            stream=True,
        )

        async with response:
            async for chunk in response:
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    yield content

    async def health_check(self, timeout: float = 2.0) -> bool:
        """Check provider health by listing models with a short timeout."""
        try:
            await self._client.with_options(timeout=timeout).models.list()
            return True
        except Exception as e:
            logger.debug(f"Health check failed for {self.name}: {e}")
            return False
