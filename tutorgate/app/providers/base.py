from abc import ABC, abstractmethod
from typing import AsyncIterator, Dict, List, Optional


class BaseProvider(ABC):
    """Base class for text-generation providers.

    A provider is constructed once per process with a static model
    configuration and exposes two capabilities: a complete text response
    and a finite stream of text fragments.
    """

    name: str = "base"

    def __init__(
        self,
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ):
        """Initialize the provider.

        Args:
            model: Model name sent to the provider
            temperature: Default sampling temperature
            max_tokens: Default output token ceiling
        """
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    def _build_messages(self, prompt: str, system: Optional[str] = None) -> List[Dict[str, str]]:
        """Build the chat message list for a prompt.

        Args:
            prompt: User prompt text
            system: Optional system instructions

        Returns:
            List of role/content message dicts
        """
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return messages

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        system: Optional[str] = None,
    ) -> str:
        """Generate a complete text response.

        Args:
            prompt: User prompt text
            max_tokens: Output token ceiling (provider default if None)
            temperature: Sampling temperature (provider default if None)
            system: Optional system instructions

        Returns:
            The generated text
        """
        pass

    @abstractmethod
    def generate_stream(
        self,
        prompt: str,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        system: Optional[str] = None,
    ) -> AsyncIterator[str]:
        """Generate a response as an ordered, finite stream of text fragments.

        Implementations are async generators. Consumers may stop iterating
        at any time.
        """
        pass

    @abstractmethod
    async def health_check(self, timeout: float = 2.0) -> bool:
        """Check if the provider is reachable.

        Args:
            timeout: Request timeout in seconds (default: 2.0)

        Returns:
            True if the provider is healthy, False otherwise
        """
        pass
