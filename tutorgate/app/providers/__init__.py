"""Text-generation providers package for tutorgate.

This package provides:
- Base provider interface (BaseProvider)
- Provider implementations (OpenAIProvider, MockProvider)
- Provider factory (ProviderType, create_provider)
- Retry mechanism (RetryPolicy, run_with_retry)
"""

from tutorgate.app.providers.base import BaseProvider
from tutorgate.app.providers.factory import ProviderType, create_provider
from tutorgate.app.providers.mock import MockProvider
from tutorgate.app.providers.openai import OpenAIProvider
from tutorgate.app.providers.retry import RetryPolicy, run_with_retry

__all__ = [
    # Base
    "BaseProvider",
    # Providers
    "MockProvider",
    "OpenAIProvider",
    # Factory
    "ProviderType",
    "create_provider",
    # Retry
    "RetryPolicy",
    "run_with_retry",
]
