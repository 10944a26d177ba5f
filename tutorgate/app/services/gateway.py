"""Request gateway: rate limit admission, provider call with retry, decoding.

Admission happens exactly once per logical request, before any attempt.
Retries of that request neither re-check nor re-consume quota. Only
``RateLimitedError``, ``RetryExhaustedError`` and ``MalformedResponseError``
leave this module.
"""

from typing import Any, AsyncIterator, Dict, Optional, Sequence

from tutorgate.app.core.logging import get_log_context, get_logger
from tutorgate.app.exceptions import RateLimitedError
from tutorgate.app.providers.base import BaseProvider
from tutorgate.app.providers.retry import RetryPolicy, run_with_retry
from tutorgate.app.services.rate_limit import RateLimiter
from tutorgate.app.services.response_parser import parse_and_validate
from tutorgate.app.services.stream_decoder import SEPARATOR, Sink, Snapshot, StreamDecoder

logger = get_logger(__name__)


class RequestGateway:
    """Sequences rate limiting, provider calls and response decoding."""

    def __init__(
        self,
        limiter: RateLimiter,
        provider: BaseProvider,
        one_shot_policy: Optional[RetryPolicy] = None,
        stream_policy: Optional[RetryPolicy] = None,
        separator: str = SEPARATOR,
    ):
        """Initialize the gateway.

        Args:
            limiter: Per-identity rate limiter
            provider: Text-generation provider
            one_shot_policy: Retry policy for complete responses
            stream_policy: Retry policy for streaming calls
            separator: Marker between prose and structured content in streams
        """
        self.limiter = limiter
        self.provider = provider
        self.one_shot_policy = one_shot_policy or RetryPolicy.for_one_shot()
        self.stream_policy = stream_policy or RetryPolicy.for_streaming()
        self.separator = separator

    def _admit(self, identity: str) -> None:
        if not self.limiter.admit(identity):
            raise RateLimitedError(identity, quota=self.limiter.describe_dict(identity))

    def _log_context(self, identity: str) -> Dict[str, Any]:
        return get_log_context(identity=identity, provider=self.provider.name)

    async def generate_text(
        self,
        identity: str,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> str:
        """Admit, then fetch a complete text response under the one-shot policy.

        Raises:
            RateLimitedError: Admission denied; no provider call was made
            RetryExhaustedError: Every attempt failed
        """
        self._admit(identity)
        return await run_with_retry(
            lambda: self.provider.generate(
                prompt,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system,
            ),
            self.one_shot_policy,
            name="generate",
            log_extra=self._log_context(identity),
        )

    async def complete(
        self,
        identity: str,
        prompt: str,
        required_keys: Sequence[str] = (),
        system: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> Dict[str, Any]:
        """Fetch a complete response and validate it as a JSON object.

        Raises:
            RateLimitedError: Admission denied
            RetryExhaustedError: Every attempt failed
            MalformedResponseError: Unparsable JSON or missing required keys
        """
        text = await self.generate_text(
            identity,
            prompt,
            system=system,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        return parse_and_validate(text, required_keys).unwrap()

    async def stream(
        self,
        identity: str,
        prompt: str,
        sink: Optional[Sink] = None,
        system: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> Snapshot:
        """Stream a response through a StreamDecoder, retrying the whole call.

        Every attempt starts from a fresh decoder state. Snapshots already
        delivered to ``sink`` by a failed attempt are not retracted.

        Returns:
            The final snapshot of the successful attempt

        Raises:
            RateLimitedError: Admission denied
            RetryExhaustedError: Every attempt failed
        """
        self._admit(identity)

        async def attempt() -> Snapshot:
            decoder = StreamDecoder(sink=sink, separator=self.separator)
            fragments: AsyncIterator[str] = self.provider.generate_stream(
                prompt,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system,
            )
            try:
                async for fragment in fragments:
                    decoder.feed(fragment)
            finally:
                aclose = getattr(fragments, "aclose", None)
                if aclose is not None:
                    await aclose()
            return decoder.snapshot()

        snapshot = await run_with_retry(
            attempt,
            self.stream_policy,
            name="stream",
            log_extra=self._log_context(identity),
        )
        logger.info(
            "Stream completed",
            extra=self._log_context(identity) | {
                "text_length": len(snapshot.text),
                "topics": len(snapshot.topics),
                "questions": len(snapshot.questions),
            },
        )
        return snapshot
