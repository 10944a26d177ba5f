"""Tests for providers and the provider factory."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from tutorgate.app.core.config import Settings
from tutorgate.app.exceptions import ProviderError
from tutorgate.app.providers.factory import ProviderType, create_provider
from tutorgate.app.providers.mock import STREAM_FRAGMENTS, MockProvider
from tutorgate.app.providers.openai import OpenAIProvider


def _completion(content, total_tokens=42):
    return SimpleNamespace(
        model="gemini-2.0-flash",
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(total_tokens=total_tokens),
    )


def _chunk(content):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


class _FakeStream:
    """Async iterable and context manager, like the SDK's AsyncStream."""

    def __init__(self, items):
        self._items = list(items)
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.closed = True

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for item in self._items:
            yield item


def _openai_provider(client):
    return OpenAIProvider(
        api_key="test-key",
        base_url="https://provider.test/v1/",
        model="gemini-2.0-flash",
        client=client,
    )


class TestOpenAIProvider:
    """Tests for the OpenAI-compatible provider."""

    @pytest.mark.asyncio
    async def test_generate(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=_completion('{"domain": "SCIENCE"}'))
        provider = _openai_provider(client)

        text = await provider.generate("Explain gravity", system="Be brief", max_tokens=100)

        assert text == '{"domain": "SCIENCE"}'
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gemini-2.0-flash"
        assert kwargs["max_tokens"] == 100
        assert kwargs["temperature"] == 0.7
        assert kwargs["stream"] is False
        assert kwargs["messages"] == [
            {"role": "system", "content": "Be brief"},
            {"role": "user", "content": "Explain gravity"},
        ]

    @pytest.mark.asyncio
    async def test_generate_defaults_and_overrides(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=_completion("ok"))
        provider = _openai_provider(client)

        await provider.generate("Hi", temperature=0.0)

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["temperature"] == 0.0
        assert kwargs["max_tokens"] == 2000
        assert kwargs["messages"] == [{"role": "user", "content": "Hi"}]

    @pytest.mark.asyncio
    async def test_empty_response_is_provider_error(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=_completion(None))
        provider = _openai_provider(client)

        with pytest.raises(ProviderError, match="Empty response"):
            await provider.generate("Hi")

    @pytest.mark.asyncio
    async def test_generate_stream(self):
        stream = _FakeStream([
            _chunk("Hello "),
            SimpleNamespace(choices=[]),
            _chunk(None),
            _chunk("world"),
        ])
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=stream)
        provider = _openai_provider(client)

        fragments = [f async for f in provider.generate_stream("Hi")]

        assert fragments == ["Hello ", "world"]
        assert client.chat.completions.create.call_args.kwargs["stream"] is True
        assert stream.closed is True

    @pytest.mark.asyncio
    async def test_generate_stream_closed_when_consumer_stops(self):
        stream = _FakeStream([_chunk("Hello "), _chunk("world")])
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=stream)
        fragments = _openai_provider(client).generate_stream("Hi")

        assert await fragments.__anext__() == "Hello "
        await fragments.aclose()

        assert stream.closed is True

    @pytest.mark.asyncio
    async def test_health_check(self):
        client = MagicMock()
        client.with_options.return_value.models.list = AsyncMock(return_value=[])
        assert await _openai_provider(client).health_check(timeout=1.0) is True
        client.with_options.assert_called_once_with(timeout=1.0)

    @pytest.mark.asyncio
    async def test_health_check_failure(self):
        client = MagicMock()
        client.with_options.return_value.models.list = AsyncMock(side_effect=RuntimeError("down"))
        assert await _openai_provider(client).health_check() is False


class TestMockProvider:
    """Tests for the scripted mock provider."""

    @pytest.mark.asyncio
    async def test_scripted_responses_cycle(self):
        provider = MockProvider(responses=["a", "b"])
        assert [await provider.generate("p") for _ in range(3)] == ["a", "b", "a"]
        assert provider.calls == 3

    @pytest.mark.asyncio
    async def test_failures_then_success(self):
        provider = MockProvider(responses=["ok"], failures=1)
        with pytest.raises(ProviderError):
            await provider.generate("p")
        assert await provider.generate("p") == "ok"

    @pytest.mark.asyncio
    async def test_canned_exam_set(self):
        provider = MockProvider()
        data = json.loads(await provider.generate("Create questions", system='{"questions": []}'))
        assert len(data["questions"]) == 15

    @pytest.mark.asyncio
    async def test_stream_fragments(self):
        provider = MockProvider()
        fragments = [f async for f in provider.generate_stream("p")]
        assert fragments == STREAM_FRAGMENTS

    @pytest.mark.asyncio
    async def test_stream_interruption(self):
        provider = MockProvider(failures=1, fail_after_fragments=2)
        received = []
        with pytest.raises(ProviderError, match="interruption"):
            async for fragment in provider.generate_stream("p"):
                received.append(fragment)
        assert received == STREAM_FRAGMENTS[:2]


class TestProviderFactory:
    """Tests for provider creation from settings."""

    def test_provider_type_values(self):
        assert ProviderType.OPENAI.value == "openai"
        assert ProviderType.MOCK.value == "mock"

    def test_create_mock(self):
        provider = create_provider(Settings(_env_file=None, provider="mock", temperature=0.3))
        assert isinstance(provider, MockProvider)
        assert provider.temperature == 0.3

    def test_create_openai(self):
        config = Settings(
            _env_file=None,
            provider="openai",
            provider_api_key="key",
            provider_model="gemini-2.0-flash",
            max_tokens=1234,
        )
        provider = create_provider(config)
        assert isinstance(provider, OpenAIProvider)
        assert provider.model == "gemini-2.0-flash"
        assert provider.max_tokens == 1234
        assert provider.base_url == config.provider_base_url

    def test_each_call_builds_a_new_provider(self):
        config = Settings(_env_file=None, provider="mock")
        assert create_provider(config) is not create_provider(config)
