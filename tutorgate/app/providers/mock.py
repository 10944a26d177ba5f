"""Mock provider for testing and local development.

This provider produces canned tutoring responses without external API
calls. Enable by setting environment variable:
    PROVIDER=mock
"""

import asyncio
import json
from typing import AsyncIterator, List, Optional, Sequence

from tutorgate.app.exceptions import ProviderError
from tutorgate.app.providers.base import BaseProvider

EXPLORE_RESPONSE = {
    "domain": "SCIENCE",
    "content": {
        "paragraph1": "Photosynthesis is how plants turn sunlight, water and carbon dioxide into sugar and oxygen.",
        "paragraph2": "Chlorophyll in leaves captures light energy, powering reactions that build glucose inside chloroplasts.",
        "paragraph3": "It feeds almost every food chain and produces the oxygen animals breathe every day.",
    },
    "relatedTopics": [
        {"topic": "Cellular respiration", "type": "prerequisite", "reason": "Reverse process"},
        {"topic": "Chloroplasts", "type": "deeper", "reason": "Where it happens"},
    ],
    "relatedQuestions": [
        {"question": "Could humans ever photosynthesize?", "type": "curiosity", "context": "Speculative biology"},
    ],
}

PLAYGROUND_RESPONSE = {
    "text": "Which molecule captures light energy during photosynthesis?",
    "options": ["Chlorophyll", "Glucose", "Oxygen", "Starch"],
    "correctAnswer": 0,
    "explanation": {
        "correct": "Chlorophyll absorbs light to drive the reactions.",
        "key_point": "Pigments capture light energy.",
    },
    "subtopic": "Light reactions",
}

STREAM_FRAGMENTS = [
    "Photosynthesis lets plants ",
    "cook their own food using sunlight.\n\n",
    "Leaves capture light with chlorophyll.\n\n",
    "---\n",
    '{"topics":[{"name":"Chloroplasts","type":"deeper","detail":"Plant kitchens"}],',
    '"questions":[{"text":"Could solar panels copy leaves?","type":"innovation","detail":"Biomimicry"}]}',
]


def _test_set_response(count: int = 15) -> dict:
    questions = []
    for i in range(count):
        questions.append({
            "text": f"Practice question number {i + 1} about the topic?",
            "options": [f"Option A{i}", f"Option B{i}", f"Option C{i}", f"Option D{i}"],
            "correctAnswer": i % 4,
            "explanation": {
                "correct": "Worked solution for this item.",
                "key_point": "Remember the core rule.",
            },
            "subtopic": f"Concept {i + 1}",
        })
    return {"questions": questions}


class MockProvider(BaseProvider):
    """Mock provider that returns scripted responses.

    Features:
    - Scripted complete responses (cycled) or canned tutoring JSON
    - Scripted stream fragments
    - Deterministic failure injection: the first ``failures`` calls raise a
      transient ProviderError; a failing stream first yields
      ``fail_after_fragments`` fragments
    """

    name = "mock"

    def __init__(
        self,
        model: str = "mock-model",
        temperature: float = 0.7,
        max_tokens: int = 2000,
        responses: Optional[Sequence[str]] = None,
        stream_fragments: Optional[Sequence[str]] = None,
        failures: int = 0,
        fail_after_fragments: Optional[int] = None,
        delay: float = 0.0,
    ):
        super().__init__(model, temperature, max_tokens)
        self.responses = list(responses) if responses is not None else None
        self.stream_fragments = list(stream_fragments or STREAM_FRAGMENTS)
        self.failures = failures
        self.fail_after_fragments = fail_after_fragments
        self.delay = delay
        self.calls = 0
        self.prompts: List[str] = []

    def _canned_response(self, prompt: str, system: Optional[str]) -> str:
        instructions = f"{system or ''}\n{prompt}"
        if '"questions"' in instructions:
            return json.dumps(_test_set_response())
        if "correctAnswer" in instructions:
            return json.dumps(PLAYGROUND_RESPONSE)
        return json.dumps(EXPLORE_RESPONSE)

    def _begin_call(self, prompt: str) -> bool:
        """Record a call and report whether it is scripted to fail."""
        self.calls += 1
        self.prompts.append(prompt)
        return self.calls <= self.failures

    async def generate(
        self,
        prompt: str,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        system: Optional[str] = None,
    ) -> str:
        await asyncio.sleep(self.delay)
        if self._begin_call(prompt):
            raise ProviderError(f"Simulated provider failure (call {self.calls})")
        if self.responses:
            return self.responses[(self.calls - self.failures - 1) % len(self.responses)]
        return self._canned_response(prompt, system)

    async def generate_stream(
        self,
        prompt: str,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        system: Optional[str] = None,
    ) -> AsyncIterator[str]:
        await asyncio.sleep(self.delay)
        failing = self._begin_call(prompt)
        for index, fragment in enumerate(self.stream_fragments):
            if failing and index >= (self.fail_after_fragments or 0):
                break
            yield fragment
            await asyncio.sleep(0)
        if failing:
            raise ProviderError(f"Simulated stream interruption (call {self.calls})")

    async def health_check(self, timeout: float = 2.0) -> bool:
        return True
