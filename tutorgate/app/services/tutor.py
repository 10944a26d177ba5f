"""Tutoring operations built on the request gateway."""

import random
from typing import Dict, List, Optional, Sequence, Tuple

from tutorgate.app.core.config import settings
from tutorgate.app.core.logging import get_logger
from tutorgate.app.exceptions import MalformedResponseError
from tutorgate.app.services.gateway import RequestGateway
from tutorgate.app.services.prompts import (
    PLAYGROUND_ASPECTS,
    exam_set_prompts,
    explore_prompts,
    playground_prompts,
    stream_explore_prompts,
)
from tutorgate.app.services.rate_limit import WindowStatus
from tutorgate.app.services.response_parser import validate_as
from tutorgate.app.services.schemas import (
    Difficulty,
    ExamQuestionItem,
    ExamQuestionSet,
    ExamType,
    Explanation,
    ExploreResponse,
    ExploreResult,
    PlaygroundQuestion,
    Question,
)
from tutorgate.app.services.stream_decoder import Sink, Snapshot

logger = get_logger(__name__)

EXPLORE_KEYS = ("domain", "content", "relatedTopics", "relatedQuestions")
PLAYGROUND_KEYS = ("text", "options", "correctAnswer", "explanation")
EXAM_KEYS = ("questions",)

MAX_RELATED = 5
MIN_EXAM_QUESTIONS = 5
MAX_EXAM_QUESTIONS = 15

DIFFICULTY_BY_LEVEL: Dict[int, Difficulty] = {
    1: "beginner",
    2: "intermediate",
    3: "advanced",
}


def shuffle_options(
    options: Sequence[str],
    correct_index: int,
    rng: random.Random,
) -> Tuple[List[str], int]:
    """Fisher-Yates shuffle that tracks where the correct option lands."""
    shuffled = list(options)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
        if i == correct_index:
            correct_index = j
        elif j == correct_index:
            correct_index = i
    return shuffled, correct_index


def is_valid_question(question: Question) -> bool:
    """Check a question is complete enough to show to a learner."""
    text = question.text.strip()
    if len(text) < 10:
        return False
    if len(question.options) != 4:
        return False
    if any(not option.strip() for option in question.options):
        return False
    if len(set(question.options)) != len(question.options):
        return False
    if not 0 <= question.correct_answer <= 3:
        return False
    correct = question.explanation.correct.strip()
    key_point = question.explanation.key_point.strip()
    return len(correct) >= 5 and len(key_point) >= 5


def _exam_explanation(item: ExamQuestionItem) -> Explanation:
    if isinstance(item.explanation, Explanation):
        return item.explanation
    if isinstance(item.explanation, str) and item.explanation.strip():
        return Explanation(correct=item.explanation, key_point=item.explanation)
    return Explanation(
        correct="Explanation not available",
        key_point="Key point not available",
    )


def _exam_difficulty(index: int) -> Difficulty:
    if index < 5:
        return "beginner"
    if index < 10:
        return "intermediate"
    return "advanced"


class TutorService:
    """Explanations, practice questions and exam sets for one provider.

    Every operation is one logical request: it is admitted by the rate
    limiter once, whatever the number of provider attempts.
    """

    def __init__(self, gateway: RequestGateway, rng: Optional[random.Random] = None):
        self.gateway = gateway
        self.rng = rng or random.Random()

    async def explore(self, identity: str, query: str, age: int) -> ExploreResult:
        """Explain a topic in three short paragraphs with related content."""
        system, prompt = explore_prompts(query, age)
        data = await self.gateway.complete(
            identity, prompt, required_keys=EXPLORE_KEYS, system=system,
        )
        response = validate_as(data, ExploreResponse)
        return ExploreResult(
            content=response.content.joined(),
            related_topics=response.relatedTopics[:MAX_RELATED],
            related_questions=response.relatedQuestions[:MAX_RELATED],
        )

    async def stream_explore(
        self,
        identity: str,
        query: str,
        age: int,
        sink: Optional[Sink] = None,
        chat_history: Optional[Sequence[dict]] = None,
    ) -> Snapshot:
        """Stream an explanation, delivering snapshots to ``sink``."""
        system, prompt = stream_explore_prompts(query, age, chat_history)
        return await self.gateway.stream(
            identity,
            prompt,
            sink=sink,
            system=system,
            max_tokens=settings.stream_max_tokens,
        )

    async def playground_question(
        self,
        identity: str,
        topic: str,
        level: int,
        age: int,
    ) -> Question:
        """Generate one shuffled multiple-choice question at a difficulty level (1-3).

        Raises:
            MalformedResponseError: The generated question failed validation
        """
        aspect = self.rng.choice(PLAYGROUND_ASPECTS)
        system, prompt = playground_prompts(topic, level, age, aspect)
        data = await self.gateway.complete(
            identity, prompt, required_keys=PLAYGROUND_KEYS, system=system, max_tokens=1500,
        )
        raw = validate_as(data, PlaygroundQuestion)
        options, correct_answer = shuffle_options(raw.options, raw.correctAnswer, self.rng)

        question = Question(
            text=raw.text,
            options=options,
            correct_answer=correct_answer,
            explanation=Explanation(
                correct=raw.explanation.correct or "Correct answer explanation",
                key_point=raw.explanation.key_point or "Key learning point",
            ),
            difficulty=DIFFICULTY_BY_LEVEL.get(level, "beginner"),
            topic=topic,
            subtopic=raw.subtopic or topic,
            age_group=str(age),
        )
        if not is_valid_question(question):
            logger.warning("Generated question failed validation", extra={"identity": identity})
            raise MalformedResponseError("Generated question failed validation")
        return question

    async def test_questions(self, identity: str, topic: str, exam_type: ExamType) -> List[Question]:
        """Generate an exam practice set of up to 15 validated questions.

        Raises:
            MalformedResponseError: Fewer than five questions passed validation
        """
        system, prompt = exam_set_prompts(topic, exam_type, MAX_EXAM_QUESTIONS)
        data = await self.gateway.complete(
            identity, prompt, required_keys=EXAM_KEYS, system=system, max_tokens=3000,
        )
        question_set = validate_as(data, ExamQuestionSet)
        logger.info(f"Received {len(question_set.questions)} questions")

        valid: List[Question] = []
        for index, item in enumerate(question_set.questions):
            question = Question(
                text=item.text,
                options=item.options,
                correct_answer=item.correctAnswer,
                explanation=_exam_explanation(item),
                difficulty=_exam_difficulty(index),
                topic=topic,
                subtopic=item.subtopic or f"{topic} Concept {index + 1}",
                age_group="16-18",
                exam_type=exam_type,
            )
            if is_valid_question(question):
                valid.append(question)
            else:
                logger.debug(f"Dropping invalid question #{index + 1}")

        logger.info(f"Valid questions: {len(valid)}")
        if len(valid) < MIN_EXAM_QUESTIONS:
            raise MalformedResponseError(f"Only {len(valid)} valid questions generated")
        return valid[:MAX_EXAM_QUESTIONS]

    def rate_limit_info(self, identity: str) -> Dict[str, WindowStatus]:
        """Remaining quota per window for an identity."""
        return self.gateway.limiter.describe(identity)
