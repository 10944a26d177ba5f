"""Pydantic schemas for provider responses and tutoring results."""

from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

Difficulty = Literal["beginner", "intermediate", "advanced"]
ExamType = Literal["JEE", "NEET"]


class _ProviderModel(BaseModel):
    """Provider JSON tolerates unknown keys."""
    model_config = ConfigDict(extra="ignore")


class RelatedTopic(_ProviderModel):
    topic: str
    type: str = ""
    reason: str = ""


class RelatedQuestion(_ProviderModel):
    question: str
    type: str = ""
    context: str = ""


class ExploreContent(_ProviderModel):
    paragraph1: str = ""
    paragraph2: str = ""
    paragraph3: str = ""

    def joined(self) -> str:
        """Paragraphs separated by blank lines."""
        return "\n\n".join([self.paragraph1, self.paragraph2, self.paragraph3])


class ExploreResponse(_ProviderModel):
    """One-shot explanation of a topic."""
    domain: str
    content: ExploreContent
    relatedTopics: List[RelatedTopic] = Field(default_factory=list)
    relatedQuestions: List[RelatedQuestion] = Field(default_factory=list)

    @field_validator("relatedTopics", "relatedQuestions", mode="before")
    @classmethod
    def non_list_as_empty(cls, v):
        return v if isinstance(v, list) else []


class Explanation(_ProviderModel):
    correct: str = ""
    key_point: str = ""


class PlaygroundQuestion(_ProviderModel):
    """Single multiple-choice question as produced by the provider."""
    text: str = ""
    options: List[str]
    correctAnswer: int
    explanation: Explanation = Field(default_factory=Explanation)
    subtopic: Optional[str] = None

    @field_validator("options", mode="before")
    @classmethod
    def options_as_strings(cls, v):
        return [str(option) for option in v] if isinstance(v, list) else v


class ExamQuestionItem(_ProviderModel):
    """One entry of a generated test set; every field falls back to a default."""
    text: str = ""
    options: List[str] = Field(default_factory=list)
    correctAnswer: int = 0
    explanation: Union[Explanation, str, None] = None
    subtopic: Optional[str] = None

    @field_validator("text", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return "" if v is None else v

    @field_validator("options", mode="before")
    @classmethod
    def non_list_as_empty(cls, v):
        return [str(option) for option in v] if isinstance(v, list) else []

    @field_validator("correctAnswer", mode="before")
    @classmethod
    def non_int_as_zero(cls, v):
        return v if isinstance(v, int) and not isinstance(v, bool) else 0


class ExamQuestionSet(_ProviderModel):
    questions: List[ExamQuestionItem]


class ExploreResult(BaseModel):
    """Explanation returned to callers."""
    content: str
    related_topics: List[RelatedTopic] = Field(default_factory=list)
    related_questions: List[RelatedQuestion] = Field(default_factory=list)


class Question(BaseModel):
    """Validated multiple-choice question returned to callers."""
    text: str
    options: List[str]
    correct_answer: int
    explanation: Explanation
    difficulty: Difficulty
    topic: str
    subtopic: str = ""
    question_type: str = "conceptual"
    age_group: str = ""
    exam_type: Optional[ExamType] = None
