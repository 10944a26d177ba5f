"""Incremental decoder for tutoring response streams.

A streamed response is free prose followed by a separator line and a
single JSON object with related ``topics`` and ``questions``::

    <paragraph 1>

    <paragraph 2>
    ---
    {"topics":[{"name":...,"type":...,"detail":...}],"questions":[{"text":...}]}

The decoder turns fragments into progressively complete snapshots. The
JSON part may arrive in pieces; the buffer is re-parsed after every
fragment until it forms a complete object, and parse failures in between
are expected and silent.
"""

import json
from dataclasses import dataclass, field
from typing import Any, AsyncIterable, Callable, Dict, List, Optional, Set, Tuple

from tutorgate.app.core.logging import get_logger

logger = get_logger(__name__)

SEPARATOR = "---"


@dataclass(frozen=True)
class TopicEntry:
    """A related topic suggested by the provider."""
    name: str
    category: str = ""
    rationale: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"topic": self.name, "type": self.category, "reason": self.rationale}


@dataclass(frozen=True)
class QuestionEntry:
    """A follow-up question suggested by the provider."""
    text: str
    category: str = ""
    rationale: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"question": self.text, "type": self.category, "context": self.rationale}


@dataclass(frozen=True)
class Snapshot:
    """One emitted state of a streaming call. Later snapshots supersede earlier ones."""
    text: str
    topics: Tuple[TopicEntry, ...] = ()
    questions: Tuple[QuestionEntry, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """Serialize, omitting empty topic and question lists."""
        data: Dict[str, Any] = {"text": self.text}
        if self.topics:
            data["topics"] = [topic.to_dict() for topic in self.topics]
        if self.questions:
            data["questions"] = [question.to_dict() for question in self.questions]
        return data


Sink = Callable[[Snapshot], None]


@dataclass
class StreamState:
    """Mutable state of one streaming attempt."""
    prose_buffer: str = ""
    raw_structured_buffer: str = ""
    in_structured_region: bool = False
    topics: List[TopicEntry] = field(default_factory=list)
    questions: List[QuestionEntry] = field(default_factory=list)
    _topic_names: Set[str] = field(default_factory=set, repr=False)
    _question_texts: Set[str] = field(default_factory=set, repr=False)

    def add_topic(self, entry: TopicEntry) -> bool:
        """Append unless a topic with the same name exists. Returns True if added."""
        if entry.name in self._topic_names:
            return False
        self._topic_names.add(entry.name)
        self.topics.append(entry)
        return True

    def add_question(self, entry: QuestionEntry) -> bool:
        """Append unless a question with the same text exists. Returns True if added."""
        if entry.text in self._question_texts:
            return False
        self._question_texts.add(entry.text)
        self.questions.append(entry)
        return True


def _entries(payload: Dict[str, Any], key: str, primary: str) -> List[Tuple[str, str, str]]:
    items = payload.get(key)
    if not isinstance(items, list):
        return []
    entries = []
    for item in items:
        if not isinstance(item, dict) or not isinstance(item.get(primary), str):
            continue
        entries.append((
            item[primary],
            str(item.get("type") or ""),
            str(item.get("detail") or ""),
        ))
    return entries


class StreamDecoder:
    """Splits one provider stream into prose and structured related content.

    Each fragment is fed in arrival order through :meth:`feed`; snapshots
    are delivered synchronously to ``sink``. One decoder serves exactly one
    attempt of one call.

    Example:
        >>> decoder = StreamDecoder(sink=print)
        >>> for fragment in ["Hello ", "world", "---", '{"topics":[]}']:
        ...     decoder.feed(fragment)
    """

    def __init__(self, sink: Optional[Sink] = None, separator: str = SEPARATOR):
        if not separator:
            raise ValueError("separator must not be empty")
        self.sink = sink
        self.separator = separator
        self.state = StreamState()
        self.emitted = 0

    @property
    def in_structured_region(self) -> bool:
        return self.state.in_structured_region

    def snapshot(self) -> Snapshot:
        """Current state as a snapshot (without emitting it)."""
        return Snapshot(
            text=self.state.prose_buffer.strip(),
            topics=tuple(self.state.topics),
            questions=tuple(self.state.questions),
        )

    def feed(self, fragment: str) -> Optional[Snapshot]:
        """Consume one fragment.

        Returns:
            The last snapshot emitted for this fragment, or None when the
            fragment produced no emission
        """
        if self.state.in_structured_region:
            return self._feed_structured(fragment)

        index = fragment.find(self.separator)
        if index == -1:
            self.state.prose_buffer += fragment
            return self._emit()

        emitted = None
        before = fragment[:index]
        after = fragment[index + len(self.separator):]
        if before:
            self.state.prose_buffer += before
            emitted = self._emit()

        self.state.in_structured_region = True
        logger.debug("Separator found, switching to structured region")
        if after:
            emitted = self._feed_structured(after) or emitted
        return emitted

    def _feed_structured(self, fragment: str) -> Optional[Snapshot]:
        self.state.raw_structured_buffer += fragment
        payload = self._try_parse()
        if payload is None:
            return None

        for name, category, rationale in _entries(payload, "topics", "name"):
            self.state.add_topic(TopicEntry(name, category, rationale))
        for text, category, rationale in _entries(payload, "questions", "text"):
            self.state.add_question(QuestionEntry(text, category, rationale))
        return self._emit()

    def _try_parse(self) -> Optional[Dict[str, Any]]:
        buffer = self.state.raw_structured_buffer
        if "}" not in buffer:
            return None
        candidate = buffer.strip()
        if not (candidate.startswith("{") and candidate.endswith("}")):
            return None
        try:
            payload = json.loads(candidate)
        except json.JSONDecodeError as e:
            logger.debug(f"Structured region not yet parseable: {e}")
            return None
        if not isinstance(payload, dict):
            return None
        return payload

    def _emit(self) -> Snapshot:
        snapshot = self.snapshot()
        self.emitted += 1
        if self.sink is not None:
            self.sink(snapshot)
        return snapshot


async def decode_stream(
    fragments: AsyncIterable[str],
    sink: Optional[Sink] = None,
    separator: str = SEPARATOR,
) -> Snapshot:
    """Feed an async fragment source through a fresh decoder.

    Args:
        fragments: Ordered, finite fragment source
        sink: Receives each snapshot as it is produced
        separator: Marker between prose and the structured region

    Returns:
        The final snapshot once the source is exhausted
    """
    decoder = StreamDecoder(sink=sink, separator=separator)
    async for fragment in fragments:
        decoder.feed(fragment)
    return decoder.snapshot()
