"""Prompt text for tutoring requests."""

from typing import Optional, Sequence

from tutorgate.app.services.stream_decoder import SEPARATOR

DOMAINS = (
    "SCIENCE", "MATHEMATICS", "TECHNOLOGY", "MEDICAL", "HISTORY",
    "BUSINESS", "LAW", "PSYCHOLOGY", "CURRENT_AFFAIRS", "GENERAL",
)

TOPIC_TYPES = ("prerequisite", "extension", "application", "parallel", "deeper")
QUESTION_TYPES = ("curiosity", "mechanism", "causality", "innovation", "insight")

PLAYGROUND_ASPECTS = (
    "core_concepts",
    "applications",
    "problem_solving",
    "analysis",
    "current_trends",
)

JSON_SUFFIX = "Provide your response in JSON format."


def explore_prompts(query: str, age: int) -> tuple[str, str]:
    """System and user prompt for a one-shot explanation."""
    system = f"""You are a tutor who explains complex topics concisely.
First, identify the domain of the topic from these categories: {", ".join(DOMAINS)}.

Return your response in this EXACT JSON format:
{{
  "domain": "identified domain",
  "content": {{
    "paragraph1": "Core concept in 20-30 words",
    "paragraph2": "Main ideas and examples in 20-30 words",
    "paragraph3": "Practical uses and relevance in 20-40 words"
  }},
  "relatedTopics": [
    {{"topic": "Related concept", "type": "one of {"/".join(TOPIC_TYPES)}", "reason": "Why it matters"}}
  ],
  "relatedQuestions": [
    {{"question": "Curiosity question", "type": "one of {"/".join(QUESTION_TYPES)}", "context": "What makes it interesting"}}
  ]
}}

Provide exactly 5 related topics and 5 related questions. {JSON_SUFFIX}"""
    user = f"""Explain "{query}" in three 20-30 word paragraphs:
1. Basic definition
2. More details
3. Applications and examples
Make it engaging for someone aged {age}."""
    return system, user


def stream_explore_prompts(
    query: str,
    age: int,
    chat_history: Optional[Sequence[dict]] = None,
) -> tuple[str, str]:
    """System and user prompt for a streamed explanation with related content."""
    history_hint = (
        "Consider the previous conversation context when providing your response."
        if chat_history else ""
    )
    system = f"""You are a tutor who explains complex topics concisely for a {age} year old.
{history_hint}
First provide the explanation in plain text, then provide related content in a STRICT single-line JSON format.

Structure your response exactly like this:

<paragraph 1>

<paragraph 2>

<paragraph 3>

{SEPARATOR}
{{"topics":[{{"name":"Topic","type":"prerequisite","detail":"Why"}}],"questions":[{{"text":"Q?","type":"curiosity","detail":"Context"}}]}}

RULES:
- Total explanation must be 60-80 words
- Use "{SEPARATOR}" as separator
- JSON must be in a single line with no line breaks
- MUST provide EXACTLY 5 related topics and 5 questions
- Related questions must be 8-12 words
- Topic types: {", ".join(TOPIC_TYPES)}
- Question types: {", ".join(QUESTION_TYPES)}"""

    history = ""
    if chat_history:
        lines = [
            f"{'User' if message.get('type') == 'user' else 'Assistant'}: {message.get('content', '')}"
            for message in chat_history
        ]
        history = "Previous conversation:\n" + "\n".join(lines) + "\n\nNow, "

    user = f"""{history}Explain "{query}" in three very concise paragraphs for a {age} year old:
1. Basic definition (15-20 words)
2. Key details (15-20 words)
3. Direct applications and facts (15-20 words)

Then provide EXACTLY 5 related topics and 5 curiosity questions (8-12 words each)."""
    return system, user


def playground_prompts(topic: str, level: int, age: int, aspect: str) -> tuple[str, str]:
    """System and user prompt for one multiple-choice question."""
    focus = aspect.replace("_", " ")
    system = f"""Generate a UNIQUE multiple-choice question about {topic}.
Focus on: {focus}

Return in this JSON format:
{{
  "text": "question text here",
  "options": ["option A", "option B", "option C", "option D"],
  "correctAnswer": 0,
  "explanation": {{
    "correct": "Why the correct answer is right (max 15 words)",
    "key_point": "One key concept to remember (max 10 words)"
  }},
  "difficulty": {level},
  "topic": "{topic}",
  "subtopic": "specific subtopic",
  "questionType": "conceptual",
  "ageGroup": "{age}"
}}

Make all four options plausible and distinct. Difficulty level {level}/3:
1 basic concepts, 2 application and analysis, 3 complex scenarios. {JSON_SUFFIX}"""
    user = f"""Create a unique level {level}/3 difficulty question about {topic}.
Focus on {focus}. Make it engaging for a {age} year old student."""
    return system, user


def exam_set_prompts(topic: str, exam_type: str, count: int = 15) -> tuple[str, str]:
    """System and user prompt for an exam practice set."""
    system = f"""Create a {exam_type} exam test set about {topic}.
Generate exactly {count} questions following this structure:
{{
  "questions": [
    {{
      "text": "Clear question text",
      "options": ["A", "B", "C", "D"],
      "correctAnswer": 0,
      "explanation": {{"correct": "Step-by-step solution", "key_point": "Concept tested"}},
      "difficulty": 1,
      "topic": "{topic}",
      "subtopic": "specific concept",
      "examType": "{exam_type}",
      "questionType": "conceptual"
    }}
  ]
}}
{JSON_SUFFIX}"""
    user = f"Create {count} {exam_type} questions about {topic} (5 easy, 5 medium, 5 hard)"
    return system, user
