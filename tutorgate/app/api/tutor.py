"""Tutoring API endpoints."""

import asyncio
import json
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from tutorgate.app.core.config import settings
from tutorgate.app.core.logging import get_logger
from tutorgate.app.exceptions import TutorGateException
from tutorgate.app.services.schemas import ExploreResult, Question
from tutorgate.app.services.stream_decoder import Snapshot
from tutorgate.app.services.tutor import TutorService

logger = get_logger(__name__)


class ChatMessage(BaseModel):
    """Earlier turn of an explore conversation."""
    type: Literal["user", "ai"]
    content: str


class ExploreRequest(BaseModel):
    """Request body for explanations."""
    query: str = Field(..., min_length=1, max_length=500)
    age: int = Field(default=16, ge=5, le=100)


class StreamExploreRequest(ExploreRequest):
    """Request body for streamed explanations."""
    chat_history: List[ChatMessage] = Field(default_factory=list)


class PlaygroundRequest(BaseModel):
    """Request body for a single practice question."""
    topic: str = Field(..., min_length=1, max_length=200)
    level: int = Field(default=1, ge=1, le=3)
    age: int = Field(default=16, ge=5, le=100)


class ExamRequest(BaseModel):
    """Request body for an exam practice set."""
    topic: str = Field(..., min_length=1, max_length=200)
    exam_type: Literal["JEE", "NEET"]


def get_identity(request: Request) -> str:
    """Read the caller identity from the session header.

    Raises:
        HTTPException: 400 when the header is missing or blank
    """
    identity = request.headers.get(settings.session_header, "").strip()
    if not identity:
        raise HTTPException(
            status_code=400,
            detail=f"Missing {settings.session_header} header",
        )
    return identity


def get_tutor(request: Request) -> TutorService:
    """Get the application's TutorService as a FastAPI dependency."""
    return request.app.state.tutor


def _sse(data: Dict[str, Any]) -> str:
    return f"data: {json.dumps(data)}\n\n"


router = APIRouter(prefix="/v1", tags=["tutor"])


@router.post("/explore", response_model=ExploreResult)
async def explore(
    body: ExploreRequest,
    identity: str = Depends(get_identity),
    tutor: TutorService = Depends(get_tutor),
) -> ExploreResult:
    """Explain a topic in one complete response."""
    return await tutor.explore(identity, body.query, body.age)


@router.post("/explore/stream", response_model=None)
async def explore_stream(
    body: StreamExploreRequest,
    identity: str = Depends(get_identity),
    tutor: TutorService = Depends(get_tutor),
) -> StreamingResponse:
    """Stream an explanation as server-sent events.

    One ``data:`` event per snapshot, then ``data: [DONE]``. Errors raised
    before the first snapshot (rate limiting included) are returned as a
    regular JSON error response; later errors become an error event.
    """
    queue: "asyncio.Queue[Optional[Snapshot]]" = asyncio.Queue()
    task = asyncio.create_task(
        tutor.stream_explore(
            identity,
            body.query,
            body.age,
            sink=queue.put_nowait,
            chat_history=[message.model_dump() for message in body.chat_history],
        )
    )
    task.add_done_callback(lambda _: queue.put_nowait(None))

    first = await queue.get()
    if first is None:
        # Finished before emitting anything; surface its error directly
        task.result()

    async def stream_generator():
        snapshot = first
        try:
            while snapshot is not None:
                yield _sse(snapshot.to_dict())
                snapshot = await queue.get()

            error = task.exception()
            if error is not None:
                if isinstance(error, TutorGateException):
                    yield _sse(error.to_response())
                else:
                    logger.error(
                        f"Unexpected stream error: {error}",
                        extra={"identity": identity},
                    )
                    yield _sse({"error": "stream_failed", "message": "Stream interrupted, please retry"})
            yield "data: [DONE]\n\n"
        finally:
            if not task.done():
                task.cancel()

    return StreamingResponse(stream_generator(), media_type="text/event-stream")


@router.post("/questions/playground", response_model=Question)
async def playground_question(
    body: PlaygroundRequest,
    identity: str = Depends(get_identity),
    tutor: TutorService = Depends(get_tutor),
) -> Question:
    """Generate a single practice question."""
    return await tutor.playground_question(identity, body.topic, body.level, body.age)


@router.post("/questions/test", response_model=List[Question])
async def exam_questions(
    body: ExamRequest,
    identity: str = Depends(get_identity),
    tutor: TutorService = Depends(get_tutor),
) -> List[Question]:
    """Generate an exam practice set."""
    return await tutor.test_questions(identity, body.topic, body.exam_type)


@router.get("/rate-limit")
async def rate_limit(
    identity: str = Depends(get_identity),
    tutor: TutorService = Depends(get_tutor),
) -> Dict[str, Dict[str, int]]:
    """Remaining requests and reset time for each window."""
    return {
        window: status.to_dict()
        for window, status in tutor.rate_limit_info(identity).items()
    }
