"""Services package for tutorgate.

This package provides:
- Per-identity rate limiting over minute, hour and day windows
- Incremental decoding of streamed prose plus structured JSON
- One-shot response parsing and schema validation
- The request gateway and the tutoring operations built on it
"""

from tutorgate.app.services.rate_limit import QuotaStore, RateLimiter, WindowStatus
from tutorgate.app.services.stream_decoder import (
    SEPARATOR,
    QuestionEntry,
    Snapshot,
    StreamDecoder,
    TopicEntry,
    decode_stream,
)
from tutorgate.app.services.response_parser import (
    ParseResult,
    parse_and_validate,
    validate_as,
)
from tutorgate.app.services.gateway import RequestGateway
from tutorgate.app.services.tutor import TutorService, is_valid_question, shuffle_options

__all__ = [
    # Rate limiting
    "QuotaStore",
    "RateLimiter",
    "WindowStatus",
    # Stream decoding
    "SEPARATOR",
    "QuestionEntry",
    "Snapshot",
    "StreamDecoder",
    "TopicEntry",
    "decode_stream",
    # Parsing
    "ParseResult",
    "parse_and_validate",
    "validate_as",
    # Gateway
    "RequestGateway",
    "TutorService",
    "is_valid_question",
    "shuffle_options",
]
