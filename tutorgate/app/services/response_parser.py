"""One-shot JSON response parsing and validation.

Parsing returns a tagged :class:`ParseResult` instead of raising; callers
decide when a failure becomes a ``MalformedResponseError``.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from tutorgate.app.core.logging import get_logger
from tutorgate.app.exceptions import MalformedResponseError

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)

_CODE_FENCE = re.compile(r"^```[a-zA-Z]*\s*(.*?)\s*```$", re.DOTALL)


@dataclass(frozen=True)
class ParseResult:
    """Outcome of parsing a complete provider response.

    Attributes:
        ok: True when the text is a JSON object holding every required key
        value: The parsed object (None on failure)
        missing_keys: Required keys absent from the object
        error: Human-readable failure reason
    """
    ok: bool
    value: Optional[Dict[str, Any]] = None
    missing_keys: Tuple[str, ...] = ()
    error: Optional[str] = None

    def unwrap(self) -> Dict[str, Any]:
        """Return the parsed object or raise MalformedResponseError."""
        if not self.ok or self.value is None:
            raise MalformedResponseError(
                self.error or "Invalid JSON response from provider",
                missing_keys=self.missing_keys,
            )
        return self.value

    def unwrap_as(self, model: Type[M]) -> M:
        """Validate the parsed object against a schema.

        Raises:
            MalformedResponseError: On parse failure or schema mismatch
        """
        return validate_as(self.unwrap(), model)


def validate_as(value: Dict[str, Any], model: Type[M]) -> M:
    """Validate a parsed object against a schema.

    Raises:
        MalformedResponseError: If the object does not match the schema
    """
    try:
        return model.model_validate(value)
    except ValidationError as e:
        logger.warning(f"Response failed {model.__name__} validation: {e.error_count()} error(s)")
        raise MalformedResponseError(
            f"Response does not match {model.__name__}: {e.errors()[0]['msg']}"
        ) from e


def strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown code fence, if any."""
    stripped = text.strip()
    match = _CODE_FENCE.match(stripped)
    return match.group(1) if match else stripped


def parse_and_validate(text: str, required_keys: Sequence[str] = ()) -> ParseResult:
    """Parse a complete response and check its required top-level keys.

    Args:
        text: Raw provider response
        required_keys: Keys that must be present at the top level

    Returns:
        ParseResult tagged with success or the failure reason
    """
    if not text or not text.strip():
        return ParseResult(ok=False, error="Empty response from provider")

    try:
        parsed = json.loads(strip_code_fence(text))
    except json.JSONDecodeError as e:
        logger.warning(f"JSON parsing error: {e}")
        return ParseResult(ok=False, error="Invalid JSON response from provider")

    if not isinstance(parsed, dict):
        return ParseResult(ok=False, error="Provider response is not a JSON object")

    missing = tuple(key for key in required_keys if key not in parsed)
    if missing:
        logger.warning(f"Missing required key(s): {', '.join(missing)}")
        return ParseResult(
            ok=False,
            value=parsed,
            missing_keys=missing,
            error=f"Missing required key: {missing[0]}",
        )

    return ParseResult(ok=True, value=parsed)
