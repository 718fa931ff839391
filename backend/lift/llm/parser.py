"""Extraction and validation of JSON values from raw completion text.

Models are unreliable formatters: they wrap JSON in markdown fences, add a
sentence before or after it, or ignore the requested shape altogether. The
parser here never raises on bad output. It returns a tagged ``ParseResult`` so
the pipelines can degrade one unit of work instead of failing the request.
"""
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Generic, Iterator, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError as PydanticValidationError

from lift.errors import MalformedModelOutput

logger = logging.getLogger("lift.llm.parser")

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

_FENCE = re.compile(r"```[ \t]*(?:json|JSON)?[ \t]*\r?\n?(.*?)```", re.DOTALL)
_OPENERS = {"{": "}", "[": "]"}


@dataclass(frozen=True)
class ParseResult(Generic[T]):
    ok: bool
    value: Optional[T] = None
    reason: str = ""

    @classmethod
    def success(cls, value: T) -> "ParseResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, reason: str) -> "ParseResult[T]":
        return cls(ok=False, reason=reason)

    def unwrap(self) -> T:
        """Return the value or raise MalformedModelOutput."""
        if not self.ok:
            raise MalformedModelOutput("Failed to process AI response: Malformed JSON.")
        return self.value

    def value_or(self, default: T) -> T:
        return self.value if self.ok else default


def strip_code_fence(raw: str) -> str:
    """Return the body of the first markdown code fence, or the text unchanged."""
    match = _FENCE.search(raw)
    if match:
        return match.group(1).strip()
    return raw.strip()


def _balanced_end(text: str, start: int) -> Optional[int]:
    """Index one past the bracket closing ``text[start]``, honouring JSON strings."""
    stack = [_OPENERS[text[start]]]
    in_string = False
    escaped = False
    for i in range(start + 1, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in _OPENERS:
            stack.append(_OPENERS[ch])
        elif ch in ("}", "]"):
            if ch != stack[-1]:
                return None
            stack.pop()
            if not stack:
                return i + 1
    return None


def iter_json_spans(text: str) -> Iterator[str]:
    """Yield balanced ``{...}`` / ``[...]`` spans in order of their opening bracket."""
    for start, ch in enumerate(text):
        if ch not in _OPENERS:
            continue
        end = _balanced_end(text, start)
        if end is not None:
            yield text[start:end]


def extract_json(raw: str) -> ParseResult[Any]:
    """Find and strictly parse the first JSON object or array in ``raw``."""
    if not raw or not raw.strip():
        return ParseResult.failure("empty response")
    body = strip_code_fence(raw)
    for span in iter_json_spans(body):
        try:
            return ParseResult.success(json.loads(span))
        except json.JSONDecodeError:
            continue
    return ParseResult.failure("no JSON value found")


def _unwrap_single_list(value: Any) -> Any:
    # {"flashcards": [...]} is a frequent substitute for a bare array
    if isinstance(value, dict):
        lists = [v for v in value.values() if isinstance(v, list)]
        if len(lists) == 1:
            return lists[0]
    return value


def parse_json_response(raw: str, shape: Type[M], many: bool = False) -> ParseResult:
    """Parse ``raw`` into ``shape`` (or a list of ``shape`` when ``many``).

    For lists, items that fail validation are dropped one by one; a non-empty
    list with no valid item is a failure. Never raises.
    """
    extracted = extract_json(raw)
    if not extracted.ok:
        logger.warning("Unparseable model output (%s); head=%r", extracted.reason, (raw or "")[:80])
        return extracted
    value = extracted.value

    if not many:
        if not isinstance(value, dict):
            return ParseResult.failure(f"expected object, got {type(value).__name__}")
        try:
            return ParseResult.success(shape.model_validate(value))
        except PydanticValidationError as exc:
            logger.warning("Model output failed %s validation: %s", shape.__name__, exc.errors()[:3])
            return ParseResult.failure(f"invalid {shape.__name__}")

    value = _unwrap_single_list(value)
    if not isinstance(value, list):
        return ParseResult.failure(f"expected array, got {type(value).__name__}")
    items = []
    for item in value:
        try:
            items.append(shape.model_validate(item))
        except PydanticValidationError:
            logger.debug("Dropping invalid %s item: %r", shape.__name__, item)
    if value and not items:
        return ParseResult.failure(f"no valid {shape.__name__} items")
    return ParseResult.success(items)
