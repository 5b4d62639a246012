"""
Parsing of JSON replies from the LLM.

Replies are expected to be a bare JSON object but models occasionally wrap it
in markdown code fences. Parsing never raises: it returns a ``ParseOutcome``
that is either ``ok`` with a validated value or carries an error message.
"""

import json
import re
from dataclasses import dataclass
from typing import Generic, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError as SchemaError

T = TypeVar("T", bound=BaseModel)

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*\n?|\n?```\s*$")


@dataclass(frozen=True)
class ParseOutcome(Generic[T]):
    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def strip_code_fences(text: str) -> str:
    """Remove a leading ```/```json fence and the trailing ``` if present."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = _FENCE_RE.sub("", cleaned).strip()
    return cleaned


def parse_llm_json(text: str, schema: Type[T]) -> ParseOutcome[T]:
    cleaned = strip_code_fences(text)
    if not cleaned:
        return ParseOutcome(error="empty response")

    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as e:
        return ParseOutcome(error=f"response is not valid JSON: {e.msg}")

    if not isinstance(payload, dict):
        return ParseOutcome(error="response is not a JSON object")

    try:
        return ParseOutcome(value=schema.model_validate(payload))
    except SchemaError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()
        )
        return ParseOutcome(error=f"response does not match expected shape: {problems}")
