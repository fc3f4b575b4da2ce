"""
JSON extraction from free-text model output.

Every stage that consumes structured model output goes through
``parse_model_json`` so the brittle part lives in one place. Contract, first
match wins:

  1. the body of the first fenced code block (```json ... ``` or ``` ... ```)
  2. the whole response, stripped
  3. the span from the first ``{`` to the last ``}``
"""

from __future__ import annotations

import json
import re
from typing import Any

from pitchdeck.core.exceptions import ContentParseError

_FENCED_BLOCK = re.compile(r"```(?:json|JSON)?\s*(.*?)\s*```", re.DOTALL)


def _candidates(raw_text: str) -> list[str]:
    text = raw_text.strip()
    found: list[str] = []

    fenced = _FENCED_BLOCK.search(text)
    if fenced:
        found.append(fenced.group(1))

    found.append(text)

    start, end = text.find("{"), text.rfind("}")
    if 0 <= start < end:
        found.append(text[start : end + 1])
    return found


def parse_model_json(raw_text: str | None, *, expect_object: bool = True) -> Any:
    """Parse JSON out of a model response or raise ContentParseError."""
    if not raw_text or not raw_text.strip():
        raise ContentParseError("model returned an empty response")

    last_error: Exception | None = None
    for candidate in _candidates(raw_text):
        try:
            parsed = json.loads(candidate)
        except ValueError as e:
            last_error = e
            continue
        if expect_object and not isinstance(parsed, dict):
            last_error = ContentParseError(f"expected a JSON object, got {type(parsed).__name__}")
            continue
        return parsed

    raise ContentParseError(f"could not parse JSON from model response: {last_error}")
