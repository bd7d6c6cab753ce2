"""Best-effort JSON decoding of raw LLM completions.

Completions arrive wrapped in markdown fences, followed by commentary, or
cut off at the token limit.  ``parse_json_response`` strips the fences,
tries a plain ``json.loads`` and, only when that fails, attempts a
structural repair:

- everything before the first ``{`` is discarded;
- if some top-level structure closes, the text up to the *last* point where
  the bracket stack empties is kept and the tail is dropped;
- otherwise the text was truncated: an open string literal is closed, then
  every open ``{`` / ``[`` is closed innermost first.

A repaired document is structurally valid but may be missing whatever the
model did not get to write.  When repair does not produce valid JSON either,
the error from the *original* parse is raised.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

_FENCE = "```"
_JSON_FENCE = "```json"
_CLOSERS = {"{": "}", "[": "]"}


@dataclass(frozen=True)
class DecodedJSON:
    """A decoded value plus whether structural repair was needed."""

    value: Any
    repaired: bool = False


def strip_code_fences(text: str) -> str:
    """Remove a leading ```json / ``` marker and a trailing ``` marker."""
    cleaned = text.strip()
    if cleaned.startswith(_JSON_FENCE):
        cleaned = cleaned[len(_JSON_FENCE):]
    elif cleaned.startswith(_FENCE):
        cleaned = cleaned[len(_FENCE):]
    if cleaned.endswith(_FENCE):
        cleaned = cleaned[:-len(_FENCE)]
    return cleaned.strip()


def repair_truncated_json(text: str) -> str | None:
    """Return a candidate JSON document recovered from *text*, or ``None``.

    ``None`` means there is no ``{`` to start from.  The candidate is not
    guaranteed to parse.
    """
    start = text.find("{")
    if start == -1:
        return None

    in_string = False
    escape_next = False
    stack: list[str] = []
    last_complete = -1

    for i in range(start, len(text)):
        ch = text[i]

        if in_string:
            if escape_next:
                escape_next = False
            elif ch == "\\":
                escape_next = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch in _CLOSERS:
            stack.append(ch)
        elif ch in ("}", "]"):
            if stack:
                stack.pop()
            if not stack:
                last_complete = i

    if last_complete != -1:
        return text[start:last_complete + 1]

    repaired = text[start:]
    if in_string:
        # A trailing lone backslash would escape the closing quote
        if escape_next:
            repaired = repaired[:-1]
        repaired += '"'
    else:
        # A dangling separator would make the closed array/object invalid
        repaired = repaired.rstrip()
        if repaired.endswith(","):
            repaired = repaired[:-1]
    return repaired + "".join(_CLOSERS[opener] for opener in reversed(stack))


def decode_json_response(response: str) -> DecodedJSON:
    """Decode *response*, reporting whether repair was needed.

    Raises the original ``json.JSONDecodeError`` when the text cannot be
    decoded even after repair.
    """
    cleaned = strip_code_fences(response)
    try:
        return DecodedJSON(json.loads(cleaned))
    except json.JSONDecodeError as exc:
        original_error = exc

    candidate = repair_truncated_json(cleaned)
    if candidate is not None:
        try:
            value = json.loads(candidate)
        except json.JSONDecodeError as exc:
            logger.debug("Repaired JSON still invalid: %s", exc)
        else:
            logger.warning(
                "Recovered JSON by structural repair (%d chars -> %d chars)",
                len(cleaned), len(candidate),
            )
            return DecodedJSON(value, repaired=True)

    raise original_error


def parse_json_response(response: str) -> Any:
    """Parse a JSON value out of an LLM completion.

    Tolerates markdown fences, trailing commentary and truncated output.
    """
    return decode_json_response(response).value
