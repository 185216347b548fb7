"""Pull JSON out of free-form model replies."""

import json
import re
from typing import Any, Iterable

from shared.exceptions.errors import StructuredOutputError

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*\n?([\s\S]*?)\n?```")


def strip_code_fences(text: str) -> str:
    """Return the body of the first Markdown code fence, or the text itself if there is none."""
    if not text:
        return ""
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def find_balanced_span(text: str, opener: str | None = None) -> str | None:
    """Find the first balanced {...} or [...] span, skipping brackets inside strings.

    Args:
        text (str): Text that contains JSON somewhere.
        opener (str | None): Restrict the search to "{" or "["; None takes whichever comes first.

    Returns:
        str | None: The span, or None if no balanced span exists.
    """
    openers = (opener,) if opener else ("{", "[")
    positions = [text.find(o) for o in openers if text.find(o) != -1]
    if not positions:
        return None
    start = min(positions)
    open_char = text[start]
    close_char = "}" if open_char == "{" else "]"

    depth = 0
    in_string = False
    escape = False
    for i in range(start, len(text)):
        ch = text[i]
        if escape:
            escape = False
            continue
        if ch == "\\":
            escape = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if ch == open_char:
            depth += 1
        elif ch == close_char:
            depth -= 1
            if depth == 0:
                return text[start: i + 1]
    return None


def parse_structured(text: str, required_keys: Iterable[str] = (), expect: str | None = None) -> Any:
    """Parse the JSON payload of a model reply and check its required keys.

    Args:
        text (str): Raw model reply.
        required_keys (Iterable[str]): Keys that must be present (objects only).
        expect (str | None): "object", "array" or None for either.

    Returns:
        Any: The parsed dict or list.

    Raises:
        StructuredOutputError: If no JSON is found, it does not parse, or keys are missing.
    """
    body = strip_code_fences(text)
    opener = {"object": "{", "array": "["}.get(expect or "")
    span = find_balanced_span(body, opener) or find_balanced_span(text or "", opener)
    if span is None:
        raise StructuredOutputError("No JSON found in model response.")
    try:
        data = json.loads(span)
    except json.JSONDecodeError as e:
        raise StructuredOutputError(f"Model response is not valid JSON: {e.msg}") from e

    if expect == "object" and not isinstance(data, dict):
        raise StructuredOutputError("Expected a JSON object in model response.")
    if expect == "array" and not isinstance(data, list):
        raise StructuredOutputError("Expected a JSON array in model response.")

    missing = [key for key in required_keys if not isinstance(data, dict) or key not in data]
    if missing:
        raise StructuredOutputError(f"Model response is missing required keys: {', '.join(missing)}")
    return data
