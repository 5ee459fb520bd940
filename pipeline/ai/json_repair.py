"""Lenient JSON parsing for model output."""

import json
import re
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

_CODE_FENCE = re.compile(r"^\s*```(?:json)?\s*|\s*```\s*$", re.IGNORECASE)
_TRAILING_COMMA = re.compile(r",\s*([}\]])")

_CONTROL_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}
_CLOSERS = {"{": "}", "[": "]"}


def _escape_control_chars(text: str) -> str:
    """Escape raw control characters that appear inside string literals."""
    out: list[str] = []
    in_string = False
    escaped = False
    for char in text:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            elif ord(char) < 0x20:
                out.append(_CONTROL_ESCAPES.get(char, f"\\u{ord(char):04x}"))
                continue
        elif char == '"':
            in_string = True
        out.append(char)
    return "".join(out)


def _balance(text: str) -> str:
    """Close an unterminated string and any open objects or arrays."""
    stack: list[str] = []
    in_string = False
    escaped = False
    for char in text:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char in _CLOSERS:
            stack.append(_CLOSERS[char])
        elif char in "}]" and stack and stack[-1] == char:
            stack.pop()

    if in_string:
        text += '"'
    text = text.rstrip().rstrip(",")
    return text + "".join(reversed(stack))


def repair_json(text: str) -> str:
    text = _CODE_FENCE.sub("", text.strip())

    # Drop any chatter before the first object/array
    starts = [i for i in (text.find("{"), text.find("[")) if i >= 0]
    if starts:
        text = text[min(starts) :]

    text = _escape_control_chars(text)
    text = _balance(text)
    return _TRAILING_COMMA.sub(r"\1", text)


def parse_json_with_repair(text: str) -> Any:
    """
    Parse model output as JSON, attempting one repair pass on failure.

    The repair pass strips code fences and trailing commas, escapes raw
    control characters inside strings and closes unbalanced braces and
    brackets.

    Raises:
        json.JSONDecodeError: If the repaired text still does not parse
    """
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        logger.debug("json_parse_failed_attempting_repair", error=str(e), length=len(text))

    return json.loads(repair_json(text))
