"""Extraction of clean JSON from generative backend output.

Backends frequently wrap JSON in markdown code fences, surround it with
prose, leave trailing commas, or emit several top-level objects separated
by commas. ``extract_json`` repairs the common cases and returns text that
``json.loads`` accepts whenever the output contained usable JSON.
"""

from __future__ import annotations

import json
import re

_CODE_FENCE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL | re.IGNORECASE)
_LINE_COMMENT = re.compile(r'^\s*//.*$', re.MULTILINE)
_TRAILING_COMMA = re.compile(r",\s*([}\]])")
_ELLIPSIS_LINE = re.compile(r"^\s*\.\.\.\s*,?\s*$", re.MULTILINE)


def is_valid_json(text: str) -> bool:
    try:
        json.loads(text)
    except ValueError:
        return False
    return True


def _cleanup(text: str) -> str:
    text = _ELLIPSIS_LINE.sub("", text)
    text = _LINE_COMMENT.sub("", text)
    return _TRAILING_COMMA.sub(r"\1", text)


def _wrap_comma_separated(text: str) -> str | None:
    if not text.startswith("{") or not re.search(r"}\s*,\s*{", text):
        return None
    wrapped = f"[{text}]"
    return wrapped if is_valid_json(wrapped) else None


def _balanced(text: str) -> str | None:
    """First balanced object or array in ``text`` that parses as JSON."""
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not starts:
        return None
    start = min(starts)
    open_char = text[start]
    close_char = "}" if open_char == "{" else "]"

    depth = 0
    in_string = False
    escape = False
    for i in range(start, len(text)):
        c = text[i]
        if escape:
            escape = False
            continue
        if c == "\\" and in_string:
            escape = True
            continue
        if c == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if c == open_char:
            depth += 1
        elif c == close_char:
            depth -= 1
            if depth == 0:
                candidate = text[start : i + 1]
                return candidate if is_valid_json(candidate) else None
    return None


def extract_json(text: str | None) -> str:
    """Return the JSON embedded in backend output.

    Args:
        text: Raw backend output

    Returns:
        Repaired JSON text, or the stripped input if nothing usable was found
        (callers detect that by failing to parse it).
    """
    if text is None or not text.strip():
        return ""

    trimmed = text.strip()
    if is_valid_json(trimmed):
        return trimmed

    fence = _CODE_FENCE.search(trimmed)
    if fence:
        trimmed = fence.group(1).strip()
        if is_valid_json(trimmed):
            return trimmed

    cleaned = _cleanup(trimmed).strip()
    if is_valid_json(cleaned):
        return cleaned

    wrapped = _wrap_comma_separated(cleaned)
    if wrapped is not None:
        return wrapped

    balanced = _balanced(cleaned)
    if balanced is not None:
        return balanced

    return trimmed
