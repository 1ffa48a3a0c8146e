"""
JSON Repair — Hackathon Judging Agent

PURPOSE:
    Recover a JSON object from free text that a model produced when it was
    asked for "JSON only" but did not quite comply. Each strategy is a pure
    function ``str -> Optional[value]``; ``recover_json`` tries them in order
    and returns the first value that also passes the caller's schema check.

STRATEGIES (in order):
    1. parse_direct             whole text, optionally inside ``` fences
    2. remove_embedded_object   a string value that swallowed a duplicate
                                JSON blob, e.g.
                                "message": "Uses Stripe{"status": ...}"
    3. last_balanced_object     brace-depth scan from the first "{" that
                                respects quoted strings and escapes; the last
                                complete top-level object wins
    4. object_ending_at_last_brace
                                walk backward from the last "}" to the "{"
                                that balances it

CALLED BY:
    structured_generation.py, for the free-text fallback call.
"""

import json
import logging
import re
from typing import Any, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# "key": "   (the opening of a string-valued field)
_FIELD_OPEN = re.compile(r'"[^"\\\n]+"\s*:\s*"')
_EMBEDDED_START = re.compile(r'\{\s*"')
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")

MAX_EMBEDDED_REMOVALS = 10
MAX_BACKWARD_ATTEMPTS = 200


def _loads(text: str) -> Optional[Any]:
    try:
        return json.loads(text)
    except ValueError:
        return None


def _strip_code_fences(text: str) -> str:
    stripped = text.strip()
    if not stripped.startswith("```"):
        return stripped
    first_newline = stripped.find("\n")
    if first_newline == -1:
        return stripped
    stripped = stripped[first_newline + 1:]
    if stripped.rstrip().endswith("```"):
        stripped = stripped.rstrip()[:-3]
    return stripped.strip()


def _balanced_end(text: str, start: int) -> Optional[int]:
    """Index of the "}" closing the object that opens at ``start``, strings respected."""
    depth = 0
    in_string = False
    escape = False
    for i in range(start, len(text)):
        ch = text[i]
        if escape:
            escape = False
            continue
        if in_string:
            if ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return None


def parse_direct(text: str) -> Optional[Any]:
    return _loads(_strip_code_fences(text))


def _remove_one_embedded(text: str) -> Optional[str]:
    for field in _FIELD_OPEN.finditer(text):
        value_start = field.end()
        line_end = text.find("\n", value_start)
        if line_end == -1:
            line_end = len(text)
        segment = text[value_start:line_end]

        embedded = _EMBEDDED_START.search(segment)
        if not embedded:
            continue
        # The string must still be open where the blob starts.
        if '"' in segment[:embedded.start()].replace('\\"', ""):
            continue

        start = value_start + embedded.start()
        end = _balanced_end(text, start)
        if end is None:
            continue

        value = text[value_start:start].rstrip()
        tail = text[end + 1:]
        if not tail.lstrip(" \t").startswith('"'):
            tail = '"' + tail
        return text[:value_start] + value + tail
    return None


def remove_embedded_object(text: str) -> Optional[Any]:
    candidate = _strip_code_fences(text)
    removed = 0
    while removed < MAX_EMBEDDED_REMOVALS:
        repaired = _remove_one_embedded(candidate)
        if repaired is None:
            break
        candidate = repaired
        removed += 1
    if not removed:
        return None
    return _loads(_TRAILING_COMMA.sub(r"\1", candidate))


def last_balanced_object(text: str) -> Optional[Any]:
    candidates = []
    start = text.find("{")
    while start != -1:
        end = _balanced_end(text, start)
        if end is None:
            break
        candidates.append(text[start:end + 1])
        start = text.find("{", end + 1)

    for candidate in reversed(candidates):
        value = _loads(candidate)
        if value is not None:
            return value
    return None


def object_ending_at_last_brace(text: str) -> Optional[Any]:
    end = text.rfind("}")
    if end == -1:
        return None

    openings = [i for i in range(end, -1, -1) if text[i] == "{"]
    depth = 0
    balanced_at = None
    for i in range(end, -1, -1):
        if text[i] == "}":
            depth += 1
        elif text[i] == "{":
            depth -= 1
            if depth == 0:
                balanced_at = i
                break

    if balanced_at is not None:
        value = _loads(text[balanced_at:end + 1])
        if value is not None:
            return value
        openings = [i for i in openings if i < balanced_at]

    for i in openings[:MAX_BACKWARD_ATTEMPTS]:
        value = _loads(text[i:end + 1])
        if value is not None:
            return value
    return None


REPAIR_STRATEGIES: tuple = (
    ("direct", parse_direct),
    ("embedded_object", remove_embedded_object),
    ("balanced_scan", last_balanced_object),
    ("backward_scan", object_ending_at_last_brace),
)


def recover_json(text: str, validate: Callable[[Any], T]) -> Optional[T]:
    """
    First strategy result that ``validate`` accepts, or None.

    ``validate`` returns the validated value or raises ValueError/TypeError
    (pydantic's ValidationError is a ValueError).
    """
    for name, strategy in REPAIR_STRATEGIES:
        value = strategy(text)
        if value is None:
            continue
        try:
            validated = validate(value)
        except (ValueError, TypeError) as e:
            logger.debug("JSON repair strategy %s parsed but failed validation: %s", name, e)
            continue
        if name != "direct":
            logger.warning("Recovered model output with JSON repair strategy %s", name)
        return validated
    return None
