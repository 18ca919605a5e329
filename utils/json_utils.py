"""
Tolerant JSON extraction for text returned by generation models.

Models wrap JSON in markdown fences or surround it with prose; these helpers
try a direct parse first and then fall back to locating the JSON fragment.
"""

import json
import re
from typing import Any, Optional

_FENCE_PATTERN = re.compile(r'```(?:json|sql)?\s*\n?([\s\S]*?)\n?\s*```', re.IGNORECASE)
_ARRAY_PATTERN = re.compile(r'\[\s*\{.*\}\s*\]', re.DOTALL)
_OBJECT_PATTERN = re.compile(r'\{[\s\S]*\}')


def strip_code_fences(text: str) -> str:
    """Return the content of the first fenced block, or the stripped text if there is none."""
    if not text:
        return ""
    clean = text.strip()
    block_match = _FENCE_PATTERN.search(clean)
    if block_match:
        return block_match.group(1).strip()
    return clean


def _loads(text: str) -> Optional[Any]:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None


def parse_json_array(text: str) -> Optional[Any]:
    """
    Parse a model response expected to hold a JSON array of objects.

    Strategy 1: direct parse (after fence removal). Any JSON value is returned as-is,
    the caller decides whether the shape is acceptable.
    Strategy 2: the first `[ {...} ]` fragment in the raw text.

    Returns:
        Decoded JSON value, or None when nothing parses.
    """
    if not text:
        return None

    parsed = _loads(strip_code_fences(text))
    if parsed is not None:
        return parsed

    match = _ARRAY_PATTERN.search(text)
    if match:
        return _loads(match.group(0))
    return None


def parse_json_object(text: str) -> Optional[dict]:
    """
    Parse a model response expected to hold a JSON object.

    Strategy 1: direct parse (after fence removal).
    Strategy 2: outermost `{...}` block of the raw text.

    Returns:
        The decoded dict, or None when no object can be decoded.
    """
    if not text:
        return None

    parsed = _loads(strip_code_fences(text))
    if isinstance(parsed, dict):
        return parsed

    match = _OBJECT_PATTERN.search(text)
    if match:
        parsed = _loads(match.group(0))
        if isinstance(parsed, dict):
            return parsed
    return None
