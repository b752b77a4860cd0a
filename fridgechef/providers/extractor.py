"""Best-effort JSON extraction from free-form model output.

Models wrap their JSON in prose, markdown fences and trailing commas. Extraction
runs in two stages, each a pure function:

1. greedy_candidate(): first opening bracket to the LAST closing bracket of the
   requested shape, so multi-line payloads are recovered whole.
2. leaf_candidates(): non-greedy matches of single bracket-free objects/arrays,
   tried in order when the greedy slice does not parse.

Trailing commas before `]` / `}` are removed before every parse attempt.
Nothing here raises: unusable text yields None.
"""

import json
import re
from typing import Any, Iterator, Literal, Optional

Shape = Literal["array", "object"]

_GREEDY_PATTERNS = {
    "array": re.compile(r"\[[\s\S]*\]"),
    "object": re.compile(r"\{[\s\S]*\}"),
}

_LEAF_PATTERNS = {
    "array": re.compile(r"\[[^\[\]]*\]"),
    "object": re.compile(r"\{[^{}]*\}"),
}

_TRAILING_COMMA = re.compile(r",\s*([\]}])")

_SHAPE_TYPES = {"array": list, "object": dict}


def strip_trailing_commas(text: str) -> str:
    """Remove commas that directly precede a closing bracket or brace."""
    return _TRAILING_COMMA.sub(r"\1", text)


def greedy_candidate(text: str, shape: Shape) -> Optional[str]:
    """Return the widest bracketed slice of the requested shape, or None."""
    match = _GREEDY_PATTERNS[shape].search(text)
    return match.group(0) if match else None


def leaf_candidates(text: str, shape: Shape) -> Iterator[str]:
    """Yield bracket-free object/array slices in order of appearance."""
    for match in _LEAF_PATTERNS[shape].finditer(text):
        yield match.group(0)


def _parse(candidate: str, shape: Shape) -> Optional[Any]:
    try:
        value = json.loads(strip_trailing_commas(candidate))
    except (json.JSONDecodeError, RecursionError):
        return None
    return value if isinstance(value, _SHAPE_TYPES[shape]) else None


def extract_json(text: Optional[str], shape: Shape) -> Optional[Any]:
    """Pull a JSON array or object out of unstructured model output.

    Args:
        text: Raw model content (may be empty or None).
        shape: "array" or "object".

    Returns:
        The parsed list/dict, or None when neither stage produced a value of the
        requested shape.
    """
    if not text or shape not in _GREEDY_PATTERNS:
        return None

    candidate = greedy_candidate(text, shape)
    if candidate is None:
        return None

    value = _parse(candidate, shape)
    if value is not None:
        return value

    for leaf in leaf_candidates(text, shape):
        value = _parse(leaf, shape)
        if value is not None:
            return value

    return None
