"""
Best-effort JSON extraction from free-text LLM replies.

Models wrap their JSON in prose or markdown fences. Instead of a greedy
first-"{"-to-last-"}" regex, we scan for balanced {...} spans (string and
escape aware) and return the first one that parses to an object.
"""

import copy
import json
import logging
from typing import Any, Dict, Iterable, Iterator, Optional, Tuple

from utils.exceptions import ResponseParseError

logger = logging.getLogger(__name__)

# Empty fields per reply kind so callers can destructure a fallback safely
BRAINSTORM_DEFAULTS: Dict[str, Any] = {
    "unique_angles": [],
    "witty_hooks": [],
    "creative_formats": [],
    "engagement_ideas": [],
}

TRENDS_DEFAULTS: Dict[str, Any] = {
    "trends": [],
    "recent_developments": [],
    "statistics": [],
    "sources": [],
}

RESEARCH_DEFAULTS: Dict[str, Any] = {
    "facts": [],
    "sources": [],
}


def iter_balanced_spans(text: str) -> Iterator[Tuple[int, int]]:
    """
    Yield (start, end) index pairs of balanced {...} spans, in order of start.

    Braces inside JSON string literals are ignored. A "{" that never closes
    yields nothing, so a truncated reply produces no span.
    """
    length = len(text)
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        end = -1
        for i in range(start, length):
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
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    end = i
                    break
        if end != -1:
            yield start, end + 1
        start = text.find("{", start + 1)


def find_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Return the first balanced span that parses to a JSON object, or None."""
    if not isinstance(text, str) or "{" not in text:
        return None

    # Whole reply is JSON: the common case when the model follows instructions
    stripped = text.strip()
    if stripped.startswith("{"):
        try:
            parsed = json.loads(stripped)
            if isinstance(parsed, dict):
                return parsed
        except ValueError:
            pass

    for start, end in iter_balanced_spans(text):
        try:
            parsed = json.loads(text[start:end])
        except ValueError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return None


def extract_json(text: Any, defaults: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Extract the JSON object embedded in an LLM reply.

    Never raises. On failure returns {"raw_response": text, **defaults}.
    """
    try:
        parsed = find_json_object(text)
    except Exception as e:  # never raises
        logger.warning(f"JSON extraction crashed on {type(text).__name__} input: {e}")
        parsed = None

    if parsed is not None:
        return parsed

    raw = text if isinstance(text, str) else ("" if text is None else str(text))
    logger.debug(f"No JSON object found in reply ({len(raw)} chars), using raw fallback")
    fallback: Dict[str, Any] = {"raw_response": raw}
    if defaults:
        fallback.update(copy.deepcopy(defaults))
    return fallback


def extract_json_strict(text: Any, required: Iterable[str] = ()) -> Dict[str, Any]:
    """
    Extract a JSON object or raise ResponseParseError.

    Used where the caller cannot proceed without structured fields.
    """
    parsed = find_json_object(text) if isinstance(text, str) else None
    preview = (text or "")[:200] if isinstance(text, str) else repr(text)[:200]

    if parsed is None:
        logger.error(f"Could not extract JSON from: {preview}")
        raise ResponseParseError("Failed to parse AI response", context={"preview": preview})

    missing = [key for key in required if key not in parsed]
    if missing:
        raise ResponseParseError(
            f"AI response missing required fields: {', '.join(missing)}",
            context={"missing": missing, "preview": preview},
        )
    return parsed


def is_fallback(result: Dict[str, Any]) -> bool:
    """True when extract_json could not find an object."""
    return "raw_response" in result
