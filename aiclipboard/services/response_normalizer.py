"""
AI Clipboard Backend — Response Normalizer
============================================

What:  Converts free-form or JSON-ish provider output into a ProcessedData record.
How:   Three attempts in fixed order, first match wins:
         1. JSON path:   decode an object embedded in the reply
         2. Text path:   labelled sections ("Topic:", "Entities:", ...)
         3. Fallback:    deterministic record built from the original text
Who:   Called by the remote provider adapters after a successful round-trip.

Contract:
    normalize() never raises. A reply that cannot be parsed still yields a
    usable card; parse problems are logged at WARNING and never reach the item.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

from aiclipboard.schemas.clipboard import (
    DEFAULT_ACTION_ITEMS,
    DEFAULT_CATEGORIES,
    ProcessedData,
)

logger = logging.getLogger(__name__)

TOPIC_MAX_LENGTH = 30
ELLIPSIS = "…"

_decoder = json.JSONDecoder()

# ── Text-path patterns ────────────────────────────────────────────────────
# Single-line labels capture the rest of the line.
_TOPIC_PATTERNS = [
    re.compile(r"topic:\s*(.*)", re.IGNORECASE),
    re.compile(r"subject:\s*(.*)", re.IGNORECASE),
]
_INTENT_PATTERNS = [
    re.compile(r"intent:\s*(.*)", re.IGNORECASE),
    re.compile(r"purpose:\s*(.*)", re.IGNORECASE),
]

# Block labels capture until a blank line, a numbered line, or the end.
_BLOCK_TAIL = r"\s*(.*(?:\n.*)*?)(?:\n[ \t]*\n|\n\d|\Z)"
_ENTITY_PATTERNS = [
    re.compile(r"entities:" + _BLOCK_TAIL, re.IGNORECASE),
]
_CATEGORY_PATTERNS = [
    re.compile(r"categories:" + _BLOCK_TAIL, re.IGNORECASE),
    re.compile(r"tags:" + _BLOCK_TAIL, re.IGNORECASE),
]
# Action lists are usually numbered, so only a blank line ends them.
_ACTION_TAIL = r"\s*(.*(?:\n.*)*?)(?:\n[ \t]*\n|\Z)"
_ACTION_PATTERNS = [
    re.compile(r"action items:" + _ACTION_TAIL, re.IGNORECASE),
    re.compile(r"actions:" + _ACTION_TAIL, re.IGNORECASE),
]

_BULLET = re.compile(r"^\s*[-*•]\s*")
_NUMBERED_BULLET = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s*")
_LIST_SPLIT = re.compile(r"[,\n]")


def truncate_topic(text: str, limit: int = TOPIC_MAX_LENGTH) -> str:
    """
    Short topic derived from raw text.

    Text longer than `limit` is cut at `limit` characters, the trailing
    partial word is dropped, and an ellipsis appended. A single word longer
    than the limit keeps its first `limit` characters.
    """
    if len(text) <= limit:
        return text
    cut = text[:limit]
    words = cut.split(" ")
    kept = " ".join(words[:-1]).rstrip()
    return (kept or cut) + ELLIPSIS


def fallback_result(original_text: str) -> ProcessedData:
    """Deterministic record used when a reply cannot be interpreted."""
    topic = truncate_topic(original_text.strip()) or "Untitled"
    return ProcessedData(
        topic=topic,
        entities=[],
        intent="note",
        categories=list(DEFAULT_CATEGORIES),
        action_items=list(DEFAULT_ACTION_ITEMS),
    )


def normalize(raw_content: str, original_text: str) -> ProcessedData:
    """
    Parse a provider reply into ProcessedData.

    Args:
        raw_content:   Text returned by the provider (may be anything).
        original_text: The captured text, used for the fallback topic.

    Returns:
        ProcessedData; never raises.
    """
    if not raw_content or not raw_content.strip():
        logger.warning("Empty provider reply, using fallback analysis")
        return fallback_result(original_text)

    try:
        if "{" in raw_content and "}" in raw_content:
            data = _extract_json_object(raw_content)
            if data is not None:
                return _from_json(data)
            logger.info("No JSON object found in reply, falling back to text parsing")
        return _from_text(raw_content)
    except Exception as e:
        logger.warning("Could not parse provider reply (%s), using fallback analysis", e)
        return fallback_result(original_text)


# ══════════════════════════════════════════════════════════════════════════
# JSON path
# ══════════════════════════════════════════════════════════════════════════


def _extract_json_object(content: str) -> Optional[Dict[str, Any]]:
    start = content.find("{")
    end = content.rfind("}")
    if start < 0 or end < start:
        return None

    try:
        obj, _ = _decoder.raw_decode(content, start)
    except json.JSONDecodeError:
        try:
            obj = json.loads(content[start:end + 1])
        except json.JSONDecodeError:
            return None
    return obj if isinstance(obj, dict) else None


def _from_json(data: Dict[str, Any]) -> ProcessedData:
    fields = {str(key).lower(): value for key, value in data.items()}

    topic = _first_present(fields, "topic", "maintopic")
    intent = _first_present(fields, "intent", "primaryintent")

    return ProcessedData(
        topic=(str(topic).strip() if topic is not None else "") or "Unknown topic",
        entities=_as_str_list(fields.get("entities")),
        intent=(str(intent).strip() if intent is not None else "") or "note",
        categories=_as_str_list(fields.get("categories")) or list(DEFAULT_CATEGORIES),
        action_items=(
            _as_str_list(_first_present(fields, "actionitems", "action_items"))
            or list(DEFAULT_ACTION_ITEMS)
        ),
    )


def _first_present(fields: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = fields.get(key)
        if value not in (None, "", [], {}):
            return value
    return None


def _as_str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if v is not None and str(v).strip()]


# ══════════════════════════════════════════════════════════════════════════
# Text path
# ══════════════════════════════════════════════════════════════════════════


def _from_text(content: str) -> ProcessedData:
    lines = [line.strip() for line in content.splitlines() if line.strip()]

    topic = _match_line(_TOPIC_PATTERNS, content) or _BULLET.sub("", lines[0]) or lines[0]
    intent = _match_line(_INTENT_PATTERNS, content) or "note"

    entities = _split_block(_match_block(_ENTITY_PATTERNS, content))
    categories = _split_block(_match_block(_CATEGORY_PATTERNS, content))
    action_items = _split_lines(_match_block(_ACTION_PATTERNS, content))

    return ProcessedData(
        topic=topic,
        entities=entities,
        intent=intent,
        categories=categories or list(DEFAULT_CATEGORIES),
        action_items=action_items or list(DEFAULT_ACTION_ITEMS),
    )


def _match_line(patterns: List["re.Pattern[str]"], content: str) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(content)
        if match:
            return match.group(1).strip() or None
    return None


def _match_block(patterns: List["re.Pattern[str]"], content: str) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(content)
        if match:
            return match.group(1)
    return None


def _split_block(block: Optional[str]) -> List[str]:
    if not block:
        return []
    parts = (_BULLET.sub("", part).strip() for part in _LIST_SPLIT.split(block))
    return [part for part in parts if part]


def _split_lines(block: Optional[str]) -> List[str]:
    if not block:
        return []
    parts = (_NUMBERED_BULLET.sub("", line).strip() for line in block.splitlines())
    return [part for part in parts if part]
