"""
AI Clipboard Backend — Mock Provider (Heuristic Analyzer)
===========================================================

What:  Local stand-in for a real provider, based on keyword heuristics.
How:   Sleeps for `delay_seconds`, fails with probability `failure_rate`, then
       derives entities, intent, action items and categories from vocabulary
       matches. Both knobs are injectable so tests run at zero delay with
       zero or forced failures.
Who:   The default provider, and the destination of unknown provider ids.

Vocabulary matches are case-insensitive plain substrings, so "meeting"
matches `meet` and "budget" matches `get`.
"""

import asyncio
import logging
import random
import re
from typing import List, Optional, Sequence, Tuple

from aiclipboard.exceptions import InjectedFailureError
from aiclipboard.schemas.clipboard import (
    DEFAULT_ACTION_ITEMS,
    DEFAULT_CATEGORIES,
    AppSettings,
    ProcessedData,
)
from aiclipboard.services.llm_base import ProviderAdapter
from aiclipboard.services.response_normalizer import truncate_topic

logger = logging.getLogger(__name__)

MAX_ENTITIES = 3


def _vocabulary(*words: str) -> "re.Pattern[str]":
    alternatives = "|".join(re.escape(word) for word in words)
    return re.compile(f"(?:{alternatives})", re.IGNORECASE)


# First match wins; "?" is checked before these.
_INTENT_RULES: Sequence[Tuple[str, "re.Pattern[str]"]] = (
    ("shopping", _vocabulary("buy", "purchase", "get", "pick up")),
    ("meeting", _vocabulary("meet", "call", "talk", "discuss", "appointment")),
    ("task", _vocabulary("todo", "task", "remember", "don't forget")),
)

# Every match is kept, in this order.
_ACTION_RULES: Sequence[Tuple[str, "re.Pattern[str]"]] = (
    ("Contact someone", _vocabulary("call", "email", "contact", "reach out")),
    ("Purchase items", _vocabulary("buy", "purchase", "get")),
    ("Schedule event", _vocabulary("schedule", "plan", "arrange")),
    ("Review information", _vocabulary("review", "check", "look at")),
)

_CATEGORY_RULES: Sequence[Tuple[str, "re.Pattern[str]"]] = (
    ("Work", _vocabulary("work", "project", "client", "meeting", "deadline")),
    ("Shopping", _vocabulary("buy", "shop", "store", "purchase", "price")),
    ("Food", _vocabulary("eat", "food", "restaurant", "lunch", "dinner", "breakfast")),
    ("Personal", _vocabulary("family", "kids", "parents", "home")),
)


def _extract_entities(text: str) -> List[str]:
    return [
        word for word in text.split()
        if len(word) > 4 and "A" <= word[0] <= "Z"
    ][:MAX_ENTITIES]


def _detect_intent(text: str) -> str:
    if "?" in text:
        return "question"
    for intent, pattern in _INTENT_RULES:
        if pattern.search(text):
            return intent
    return "note"


def _matching_labels(
    text: str, rules: Sequence[Tuple[str, "re.Pattern[str]"]], default: List[str]
) -> List[str]:
    labels = [label for label, pattern in rules if pattern.search(text)]
    return labels or list(default)


def mock_analyze(text: str) -> ProcessedData:
    """Heuristic analysis of `text`; deterministic and side-effect free."""
    return ProcessedData(
        topic=truncate_topic(text.strip()) or "Untitled",
        entities=_extract_entities(text),
        intent=_detect_intent(text),
        categories=_matching_labels(text, _CATEGORY_RULES, DEFAULT_CATEGORIES),
        action_items=_matching_labels(text, _ACTION_RULES, DEFAULT_ACTION_ITEMS),
    )


class MockAdapter(ProviderAdapter):
    """
    Heuristic provider with simulated latency and injected failures.

    Args:
        delay_seconds: Simulated network latency (0 disables the sleep).
        failure_rate:  Probability in [0, 1] of raising InjectedFailureError.
        rng:           Random source; pass a seeded Random for reproducible runs.
    """

    provider_id = "mock"
    display_name = "Mock"

    def __init__(
        self,
        delay_seconds: float = 1.5,
        failure_rate: float = 0.10,
        rng: Optional[random.Random] = None,
    ):
        if not 0.0 <= failure_rate <= 1.0:
            raise ValueError(f"failure_rate must be within [0, 1], got {failure_rate}")
        self.delay_seconds = delay_seconds
        self.failure_rate = failure_rate
        self._rng = rng or random.Random()

    async def analyze(
        self, text: str, prompt_template: str, settings: AppSettings
    ) -> ProcessedData:
        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)

        if self._rng.random() < self.failure_rate:
            logger.info("Mock provider injecting a failure")
            raise InjectedFailureError(
                message="AI processing failed. Please try again.",
                provider=self.provider_id,
            )

        return mock_analyze(text)
