"""
AI Clipboard Backend — Text Analysis Service
==============================================

What:  Single entry point for analyzing captured text: process_text().
How:   Looks up the adapter registered for `settings.ai_provider`. Unknown ids
       and "mock" resolve to the mock adapter, so a paid API is only called
       after it has been selected explicitly.
Who:   Called by ClipboardService for every processing attempt.
"""

import logging
import time
from typing import Dict, Iterable, Optional

from aiclipboard.config import Settings
from aiclipboard.exceptions import ProviderError
from aiclipboard.schemas.clipboard import AppSettings, ProcessedData
from aiclipboard.services.gemini_service import GeminiAdapter
from aiclipboard.services.llm_base import ProviderAdapter
from aiclipboard.services.mock_service import MockAdapter
from aiclipboard.services.openai_service import OpenAIAdapter

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = "mock"


class TextAnalysisService:
    """
    Dispatches analysis requests to provider adapters.

    Adding a provider means registering one more adapter; the dispatch itself
    is a table lookup. A "mock" adapter must always be registered.
    """

    def __init__(self, adapters: Iterable[ProviderAdapter]):
        self._adapters: Dict[str, ProviderAdapter] = {
            adapter.provider_id: adapter for adapter in adapters
        }
        if DEFAULT_PROVIDER not in self._adapters:
            raise ValueError("A mock adapter must be registered as the default provider")

    @classmethod
    def from_settings(cls, config: Settings) -> "TextAnalysisService":
        """Build the standard OpenAI / Gemini / Mock registry from app config."""
        return cls([
            OpenAIAdapter(
                timeout=config.request_timeout,
                base_url=config.openai_base_url or None,
            ),
            GeminiAdapter(timeout=config.request_timeout),
            MockAdapter(
                delay_seconds=config.mock_delay_seconds,
                failure_rate=config.mock_failure_rate,
            ),
        ])

    @property
    def provider_ids(self) -> list:
        return sorted(self._adapters)

    def resolve(self, provider_id: Optional[str]) -> ProviderAdapter:
        """Adapter for `provider_id`, or the mock adapter when unknown."""
        adapter = self._adapters.get((provider_id or "").strip().lower())
        if adapter is None:
            if provider_id not in (None, "", DEFAULT_PROVIDER):
                logger.warning("Unknown provider '%s', using mock analysis", provider_id)
            adapter = self._adapters[DEFAULT_PROVIDER]
        return adapter

    async def process_text(
        self, text: str, prompt_template: str, settings: AppSettings
    ) -> ProcessedData:
        """
        Analyze `text` with the provider selected in `settings`.

        Raises:
            ProviderError: Any provider failure (missing key, remote rejection,
                empty reply, injected failure).
        """
        adapter = self.resolve(settings.ai_provider)
        start_time = time.perf_counter()
        logger.info("Analyzing %d chars with provider=%s", len(text), adapter.provider_id)

        try:
            result = await adapter.analyze(text, prompt_template, settings)
        except ProviderError as e:
            logger.warning(
                "Provider %s failed after %.0fms: %s",
                adapter.provider_id,
                (time.perf_counter() - start_time) * 1000,
                e.message,
            )
            raise

        logger.info(
            "Provider %s finished in %.0fms (intent=%s)",
            adapter.provider_id,
            (time.perf_counter() - start_time) * 1000,
            result.intent,
        )
        return result
