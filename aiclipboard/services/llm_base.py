"""
AI Clipboard Backend — Abstract Provider Interface
====================================================

What:  Abstract base classes defining the contract for text-analysis providers.
How:   Every provider implements analyze(); remote providers inherit from
       RemoteProviderAdapter and only implement call(), the single network
       round-trip that returns the raw reply text.
Who:   Registered in TextAnalysisService, which picks one per request.

Implementations:
    - OpenAIAdapter:  OpenAI chat completions
    - GeminiAdapter:  Google Gemini generateContent
    - MockAdapter:    local heuristics with injectable latency and failures
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Optional

from aiclipboard.exceptions import MissingCredentialError
from aiclipboard.schemas.clipboard import AppSettings, ProcessedData
from aiclipboard.services import response_normalizer

logger = logging.getLogger(__name__)

PROMPT_PLACEHOLDER = "{text}"

# Sampling parameters shared by every remote provider
TEMPERATURE = 0.3
MAX_OUTPUT_TOKENS = 500


def build_prompt(prompt_template: str, text: str) -> str:
    """
    Substitute the `{text}` placeholder with the captured text.

    Only the first placeholder is replaced and the text is inserted literally.
    A template without a placeholder gets the text appended after a blank line.
    """
    if PROMPT_PLACEHOLDER not in prompt_template:
        return f"{prompt_template.rstrip()}\n\n{text}"
    return prompt_template.replace(PROMPT_PLACEHOLDER, text, 1)


class ProviderAdapter(ABC):
    """
    Contract:
        - analyze() turns captured text into ProcessedData
        - every failure is raised as a ProviderError subclass
        - no retries and no caching; one call is one attempt
    """

    provider_id: str = ""
    display_name: str = ""

    @abstractmethod
    async def analyze(
        self, text: str, prompt_template: str, settings: AppSettings
    ) -> ProcessedData:
        """
        Analyze text with this provider.

        Args:
            text:            Captured clipboard text.
            prompt_template: Template containing a `{text}` placeholder.
            settings:        The user's settings (credentials, model names).

        Raises:
            ProviderError: Missing credentials, remote rejection, empty reply,
                or an injected failure.
        """
        ...

    def model_name(self, settings: AppSettings) -> Optional[str]:
        """Model selected for this provider, or None when it has no model choice."""
        return None


class RemoteProviderAdapter(ProviderAdapter):
    """
    Shared flow for providers reached over the network:

        credentials check → build prompt → call() → normalize()
    """

    def __init__(self, timeout: float = 30.0):
        self.timeout = timeout

    @abstractmethod
    def credentials(self, settings: AppSettings) -> str:
        """Return the API key for this provider from the user's settings."""
        ...

    @abstractmethod
    def model_name(self, settings: AppSettings) -> str:
        """Return the model selected for this provider."""
        ...

    @abstractmethod
    async def call(self, prompt: str, api_key: str, model: str) -> str:
        """
        Make one request and return the raw reply text.

        Raises:
            RemoteRejectedError: Non-success status, connection error or timeout.
            EmptyResponseError:  Success, but the content field is missing.
        """
        ...

    async def analyze(
        self, text: str, prompt_template: str, settings: AppSettings
    ) -> ProcessedData:
        api_key = (self.credentials(settings) or "").strip()
        if not api_key:
            raise MissingCredentialError(self.display_name, provider=self.provider_id)

        model = self.model_name(settings)
        prompt = build_prompt(prompt_template, text)
        start_time = time.perf_counter()

        raw_content = await self.call(prompt, api_key, model)

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "%s call completed in %.0fms (model=%s, %d chars)",
            self.display_name,
            duration_ms,
            model,
            len(raw_content),
        )
        return response_normalizer.normalize(raw_content, text)

    def failure_message(self, detail: str) -> str:
        return f"{self.display_name} processing failed: {detail}"
