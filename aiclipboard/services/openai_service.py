"""
AI Clipboard Backend — OpenAI Provider Adapter
================================================

What:  Text analysis through the OpenAI chat-completions API.
How:   One single-turn request per analysis (system + user message,
       temperature 0.3, max_tokens 500) through the official `openai` SDK with
       SDK retries disabled; the first choice's content is normalized.
Who:   Registered in TextAnalysisService under the "openai" provider id.

Wire shape:
    POST {base_url}/chat/completions
    Authorization: Bearer <key>
    {"model": ..., "messages": [{"role": "system", ...}, {"role": "user", ...}],
     "temperature": 0.3, "max_tokens": 500}
    → choices[0].message.content
"""

import logging
from typing import Any, Optional

import openai
from openai import AsyncOpenAI

from aiclipboard.exceptions import EmptyResponseError, RemoteRejectedError
from aiclipboard.schemas.clipboard import AppSettings
from aiclipboard.services.llm_base import (
    MAX_OUTPUT_TOKENS,
    TEMPERATURE,
    RemoteProviderAdapter,
)

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a helpful assistant that analyzes text and extracts structured information."
)


class OpenAIAdapter(RemoteProviderAdapter):
    provider_id = "openai"
    display_name = "OpenAI"

    def __init__(self, timeout: float = 30.0, base_url: Optional[str] = None):
        super().__init__(timeout=timeout)
        self.base_url = base_url or None

    def credentials(self, settings: AppSettings) -> str:
        return settings.openai_api_key

    def model_name(self, settings: AppSettings) -> str:
        return settings.openai_model

    async def call(self, prompt: str, api_key: str, model: str) -> str:
        async with AsyncOpenAI(
            api_key=api_key,
            base_url=self.base_url,
            timeout=self.timeout,
            max_retries=0,
        ) as client:
            try:
                response = await client.chat.completions.create(
                    model=model,
                    messages=[
                        {"role": "system", "content": SYSTEM_PROMPT},
                        {"role": "user", "content": prompt},
                    ],
                    temperature=TEMPERATURE,
                    max_tokens=MAX_OUTPUT_TOKENS,
                )
            except openai.APIStatusError as e:
                logger.warning("OpenAI rejected request with status %d", e.status_code)
                raise RemoteRejectedError(
                    message=self.failure_message(_error_detail(e.body)),
                    status_code=e.status_code,
                    provider=self.provider_id,
                ) from e
            except openai.APITimeoutError as e:
                logger.warning("OpenAI request timed out after %.0fs", self.timeout)
                raise RemoteRejectedError(
                    message=self.failure_message("Request timed out"),
                    provider=self.provider_id,
                ) from e
            except openai.APIConnectionError as e:
                logger.warning("OpenAI connection failed: %s", e)
                raise RemoteRejectedError(
                    message=self.failure_message("Could not reach OpenAI"),
                    provider=self.provider_id,
                ) from e

        content = None
        if response.choices:
            content = response.choices[0].message.content
        if not content or not content.strip():
            raise EmptyResponseError(
                message=self.failure_message("No content returned from OpenAI"),
                provider=self.provider_id,
            )
        return content


def _error_detail(body: Any) -> str:
    """Provider message from an error body, generic when absent."""
    if isinstance(body, dict):
        error = body.get("error", body)
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return "Error calling OpenAI API"
