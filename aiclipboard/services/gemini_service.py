"""
AI Clipboard Backend — Google Gemini Provider Adapter
=======================================================

What:  Text analysis through the Gemini generateContent API.
How:   Configures the `google-generativeai` SDK with the user's key and sends
       one request (temperature 0.3, max_output_tokens 500) bounded by the
       configured timeout. The first candidate's first text part is normalized.
Who:   Registered in TextAnalysisService under the "gemini" provider id.

Wire shape:
    POST .../models/{model}:generateContent?key=<key>
    {"contents": [{"parts": [{"text": prompt}]}],
     "generationConfig": {"temperature": 0.3, "maxOutputTokens": 500}}
    → candidates[0].content.parts[0].text

Note:
    genai.configure() sets module-level credentials, so concurrent calls with
    different keys would race. A single user's process only ever has one key.
"""

import asyncio
import logging
from typing import Any, Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from aiclipboard.exceptions import EmptyResponseError, RemoteRejectedError
from aiclipboard.schemas.clipboard import AppSettings
from aiclipboard.services.llm_base import (
    MAX_OUTPUT_TOKENS,
    TEMPERATURE,
    RemoteProviderAdapter,
)

logger = logging.getLogger(__name__)


class GeminiAdapter(RemoteProviderAdapter):
    provider_id = "gemini"
    display_name = "Gemini"

    def credentials(self, settings: AppSettings) -> str:
        return settings.gemini_api_key

    def model_name(self, settings: AppSettings) -> str:
        return settings.gemini_model

    async def call(self, prompt: str, api_key: str, model: str) -> str:
        genai.configure(api_key=api_key)
        generative_model = genai.GenerativeModel(model)

        try:
            response = await generative_model.generate_content_async(
                prompt,
                generation_config={
                    "temperature": TEMPERATURE,
                    "max_output_tokens": MAX_OUTPUT_TOKENS,
                },
                request_options={"timeout": self.timeout},
            )
        except google_exceptions.GoogleAPICallError as e:
            status_code = int(e.code) if e.code is not None else None
            logger.warning("Gemini rejected request (status=%s): %s", status_code, e.message)
            raise RemoteRejectedError(
                message=self.failure_message(e.message or "Error calling Gemini API"),
                status_code=status_code,
                provider=self.provider_id,
            ) from e
        except (google_exceptions.GoogleAPIError, asyncio.TimeoutError) as e:
            logger.warning("Gemini request failed: %s", e)
            raise RemoteRejectedError(
                message=self.failure_message("Error calling Gemini API"),
                provider=self.provider_id,
            ) from e

        content = _first_candidate_text(response)
        if not content or not content.strip():
            raise EmptyResponseError(
                message=self.failure_message("No content returned from Gemini"),
                provider=self.provider_id,
            )
        return content


def _first_candidate_text(response: Any) -> Optional[str]:
    """candidates[0].content.parts[0].text, or None when any step is missing."""
    try:
        return response.candidates[0].content.parts[0].text
    except (AttributeError, IndexError, TypeError):
        return None
