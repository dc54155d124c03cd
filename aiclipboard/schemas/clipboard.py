"""
AI Clipboard Backend — Clipboard Schemas
==========================================

What:  Pydantic models for clipboard items, analysis results, user settings,
       and the API envelopes built around them.
How:   Attributes are snake_case in Python; the wire and persisted form uses
       camelCase aliases (`originalText`, `actionItems`, ...) because the
       mobile client and the stored state already speak camelCase.
       `populate_by_name` lets both spellings validate.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


DEFAULT_PROMPT = """Analyze the following text and extract structured information:

{text}

Extract the following:
1. Main topic or subject
2. Key entities (people, organizations, locations, dates)
3. Primary intent (question, task, note, event, etc.)
4. Relevant categories or tags
5. Any actionable items"""

DEFAULT_CATEGORIES = ["Miscellaneous"]
DEFAULT_ACTION_ITEMS = ["No action needed"]


class CamelModel(BaseModel):
    """Base model serialising to camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ══════════════════════════════════════════════════════════════════════════
# Domain Models
# ══════════════════════════════════════════════════════════════════════════


class ProcessedData(CamelModel):
    """
    Normalized analysis of one piece of captured text.

    `categories` and `action_items` are never empty once produced by the
    normalizer or the mock analyzer; both fall back to a single placeholder.
    """

    topic: str = Field(min_length=1, description="Main topic or subject")
    entities: List[str] = Field(default_factory=list, description="People, places, organizations")
    intent: str = Field(default="note", description="note, question, shopping, meeting, task, ...")
    categories: List[str] = Field(default_factory=lambda: list(DEFAULT_CATEGORIES))
    action_items: List[str] = Field(default_factory=lambda: list(DEFAULT_ACTION_ITEMS))


class ItemStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    PROCESSED = "processed"
    FAILED = "failed"


class ClipboardItem(CamelModel):
    """
    One captured piece of clipboard text and its processing state.

    State machine:
        pending → processing → {processed | failed}
        processed / failed → processing (retry)
    """

    id: str = Field(description="Identifier assigned at capture time")
    original_text: str = Field(description="Captured text, never modified")
    timestamp: int = Field(description="Capture time in epoch milliseconds")
    status: ItemStatus = Field(default=ItemStatus.PENDING)
    processed_data: Optional[ProcessedData] = None
    error: Optional[str] = None
    ai_provider: Optional[str] = Field(
        default=None, description="Provider used for the latest attempt"
    )


class AppSettings(CamelModel):
    """
    Per-user analysis settings.

    `ai_provider` is a free string: unknown values route to the mock adapter
    rather than failing validation.
    """

    ai_provider: str = Field(default="mock", description="openai, gemini or mock")
    openai_api_key: str = ""
    gemini_api_key: str = ""
    openai_model: str = "gpt-3.5-turbo"
    gemini_model: str = "gemini-pro"
    custom_prompt: str = Field(default=DEFAULT_PROMPT, description="Template with a {text} placeholder")
    processing_enabled: bool = Field(default=True, description="Analyze new captures automatically")


class AppSettingsUpdate(CamelModel):
    """Partial settings update; only fields that were sent are applied."""

    ai_provider: Optional[str] = None
    openai_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    openai_model: Optional[str] = None
    gemini_model: Optional[str] = None
    custom_prompt: Optional[str] = None
    processing_enabled: Optional[bool] = None


class ClipboardStats(CamelModel):
    processed_today: int = 0
    success_rate: int = Field(default=100, ge=0, le=100, description="Percent of attempts that succeeded")
    is_processing: bool = False


class ClipboardState(CamelModel):
    """Persisted clipboard state for one user."""

    items: List[ClipboardItem] = Field(default_factory=list)
    settings: AppSettings = Field(default_factory=AppSettings)


# ══════════════════════════════════════════════════════════════════════════
# Request / Response Models
# ══════════════════════════════════════════════════════════════════════════


class CaptureRequest(CamelModel):
    text: str = Field(max_length=100_000, description="Text read from the device clipboard")


class ItemListResponse(CamelModel):
    items: List[ClipboardItem]
    stats: ClipboardStats


class SettingsResponse(CamelModel):
    """
    Settings as returned to the client.

    Raw API keys are never echoed back; only whether each one is configured.
    """

    ai_provider: str
    openai_model: str
    gemini_model: str
    custom_prompt: str
    processing_enabled: bool
    openai_api_key_configured: bool
    gemini_api_key_configured: bool

    @classmethod
    def from_settings(cls, app_settings: AppSettings) -> "SettingsResponse":
        return cls(
            ai_provider=app_settings.ai_provider,
            openai_model=app_settings.openai_model,
            gemini_model=app_settings.gemini_model,
            custom_prompt=app_settings.custom_prompt,
            processing_enabled=app_settings.processing_enabled,
            openai_api_key_configured=bool(app_settings.openai_api_key.strip()),
            gemini_api_key_configured=bool(app_settings.gemini_api_key.strip()),
        )


class ErrorResponse(BaseModel):
    """
    Standardized error body for all API errors.

    Example:
        {
            "error": "quota_exceeded",
            "message": "You've reached your daily processing limit. ...",
            "details": {"limit": 5, "tier": "free"},
            "request_id": "a1b2c3d4"
        }
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, degraded")
    version: str = Field(description="Application version")
    storage: str = Field(description="State storage: writable, unavailable")
    ai_provider: str = Field(description="Provider selected in the user's settings")
    uptime_seconds: float = Field(description="Seconds since service started")
