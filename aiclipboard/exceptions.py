"""
AI Clipboard Backend — Custom Exception Hierarchy
===================================================

What:  Application-specific exceptions for provider, gate, and storage failures.
How:   Each exception carries a user-facing message and an optional context dict.
       Provider errors are caught by the clipboard lifecycle and recorded on the
       item; gate and validation errors reach the global handlers in main.py,
       which turn them into structured JSON error responses.
Who:   Raised by services; caught by ClipboardService and the FastAPI handlers.

Exception Hierarchy:
    ClipboardAIError (base)
    ├── ProviderError                 → recorded on the item as `failed`
    │   ├── MissingCredentialError    (API key absent or blank)
    │   ├── RemoteRejectedError       → 502 when raised outside the lifecycle
    │   ├── EmptyResponseError        (success status, no content)
    │   └── InjectedFailureError      (mock-only simulated fault)
    ├── GateError                     → pre-flight rejection, no item created
    │   ├── QuotaExceededError        → 429 Too Many Requests
    │   ├── ModelNotAllowedError      → 403 Forbidden
    │   └── FormatNotAllowedError     → 403 Forbidden
    ├── ValidationError               → 400 Bad Request
    ├── DuplicateItemError            → 409 Conflict
    ├── NotFoundError                 → 404 Not Found
    └── StorageError                  → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class ClipboardAIError(Exception):
    """
    Base exception for all AI Clipboard application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


# ══════════════════════════════════════════════════════════════════════════
# Provider Errors: raised by adapters, captured by the item lifecycle
# ══════════════════════════════════════════════════════════════════════════


class ProviderError(ClipboardAIError):
    """
    Raised when a text-analysis provider cannot produce a result.

    The message is shown on the failed item, so it is always phrased for the
    end user. `provider` names the adapter that failed.
    """

    def __init__(
        self,
        message: str = "AI processing failed. Please try again.",
        provider: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if provider:
            ctx["provider"] = provider
        super().__init__(message=message, context=ctx)
        self.provider = provider


class MissingCredentialError(ProviderError):
    """
    Raised when the selected provider's API key is absent or blank.

    Surfaced verbatim; a retry cannot succeed until the key is configured.
    """

    def __init__(self, provider_name: str, provider: Optional[str] = None):
        super().__init__(
            message=(
                f"{provider_name} API key is not configured. "
                "Please add your API key in settings."
            ),
            provider=provider,
        )


class RemoteRejectedError(ProviderError):
    """
    Raised when the provider answered with a non-success status, or the call
    could not complete (connection failure, timeout).

    `status_code` is None when no HTTP response was received.
    """

    def __init__(
        self,
        message: str = "The AI provider rejected the request",
        status_code: Optional[int] = None,
        provider: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if status_code is not None:
            ctx["status_code"] = status_code
        super().__init__(message=message, provider=provider, context=ctx)
        self.status_code = status_code


class EmptyResponseError(ProviderError):
    """Raised when the provider succeeded but returned no usable content."""


class InjectedFailureError(ProviderError):
    """Simulated fault raised by the mock adapter to exercise failure paths."""


# ══════════════════════════════════════════════════════════════════════════
# Gate Errors: subscription pre-flight rejections
# ══════════════════════════════════════════════════════════════════════════


class GateError(ClipboardAIError):
    """
    Base for subscription denials.

    Raised before any item is created or any network call is made, so they
    never produce a `failed` item.
    """

    def __init__(
        self,
        message: str = "This action is not available on your current plan",
        tier: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if tier:
            ctx["tier"] = tier
        super().__init__(message=message, context=ctx)
        self.tier = tier


class QuotaExceededError(GateError):
    """Raised when the daily processing quota of the current tier is used up."""

    def __init__(self, limit: int, tier: Optional[str] = None):
        super().__init__(
            message=(
                "You've reached your daily processing limit. "
                "Upgrade to Premium for unlimited processing."
            ),
            tier=tier,
            context={"limit": limit},
        )
        self.limit = limit


class ModelNotAllowedError(GateError):
    """Raised when a provider or model is outside the current tier's allow-list."""

    def __init__(self, identifier: str, tier: Optional[str] = None):
        super().__init__(
            message=f"'{identifier}' is only available for premium users.",
            tier=tier,
            context={"identifier": identifier},
        )
        self.identifier = identifier


class FormatNotAllowedError(GateError):
    """Raised when an export format is outside the current tier's allow-list."""

    def __init__(self, export_format: str, tier: Optional[str] = None):
        super().__init__(
            message=(
                f"Export format '{export_format}' is not available on your current plan."
            ),
            tier=tier,
            context={"format": export_format},
        )
        self.export_format = export_format


# ══════════════════════════════════════════════════════════════════════════
# Request / Resource Errors
# ══════════════════════════════════════════════════════════════════════════


class ValidationError(ClipboardAIError):
    """
    Raised when client input fails a business rule.

    When:    Blank clipboard text, unsupported export format.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class DuplicateItemError(ClipboardAIError):
    """Raised when the captured text already exists as a non-failed item."""

    def __init__(self, item_id: str):
        super().__init__(
            message="This content is already in your clipboard history.",
            context={"item_id": item_id},
        )
        self.item_id = item_id


class NotFoundError(ClipboardAIError):
    """
    Raised when a requested resource does not exist.

    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class StorageError(ClipboardAIError):
    """
    Raised when persisted state cannot be read or written.

    The message returned to the client is generic; the OS error is logged
    server-side only.
    """

    def __init__(
        self,
        message: str = "Could not save your data. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
