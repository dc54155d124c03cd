"""
AI Clipboard Backend — Clipboard Service (Item Lifecycle Orchestrator)
========================================================================

What:  Owns the user's clipboard items and settings, and drives each item
       through its processing lifecycle.
How:   Composes SubscriptionGate (pre-flight checks, quota counting),
       TextAnalysisService (the analysis itself) and a StateStore
       (persistence under "clipboard-<user_id>").
Who:   Called by the route handlers in routes/items.py and routes/settings.py.

Capture Flow (POST /api/items):
    ┌──────────┐   ┌────────────┐   ┌────────────┐   ┌──────────┐   ┌──────────────┐
    │  Gate    │──▶│  Reserve   │──▶│  Create    │──▶│ Analyze  │──▶│  processed / │
    │ (quota,  │   │  quota     │   │  item      │   │ (provider│   │  failed      │
    │  model)  │   │  slot      │   │  pending   │   │  adapter)│   │              │
    └──────────┘   └────────────┘   └────────────┘   └──────────┘   └──────────────┘

    The slot is taken for every accepted capture. Items left `pending`
    because processing is disabled count too.

Item state machine:
    pending ──▶ processing ──▶ processed
                    ▲     └──▶ failed
                    └── retry (from processed or failed)

    - Entering `processing` stamps `ai_provider` with the provider selected
      *now*, so a retry after switching providers is attributed to the new one.
    - Success sets `processed_data` and clears `error`.
    - Failure sets `error` and leaves `processed_data` untouched; a failed
      re-run keeps the last good result visible.
    - Provider failures never escape retry_item(); they become a `failed` item.

Concurrency:
    Retries of different items run independently. Persistence is serialised
    by a lock. Two concurrent retries of the same item are last-writer-wins.
"""

import asyncio
import logging
import re
import time
import uuid
from datetime import date, datetime
from typing import Callable, List, Optional

from pydantic import ValidationError as PydanticValidationError

from aiclipboard.exceptions import (
    DuplicateItemError,
    NotFoundError,
    ProviderError,
    RemoteRejectedError,
    StorageError,
    ValidationError,
)
from aiclipboard.schemas.clipboard import (
    AppSettings,
    AppSettingsUpdate,
    ClipboardItem,
    ClipboardState,
    ClipboardStats,
    ItemStatus,
)
from aiclipboard.services.storage import StateStore
from aiclipboard.services.subscription_service import SubscriptionGate
from aiclipboard.services.text_analysis import TextAnalysisService

logger = logging.getLogger(__name__)

CLIPBOARD_KEY_PREFIX = "clipboard-"


def _epoch_ms() -> int:
    return int(time.time() * 1000)


def _new_item_id() -> str:
    return uuid.uuid4().hex


class ClipboardService:
    """
    Business logic for clipboard items.

    Args:
        analysis:        Provider dispatcher.
        gate:            Subscription gate for quota and allow-list checks.
        store:           Persistence capability.
        user_id:         Owner of the state; selects the storage key.
        request_timeout: Bound on one analysis, in seconds.
        now_ms:          Clock returning epoch milliseconds.
        today:           Clock returning the current local date.
        id_factory:      Generates item identifiers.
    """

    def __init__(
        self,
        analysis: TextAnalysisService,
        gate: SubscriptionGate,
        store: StateStore,
        user_id: str = "anonymous",
        request_timeout: float = 30.0,
        now_ms: Callable[[], int] = _epoch_ms,
        today: Callable[[], date] = date.today,
        id_factory: Callable[[], str] = _new_item_id,
    ):
        self._analysis = analysis
        self._gate = gate
        self._store = store
        self.user_id = user_id
        self.request_timeout = request_timeout
        self._now_ms = now_ms
        self._today = today
        self._new_id = id_factory

        self._items: List[ClipboardItem] = []
        self._settings = AppSettings()
        self._processed_today = 0
        self._success_rate = 100
        self._in_flight = 0
        self._save_lock = asyncio.Lock()

    # ══════════════════════════════════════════════════════════════════════
    # Persistence
    # ══════════════════════════════════════════════════════════════════════

    @property
    def storage_key(self) -> str:
        safe_user = re.sub(r"[^A-Za-z0-9_.-]", "_", self.user_id)
        return f"{CLIPBOARD_KEY_PREFIX}{safe_user}"

    async def load(self) -> None:
        """Replace in-memory items and settings with the persisted state."""
        data = await self._store.load(self.storage_key)
        if data is None:
            logger.info("No stored clipboard state for user %s", self.user_id)
            return
        try:
            state = ClipboardState.model_validate(data)
        except PydanticValidationError as e:
            logger.warning("Ignoring invalid stored clipboard state: %s", e)
            return

        self._items = state.items
        self._settings = state.settings
        self._recompute_stats()
        logger.info("Loaded %d clipboard items for user %s", len(self._items), self.user_id)

    async def _persist(self) -> None:
        state = ClipboardState(items=self._items, settings=self._settings)
        async with self._save_lock:
            await self._store.save(
                self.storage_key, state.model_dump(mode="json", by_alias=True)
            )

    async def _persist_after_attempt(self, item: ClipboardItem) -> None:
        # The attempt's outcome stays on the in-memory item even if saving fails.
        try:
            await self._persist()
        except StorageError as e:
            logger.error("Could not save result of item %s: %s", item.id, e.message)

    # ══════════════════════════════════════════════════════════════════════
    # Queries
    # ══════════════════════════════════════════════════════════════════════

    @property
    def settings(self) -> AppSettings:
        return self._settings

    @property
    def stats(self) -> ClipboardStats:
        return ClipboardStats(
            processed_today=self._processed_today,
            success_rate=self._success_rate,
            is_processing=self._in_flight > 0,
        )

    def list_items(self, status: Optional[ItemStatus] = None) -> List[ClipboardItem]:
        """Items newest first, optionally filtered by status."""
        if status is None:
            return list(self._items)
        return [item for item in self._items if item.status == status]

    def get_item(self, item_id: str) -> ClipboardItem:
        """
        Raises:
            NotFoundError: No item with this id.
        """
        for item in self._items:
            if item.id == item_id:
                return item
        raise NotFoundError(resource="clipboard item", resource_id=item_id)

    def find_duplicate(self, text: str) -> Optional[ClipboardItem]:
        """An existing non-failed item with exactly this text, if any."""
        for item in self._items:
            if item.original_text == text and item.status != ItemStatus.FAILED:
                return item
        return None

    # ══════════════════════════════════════════════════════════════════════
    # Capture & Processing
    # ══════════════════════════════════════════════════════════════════════

    async def capture(self, text: str) -> ClipboardItem:
        """
        Capture clipboard text: pre-flight checks, reserve quota, create, analyze.

        Pre-flight rejections create no item and make no network call.
        Every accepted capture takes one slot of the daily quota, whether it
        is processed, fails or stays pending because processing is disabled.
        The slot is reserved before the item is created, so concurrent
        captures cannot overshoot the limit.

        Raises:
            QuotaExceededError:   Daily limit reached.
            ModelNotAllowedError: Selected provider/model not in the tier.
            ValidationError:      Blank text.
            DuplicateItemError:   Same text already captured and not failed.
        """
        await self._gate.ensure_can_process()
        self._ensure_provider_allowed(self._settings)

        if not text or not text.strip():
            raise ValidationError(
                "Your clipboard is empty or doesn't contain text.", field="text"
            )

        duplicate = self.find_duplicate(text)
        if duplicate is not None:
            logger.info("Rejected duplicate capture of item %s", duplicate.id)
            raise DuplicateItemError(duplicate.id)

        await self._gate.consume_processing_slot()
        return await self.add_item(text)

    async def add_item(self, text: str) -> ClipboardItem:
        """Create a pending item and process it right away if enabled."""
        item = ClipboardItem(
            id=self._new_id(),
            original_text=text,
            timestamp=self._now_ms(),
            status=ItemStatus.PENDING,
            ai_provider=self._settings.ai_provider,
        )
        self._items.insert(0, item)
        await self._persist()
        logger.info("Captured item %s (%d chars)", item.id, len(text))

        if self._settings.processing_enabled:
            return await self.retry_item(item.id)
        return item

    async def retry_item(self, item_id: str) -> ClipboardItem:
        """
        Run one processing attempt for an item.

        Returns the item in `processed` or `failed` state. Provider errors and
        timeouts are recorded on the item, never raised.

        Raises:
            NotFoundError: No item with this id.
        """
        item = self.get_item(item_id)
        app_settings = self._settings

        item.status = ItemStatus.PROCESSING
        item.ai_provider = app_settings.ai_provider
        self._in_flight += 1
        logger.info("Processing item %s with provider=%s", item.id, item.ai_provider)

        try:
            processed = await asyncio.wait_for(
                self._analysis.process_text(
                    item.original_text, app_settings.custom_prompt, app_settings
                ),
                timeout=self.request_timeout,
            )
        except ProviderError as e:
            self._mark_failed(item, e.message)
        except asyncio.TimeoutError:
            timeout_error = RemoteRejectedError(
                message="AI processing timed out. Please try again.",
                provider=item.ai_provider,
                context={"timeout_seconds": self.request_timeout},
            )
            self._mark_failed(item, timeout_error.message)
        except Exception as e:
            logger.error("Unexpected error processing item %s: %s", item.id, e, exc_info=True)
            self._mark_failed(item, "Unknown error")
        else:
            item.status = ItemStatus.PROCESSED
            item.processed_data = processed
            item.error = None
            logger.info("Item %s processed (topic=%r)", item.id, processed.topic)
        finally:
            self._in_flight -= 1

        self._recompute_stats()
        await self._persist_after_attempt(item)
        return item

    def _mark_failed(self, item: ClipboardItem, message: str) -> None:
        item.status = ItemStatus.FAILED
        item.error = message
        logger.warning("Item %s failed: %s", item.id, message)

    def _ensure_provider_allowed(self, app_settings: AppSettings) -> None:
        adapter = self._analysis.resolve(app_settings.ai_provider)
        self._gate.ensure_model_allowed(adapter.provider_id, adapter.model_name(app_settings))

    # ══════════════════════════════════════════════════════════════════════
    # Mutations
    # ══════════════════════════════════════════════════════════════════════

    async def remove_item(self, item_id: str) -> None:
        item = self.get_item(item_id)
        self._items = [existing for existing in self._items if existing.id != item.id]
        self._recompute_stats()
        await self._persist()
        logger.info("Removed item %s", item_id)

    async def clear_items(self) -> None:
        count = len(self._items)
        self._items = []
        self._recompute_stats()
        await self._persist()
        logger.info("Cleared %d items", count)

    async def update_settings(self, update: AppSettingsUpdate) -> AppSettings:
        """
        Apply a partial settings update.

        Raises:
            ModelNotAllowedError: The resulting provider/model is not in the tier.
            ValidationError:      Blank prompt template.
        """
        changes = update.model_dump(exclude_unset=True, exclude_none=True)
        if "ai_provider" in changes:
            changes["ai_provider"] = changes["ai_provider"].strip().lower()
        if "custom_prompt" in changes and not changes["custom_prompt"].strip():
            raise ValidationError("The prompt template cannot be empty.", field="customPrompt")

        new_settings = self._settings.model_copy(update=changes)
        if {"ai_provider", "openai_model", "gemini_model"} & changes.keys():
            self._ensure_provider_allowed(new_settings)

        self._settings = new_settings
        await self._persist()
        logger.info("Settings updated: %s", ", ".join(sorted(changes)) or "no changes")
        return new_settings

    # ══════════════════════════════════════════════════════════════════════
    # Stats
    # ══════════════════════════════════════════════════════════════════════

    def _recompute_stats(self) -> None:
        today = self._today()
        processed = [item for item in self._items if item.status == ItemStatus.PROCESSED]
        failed = sum(1 for item in self._items if item.status == ItemStatus.FAILED)

        self._processed_today = sum(
            1 for item in processed
            if datetime.fromtimestamp(item.timestamp / 1000).date() == today
        )
        attempts = len(processed) + failed
        # half rounds up
        self._success_rate = int(len(processed) * 100 / attempts + 0.5) if attempts else 100
