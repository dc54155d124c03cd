"""
AI Clipboard Backend — Subscription Gate
==========================================

What:  Daily processing quota and per-tier allow-lists for providers, models
       and export formats; simulated purchase / cancel / restore.
How:   Holds one SubscriptionState, loaded from and saved to the injected
       StateStore under the "subscription" key. Read-then-write operations
       (date rollover, increment, tier changes) run under an asyncio.Lock so
       interleaved coroutines cannot lose an update.
Who:   Consulted by ClipboardService before any item is created, and by
       ExportService before a format is generated.

Daily counter:
    The counter belongs to the calendar date stored next to it. There is no
    background timer: the first access on a new date notices the mismatch and
    resets (can_process_more) or restarts at 1 (consume_processing_slot,
    increment_processing_count).

Tier state machine:
    free ──purchase──▶ premium
    free ──restore───▶ premium   (probabilistic in this simulation)
    premium ──cancel─▶ free
"""

import asyncio
import logging
import random
import time
from datetime import date
from typing import Callable, Optional

from pydantic import ValidationError as PydanticValidationError

from aiclipboard.exceptions import (
    FormatNotAllowedError,
    ModelNotAllowedError,
    QuotaExceededError,
    StorageError,
)
from aiclipboard.schemas.subscription import (
    ProcessingCount,
    SubscriptionState,
    SubscriptionTier,
)
from aiclipboard.services.storage import StateStore

logger = logging.getLogger(__name__)

SUBSCRIPTION_KEY = "subscription"
SUBSCRIPTION_PERIOD_MS = 30 * 24 * 60 * 60 * 1000

SUBSCRIPTION_TIERS = {
    "free": SubscriptionTier(
        name="free",
        max_daily_processing=5,
        allowed_models=frozenset({"mock", "gemini", "gemini-pro"}),
        download_formats=frozenset({"txt"}),
        watermark=True,
        priority=False,
    ),
    "premium": SubscriptionTier(
        name="premium",
        max_daily_processing=None,
        allowed_models=frozenset({
            "mock", "gemini", "openai",
            "gemini-pro", "gemini-ultra", "gpt-3.5-turbo", "gpt-4",
        }),
        download_formats=frozenset({"txt", "json", "csv"}),
        watermark=False,
        priority=True,
    ),
}


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class SubscriptionGate:
    """
    Quota and entitlement checks for the current user.

    Args:
        store:                Persistence capability.
        today:                Clock returning the current calendar date.
        now_ms:               Clock returning epoch milliseconds.
        billing_delay:        Simulated billing round-trip, in seconds.
        restore_success_rate: Probability that restore_purchases() finds a purchase.
        rng:                  Random source for the restore simulation.
    """

    def __init__(
        self,
        store: StateStore,
        today: Callable[[], date] = date.today,
        now_ms: Callable[[], int] = _epoch_ms,
        billing_delay: float = 1.5,
        restore_success_rate: float = 0.5,
        rng: Optional[random.Random] = None,
    ):
        self._store = store
        self._today = today
        self._now_ms = now_ms
        self.billing_delay = billing_delay
        self.restore_success_rate = restore_success_rate
        self._rng = rng or random.Random()
        self._lock = asyncio.Lock()
        self._state = SubscriptionState(
            processing_count=ProcessingCount(today=0, date=self._today_str())
        )

    # ── State ─────────────────────────────────────────────────────────────

    async def load(self) -> None:
        """Replace in-memory state with the persisted one, if any."""
        data = await self._store.load(SUBSCRIPTION_KEY)
        if data is None:
            logger.info("No stored subscription, starting on the free tier")
            return
        try:
            self._state = SubscriptionState.model_validate(data)
        except PydanticValidationError as e:
            logger.warning("Ignoring invalid stored subscription: %s", e)
            return
        logger.info(
            "Subscription loaded: tier=%s, processed today=%d (%s)",
            self._state.tier,
            self._state.processing_count.today,
            self._state.processing_count.date,
        )

    @property
    def state(self) -> SubscriptionState:
        return self._state.model_copy(deep=True)

    @property
    def current_tier(self) -> SubscriptionTier:
        return SUBSCRIPTION_TIERS[self._state.tier]

    def _today_str(self) -> str:
        return self._today().isoformat()

    async def _commit(self, new_state: SubscriptionState) -> None:
        """Persist, then publish. The in-memory state only changes if saving succeeds."""
        await self._store.save(SUBSCRIPTION_KEY, new_state.model_dump(mode="json", by_alias=True))
        self._state = new_state

    def _with_count(self, count: int, day: str) -> SubscriptionState:
        return self._state.model_copy(
            update={"processing_count": ProcessingCount(today=count, date=day)}
        )

    # ── Quota ─────────────────────────────────────────────────────────────

    async def can_process_more(self) -> bool:
        """
        True while today's count is below the tier's daily limit.

        On the first call of a new day the counter is reset to 0 and True is
        returned.
        """
        async with self._lock:
            today = self._today_str()
            if self._state.processing_count.date != today:
                logger.info("New day %s, resetting processing count", today)
                await self._commit(self._with_count(0, today))
                return True
            limit = self.current_tier.max_daily_processing
            return limit is None or self._state.processing_count.today < limit

    async def ensure_can_process(self) -> None:
        """Raise QuotaExceededError when can_process_more() is False."""
        if not await self.can_process_more():
            tier = self.current_tier
            logger.info("Daily limit of %s reached on tier %s", tier.max_daily_processing, tier.name)
            raise QuotaExceededError(limit=tier.max_daily_processing or 0, tier=tier.name)

    async def consume_processing_slot(self) -> None:
        """
        Check the quota and count one capture as a single locked step.

        Concurrent callers cannot both take the last slot of the day.

        Raises:
            QuotaExceededError: Daily limit already reached.
        """
        async with self._lock:
            today = self._today_str()
            current = self._state.processing_count
            used = current.today if current.date == today else 0
            tier = self.current_tier
            limit = tier.max_daily_processing
            if limit is not None and used >= limit:
                logger.info("Daily limit of %s reached on tier %s", limit, tier.name)
                raise QuotaExceededError(limit=limit, tier=tier.name)
            await self._commit(self._with_count(used + 1, today))
            logger.debug("Processing count for %s is now %d", today, used + 1)

    async def increment_processing_count(self) -> None:
        """Count one processing attempt; restarts at 1 after a date rollover."""
        async with self._lock:
            today = self._today_str()
            current = self._state.processing_count
            count = current.today + 1 if current.date == today else 1
            await self._commit(self._with_count(count, today))
            logger.debug("Processing count for %s is now %d", today, count)

    async def reset_processing_count(self) -> None:
        async with self._lock:
            await self._commit(self._with_count(0, self._today_str()))

    def remaining_processing_count(self) -> Optional[int]:
        """Analyses left today, or None when the tier is unbounded."""
        limit = self.current_tier.max_daily_processing
        if limit is None:
            return None
        current = self._state.processing_count
        if current.date != self._today_str():
            return limit
        return max(0, limit - current.today)

    # ── Allow-lists ───────────────────────────────────────────────────────

    def is_model_allowed(self, identifier: str) -> bool:
        return identifier in self.current_tier.allowed_models

    def is_format_allowed(self, export_format: str) -> bool:
        return export_format in self.current_tier.download_formats

    def ensure_model_allowed(self, provider_id: str, model: Optional[str] = None) -> None:
        """
        Raise ModelNotAllowedError if the provider, or the model selected for
        it, is outside the current tier's allow-list.
        """
        tier = self.current_tier
        for identifier in (provider_id, model):
            if identifier and not self.is_model_allowed(identifier):
                raise ModelNotAllowedError(identifier, tier=tier.name)

    def ensure_format_allowed(self, export_format: str) -> None:
        if not self.is_format_allowed(export_format):
            raise FormatNotAllowedError(export_format, tier=self.current_tier.name)

    # ── Billing ───────────────────────────────────────────────────────────

    async def _simulate_billing(self) -> None:
        if self.billing_delay > 0:
            await asyncio.sleep(self.billing_delay)

    async def _try_commit(self, new_state: SubscriptionState, action: str) -> bool:
        try:
            await self._commit(new_state)
        except StorageError as e:
            logger.error("Subscription %s could not be saved: %s", action, e.message)
            return False
        logger.info("Subscription %s succeeded, tier=%s", action, new_state.tier)
        return True

    async def purchase_subscription(self) -> bool:
        await self._simulate_billing()
        async with self._lock:
            now = self._now_ms()
            return await self._try_commit(
                self._state.model_copy(update={
                    "tier": "premium",
                    "expires_at": now + SUBSCRIPTION_PERIOD_MS,
                    "purchase_token": f"purchase-{now}",
                }),
                "purchase",
            )

    async def cancel_subscription(self) -> bool:
        await self._simulate_billing()
        async with self._lock:
            return await self._try_commit(
                self._state.model_copy(update={
                    "tier": "free",
                    "expires_at": None,
                    "purchase_token": None,
                }),
                "cancellation",
            )

    async def restore_purchases(self) -> bool:
        """
        Look for a previous purchase. The billing check is simulated: a
        purchase is found with probability `restore_success_rate`.
        """
        await self._simulate_billing()
        if self._rng.random() >= self.restore_success_rate:
            logger.info("No purchase found to restore")
            return False
        async with self._lock:
            now = self._now_ms()
            return await self._try_commit(
                self._state.model_copy(update={
                    "tier": "premium",
                    "expires_at": now + SUBSCRIPTION_PERIOD_MS,
                    "purchase_token": f"restored-{now}",
                }),
                "restore",
            )
