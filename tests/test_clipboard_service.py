"""
AI Clipboard Backend — Clipboard Service Tests
================================================

What:  Tests for the item lifecycle: capture → analyze → processed/failed,
       retries, pre-flight rejections, settings and stats.
How:   Runs against the mock provider (no latency) and an InMemoryStore.
       Failures are produced by raising the mock adapter's failure rate.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from aiclipboard.exceptions import (
    DuplicateItemError,
    InjectedFailureError,
    ModelNotAllowedError,
    NotFoundError,
    QuotaExceededError,
    ValidationError,
)
from aiclipboard.schemas.clipboard import AppSettingsUpdate, ClipboardItem, ItemStatus
from aiclipboard.services.clipboard_service import ClipboardService
from aiclipboard.services.mock_service import mock_analyze


class TestCapture:
    @pytest.mark.asyncio
    async def test_capture_processes_item(self, clipboard_service, gate, clock):
        item = await clipboard_service.capture("Buy milk and eggs")

        assert item.id == "item-1"
        assert item.status == ItemStatus.PROCESSED
        assert item.timestamp == clock.now()
        assert item.ai_provider == "mock"
        assert item.error is None
        assert item.processed_data.intent == "shopping"
        assert gate.remaining_processing_count() == 4

    @pytest.mark.asyncio
    async def test_newest_item_first(self, clipboard_service):
        await clipboard_service.capture("first")
        await clipboard_service.capture("second")

        assert [i.original_text for i in clipboard_service.list_items()] == ["second", "first"]

    @pytest.mark.asyncio
    async def test_provider_failure_becomes_failed_item(self, clipboard_service, mock_adapter, gate):
        mock_adapter.failure_rate = 1.0

        item = await clipboard_service.capture("anything")

        assert item.status == ItemStatus.FAILED
        assert item.error == "AI processing failed. Please try again."
        assert item.processed_data is None
        # Failed attempts still use quota
        assert gate.remaining_processing_count() == 4

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   \n\t"])
    async def test_blank_text_rejected(self, clipboard_service, text):
        with pytest.raises(ValidationError):
            await clipboard_service.capture(text)
        assert clipboard_service.list_items() == []

    @pytest.mark.asyncio
    async def test_duplicate_rejected(self, clipboard_service):
        first = await clipboard_service.capture("same text")

        with pytest.raises(DuplicateItemError) as exc_info:
            await clipboard_service.capture("same text")

        assert exc_info.value.item_id == first.id
        assert len(clipboard_service.list_items()) == 1

    @pytest.mark.asyncio
    async def test_failed_item_does_not_block_recapture(self, clipboard_service, mock_adapter):
        mock_adapter.failure_rate = 1.0
        await clipboard_service.capture("same text")
        mock_adapter.failure_rate = 0.0

        item = await clipboard_service.capture("same text")

        assert item.status == ItemStatus.PROCESSED
        assert len(clipboard_service.list_items()) == 2

    @pytest.mark.asyncio
    async def test_quota_exhausted_creates_no_item(self, clipboard_service):
        for n in range(5):
            await clipboard_service.capture(f"note {n}")

        with pytest.raises(QuotaExceededError):
            await clipboard_service.capture("one too many")

        assert len(clipboard_service.list_items()) == 5

    @pytest.mark.asyncio
    async def test_quota_returns_next_day(self, clipboard_service, clock):
        for n in range(5):
            await clipboard_service.capture(f"note {n}")
        clock.advance_days(1)

        item = await clipboard_service.capture("tomorrow's note")

        assert item.status == ItemStatus.PROCESSED

    @pytest.mark.asyncio
    async def test_disallowed_provider_creates_no_item(self, clipboard_service, gate):
        # Stored settings may predate a downgrade to the free tier
        await gate.purchase_subscription()
        await clipboard_service.update_settings(AppSettingsUpdate(ai_provider="openai"))
        await gate.cancel_subscription()

        with pytest.raises(ModelNotAllowedError):
            await clipboard_service.capture("text")

        assert clipboard_service.list_items() == []
        assert gate.remaining_processing_count() == 5

    @pytest.mark.asyncio
    async def test_processing_disabled_leaves_item_pending(self, clipboard_service, gate):
        await clipboard_service.update_settings(AppSettingsUpdate(processing_enabled=False))

        item = await clipboard_service.capture("later")

        assert item.status == ItemStatus.PENDING
        assert item.processed_data is None
        assert gate.remaining_processing_count() == 4

    @pytest.mark.asyncio
    async def test_pending_captures_cannot_bypass_quota(self, clipboard_service, gate, mock_adapter):
        await clipboard_service.update_settings(AppSettingsUpdate(processing_enabled=False))
        mock_adapter.analyze = AsyncMock(wraps=mock_adapter.analyze)
        items = [await clipboard_service.capture(f"note {n}") for n in range(5)]

        with pytest.raises(QuotaExceededError):
            await clipboard_service.capture("one too many")

        for item in items:
            await clipboard_service.retry_item(item.id)

        assert gate.remaining_processing_count() == 0
        assert len(clipboard_service.list_items()) == 5
        assert mock_adapter.analyze.await_count == 5

    @pytest.mark.asyncio
    async def test_concurrent_captures_respect_quota(self, clipboard_service, gate, mock_adapter):
        for _ in range(4):
            await gate.increment_processing_count()
        mock_adapter.delay_seconds = 0.01

        results = await asyncio.gather(
            *(clipboard_service.capture(f"note {n}") for n in range(3)),
            return_exceptions=True,
        )

        captured = [r for r in results if isinstance(r, ClipboardItem)]
        rejected = [r for r in results if isinstance(r, QuotaExceededError)]
        assert len(captured) == 1
        assert len(rejected) == 2
        assert gate.state.processing_count.today == 5
        assert len(clipboard_service.list_items()) == 1

    @pytest.mark.asyncio
    async def test_state_is_persisted(self, clipboard_service, store):
        await clipboard_service.capture("Buy milk")

        saved = await store.load(clipboard_service.storage_key)
        assert clipboard_service.storage_key == "clipboard-anonymous"
        assert saved["items"][0]["originalText"] == "Buy milk"
        assert saved["items"][0]["status"] == "processed"
        assert saved["items"][0]["processedData"]["actionItems"] == ["Purchase items"]
        assert saved["settings"]["aiProvider"] == "mock"


class TestRetry:
    @pytest.mark.asyncio
    async def test_retry_after_failure(self, clipboard_service, mock_adapter):
        mock_adapter.failure_rate = 1.0
        item = await clipboard_service.capture("Call the client")
        mock_adapter.failure_rate = 0.0

        retried = await clipboard_service.retry_item(item.id)

        assert retried.status == ItemStatus.PROCESSED
        assert retried.error is None
        assert retried.processed_data.intent == "meeting"

    @pytest.mark.asyncio
    async def test_failed_retry_keeps_previous_result(self, clipboard_service, mock_adapter):
        item = await clipboard_service.capture("Buy milk")
        previous = item.processed_data
        mock_adapter.failure_rate = 1.0

        retried = await clipboard_service.retry_item(item.id)

        assert retried.status == ItemStatus.FAILED
        assert retried.error == "AI processing failed. Please try again."
        assert retried.processed_data == previous

    @pytest.mark.asyncio
    async def test_retry_uses_current_provider(self, clipboard_service, mock_adapter):
        mock_adapter.failure_rate = 1.0
        item = await clipboard_service.capture("text")
        await clipboard_service.update_settings(AppSettingsUpdate(ai_provider="gemini"))

        retried = await clipboard_service.retry_item(item.id)

        assert retried.ai_provider == "gemini"
        assert retried.status == ItemStatus.FAILED
        assert retried.error == (
            "Gemini API key is not configured. Please add your API key in settings."
        )

    @pytest.mark.asyncio
    async def test_retry_does_not_use_quota(self, clipboard_service, gate):
        item = await clipboard_service.capture("text")
        await clipboard_service.retry_item(item.id)
        assert gate.remaining_processing_count() == 4

    @pytest.mark.asyncio
    async def test_timeout_fails_item(self, analysis, gate, store, mock_adapter, clock):
        service = ClipboardService(
            analysis, gate, store, request_timeout=0.01, now_ms=clock.now, today=clock.today
        )
        mock_adapter.delay_seconds = 1.0

        item = await service.capture("slow")

        assert item.status == ItemStatus.FAILED
        assert item.error == "AI processing timed out. Please try again."
        assert service.stats.is_processing is False

    @pytest.mark.asyncio
    async def test_unexpected_error_fails_item(self, clipboard_service, analysis):
        analysis.process_text = AsyncMock(side_effect=RuntimeError("boom"))

        item = await clipboard_service.capture("text")

        assert item.status == ItemStatus.FAILED
        assert item.error == "Unknown error"

    @pytest.mark.asyncio
    async def test_concurrent_retries_of_different_items(
        self, clipboard_service, analysis, mock_adapter
    ):
        mock_adapter.failure_rate = 1.0
        items = [
            await clipboard_service.capture(text)
            for text in ("Buy milk", "Call the client", "broken")
        ]

        async def process_text(text, prompt_template, settings):
            await asyncio.sleep(0.01)
            if text == "broken":
                raise InjectedFailureError(
                    message="AI processing failed. Please try again.", provider="mock"
                )
            return mock_analyze(text)

        analysis.process_text = AsyncMock(side_effect=process_text)

        results = await asyncio.gather(*(clipboard_service.retry_item(i.id) for i in items))

        assert [r.id for r in results] == [i.id for i in items]
        assert results[0].status == ItemStatus.PROCESSED
        assert results[0].processed_data.intent == "shopping"
        assert results[1].status == ItemStatus.PROCESSED
        assert results[1].processed_data.intent == "meeting"
        assert results[2].status == ItemStatus.FAILED
        assert results[2].processed_data is None
        assert clipboard_service.stats.is_processing is False
        assert clipboard_service.stats.processed_today == 2

    @pytest.mark.asyncio
    async def test_unknown_item(self, clipboard_service):
        with pytest.raises(NotFoundError):
            await clipboard_service.retry_item("missing")


class TestMutations:
    @pytest.mark.asyncio
    async def test_remove_item(self, clipboard_service):
        item = await clipboard_service.capture("text")

        await clipboard_service.remove_item(item.id)

        assert clipboard_service.list_items() == []
        with pytest.raises(NotFoundError):
            clipboard_service.get_item(item.id)

    @pytest.mark.asyncio
    async def test_clear_items(self, clipboard_service, store):
        await clipboard_service.capture("one")
        await clipboard_service.capture("two")

        await clipboard_service.clear_items()

        assert clipboard_service.list_items() == []
        assert (await store.load(clipboard_service.storage_key))["items"] == []

    @pytest.mark.asyncio
    async def test_list_by_status(self, clipboard_service, mock_adapter):
        await clipboard_service.capture("ok")
        mock_adapter.failure_rate = 1.0
        await clipboard_service.capture("bad")

        failed = clipboard_service.list_items(ItemStatus.FAILED)
        assert [i.original_text for i in failed] == ["bad"]


class TestSettings:
    @pytest.mark.asyncio
    async def test_partial_update(self, clipboard_service):
        updated = await clipboard_service.update_settings(
            AppSettingsUpdate(ai_provider=" Gemini ", gemini_api_key="g-key")
        )

        assert updated.ai_provider == "gemini"
        assert updated.gemini_api_key == "g-key"
        assert updated.openai_model == "gpt-3.5-turbo"
        assert clipboard_service.settings == updated

    @pytest.mark.asyncio
    async def test_disallowed_provider_rejected(self, clipboard_service):
        with pytest.raises(ModelNotAllowedError):
            await clipboard_service.update_settings(AppSettingsUpdate(ai_provider="openai"))
        assert clipboard_service.settings.ai_provider == "mock"

    @pytest.mark.asyncio
    async def test_disallowed_model_rejected(self, clipboard_service):
        with pytest.raises(ModelNotAllowedError):
            await clipboard_service.update_settings(
                AppSettingsUpdate(ai_provider="gemini", gemini_model="gemini-ultra")
            )

    @pytest.mark.asyncio
    async def test_blank_prompt_rejected(self, clipboard_service):
        with pytest.raises(ValidationError):
            await clipboard_service.update_settings(AppSettingsUpdate(custom_prompt="  "))

    @pytest.mark.asyncio
    async def test_settings_survive_reload(self, clipboard_service, analysis, gate, store):
        await clipboard_service.update_settings(AppSettingsUpdate(custom_prompt="Tag: {text}"))
        await clipboard_service.capture("Buy milk")

        reloaded = ClipboardService(analysis, gate, store)
        await reloaded.load()

        assert reloaded.settings.custom_prompt == "Tag: {text}"
        assert [i.original_text for i in reloaded.list_items()] == ["Buy milk"]


class TestStats:
    @pytest.mark.asyncio
    async def test_empty_stats(self, clipboard_service):
        stats = clipboard_service.stats
        assert stats.processed_today == 0
        assert stats.success_rate == 100
        assert stats.is_processing is False

    @pytest.mark.asyncio
    async def test_success_rate(self, clipboard_service, mock_adapter):
        await clipboard_service.capture("one")
        await clipboard_service.capture("two")
        mock_adapter.failure_rate = 1.0
        await clipboard_service.capture("three")

        stats = clipboard_service.stats
        assert stats.processed_today == 2
        assert stats.success_rate == 67

    @pytest.mark.asyncio
    async def test_processed_today_ignores_older_items(self, clipboard_service, clock):
        await clipboard_service.capture("yesterday")
        clock.advance_days(1)
        await clipboard_service.capture("today")

        assert clipboard_service.stats.processed_today == 1
        assert clipboard_service.stats.success_rate == 100
