"""
AI Clipboard Backend — Service Container & FastAPI Dependencies
=================================================================

What:  Builds the service graph once per application and hands the pieces to
       route handlers through FastAPI's Depends().
How:   build_container() wires StateStore → SubscriptionGate →
       TextAnalysisService → ClipboardService / ExportService from Settings.
       The container lives on `app.state.container`; the getters below read it
       from the incoming request.
Who:   main.py's lifespan builds it (tests inject their own); routes depend on
       the getters.

Wiring:
    Settings ──▶ JsonFileStore(storage_root)
                    │
                    ├──▶ SubscriptionGate
                    │        │
    Settings ──▶ TextAnalysisService (OpenAI, Gemini, Mock)
                    │        │
                    ▼        ▼
               ClipboardService      ExportService(gate)
"""

import logging
from dataclasses import dataclass

from fastapi import Request

from aiclipboard.config import Settings
from aiclipboard.services.clipboard_service import ClipboardService
from aiclipboard.services.export_service import ExportService
from aiclipboard.services.storage import JsonFileStore, StateStore
from aiclipboard.services.subscription_service import SubscriptionGate
from aiclipboard.services.text_analysis import TextAnalysisService

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    store: StateStore
    gate: SubscriptionGate
    analysis: TextAnalysisService
    clipboard: ClipboardService
    exports: ExportService

    async def load(self) -> None:
        """Read persisted subscription and clipboard state into memory."""
        await self.gate.load()
        await self.clipboard.load()


def build_container(config: Settings) -> ServiceContainer:
    store = JsonFileStore(config.storage_root)
    gate = SubscriptionGate(
        store,
        billing_delay=config.billing_delay_seconds,
        restore_success_rate=config.restore_success_rate,
    )
    analysis = TextAnalysisService.from_settings(config)
    clipboard = ClipboardService(
        analysis,
        gate,
        store,
        user_id=config.user_id,
        request_timeout=config.request_timeout,
    )
    logger.info("Services built (providers: %s)", ", ".join(analysis.provider_ids))
    return ServiceContainer(
        store=store,
        gate=gate,
        analysis=analysis,
        clipboard=clipboard,
        exports=ExportService(gate),
    )


# ── Request-scoped getters ────────────────────────────────────────────────


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_clipboard_service(request: Request) -> ClipboardService:
    return get_container(request).clipboard


def get_subscription_gate(request: Request) -> SubscriptionGate:
    return get_container(request).gate


def get_export_service(request: Request) -> ExportService:
    return get_container(request).exports
