"""
AI Clipboard Backend — Test Configuration (conftest.py)
=========================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Services are built against an InMemoryStore and a fake clock, with the
       mock provider at zero latency and zero injected failures. Individual
       tests flip those knobs when they need a failure or a slow provider.

Fixture Hierarchy:
    clock ─┬─▶ gate ─────────────┬─▶ clipboard_service ─┐
    store ─┘                     │                      ├─▶ container ─▶ test_client
    mock_adapter ─▶ analysis ────┘   export_service ────┘
"""

import itertools
import os
import random
import tempfile
from datetime import date, datetime

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient


# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Must be set before aiclipboard.config is imported
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="aiclipboard_test_")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["MOCK_DELAY_SECONDS"] = "0"
os.environ["BILLING_DELAY_SECONDS"] = "0"

from aiclipboard.dependencies import ServiceContainer  # noqa: E402
from aiclipboard.services.clipboard_service import ClipboardService  # noqa: E402
from aiclipboard.services.export_service import ExportService  # noqa: E402
from aiclipboard.services.gemini_service import GeminiAdapter  # noqa: E402
from aiclipboard.services.mock_service import MockAdapter  # noqa: E402
from aiclipboard.services.openai_service import OpenAIAdapter  # noqa: E402
from aiclipboard.services.storage import InMemoryStore  # noqa: E402
from aiclipboard.services.subscription_service import SubscriptionGate  # noqa: E402
from aiclipboard.services.text_analysis import TextAnalysisService  # noqa: E402

# 2024-01-15T12:00:00Z
FIXED_NOW_MS = 1_705_320_000_000
DAY_MS = 24 * 60 * 60 * 1000


class FakeClock:
    """Settable clock; `today()` is the local date of `now()`."""

    def __init__(self, now_ms: int = FIXED_NOW_MS):
        self.now_ms = now_ms

    def now(self) -> int:
        return self.now_ms

    def today(self) -> date:
        return datetime.fromtimestamp(self.now_ms / 1000).date()

    def advance_days(self, days: int = 1) -> None:
        self.now_ms += days * DAY_MS


# ══════════════════════════════════════════════════════════════════════════
# Service Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def gate(store, clock):
    return SubscriptionGate(
        store,
        today=clock.today,
        now_ms=clock.now,
        billing_delay=0,
        restore_success_rate=0.5,
        rng=random.Random(0),
    )


@pytest.fixture
def mock_adapter():
    """Mock provider with no latency and no injected failures."""
    return MockAdapter(delay_seconds=0, failure_rate=0.0)


@pytest.fixture
def analysis(mock_adapter):
    return TextAnalysisService([OpenAIAdapter(), GeminiAdapter(), mock_adapter])


@pytest.fixture
def clipboard_service(analysis, gate, store, clock):
    counter = itertools.count(1)
    return ClipboardService(
        analysis,
        gate,
        store,
        request_timeout=5.0,
        now_ms=clock.now,
        today=clock.today,
        id_factory=lambda: f"item-{next(counter)}",
    )


@pytest.fixture
def export_service(gate, clock):
    return ExportService(gate, now_ms=clock.now)


@pytest.fixture
def container(store, gate, analysis, clipboard_service, export_service):
    return ServiceContainer(
        store=store,
        gate=gate,
        analysis=analysis,
        clipboard=clipboard_service,
        exports=export_service,
    )


@pytest_asyncio.fixture
async def test_client(container):
    """
    HTTPX AsyncClient talking to an app built around the test container.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from aiclipboard.main import create_app

    app = create_app(container=container)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
