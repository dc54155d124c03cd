"""
AI Clipboard Backend — Application Package Initializer
========================================================

What: Marks the `aiclipboard` directory as a Python package.
Who:  Used by uvicorn (aiclipboard.main:app), pytest and the services.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   ClipboardService / ExportService  │  ← item lifecycle, exports
    ├─────────────────────────────────────┤
    │ SubscriptionGate │ TextAnalysisSvc  │  ← quota, provider dispatch
    ├─────────────────────────────────────┤
    │   Provider adapters + normalizer    │  ← OpenAI, Gemini, Mock
    ├─────────────────────────────────────┤
    │          StateStore (JSON)          │  ← persistence
    └─────────────────────────────────────┘

    Services are constructed once in dependencies.build_container() and
    receive their collaborators through the constructor, so each layer can
    be tested with in-memory stores and fake adapters.
"""

__version__ = "1.0.0"
