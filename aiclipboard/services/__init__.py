# Services package init
"""
AI Clipboard Backend — Services Layer
=======================================

What:  Business logic between the routes (HTTP) and the state store.
How:   Services receive their collaborators in the constructor and are
       assembled once per application in dependencies.build_container().

Service Inventory:
    - ProviderAdapter (abstract):  contract for text-analysis providers
    - OpenAIAdapter / GeminiAdapter / MockAdapter:  concrete providers
    - response_normalizer:  raw model reply → ProcessedData, never fails
    - TextAnalysisService:  provider registry and dispatch (processText)
    - SubscriptionGate:     daily quota, tier allow-lists, simulated billing
    - ClipboardService:     item lifecycle (capture, retry, remove, settings)
    - ExportService:        txt / json / csv rendering with tier checks
    - JsonFileStore / InMemoryStore:  StateStore implementations
"""
