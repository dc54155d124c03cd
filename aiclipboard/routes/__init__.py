# Routes package init
"""
AI Clipboard Backend — API Routes Package
===========================================

Route Inventory:
    - items.py:         POST   /api/items               (capture and analyze)
                        GET    /api/items               (history + stats)
                        GET    /api/items/{id}
                        POST   /api/items/{id}/retry
                        DELETE /api/items/{id}
                        DELETE /api/items
                        GET    /api/stats
    - settings.py:      GET    /api/settings
                        PATCH  /api/settings
    - subscription.py:  GET    /api/subscription
                        POST   /api/subscription/{purchase,cancel,restore}
    - export.py:        GET    /api/export/{format}
    - health.py:        GET    /health

Routes stay thin: read the request, call a service, shape the response.
Errors raised by services are turned into JSON by the handlers in main.py.
"""
