"""
AI Clipboard Backend — Health Check Route
===========================================

What:  Liveness probe with a storage check.
How:   The service is `healthy` when the storage directory is writable and
       `degraded` otherwise. Providers are not probed: a check would spend
       the user's API quota.
"""

import logging
import os
import time
from pathlib import Path

from fastapi import APIRouter, Depends

from aiclipboard import __version__
from aiclipboard.config import settings
from aiclipboard.dependencies import get_clipboard_service
from aiclipboard.schemas.clipboard import HealthResponse
from aiclipboard.services.clipboard_service import ClipboardService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get("/health", response_model=HealthResponse, summary="Service health check")
async def health_check(
    service: ClipboardService = Depends(get_clipboard_service),
) -> HealthResponse:
    storage_root = Path(settings.storage_root)
    if storage_root.is_dir() and os.access(storage_root, os.W_OK):
        storage_status, overall = "writable", "healthy"
    else:
        storage_status, overall = "unavailable", "degraded"
        logger.warning("Health check: storage %s is not writable", storage_root)

    return HealthResponse(
        status=overall,
        version=__version__,
        storage=storage_status,
        ai_provider=service.settings.ai_provider,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
