"""
AI Clipboard Backend — Clipboard Item Route Handlers
======================================================

What:  Capture, list, retry and delete clipboard items.
How:   Delegates to ClipboardService. Capture runs the analysis inline, so
       the 201 response already carries the item in `processed` or `failed`
       state (or `pending` when automatic processing is disabled).
Who:   Called by the mobile client's clipboard screen.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from aiclipboard.dependencies import get_clipboard_service
from aiclipboard.schemas.clipboard import (
    CaptureRequest,
    ClipboardItem,
    ClipboardStats,
    ErrorResponse,
    ItemListResponse,
    ItemStatus,
)
from aiclipboard.services.clipboard_service import ClipboardService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Clipboard"])


@router.post(
    "/items",
    response_model=ClipboardItem,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Clipboard text is empty", "model": ErrorResponse},
        403: {"description": "Provider or model not in the current tier", "model": ErrorResponse},
        409: {"description": "Text already captured", "model": ErrorResponse},
        429: {"description": "Daily processing limit reached", "model": ErrorResponse},
    },
    summary="Capture clipboard text and analyze it",
)
async def capture_item(
    body: CaptureRequest,
    service: ClipboardService = Depends(get_clipboard_service),
) -> ClipboardItem:
    """
    Provider failures do not fail the request: the item is returned with
    `status="failed"` and a user-facing `error`, and can be retried.
    """
    return await service.capture(body.text)


@router.get(
    "/items",
    response_model=ItemListResponse,
    summary="List clipboard items, newest first",
)
async def list_items(
    item_status: Optional[ItemStatus] = Query(
        default=None, alias="status", description="Only items in this state",
    ),
    service: ClipboardService = Depends(get_clipboard_service),
) -> ItemListResponse:
    return ItemListResponse(items=service.list_items(item_status), stats=service.stats)


@router.get(
    "/items/{item_id}",
    response_model=ClipboardItem,
    responses={404: {"description": "Item not found", "model": ErrorResponse}},
    summary="Get a single clipboard item",
)
async def get_item(
    item_id: str,
    service: ClipboardService = Depends(get_clipboard_service),
) -> ClipboardItem:
    return service.get_item(item_id)


@router.post(
    "/items/{item_id}/retry",
    response_model=ClipboardItem,
    responses={404: {"description": "Item not found", "model": ErrorResponse}},
    summary="Re-run analysis for an item with the current settings",
)
async def retry_item(
    item_id: str,
    service: ClipboardService = Depends(get_clipboard_service),
) -> ClipboardItem:
    return await service.retry_item(item_id)


@router.delete(
    "/items/{item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"description": "Item not found", "model": ErrorResponse}},
    summary="Delete a clipboard item",
)
async def delete_item(
    item_id: str,
    service: ClipboardService = Depends(get_clipboard_service),
) -> Response:
    await service.remove_item(item_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/items",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete all clipboard items",
)
async def clear_items(
    service: ClipboardService = Depends(get_clipboard_service),
) -> Response:
    await service.clear_items()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/stats",
    response_model=ClipboardStats,
    summary="Processed-today count, success rate and in-flight flag",
)
async def get_stats(
    service: ClipboardService = Depends(get_clipboard_service),
) -> ClipboardStats:
    return service.stats
