"""
AI Clipboard Backend — Settings Route Handlers
================================================

What:  Read and update the user's analysis settings.
How:   API keys are write-only: responses expose `*ApiKeyConfigured` flags
       instead of the keys themselves.
"""

from fastapi import APIRouter, Depends

from aiclipboard.dependencies import get_clipboard_service
from aiclipboard.schemas.clipboard import AppSettingsUpdate, ErrorResponse, SettingsResponse
from aiclipboard.services.clipboard_service import ClipboardService

router = APIRouter(prefix="/api", tags=["Settings"])


@router.get("/settings", response_model=SettingsResponse, summary="Current settings")
async def get_settings(
    service: ClipboardService = Depends(get_clipboard_service),
) -> SettingsResponse:
    return SettingsResponse.from_settings(service.settings)


@router.patch(
    "/settings",
    response_model=SettingsResponse,
    responses={
        400: {"description": "Blank prompt template", "model": ErrorResponse},
        403: {"description": "Provider or model not in the current tier", "model": ErrorResponse},
    },
    summary="Partially update settings",
)
async def update_settings(
    body: AppSettingsUpdate,
    service: ClipboardService = Depends(get_clipboard_service),
) -> SettingsResponse:
    updated = await service.update_settings(body)
    return SettingsResponse.from_settings(updated)
