"""
AI Clipboard Backend — Export Route Handler
=============================================

What:  GET /api/export/{format} returns every item as a downloadable file.
How:   ExportService checks the tier and renders; the route only sets the
       media type and Content-Disposition.
"""

from fastapi import APIRouter, Depends, Response

from aiclipboard.dependencies import get_clipboard_service, get_export_service
from aiclipboard.schemas.clipboard import ErrorResponse
from aiclipboard.services.clipboard_service import ClipboardService
from aiclipboard.services.export_service import ExportService

router = APIRouter(prefix="/api", tags=["Export"])


@router.get(
    "/export/{export_format}",
    responses={
        200: {"description": "The exported document"},
        400: {"description": "Unknown format", "model": ErrorResponse},
        403: {"description": "Format not in the current tier", "model": ErrorResponse},
    },
    summary="Export clipboard history as txt, json or csv",
)
async def export_items(
    export_format: str,
    clipboard: ClipboardService = Depends(get_clipboard_service),
    exports: ExportService = Depends(get_export_service),
) -> Response:
    exported = exports.export(clipboard.list_items(), export_format)
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )
