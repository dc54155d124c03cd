"""
AI Clipboard Backend — Export Service
=======================================

What:  Renders clipboard items as a downloadable txt, json or csv document.
How:   The subscription gate decides which formats the current tier may use
       and whether the output carries the free-tier watermark. Rendering is
       done by pure functions so each format can be tested on its own.
Who:   Called by GET /api/export/{format}; the client saves or shares the file.

Formats:
    txt   Human-readable sections per item
    json  {"exportDate", "items": [...], "metadata": {"count"[, "watermark"]}}
    csv   Fixed header, multi-value fields joined with "|", text fields quoted
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from aiclipboard.exceptions import ValidationError
from aiclipboard.schemas.clipboard import ClipboardItem
from aiclipboard.services.subscription_service import SubscriptionGate

logger = logging.getLogger(__name__)

WATERMARK_SHORT = "Generated with AI Clipboard Free Version"
WATERMARK = f"{WATERMARK_SHORT}. Upgrade to Premium for more features."

CSV_HEADER = (
    "ID,Timestamp,Date,Status,AI Provider,Topic,Intent,"
    "Entities,Categories,Action Items,Original Text"
)

MEDIA_TYPES = {
    "txt": "text/plain",
    "json": "application/json",
    "csv": "text/csv",
}


@dataclass(frozen=True)
class ExportFile:
    filename: str
    media_type: str
    content: str


def _iso_utc(epoch_ms: int) -> str:
    moment = datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _local_display(epoch_ms: int) -> str:
    return datetime.fromtimestamp(epoch_ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


# ══════════════════════════════════════════════════════════════════════════
# Renderers
# ══════════════════════════════════════════════════════════════════════════


def generate_txt(items: Sequence[ClipboardItem], include_watermark: bool, now_ms: int) -> str:
    lines: List[str] = [
        "# AI Clipboard Export",
        f"# Generated on {_local_display(now_ms)}",
        "",
    ]

    for index, item in enumerate(items, start=1):
        lines += [
            f"## Item {index}",
            f"Date: {_local_display(item.timestamp)}",
            f"Status: {item.status.value}",
            f"AI Provider: {item.ai_provider or 'Unknown'}",
            "",
            "Original Text:",
            item.original_text,
            "",
        ]
        data = item.processed_data
        if data is not None:
            lines.append(f"Topic: {data.topic}")
            lines.append(f"Intent: {data.intent}")
            if data.entities:
                lines.append(f"Entities: {', '.join(data.entities)}")
            if data.categories:
                lines.append(f"Categories: {', '.join(data.categories)}")
            if data.action_items:
                lines.append("Action Items:")
                lines += [f"- {action}" for action in data.action_items]
        lines += ["", "---", ""]

    content = "\n".join(lines) + "\n"
    if include_watermark:
        content += f"\n{WATERMARK}\n"
    return content


def generate_json(items: Sequence[ClipboardItem], include_watermark: bool, now_ms: int) -> str:
    metadata = {"count": len(items)}
    if include_watermark:
        metadata["watermark"] = WATERMARK_SHORT

    data = {
        "exportDate": _iso_utc(now_ms),
        "items": [
            {
                "id": item.id,
                "timestamp": item.timestamp,
                "date": _iso_utc(item.timestamp),
                "status": item.status.value,
                "aiProvider": item.ai_provider,
                "originalText": item.original_text,
                "processedData": (
                    item.processed_data.model_dump(mode="json", by_alias=True)
                    if item.processed_data is not None
                    else None
                ),
            }
            for item in items
        ],
        "metadata": metadata,
    }
    return json.dumps(data, indent=2, ensure_ascii=False)


def _quote(text: str) -> str:
    return '"' + text.replace('"', '""') + '"'


def generate_csv(items: Sequence[ClipboardItem], include_watermark: bool, now_ms: int) -> str:
    rows = [CSV_HEADER]
    for item in items:
        data = item.processed_data
        rows.append(",".join([
            item.id,
            str(item.timestamp),
            _iso_utc(item.timestamp),
            item.status.value,
            _quote(item.ai_provider or ""),
            _quote(data.topic if data else ""),
            _quote(data.intent if data else ""),
            _quote("|".join(data.entities) if data else ""),
            _quote("|".join(data.categories) if data else ""),
            _quote("|".join(data.action_items) if data else ""),
            _quote(item.original_text),
        ]))

    content = "\n".join(rows) + "\n"
    if include_watermark:
        content += f"\n{_quote(WATERMARK)}\n"
    return content


_RENDERERS = {
    "txt": generate_txt,
    "json": generate_json,
    "csv": generate_csv,
}


# ══════════════════════════════════════════════════════════════════════════
# Service
# ══════════════════════════════════════════════════════════════════════════


class ExportService:
    def __init__(
        self,
        gate: SubscriptionGate,
        now_ms: Optional[Callable[[], int]] = None,
    ):
        self._gate = gate
        self._now_ms = now_ms or (lambda: int(datetime.now(timezone.utc).timestamp() * 1000))

    def export(self, items: Sequence[ClipboardItem], export_format: str) -> ExportFile:
        """
        Render `items` in `export_format`.

        Raises:
            ValidationError:       Unknown format.
            FormatNotAllowedError: Format not included in the current tier.
        """
        fmt = export_format.lower()
        renderer = _RENDERERS.get(fmt)
        if renderer is None:
            raise ValidationError(
                f"Unsupported export format '{export_format}'. Use one of: txt, json, csv",
                field="format",
            )
        self._gate.ensure_format_allowed(fmt)

        now = self._now_ms()
        tier = self._gate.current_tier
        content = renderer(items, tier.watermark, now)
        stamp = _iso_utc(now).replace(":", "-").replace(".", "-")
        filename = f"clipboard-export-{stamp}.{fmt}"

        logger.info(
            "Exported %d items as %s (%d bytes, watermark=%s)",
            len(items), fmt, len(content.encode("utf-8")), tier.watermark,
        )
        return ExportFile(filename=filename, media_type=MEDIA_TYPES[fmt], content=content)
