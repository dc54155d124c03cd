"""
AI Clipboard Backend — State Storage
======================================

What:  Persistence capability injected into ClipboardService and SubscriptionGate.
How:   A StateStore stores one JSON document per key. JsonFileStore keeps each
       key in `<root>/<key>.json`, written through aiofiles to a temporary
       file and swapped in with os.replace so readers never see a partial file.
       InMemoryStore keeps documents in a dict (tests, ephemeral runs).

Directory Structure:
    storage/
    ├── clipboard-anonymous.json
    └── subscription.json
"""

import copy
import json
import logging
import os
import re
import uuid
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, runtime_checkable

import aiofiles

from aiclipboard.exceptions import StorageError

logger = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


@runtime_checkable
class StateStore(Protocol):
    """Load/save capability for JSON-serialisable state documents."""

    async def load(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the stored document, or None if nothing is stored."""
        ...

    async def save(self, key: str, data: Dict[str, Any]) -> None:
        """Replace the stored document."""
        ...


class InMemoryStore:
    """Dict-backed store; documents are deep-copied in and out."""

    def __init__(self, initial: Optional[Dict[str, Dict[str, Any]]] = None):
        self._data: Dict[str, Dict[str, Any]] = copy.deepcopy(initial or {})

    async def load(self, key: str) -> Optional[Dict[str, Any]]:
        data = self._data.get(key)
        return copy.deepcopy(data) if data is not None else None

    async def save(self, key: str, data: Dict[str, Any]) -> None:
        self._data[key] = copy.deepcopy(data)


class JsonFileStore:
    """
    One JSON file per key under `root`.

    Errors:
        - Unreadable or corrupt file on load → WARNING, treated as empty state
        - OS error on save → StorageError (caller decides how to surface it)
    """

    def __init__(self, root: str):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        logger.info("State storage initialized at: %s", self.root.resolve())

    def path_for(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.root / f"{key}.json"

    async def load(self, key: str) -> Optional[Dict[str, Any]]:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                raw = await f.read()
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read state file %s: %s", path.name, e)
            return None
        if not isinstance(data, dict):
            logger.warning("State file %s does not hold an object, ignoring it", path.name)
            return None
        return data

    async def save(self, key: str, data: Dict[str, Any]) -> None:
        path = self.path_for(key)
        tmp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex[:8]}.tmp")
        try:
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(json.dumps(data, ensure_ascii=False, indent=2))
            os.replace(tmp_path, path)
        except OSError as e:
            logger.error("Failed to write state file %s: %s", path.name, e)
            try:
                tmp_path.unlink(missing_ok=True)
            except OSError:
                logger.warning("Could not remove temporary file %s", tmp_path.name)
            raise StorageError(context={"key": key, "os_error": str(e)}) from e
        logger.debug("Saved state %s (%d bytes)", key, path.stat().st_size)
