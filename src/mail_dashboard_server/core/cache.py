"""Durable JSON cache files.

One pretty-printed UTF-8 JSON record per artifact. A missing, unreadable or
corrupt file is a cache miss, never an error.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from .models import SourceDescriptor

logger = logging.getLogger(__name__)


class JsonFileCache:
    """Single-record JSON store (last writer wins)."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def read(self) -> dict[str, Any] | None:
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError:
            return None
        if not text.strip():
            return None
        try:
            data = json.loads(text)
        except ValueError:
            logger.debug("Ignoring corrupt cache file %s", self.path)
            return None
        return data if isinstance(data, dict) else None

    def write(self, data: dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                json.dumps(data, ensure_ascii=False, indent=4),
                encoding="utf-8",
            )
        except OSError as exc:
            logger.warning("Could not write cache file %s: %s", self.path, exc)


class SourceCache:
    """Freshness cache for the resolved SourceDescriptor."""

    def __init__(self, store: JsonFileCache) -> None:
        self.store = store

    def read(self) -> SourceDescriptor | None:
        data = self.store.read()
        if data is None:
            return None
        try:
            return SourceDescriptor.from_dict(data)
        except (KeyError, TypeError, ValueError):
            logger.debug("Ignoring malformed source descriptor in %s", self.store.path)
            return None

    def write(self, descriptor: SourceDescriptor) -> None:
        self.store.write(descriptor.to_dict())
