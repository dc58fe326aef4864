"""
Persisted set of handled feed items.

SeenCache owns both the in-memory id -> CachedItem mapping and the JSON file
behind it. Every insertion rewrites the whole file through a temporary file
and os.replace(), so a crash leaves either the old or the new file, never a
partial one. A missing or unreadable file loads as an empty cache.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterator
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError

from feed_printer.feed.models import CachedItem

logger = logging.getLogger(__name__)


class SeenCache:
    def __init__(self, path: str):
        self.path = Path(path)
        self._items: Dict[str, CachedItem] = {}

    @classmethod
    def open(cls, path: str) -> "SeenCache":
        cache = cls(path)
        cache.load()
        return cache

    def load(self) -> int:
        """
        Replace the in-memory mapping with the file's contents. Returns the item count.
        """
        self._items = {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
        except FileNotFoundError:
            logger.info(f"No existing cache at {self.path}, starting fresh.")
            return 0
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Cache file {self.path} unreadable ({e}), starting fresh.")
            return 0

        if not isinstance(raw, list):
            logger.warning(f"Cache file {self.path} is not a JSON array, starting fresh.")
            return 0

        for entry in raw:
            try:
                item = CachedItem.model_validate(entry)
            except ValidationError as e:
                logger.warning(f"Skipping malformed cache entry: {e}")
                continue
            self._items.setdefault(item.id, item)
        logger.info(f"Loaded {len(self._items)} items from cache.")
        return len(self._items)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[CachedItem]:
        return iter(list(self._items.values()))

    def get(self, item_id: str) -> Optional[CachedItem]:
        return self._items.get(item_id)

    def ids(self) -> List[str]:
        return list(self._items)

    def add(self, item: CachedItem) -> bool:
        """
        Insert a new item and persist immediately. Returns False (and writes
        nothing) when the id is already cached.
        """
        if item.id in self._items:
            return False
        self._items[item.id] = item
        self.save()
        return True

    def save(self) -> None:
        """
        Write every cached item to disk atomically.
        Raises OSError on I/O failures.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = [item.model_dump() for item in self._items.values()]

        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, self.path)


__all__ = ["SeenCache"]
