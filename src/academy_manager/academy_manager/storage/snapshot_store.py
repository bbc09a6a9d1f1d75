from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Iterable, Optional

from ..core.enums import Table
from ..core.exceptions import DataShapeError
from .codec import decode, encode

logger = logging.getLogger(__name__)


class LocalSnapshotStore:
    """Local source of truth: one JSON blob per collection in ``data_dir``.

    Collections are loaded once at startup and rewritten whole on every
    change. Extra blobs (the offline queue, promotion markers) live beside
    them under their own keys.
    """

    def __init__(self, data_dir: str | Path):
        self._dir = Path(data_dir)
        self._dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._collections: dict[Table, list[Any]] = {t: self._load(t) for t in Table}

    @property
    def data_dir(self) -> Path:
        return self._dir

    def _path(self, key: str) -> Path:
        return self._dir / f"{key}.json"

    def _load(self, table: Table) -> list[Any]:
        try:
            raw = self.read_blob(table.value, [])
        except ValueError:
            logger.exception("Failed to load local %s snapshot; starting empty", table.value)
            return []
        if not isinstance(raw, list):
            logger.error("Local %s snapshot is not a list; starting empty", table.value)
            return []

        items: list[Any] = []
        for entry in raw:
            try:
                items.append(decode(table, entry))
            except DataShapeError as e:
                logger.error("Skipping malformed %s entry: %s", table.value, e)
        return items

    def read_blob(self, key: str, default: Any = None) -> Any:
        """Raises ValueError when the blob exists but is not valid JSON."""
        path = self._path(key)
        if not path.exists():
            return default
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)

    def write_blob(self, key: str, value: Any) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        with self._lock:
            with tmp.open("w", encoding="utf-8") as f:
                json.dump(value, f, ensure_ascii=False, indent=2)
            os.replace(tmp, path)

    def has_marker(self, key: str) -> bool:
        try:
            return bool(self.read_blob(key, False))
        except ValueError:
            return False

    def set_marker(self, key: str) -> None:
        self.write_blob(key, True)

    def _persist(self, table: Table) -> None:
        self.write_blob(table.value, [encode(table, e) for e in self._collections[table]])

    def all(self, table: Table) -> list[Any]:
        with self._lock:
            return list(self._collections[Table(table)])

    def get(self, table: Table, entity_id: str) -> Optional[Any]:
        with self._lock:
            for e in self._collections[Table(table)]:
                if e.id == entity_id:
                    return e
        return None

    def upsert(self, table: Table, entity: Any) -> None:
        table = Table(table)
        with self._lock:
            items = self._collections[table]
            for i, existing in enumerate(items):
                if existing.id == entity.id:
                    items[i] = entity
                    break
            else:
                items.append(entity)
            self._persist(table)

    def remove(self, table: Table, entity_id: str) -> bool:
        table = Table(table)
        with self._lock:
            items = self._collections[table]
            kept = [e for e in items if e.id != entity_id]
            if len(kept) == len(items):
                return False
            self._collections[table] = kept
            self._persist(table)
            return True

    def replace_all(self, table: Table, entities: Iterable[Any]) -> None:
        table = Table(table)
        with self._lock:
            self._collections[table] = list(entities)
            self._persist(table)
