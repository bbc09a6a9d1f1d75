from __future__ import annotations

import logging
import threading
import time
from typing import Any, Mapping

from ..common.ids import generate_id
from ..core.constants import OFFLINE_QUEUE_KEY
from ..core.enums import Operation, Table
from ..storage.snapshot_store import LocalSnapshotStore
from .gateway import RemoteTableGateway, dispatch
from .model import DrainResult, OfflineAction

logger = logging.getLogger(__name__)


def _action_to_dict(a: OfflineAction) -> dict[str, Any]:
    return {"id": a.id, "table": a.table, "type": a.type.value, "data": a.data, "timestamp": a.timestamp}


def _action_from_dict(d: Mapping[str, Any]) -> OfflineAction:
    return OfflineAction(
        id=str(d["id"]),
        table=Table(d["table"]).value,
        type=Operation(d["type"]),
        data=dict(d["data"]),
        timestamp=int(d.get("timestamp") or 0),
    )


class DurableMutationQueue:
    """FIFO of pending remote writes persisted as the ``offline_queue`` blob.

    The whole list is read-modify-written under one lock. ``drain`` works on
    a copy taken at the start of the pass and, when it finishes, drops only
    the ids that succeeded, so anything enqueued meanwhile survives the
    final rewrite.
    """

    def __init__(self, store: LocalSnapshotStore):
        self._store = store
        self._lock = threading.Lock()
        self._draining = False
        self._actions: list[OfflineAction] = self._load()

    def _load(self) -> list[OfflineAction]:
        try:
            raw = self._store.read_blob(OFFLINE_QUEUE_KEY, [])
        except ValueError:
            logger.exception("Failed to load offline queue")
            return []
        if not isinstance(raw, list):
            logger.error("Offline queue blob is not a list; ignoring it")
            return []

        actions: list[OfflineAction] = []
        for entry in raw:
            try:
                actions.append(_action_from_dict(entry))
            except (KeyError, TypeError, ValueError):
                logger.error("Dropping unreadable offline queue entry: %r", entry)
        return actions

    def _persist_locked(self) -> None:
        try:
            self._store.write_blob(OFFLINE_QUEUE_KEY, [_action_to_dict(a) for a in self._actions])
        except OSError:
            # Entries stay in memory for this session; next successful write catches up.
            logger.exception("Failed to persist offline queue (%d pending)", len(self._actions))

    def enqueue(self, table: str, operation: Operation, payload: Mapping[str, Any]) -> OfflineAction:
        op = Operation(operation)
        if op == Operation.INSERT:
            op = Operation.UPSERT

        action = OfflineAction(
            id=generate_id(),
            table=Table(table).value,
            type=op,
            data=dict(payload),
            timestamp=int(time.time() * 1000),
        )
        with self._lock:
            self._actions.append(action)
            self._persist_locked()
        logger.debug("Queued %s %s (%s)", action.type.value, action.table, action.id)
        return action

    def drain(self, gateway: RemoteTableGateway) -> DrainResult:
        with self._lock:
            if self._draining:
                return DrainResult(succeeded=0, remaining=list(self._actions), skipped=True)
            self._draining = True
            pending = list(self._actions)

        done: set[str] = set()
        try:
            for action in pending:
                try:
                    dispatch(gateway, action.table, action.type, action.data)
                except Exception as e:
                    logger.error("Sync failed for %s %s (%s): %s", action.type.value, action.table, action.id, e)
                    continue
                done.add(action.id)
        finally:
            with self._lock:
                self._actions = [a for a in self._actions if a.id not in done]
                self._persist_locked()
                self._draining = False
                remaining = list(self._actions)

        return DrainResult(succeeded=len(done), remaining=remaining)

    def size(self) -> int:
        with self._lock:
            return len(self._actions)

    def pending(self) -> list[OfflineAction]:
        with self._lock:
            return list(self._actions)

    @property
    def is_draining(self) -> bool:
        return self._draining
