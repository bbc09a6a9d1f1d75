from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from ..core.enums import Operation, Table
from ..core.exceptions import RemoteUnreachableError, SyncUnavailableError
from ..storage.snapshot_store import LocalSnapshotStore
from .connectivity import ConnectivityMonitor
from .gateway import RemoteTableGateway, dispatch
from .model import DrainResult
from .queue import DurableMutationQueue
from .row_mapping import to_row

logger = logging.getLogger(__name__)


class SyncCoordinator:
    """Single writer for local state and remote replication.

    Local changes are applied first and unconditionally; the remote write is
    attempted directly when online and falls back to the durable queue on
    any failure.
    """

    def __init__(
        self,
        store: LocalSnapshotStore,
        queue: DurableMutationQueue,
        connectivity: ConnectivityMonitor,
        gateway: Optional[RemoteTableGateway] = None,
    ):
        self._store = store
        self._queue = queue
        self._connectivity = connectivity
        self._gateway = gateway
        connectivity.subscribe(self._on_connectivity_change)

    @property
    def store(self) -> LocalSnapshotStore:
        return self._store

    @property
    def queue(self) -> DurableMutationQueue:
        return self._queue

    @property
    def gateway(self) -> Optional[RemoteTableGateway]:
        return self._gateway

    def is_online(self) -> bool:
        return self._connectivity.is_online()

    def set_gateway(self, gateway: Optional[RemoteTableGateway]) -> None:
        self._gateway = gateway
        if gateway is not None and self.is_online():
            self._drain()

    def mutate(self, table: str, operation: Operation, payload: Mapping[str, Any]) -> bool:
        op = Operation(operation)
        if op == Operation.INSERT:
            op = Operation.UPSERT

        if self.is_online() and self._gateway is not None:
            try:
                dispatch(self._gateway, table, op, payload)
                return True
            except RemoteUnreachableError as e:
                logger.warning("Cloud unreachable while saving %s; queued for retry: %s", table, e)
                self._connectivity.report_unreachable()
            except Exception as e:
                logger.warning("Direct cloud save failed for %s; queued for retry: %s", table, e)

        self._queue.enqueue(table, op, payload)
        return True

    def save(self, table: Table, entity: Any) -> bool:
        self._store.upsert(table, entity)
        return self.mutate(Table(table).value, Operation.UPSERT, to_row(table, entity))

    def discard(self, table: Table, entity_id: str) -> bool:
        self._store.remove(table, entity_id)
        return self.mutate(Table(table).value, Operation.DELETE, {"id": entity_id})

    def require_remote(self) -> RemoteTableGateway:
        """Gateway for calls that must complete against the remote right now."""
        if self._gateway is None:
            raise SyncUnavailableError("No cloud connection is configured")
        if not self.is_online():
            raise SyncUnavailableError("You are offline; this action needs a connection")
        return self._gateway

    def sync_now(self) -> DrainResult:
        return self._drain()

    def _drain(self) -> DrainResult:
        if self._gateway is None:
            return DrainResult(succeeded=0, remaining=self._queue.pending(), skipped=True)

        result = self._queue.drain(self._gateway)
        if result.skipped:
            logger.debug("Drain already in progress; skipped")
        elif result.succeeded:
            logger.info("Synced %d items to cloud (%d still pending)", result.succeeded, len(result.remaining))
        return result

    def _on_connectivity_change(self, online: bool) -> None:
        if online:
            self._drain()

    def status(self) -> dict:
        return {
            "online": self.is_online(),
            "cloud_configured": self._gateway is not None,
            "pending": self._queue.size(),
            "syncing": self._queue.is_draining,
        }
