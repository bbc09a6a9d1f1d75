from __future__ import annotations

from flask import Flask

from ..common.http import json_body, ok
from ..container import Container
from .connectivity import HttpConnectivityMonitor


def register(app: Flask, container: Container) -> None:
    sync = container.sync
    connectivity = container.connectivity

    def _refresh_connectivity() -> None:
        # A probe flipping to online drains the queue through the coordinator's listener.
        if isinstance(connectivity, HttpConnectivityMonitor):
            connectivity.probe()

    @app.route("/api/sync/status", methods=["GET"], endpoint="sync_status")
    def sync_status():
        _refresh_connectivity()
        return ok(sync.status())

    @app.route("/api/sync/queue", methods=["GET"], endpoint="sync_queue")
    def sync_queue():
        return ok(
            [
                {"id": a.id, "table": a.table, "type": a.type.value, "timestamp": a.timestamp, "data": a.data}
                for a in sync.queue.pending()
            ]
        )

    @app.route("/api/sync/now", methods=["POST"], endpoint="sync_now")
    def sync_now():
        _refresh_connectivity()
        result = sync.sync_now()
        return ok({"succeeded": result.succeeded, "remaining": len(result.remaining), "skipped": result.skipped})

    @app.route("/api/sync/connectivity", methods=["POST"], endpoint="sync_connectivity")
    def sync_connectivity():
        connectivity.set_online(bool(json_body().get("online")))
        return ok(sync.status())

    @app.route("/api/sync/refresh", methods=["POST"], endpoint="sync_refresh")
    def sync_refresh():
        return ok(container.backup_service.refresh_from_remote())
