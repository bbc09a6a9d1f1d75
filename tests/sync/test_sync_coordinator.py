from __future__ import annotations

import pytest
import requests

from src.academy_manager.academy_manager.core.enums import Operation, Table
from src.academy_manager.academy_manager.core.exceptions import GatewayError, RemoteUnreachableError, SyncUnavailableError
from src.academy_manager.academy_manager.storage.snapshot_store import LocalSnapshotStore
from src.academy_manager.academy_manager.students.model import Student
from src.academy_manager.academy_manager.sync import connectivity as connectivity_module
from src.academy_manager.academy_manager.sync.connectivity import ConnectivityMonitor, HttpConnectivityMonitor
from src.academy_manager.academy_manager.sync.coordinator import SyncCoordinator
from src.academy_manager.academy_manager.sync.queue import DurableMutationQueue


class RecordingGateway:
    def __init__(self, fail=False, error=GatewayError):
        self.fail = fail
        self.error = error
        self.upserts: list[tuple[str, dict]] = []
        self.deletes: list[tuple[str, str]] = []

    def upsert(self, table, row):
        if self.fail:
            raise self.error("remote down")
        self.upserts.append((table, dict(row)))

    def insert(self, table, row):
        raise AssertionError("inserts are replayed as upserts")

    def delete(self, table, entity_id):
        if self.fail:
            raise self.error("remote down")
        self.deletes.append((table, entity_id))

    def select(self, table):
        return []


def _coordinator(tmp_path, *, gateway=None, online=True):
    store = LocalSnapshotStore(tmp_path)
    connectivity = ConnectivityMonitor(online=online)
    sync = SyncCoordinator(store, DurableMutationQueue(store), connectivity, gateway)
    return sync, connectivity


def test_online_save_writes_remote_directly(tmp_path):
    gateway = RecordingGateway()
    sync, _ = _coordinator(tmp_path, gateway=gateway)

    sync.save(Table.STUDENTS, Student(id="s1", name="Amal", grade="6", mobile_number="0771234567"))

    assert sync.store.get(Table.STUDENTS, "s1").name == "Amal"
    assert gateway.upserts[0][0] == "students"
    assert gateway.upserts[0][1]["mobile_number"] == "0771234567"
    assert sync.queue.size() == 0


def test_offline_save_is_queued_and_local_state_updated(tmp_path):
    gateway = RecordingGateway()
    sync, _ = _coordinator(tmp_path, gateway=gateway, online=False)

    assert sync.save(Table.STUDENTS, Student(id="s1", name="Amal")) is True

    assert sync.store.get(Table.STUDENTS, "s1") is not None
    assert gateway.upserts == []
    assert sync.queue.size() == 1


def test_failed_direct_write_falls_back_to_queue(tmp_path):
    sync, _ = _coordinator(tmp_path, gateway=RecordingGateway(fail=True))

    assert sync.mutate("fees", Operation.UPSERT, {"id": "f1"}) is True
    assert sync.queue.pending()[0].data == {"id": "f1"}


def test_reconnect_drains_the_queue(tmp_path):
    gateway = RecordingGateway()
    sync, connectivity = _coordinator(tmp_path, gateway=gateway, online=False)
    sync.save(Table.STUDENTS, Student(id="s1", name="Amal"))
    sync.discard(Table.STUDENTS, "s1")
    assert sync.queue.size() == 2

    connectivity.set_online(True)

    assert sync.queue.size() == 0
    assert [t for t, _ in gateway.upserts] == ["students"]
    assert gateway.deletes == [("students", "s1")]


def test_sync_now_without_gateway_is_skipped(tmp_path):
    sync, _ = _coordinator(tmp_path)
    sync.mutate("students", Operation.UPSERT, {"id": "s1"})

    result = sync.sync_now()

    assert result.skipped is True
    assert len(result.remaining) == 1


def test_require_remote_needs_gateway_and_connection(tmp_path):
    sync, connectivity = _coordinator(tmp_path)
    with pytest.raises(SyncUnavailableError):
        sync.require_remote()

    sync.set_gateway(RecordingGateway())
    connectivity.set_online(False)
    with pytest.raises(SyncUnavailableError):
        sync.require_remote()

    connectivity.set_online(True)
    assert sync.require_remote() is sync.gateway


def test_status_reports_pending_and_flags(tmp_path):
    sync, _ = _coordinator(tmp_path, online=False)
    sync.mutate("classes", Operation.DELETE, {"id": "c1"})

    assert sync.status() == {"online": False, "cloud_configured": False, "pending": 1, "syncing": False}


def test_http_probe_flips_state_and_drains(tmp_path, monkeypatch):
    gateway = RecordingGateway()
    store = LocalSnapshotStore(tmp_path)
    monitor = HttpConnectivityMonitor("https://example.invalid/ping", online=False)
    sync = SyncCoordinator(store, DurableMutationQueue(store), monitor, gateway)

    def unreachable(url, timeout):
        raise requests.ConnectionError("no route")

    monkeypatch.setattr(connectivity_module.requests, "get", unreachable)
    sync.save(Table.STUDENTS, Student(id="s1", name="Amal"))
    assert monitor.probe() is False
    assert sync.queue.size() == 1

    monkeypatch.setattr(connectivity_module.requests, "get", lambda url, timeout: object())
    assert monitor.probe() is True
    assert sync.is_online() is True
    assert sync.queue.size() == 0


def test_listeners_fire_once_per_transition():
    monitor = ConnectivityMonitor(online=True)
    seen = []
    unsubscribe = monitor.subscribe(seen.append)

    monitor.set_online(True)
    monitor.set_online(False)
    monitor.set_online(False)
    unsubscribe()
    monitor.set_online(True)

    assert seen == [False]


def test_unreachable_remote_goes_offline_until_connectivity_returns(tmp_path, monkeypatch):
    gateway = RecordingGateway(fail=True, error=RemoteUnreachableError)
    store = LocalSnapshotStore(tmp_path)
    monitor = HttpConnectivityMonitor("https://example.invalid/ping", retry_interval=0)
    sync = SyncCoordinator(store, DurableMutationQueue(store), monitor, gateway)
    monkeypatch.setattr(connectivity_module.requests, "get", lambda url, timeout: object())
    transitions = []
    monitor.subscribe(transitions.append)

    sync.save(Table.STUDENTS, Student(id="s1", name="Amal"))
    assert transitions == [False]
    assert sync.queue.size() == 1

    gateway.fail = False
    assert sync.is_online() is True
    assert transitions == [False, True]
    assert sync.queue.size() == 0
    assert gateway.upserts[0][0] == "students"


def test_manual_flag_survives_unreachable_remote(tmp_path):
    sync, connectivity = _coordinator(tmp_path, gateway=RecordingGateway(fail=True, error=RemoteUnreachableError))

    sync.save(Table.STUDENTS, Student(id="s1", name="Amal"))

    assert connectivity.is_online() is True
    assert sync.queue.size() == 1
