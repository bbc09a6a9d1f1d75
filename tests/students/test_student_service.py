from __future__ import annotations

from datetime import date

import pytest

from src.academy_manager.academy_manager.core.enums import StudentStatus, Table
from src.academy_manager.academy_manager.core.exceptions import (
    DuplicateStudentError,
    GatewayError,
    PossibleSiblingError,
    SyncUnavailableError,
)
from src.academy_manager.academy_manager.exams.model import ExamRecord
from src.academy_manager.academy_manager.fees.model import FeeRecord
from src.academy_manager.academy_manager.storage.snapshot_store import LocalSnapshotStore
from src.academy_manager.academy_manager.students.model import Student
from src.academy_manager.academy_manager.students.service import StudentService, promoted_grade
from src.academy_manager.academy_manager.sync.connectivity import ConnectivityMonitor
from src.academy_manager.academy_manager.sync.coordinator import SyncCoordinator
from src.academy_manager.academy_manager.sync.queue import DurableMutationQueue


class FakeRemote:
    def __init__(self, rows=None, fail_on=None):
        self.rows = rows or {}
        self.fail_on = fail_on
        self.deleted: list[tuple[str, str]] = []
        self.upserts: list[tuple[str, str]] = []

    def upsert(self, table, row):
        self.upserts.append((table, row["id"]))

    def insert(self, table, row):
        raise AssertionError("not used")

    def delete(self, table, entity_id):
        if (table, entity_id) == self.fail_on:
            raise GatewayError("remote down")
        self.deleted.append((table, entity_id))

    def select(self, table):
        return list(self.rows.get(table, []))


def _sync(tmp_path, *, gateway=None, online=True):
    store = LocalSnapshotStore(tmp_path)
    return SyncCoordinator(store, DurableMutationQueue(store), ConnectivityMonitor(online=online), gateway)


def test_promoted_grade():
    assert promoted_grade("6") == "7"
    assert promoted_grade("10 (Tamil)") == "11"
    assert promoted_grade("11") == "Completed"
    assert promoted_grade("A/L") == "A/L"
    assert promoted_grade("") == ""


def test_duplicate_and_sibling_guard(tmp_path):
    service = StudentService(_sync(tmp_path, online=False))
    service.add_student(Student(id="s1", name="Amal Perera", mobile_number="0771234567"))

    with pytest.raises(DuplicateStudentError):
        service.add_student(Student(id="s2", name=" amal perera ", mobile_number="0771234567"))

    with pytest.raises(PossibleSiblingError) as exc:
        service.add_student(Student(id="s3", name="Kamal Perera", mobile_number="0771234567"))
    assert exc.value.existing_student_id == "s1"

    service.add_student(Student(id="s3", name="Kamal Perera", mobile_number="0771234567"), confirm_sibling=True)
    assert [s.id for s in service.list_students()] == ["s1", "s3"]


def test_list_grades_and_status(tmp_path):
    service = StudentService(_sync(tmp_path, online=False))
    service.add_student(Student(id="s1", name="Amal", grade="10"))
    service.add_student(Student(id="s2", name="Nimal", grade="6"))
    service.add_student(Student(id="s3", name="Zara", grade="A/L"))

    assert service.grades() == ["6", "10", "A/L"]

    service.set_status("s2", StudentStatus.TEMPORARY_SUSPENDED)
    assert [s.id for s in service.list_students(include_suspended=False)] == ["s1", "s3"]
    assert [s.id for s in service.list_students(grade="6")] == ["s2"]


def test_delete_needs_a_live_remote(tmp_path):
    service = StudentService(_sync(tmp_path, gateway=FakeRemote(), online=False))
    service.add_student(Student(id="s1", name="Amal"))

    with pytest.raises(SyncUnavailableError):
        service.delete_student("s1")
    assert service.get("s1").name == "Amal"


def test_delete_cascades_remote_first(tmp_path):
    remote = FakeRemote(rows={"fees": [{"id": "f-remote", "student_id": "s1"}, {"id": "f-other", "student_id": "s2"}]})
    sync = _sync(tmp_path, gateway=remote)
    service = StudentService(sync)
    service.add_student(Student(id="s1", name="Amal"))
    sync.save(Table.FEES, FeeRecord(id="f1", student_id="s1", amount=1000, date="2025-01-10"))
    sync.save(Table.EXAMS, ExamRecord(id="e1", student_id="s1", test_name="T1", score=40, total=50, date="2025-01-11"))

    service.delete_student("s1")

    assert remote.deleted == [("fees", "f-remote"), ("fees", "f1"), ("exams", "e1"), ("students", "s1")]
    assert sync.store.all(Table.FEES) == []
    assert sync.store.all(Table.EXAMS) == []
    assert sync.store.get(Table.STUDENTS, "s1") is None


def test_failed_remote_delete_leaves_local_state(tmp_path):
    sync = _sync(tmp_path, gateway=FakeRemote(fail_on=("students", "s1")))
    service = StudentService(sync)
    service.add_student(Student(id="s1", name="Amal"))
    sync.save(Table.FEES, FeeRecord(id="f1", student_id="s1", amount=1000, date="2025-01-10"))

    with pytest.raises(GatewayError):
        service.delete_student("s1")

    assert sync.store.get(Table.STUDENTS, "s1") is not None
    assert len(sync.store.all(Table.FEES)) == 1


def test_promotion_window_and_marker(tmp_path):
    service = StudentService(_sync(tmp_path, online=False))
    service.add_student(Student(id="s1", name="Amal", grade="6"))
    service.add_student(Student(id="s2", name="Nimal", grade="11"))
    service.add_student(Student(id="s3", name="Zara", grade="A/L"))

    assert service.should_offer_promotion(date(2025, 1, 15)) is True
    assert service.should_offer_promotion(date(2025, 1, 16)) is False

    assert service.promote_all(2025) == 2
    assert [s.grade for s in service.list_students()] == ["7", "Completed", "A/L"]
    assert service.should_offer_promotion(date(2025, 1, 3)) is False
    assert service.should_offer_promotion(date(2026, 1, 3)) is True
