from __future__ import annotations

from datetime import date

from src.academy_manager.academy_manager.attendance import calculator
from src.academy_manager.academy_manager.attendance.matching import grade_matches, is_expected
from src.academy_manager.academy_manager.attendance.model import AttendanceRecord
from src.academy_manager.academy_manager.core.enums import DayOutcome, RecordStatus, StudentStatus
from src.academy_manager.academy_manager.students.model import Student

# 2025-03-01 is a Saturday: Sat 1, Sun 2, Mon 3, Sat 8 ...
SAT, SUN, MON, TUE = date(2025, 3, 1), date(2025, 3, 2), date(2025, 3, 3), date(2025, 3, 4)

AMAL = Student(id="s1", name="Amal", grade="6", joined_date="2025-01-01")


def _rec(rid, day, present=(), class_id="general", status=RecordStatus.ACTIVE):
    return AttendanceRecord(
        id=rid, class_id=class_id, date=day.isoformat(), student_ids_present=tuple(present), status=status
    )


def test_class_days():
    assert [calculator.is_class_day(d) for d in (SAT, SUN, MON, TUE)] == [True, True, True, False]
    assert calculator.next_class_day(MON) == date(2025, 3, 8)
    assert calculator.next_class_day(date(2025, 2, 28)) == SAT


def test_grade_labels_match_on_digits():
    assert grade_matches("Grade 6", "6")
    assert grade_matches("G-06", "Grade 6") is False
    assert grade_matches("Grade 06", "06")
    assert grade_matches("Advanced", "Advanced")
    assert grade_matches("Advanced", "Beginner") is False


def test_streak_counts_back_to_last_presence():
    records = [_rec("r1", SAT, ["s1"]), _rec("r2", SUN), _rec("r3", MON)]

    assert calculator.past_absence_streak(AMAL, records, MON) == 1
    assert calculator.absence_streak(AMAL, records, MON) == 2


def test_presence_today_resets_streak():
    records = [_rec("r1", SAT), _rec("r2", SUN), _rec("r3", MON, ["s1"])]
    assert calculator.absence_streak(AMAL, records, MON) == 0


def test_unmarked_day_keeps_past_streak():
    records = [_rec("r1", SAT), _rec("r2", SUN)]
    assert calculator.absence_streak(AMAL, records, MON) == 2


def test_cancelled_day_is_not_an_absence():
    records = [
        _rec("r1", SAT),
        _rec("r2", SUN, status=RecordStatus.CANCELLED),
        _rec("r3", MON),
    ]
    assert calculator.absence_streak(AMAL, records, MON) == 2
    assert calculator.resolve_day(AMAL, [records[1]]) == DayOutcome.NOT_EXPECTED


def test_days_before_joining_are_not_expected():
    late = Student(id="s1", name="Amal", grade="6", joined_date="2025-03-02")
    records = [_rec("r1", SAT), _rec("r2", SUN), _rec("r3", MON)]

    assert is_expected(records[0], late) is False
    assert calculator.absence_streak(late, records, MON) == 2


def test_other_grade_records_do_not_apply():
    records = [_rec("r1", SAT, class_id="7"), _rec("r2", SUN, class_id="Grade 6")]

    assert calculator.resolve_day(AMAL, [records[0]]) == DayOutcome.NOT_EXPECTED
    assert calculator.absence_streak(AMAL, records, SUN) == 1


def test_present_in_any_applicable_record_wins():
    day_records = [_rec("r1", SAT), _rec("r2", SAT, ["s1"], class_id="6")]
    assert calculator.resolve_day(AMAL, day_records) == DayOutcome.PRESENT


def test_suspended_student_is_never_expected():
    suspended = Student(id="s1", name="Amal", grade="6", status=StudentStatus.TEMPORARY_SUSPENDED)
    assert calculator.resolve_day(suspended, [_rec("r1", SAT)]) == DayOutcome.NOT_EXPECTED


def test_report_and_rate():
    nimal = Student(id="s2", name="Nimal", grade="6", joined_date="2025-01-01")
    gone = Student(id="s3", name="Zara", grade="6", status=StudentStatus.TEMPORARY_SUSPENDED)
    records = [_rec("r1", SAT, ["s1", "s2"]), _rec("r2", SUN, ["s1"]), _rec("r3", date(2025, 4, 5), ["s2"])]

    rows = calculator.attendance_report([nimal, AMAL, gone], records, SAT, MON)

    assert [r.name for r in rows] == ["Amal", "Nimal"]
    assert (rows[0].present_days, rows[0].absent_days, rows[0].percentage) == (2, 0, 100)
    assert (rows[1].present_days, rows[1].absent_days, rows[1].percentage) == (1, 1, 50)
    assert calculator.attendance_rate([AMAL, nimal], records, SAT, MON) == 75


def test_presence_breaks_a_long_streak():
    # Absent Sat 1, Sun 2, Mon 3; present Sat 8; absent again Sun 9.
    sat8, sun9 = date(2025, 3, 8), date(2025, 3, 9)
    records = [_rec("r1", SAT), _rec("r2", SUN), _rec("r3", MON), _rec("r4", sat8, ["s1"]), _rec("r5", sun9)]

    assert calculator.absence_streak(AMAL, records, MON) == 3
    assert calculator.absence_streak(AMAL, records, sat8) == 0
    assert calculator.absence_streak(AMAL, records, sun9) == 1


def test_student_joining_after_the_session_is_neither_present_nor_absent():
    a = Student(id="a", name="Asha", grade="6")
    b = Student(id="b", name="Bimal", grade="6")
    c = Student(id="c", name="Chamari", grade="6", joined_date="2024-03-05")
    records = [_rec("r1", date(2024, 3, 2), ["a", "b"])]

    assert calculator.resolve_day(a, records) == DayOutcome.PRESENT
    assert calculator.resolve_day(c, records) == DayOutcome.NOT_EXPECTED
    assert calculator.count_slots([a, b, c], records, date(2024, 3, 1), date(2024, 3, 31)) == (2, 0)
