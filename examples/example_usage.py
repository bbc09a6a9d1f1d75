"""Example: drive the service layer directly (no Flask).

Controllers stay thin; every rule lives in the services, so the same calls
work from a script or a notebook.
"""

from config import load_settings

from src.academy_manager.academy_manager.container import build_container


def main():
    settings = load_settings()
    container = build_container(settings)

    summary = container.dashboard_service.summary()
    print(f"students={summary.total_students} active={summary.active_students} rate={summary.attendance_rate}%")
    for student, status in container.fee_service.list_students()[:5]:
        print(student.name, status.next_due, "OVERDUE" if status.is_overdue else "paid")
    print(container.sync.status())


if __name__ == "__main__":
    main()
