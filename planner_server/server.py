# -*- coding: utf-8 -*-
import typing as t
from datetime import date

from fastmcp import FastMCP

from planner_server.catalog import (
    GRADE_LABELS,
    SCHEDULE_LABELS,
    STATUS_GROUPS,
    next_attendance,
    status_icon,
)
from planner_server.models import ClassRoom
from planner_server.school_calendar import parse_iso_date
from planner_server.store import PlannerStore, open_store

mcp = FastMCP("PlannerServer")

# The store backing every tool; opened from PLANNER_STORAGE_PATH on first use
_store: t.Optional[PlannerStore] = None


def get_store() -> PlannerStore:
    """Returns the process-wide store, opening and hydrating it on first use."""
    global _store
    if _store is None:
        _store = open_store()
    return _store


def set_store(store: t.Optional[PlannerStore]) -> None:
    """Replaces the process-wide store (None reopens it from disk on next use)."""
    global _store
    _store = store


def _today() -> str:
    return date.today().isoformat()


def _mark_attendance(class_id: str, student_id: str, day: str, status: str) -> str:
    """Internal function applying a button press to the attendance grid.

    Choosing the status that is already set clears it.

    :return: The status now stored ("" when cleared).
    """
    store = get_store()
    current = store.get_attendance(class_id, student_id, day)
    return store.set_attendance(class_id, student_id, day, next_attendance(current, status))


@mcp.tool()
def add_class(name: str, grade: str, schedule: str) -> dict[str, t.Any]:
    """Creates a class.

    :param name: Name of the class, e.g. "Math Period 1".
    :param grade: Grade level: "6", "7" or "8".
    :param schedule: "even" or "odd" rotation days.
    :return: The created class.
    """
    return get_store().add_class(name, grade, schedule).to_dict()


@mcp.tool()
def add_student(class_id: str, name: str) -> dict[str, t.Any]:
    """Adds a student to a class.

    :param class_id: Id of an existing class.
    :param name: Student name.
    :return: The created student.
    """
    return get_store().add_student(class_id, name).to_dict()


@mcp.tool()
def toggle_status(class_id: str, student_id: str, status_key: str) -> dict[str, t.Any]:
    """Marks or unmarks a status tag on a student.

    :param class_id: Id of the student's class.
    :param student_id: Id of the student.
    :param status_key: A tag key from list_status_catalog.
    :return: The student with updated statuses.
    """
    return get_store().toggle_status(class_id, student_id, status_key).to_dict()


@mcp.tool()
def set_attendance(class_id: str, student_id: str, day: str, status: str) -> str:
    """Stores an attendance status for a date.

    :param day: Date in YYYY-MM-DD format.
    :param status: "present", "absent", "tardy", or "" to clear.
    :return: The stored status.
    """
    return get_store().set_attendance(class_id, student_id, day, status)


@mcp.tool()
def mark_attendance(class_id: str, student_id: str, status: str, day: str = "") -> str:
    """Presses an attendance button: sets the status, or clears it if already set.

    :param status: "present", "absent" or "tardy".
    :param day: Date in YYYY-MM-DD format (optional, defaults to today).
    :return: The status now stored ("" when cleared).
    """
    return _mark_attendance(class_id, student_id, day or _today(), status)


@mcp.tool()
def list_classes() -> list[dict[str, t.Any]]:
    """Lists all classes with their students and attendance.

    :return: A list of class dictionaries.
    """
    return [classroom.to_dict() for classroom in get_store().classes]


@mcp.tool()
def list_status_catalog() -> list[dict[str, t.Any]]:
    """Lists the status tag groups and their tags."""
    return [
        {
            "key": group.key,
            "label": group.label,
            "color": group.color,
            "tags": [{"key": tag.key, "label": tag.label, "icon": tag.icon} for tag in group.tags],
        }
        for group in STATUS_GROUPS
    ]


def format_classes(classes: t.Sequence[ClassRoom]) -> str:
    """Internal function to format classes and rosters as a clean table.

    :return: Formatted table string of all classes.
    """
    if not classes:
        return "🏫 No classes found."

    lines = []
    lines.append("🏫 CLASSES")
    lines.append("=" * 80)
    for classroom in classes:
        grade = GRADE_LABELS.get(classroom.grade, classroom.grade)
        schedule = SCHEDULE_LABELS.get(classroom.schedule, classroom.schedule)
        lines.append(f"{classroom.name} ({grade}, {schedule})  [{classroom.id}]")
        lines.append("-" * 80)
        if not classroom.students:
            lines.append("    (no students)")
        for idx, student in enumerate(classroom.students, 1):
            icons = " ".join(status_icon(s) for s in student.statuses)
            lines.append(f"{idx:<4} {student.name:<30} {icons}")
        lines.append("")

    lines.append("=" * 80)
    lines.append(f"Total: {len(classes)} class(es)")
    return "\n".join(lines)


def format_attendance(classes: t.Sequence[ClassRoom], day: str) -> str:
    """Internal function to format one day's attendance for every class.

    :return: Formatted table string of the day's attendance.
    """
    key = parse_iso_date(day).isoformat()
    if not classes:
        return "🏫 No classes found."

    lines = []
    lines.append(f"📋 ATTENDANCE {key}")
    lines.append("=" * 60)
    for classroom in classes:
        lines.append(classroom.name)
        lines.append("-" * 60)
        entries = classroom.attendance_on(key)
        for student in classroom.students:
            status = entries.get(student.id) or "—"
            lines.append(f"    {student.name:<30} {status:<10}")
        lines.append("")
    return "\n".join(lines)


@mcp.tool()
def show_classes() -> str:
    """Displays all classes and their rosters with status icons.

    :return: Formatted string of all classes, or a message if none exist.
    """
    return format_classes(get_store().classes)


@mcp.tool()
def show_attendance(day: str = "") -> str:
    """Displays the attendance taken on a date for every class.

    :param day: Date in YYYY-MM-DD format (optional, defaults to today).
    :return: Formatted attendance sheet.
    """
    return format_attendance(get_store().classes, day or _today())


if __name__ == "__main__":
    mcp.run()
