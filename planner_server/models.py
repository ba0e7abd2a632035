"""
Data models for the planner server classes, students and attendance.

This module contains the immutable dataclasses used to represent classes
and their students, plus the conversion to and from the plain JSON records
kept in storage.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
import typing as t


# date ("YYYY-MM-DD") -> student id -> attendance status ("" means unset)
AttendanceMap = t.Mapping[str, t.Mapping[str, str]]


@dataclass(frozen=True)
class Student:
    """Represents a student with the status tags currently marked on them."""
    id: str
    name: str
    statuses: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "statuses", tuple(self.statuses))

    def has_status(self, status_key: str) -> bool:
        return status_key in self.statuses

    def to_dict(self) -> dict[str, t.Any]:
        return {
            "id": self.id,
            "name": self.name,
            "statuses": list(self.statuses),
        }


@dataclass(frozen=True)
class ClassRoom:
    """Represents a class with its roster and per-date attendance."""
    id: str
    name: str
    grade: str
    schedule: str
    students: tuple[Student, ...] = ()
    attendance: AttendanceMap = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        # read-only views, so a snapshot cannot be edited behind the store
        object.__setattr__(self, "students", tuple(self.students))
        object.__setattr__(self, "attendance", MappingProxyType({
            date: MappingProxyType(dict(entries)) for date, entries in self.attendance.items()
        }))

    def find_student(self, student_id: str) -> t.Optional[Student]:
        for student in self.students:
            if student.id == student_id:
                return student
        return None

    def attendance_on(self, date: str) -> dict[str, str]:
        """Returns the attendance entries recorded for a date (may be empty)."""
        return dict(self.attendance.get(date, {}))

    def to_dict(self) -> dict[str, t.Any]:
        return {
            "id": self.id,
            "name": self.name,
            "grade": self.grade,
            "schedule": self.schedule,
            "students": [student.to_dict() for student in self.students],
            "attendance": {
                date: dict(entries) for date, entries in self.attendance.items()
            },
        }


def student_from_dict(data: t.Mapping[str, t.Any], new_id: t.Callable[[], str]) -> Student:
    """Builds a Student from a stored record.

    Older records from the boolean-presence roster carry ``present`` and
    ``notes`` keys; those are dropped and the student starts with no tags.

    :param data: The stored student record.
    :param new_id: Id factory used when the record has no id.
    :return: A Student.
    """
    statuses: list[str] = []
    for status in data.get("statuses") or []:
        if status not in statuses:
            statuses.append(str(status))
    return Student(
        id=str(data.get("id") or new_id()),
        name=str(data.get("name", "")),
        statuses=tuple(statuses),
    )


def classroom_from_dict(data: t.Mapping[str, t.Any], new_id: t.Callable[[], str]) -> ClassRoom:
    """Builds a ClassRoom from a stored record.

    :param data: The stored class record.
    :param new_id: Id factory used for records missing an id.
    :return: A ClassRoom.
    """
    attendance = data.get("attendance") or {}
    if not isinstance(attendance, dict):
        raise ValueError("attendance must be an object")
    return ClassRoom(
        id=str(data.get("id") or new_id()),
        name=str(data.get("name", "")),
        grade=str(data.get("grade", "")),
        schedule=str(data.get("schedule", "")),
        students=tuple(
            student_from_dict(student, new_id) for student in data.get("students") or []
        ),
        attendance={
            str(date): {str(sid): str(status or "") for sid, status in entries.items()}
            for date, entries in attendance.items()
        },
    )
