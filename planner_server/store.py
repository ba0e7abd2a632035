# -*- coding: utf-8 -*-
"""
Planner state store.

The store owns the collection of classes. Every operation validates its
input, builds a new snapshot with the affected class (and student) swapped
out, persists the whole collection and then notifies subscribers. A failed
validation raises before anything changes.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import date
import json
import re
import threading
import typing as t
import uuid

from planner_server.catalog import (
    ATTENDANCE_STATUSES,
    SCHEDULES,
    UNSET,
    is_status_key,
    normalize_grade,
)
from planner_server.config import PLANNER_STORAGE_KEY, PLANNER_STORAGE_PATH
from planner_server.errors import (
    ClassNotFoundError,
    InvalidInputError,
    StorageReadError,
    StorageWriteError,
    StudentNotFoundError,
    UnknownStatusError,
)
from planner_server.log import get_logger
from planner_server.models import ClassRoom, Student, classroom_from_dict
from planner_server.school_calendar import SchoolCalendar, day_type_on, parse_iso_date
from planner_server.storage import JsonFileStorage, KeyValueStorage

logger = get_logger("store")

LOAD_FAILED_MESSAGE = "Failed to load saved data"
SAVE_FAILED_MESSAGE = "Failed to save data"
CLASS_ADDED_MESSAGE = "Class added successfully!"

Listener = t.Callable[[tuple[ClassRoom, ...]], None]

_UNSAFE_CHARS = re.compile(r"[<>{}]")


def new_id() -> str:
    return uuid.uuid4().hex


def sanitize_input(value: t.Any) -> str:
    """Trims a free-text value and strips markup characters."""
    if not isinstance(value, str):
        return ""
    return _UNSAFE_CHARS.sub("", value.strip()).strip()


class PlannerStore:
    """Holds the classes collection and applies updates to it.

    :param storage: Key-value backend the collection is synced to.
    :param key: Storage key holding the serialized collection.
    :param id_factory: Source of new class and student ids.
    """

    def __init__(
            self,
            storage: KeyValueStorage,
            key: str = PLANNER_STORAGE_KEY,
            id_factory: t.Callable[[], str] = new_id,
    ) -> None:
        self._storage = storage
        self._key = key
        self._new_id = id_factory
        self._classes: tuple[ClassRoom, ...] = ()
        self._listeners: list[Listener] = []
        # held from reading the snapshot until the replacement is committed
        self._lock = threading.RLock()
        self._hydrated: t.Optional[bool] = None
        # Banner message for the last load/save failure, None when healthy
        self.error: t.Optional[str] = None
        # Last user-facing confirmation
        self.notice: t.Optional[str] = None

    @property
    def classes(self) -> tuple[ClassRoom, ...]:
        return self._classes

    # ------------------------------------------------------------------
    # Hydration and persistence
    # ------------------------------------------------------------------

    def hydrate(self) -> bool:
        """Loads the persisted collection, once.

        Missing data leaves the collection empty. Malformed data is logged,
        recorded in ``error`` and also leaves the collection empty.

        :return: True if the stored data (or its absence) was read cleanly.
        """
        if self._hydrated is not None:
            return self._hydrated

        try:
            raw = self._storage.get_item(self._key)
            classes: tuple[ClassRoom, ...] = ()
            if raw:
                records = json.loads(raw)
                if not isinstance(records, list):
                    raise ValueError("stored classes must be a list")
                classes = tuple(classroom_from_dict(record, self._new_id) for record in records)
                _check_unique_ids(classes)
        except (StorageReadError, ValueError, TypeError, AttributeError) as e:
            logger.warning("%s: %s", LOAD_FAILED_MESSAGE, e)
            self._classes = ()
            self.error = LOAD_FAILED_MESSAGE
            self._hydrated = False
        else:
            self._classes = classes
            self._hydrated = True
            logger.debug("Hydrated %d class(es) from %r", len(classes), self._key)

        self._notify_listeners()
        return self._hydrated

    def snapshot_json(self) -> str:
        """Serializes the current collection exactly as it is persisted."""
        return json.dumps(
            [classroom.to_dict() for classroom in self._classes],
            ensure_ascii=False,
            separators=(",", ":"),
        )

    def persist(self) -> bool:
        """Writes the current collection to storage.

        A failed write is logged and recorded in ``error``; the in-memory
        collection stays as it is and the write is not retried.
        """
        try:
            self._storage.set_item(self._key, self.snapshot_json())
        except (StorageReadError, StorageWriteError) as e:
            logger.error("%s: %s", SAVE_FAILED_MESSAGE, e)
            self.error = SAVE_FAILED_MESSAGE
            return False
        return True

    def subscribe(self, listener: Listener) -> t.Callable[[], None]:
        """Registers a listener called with every new snapshot.

        :return: A function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify_listeners(self) -> None:
        for listener in list(self._listeners):
            listener(self._classes)

    def _commit(self, classes: tuple[ClassRoom, ...]) -> None:
        self.error = None
        self._classes = classes
        self.persist()
        self._notify_listeners()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_class(self, class_id: str) -> ClassRoom:
        for classroom in self._classes:
            if classroom.id == class_id:
                return classroom
        raise ClassNotFoundError(class_id)

    def get_student(self, class_id: str, student_id: str) -> Student:
        student = self.get_class(class_id).find_student(student_id)
        if student is None:
            raise StudentNotFoundError(class_id, student_id)
        return student

    def get_attendance(self, class_id: str, student_id: str, day: t.Union[str, date]) -> str:
        """Returns the stored attendance status, "" when unset."""
        self.get_student(class_id, student_id)
        key = _date_key(day)
        return self.get_class(class_id).attendance.get(key, {}).get(student_id) or UNSET

    def classes_meeting_on(
            self,
            day: t.Union[str, date],
            school_calendar: SchoolCalendar
    ) -> list[ClassRoom]:
        """Returns the classes whose schedule matches the day's rotation."""
        day_type = day_type_on(school_calendar, day)
        return [classroom for classroom in self._classes if classroom.schedule == day_type]

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def add_class(self, name: str, grade: t.Union[int, str], schedule: str) -> ClassRoom:
        """Appends a new, empty class.

        :param name: Display name, e.g. "Math Period 1".
        :param grade: 6, 7 or 8.
        :param schedule: "even" or "odd".
        :return: The created ClassRoom.
        """
        clean_name = sanitize_input(name)
        if not clean_name:
            raise InvalidInputError("Class name is required")
        grade_value = normalize_grade(grade)
        if grade_value is None:
            raise InvalidInputError(f"Grade must be one of 6, 7, 8 (got {grade!r})")
        if schedule not in SCHEDULES:
            raise InvalidInputError(f"Schedule must be 'even' or 'odd' (got {schedule!r})")

        with self._lock:
            classroom = ClassRoom(
                id=self._unique_id({c.id for c in self._classes}),
                name=clean_name,
                grade=grade_value,
                schedule=schedule,
                students=(),
                attendance={},
            )
            self._commit(self._classes + (classroom,))

        self.notice = CLASS_ADDED_MESSAGE
        logger.info("%s (%s)", CLASS_ADDED_MESSAGE, classroom.name)
        return classroom

    def add_student(self, class_id: str, name: str) -> Student:
        """Appends a student with no status tags to a class."""
        clean_name = sanitize_input(name)
        if not clean_name:
            raise InvalidInputError("Student name is required")

        with self._lock:
            classroom = self.get_class(class_id)
            taken = {s.id for c in self._classes for s in c.students}
            student = Student(id=self._unique_id(taken), name=clean_name, statuses=())
            self._commit(self._swap(replace(classroom, students=classroom.students + (student,))))
        return student

    def toggle_status(self, class_id: str, student_id: str, status_key: str) -> Student:
        """Adds the status tag if the student lacks it, removes it otherwise."""
        if not is_status_key(status_key):
            raise UnknownStatusError(status_key)

        with self._lock:
            classroom = self.get_class(class_id)
            student = self.get_student(class_id, student_id)

            if student.has_status(status_key):
                statuses = tuple(s for s in student.statuses if s != status_key)
            else:
                statuses = student.statuses + (status_key,)
            updated = replace(student, statuses=statuses)

            students = tuple(updated if s.id == student_id else s for s in classroom.students)
            self._commit(self._swap(replace(classroom, students=students)))
        return updated

    def set_attendance(
            self,
            class_id: str,
            student_id: str,
            day: t.Union[str, date],
            status: t.Optional[str],
    ) -> str:
        """Stores an attendance status for a student on a date.

        :param status: "present", "absent", "tardy", or "" / None to clear.
        :return: The stored status.
        """
        value = status or UNSET
        if value != UNSET and value not in ATTENDANCE_STATUSES:
            raise InvalidInputError(f"Unknown attendance status: {status!r}")
        key = _date_key(day)

        with self._lock:
            classroom = self.get_class(class_id)
            self.get_student(class_id, student_id)

            entries = dict(classroom.attendance.get(key, {}))
            entries[student_id] = value
            attendance = dict(classroom.attendance)
            attendance[key] = entries

            self._commit(self._swap(replace(classroom, attendance=attendance)))
        return value

    def _swap(self, updated: ClassRoom) -> tuple[ClassRoom, ...]:
        return tuple(updated if c.id == updated.id else c for c in self._classes)

    def _unique_id(self, taken: t.Collection[str]) -> str:
        candidate = self._new_id()
        while candidate in taken:
            candidate = self._new_id()
        return candidate


def _date_key(day: t.Union[str, date]) -> str:
    return parse_iso_date(day).isoformat()


def _check_unique_ids(classes: tuple[ClassRoom, ...]) -> None:
    class_ids = [c.id for c in classes]
    if len(set(class_ids)) != len(class_ids):
        raise ValueError("duplicate class ids in stored data")
    for classroom in classes:
        student_ids = [s.id for s in classroom.students]
        if len(set(student_ids)) != len(student_ids):
            raise ValueError(f"duplicate student ids in class {classroom.id}")


def open_store(filepath: str = PLANNER_STORAGE_PATH) -> PlannerStore:
    """Creates a file-backed store and hydrates it."""
    store = PlannerStore(JsonFileStorage(filepath))
    store.hydrate()
    return store
