"""Exceptions raised by the planner store and its storage backends."""


class PlannerError(Exception):
    """Base class for every planner failure."""


class InvalidInputError(PlannerError, ValueError):
    """An operation argument is empty, malformed or outside its allowed values."""


class ClassNotFoundError(PlannerError, LookupError):
    def __init__(self, class_id: str) -> None:
        super().__init__(f"Class not found: {class_id}")
        self.class_id = class_id


class StudentNotFoundError(PlannerError, LookupError):
    def __init__(self, class_id: str, student_id: str) -> None:
        super().__init__(f"Student {student_id} not found in class {class_id}")
        self.class_id = class_id
        self.student_id = student_id


class UnknownStatusError(PlannerError, ValueError):
    def __init__(self, status_key: str) -> None:
        super().__init__(f"Unknown status tag: {status_key}")
        self.status_key = status_key


class StorageReadError(PlannerError):
    """The storage backend could not be read."""


class StorageWriteError(PlannerError):
    """The storage backend rejected a write."""
