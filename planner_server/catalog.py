# -*- coding: utf-8 -*-
"""Fixed catalogs: status tags, grades, schedules and attendance statuses."""
from __future__ import annotations

from dataclasses import dataclass
import typing as t


GRADES: tuple[str, ...] = ("6", "7", "8")
SCHEDULES: tuple[str, ...] = ("even", "odd")
ATTENDANCE_STATUSES: tuple[str, ...] = ("present", "absent", "tardy")
UNSET = ""

GRADE_LABELS = {"6": "6th Grade", "7": "7th Grade", "8": "8th Grade"}
SCHEDULE_LABELS = {"even": "Even Days", "odd": "Odd Days"}


@dataclass(frozen=True)
class StatusTag:
    """A single toggleable marker that can be attached to a student."""
    key: str
    label: str
    icon: str
    group: str


@dataclass(frozen=True)
class StatusGroup:
    """A named group of status tags sharing a highlight color."""
    key: str
    label: str
    color: str
    tags: tuple[StatusTag, ...]


def _group(key: str, label: str, color: str, options: list[tuple[str, str, str]]) -> StatusGroup:
    return StatusGroup(
        key=key,
        label=label,
        color=color,
        tags=tuple(StatusTag(key=k, label=lbl, icon=icon, group=key) for k, lbl, icon in options),
    )


STATUS_GROUPS: tuple[StatusGroup, ...] = (
    _group("performance", "Performance", "green", [
        ("exceptional_performance", "Exceptional Performance", "⭐"),
        ("exceptional_participation", "Exceptional Participation", "🌟"),
        ("outstanding_effort", "Outstanding Effort", "💫"),
        ("exceptional_effort", "Exceptional Effort", "💪"),
    ]),
    _group("discipline", "Discipline", "red", [
        ("discipline_improvement", "Discipline Improvement", "📈"),
        ("discipline_issues", "Discipline Issues", "⚠️"),
        ("office_referral", "Office Referral", "📋"),
    ]),
    _group("checkIns", "Check-ins", "blue", [
        ("after_school_scheduled", "After-school Chat Scheduled", "📅"),
        ("after_school_attended", "After-school Chat Completed", "✅"),
        ("after_school_missed", "After-school Chat Missed", "❌"),
        ("after_class_scheduled", "After-class Chat Scheduled", "⏰"),
        ("after_class_attended", "After-class Chat Completed", "✔️"),
        ("after_class_missed", "After-class Chat Missed", "❌"),
    ]),
)

STATUS_TAGS: dict[str, StatusTag] = {
    tag.key: tag for group in STATUS_GROUPS for tag in group.tags
}


def is_status_key(key: str) -> bool:
    return key in STATUS_TAGS


def status_icon(key: str) -> str:
    tag = STATUS_TAGS.get(key)
    return tag.icon if tag else ""


def normalize_grade(grade: t.Union[int, str]) -> t.Optional[str]:
    """Returns the canonical grade string, or None if the grade is not offered."""
    value = str(grade).strip()
    return value if value in GRADES else None


def next_attendance(current: str, chosen: str) -> str:
    """Resolves a button press into the value to store.

    Pressing the status that is already active clears it; anything else
    replaces it.

    :param current: The currently stored status ("" when unset).
    :param chosen: The status the user picked.
    :return: The status to store.
    """
    return UNSET if (current or UNSET) == chosen else chosen
