"""
Shared Pydantic models for REST API serialization.

This module contains Pydantic equivalents of the dataclass models used by the
planner store and the authentication gate, ensuring consistent JSON
serialization across the service.
"""
from __future__ import annotations

import typing as t
from pydantic import BaseModel, Field


# Type literals for commonly used values
Grade = t.Literal["6", "7", "8"]
Schedule = t.Literal["even", "odd"]
AttendanceStatus = t.Literal["present", "absent", "tardy", ""]


class Student(BaseModel):
    """A student and the status tags marked on them."""
    id: str
    name: str
    statuses: list[str] = Field(default_factory=list)


class ClassRoom(BaseModel):
    """
    A class with its roster and attendance:
    - attendance maps "YYYY-MM-DD" -> student id -> status
    """
    id: str
    name: str
    grade: str
    schedule: str
    students: list[Student] = Field(default_factory=list)
    attendance: dict[str, dict[str, str]] = Field(default_factory=dict)


class StatusTag(BaseModel):
    key: str
    label: str
    icon: str


class StatusGroup(BaseModel):
    """A group of status tags (performance, discipline, check-ins)."""
    key: str
    label: str
    color: str
    tags: list[StatusTag] = Field(default_factory=list)


class AuthUser(BaseModel):
    email: str
    signed_in_at: str
    method: str


# Request/Response Models for API endpoints
class AddClassRequest(BaseModel):
    """Request model for creating a class."""
    name: str
    grade: Grade
    schedule: Schedule


class AddClassResponse(BaseModel):
    """Response model for a created class, with the confirmation to display."""
    classroom: ClassRoom
    message: str


class AddStudentRequest(BaseModel):
    """Request model for adding a student to a class."""
    name: str


class ToggleStatusRequest(BaseModel):
    """Request model for toggling a status tag on a student."""
    status_key: str


class SetAttendanceRequest(BaseModel):
    """
    Request model for attendance.

    With ``toggle`` set, choosing the status that is already stored clears it.
    """
    date: str                        # "YYYY-MM-DD"
    status: AttendanceStatus = ""
    toggle: bool = False


class AttendanceResponse(BaseModel):
    date: str
    student_id: str
    status: str


class ClassesResponse(BaseModel):
    """Response model for the full collection, with any storage banner."""
    classes: list[ClassRoom] = Field(default_factory=list)
    error: t.Optional[str] = None


class ShowClassesResponse(BaseModel):
    """Response model for the formatted class display."""
    formatted_classes: str


class SignInRequest(BaseModel):
    email: str
    password: str


class SendSignInLinkRequest(BaseModel):
    email: str


class CompleteSignInRequest(BaseModel):
    """Request model for finishing an email-link sign-in."""
    link_url: str
    email: t.Optional[str] = None


class AuthResponse(BaseModel):
    """Outcome of an authentication action."""
    ok: bool
    message: str = ""
    user: t.Optional[AuthUser] = None
