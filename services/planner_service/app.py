"""
FastAPI service for the teacher planner.

This service is the page shell around the planner store: authentication
routes are always available, while the planner routes answer 401 until the
authentication gate reports a signed-in user.
"""
from __future__ import annotations

import typing as t
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request

from auth_server.gate import AuthGate
from auth_server.models import AuthResult
from planner_server.catalog import STATUS_GROUPS, next_attendance
from planner_server.config import PLANNER_SERVICE_HOST, PLANNER_SERVICE_PORT, PLANNER_STORAGE_PATH
from planner_server.errors import (
    ClassNotFoundError,
    InvalidInputError,
    PlannerError,
    StudentNotFoundError,
    UnknownStatusError,
)
from planner_server.log import get_logger
from planner_server.models import ClassRoom
from planner_server.school_calendar import parse_iso_date
from planner_server.server import format_classes
from planner_server.storage import JsonFileStorage
from planner_server.store import PlannerStore
from services.shared.models import (
    AddClassRequest,
    AddClassResponse,
    AddStudentRequest,
    AttendanceResponse,
    AuthResponse,
    AuthUser as PydanticAuthUser,
    ClassesResponse,
    ClassRoom as PydanticClassRoom,
    CompleteSignInRequest,
    SendSignInLinkRequest,
    SetAttendanceRequest,
    ShowClassesResponse,
    SignInRequest,
    StatusGroup as PydanticStatusGroup,
    StatusTag as PydanticStatusTag,
    Student as PydanticStudent,
    ToggleStatusRequest,
)

logger = get_logger("service")

# Planner state and auth gate - initialized on startup unless already attached
store: t.Optional[PlannerStore] = None
gate: t.Optional[AuthGate] = None

# Tracks the latest auth event; the planner routes are mounted only while True
planner_mounted = False
_unsubscribe_gate: t.Optional[t.Callable[[], None]] = None


def _on_auth_state_changed(user) -> None:
    global planner_mounted
    planner_mounted = user is not None


def attach(new_store: PlannerStore, new_gate: AuthGate) -> None:
    """Installs the store and gate the routes operate on."""
    global store, gate, _unsubscribe_gate
    if _unsubscribe_gate is not None:
        _unsubscribe_gate()
    store = new_store
    gate = new_gate
    _unsubscribe_gate = new_gate.on_auth_state_changed(_on_auth_state_changed)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the storage file and hydrate the planner on startup."""
    if store is None or gate is None:
        storage = JsonFileStorage(PLANNER_STORAGE_PATH)
        planner = PlannerStore(storage)
        planner.hydrate()
        attach(planner, AuthGate(storage))

    yield


app = FastAPI(
    title="Teacher Planner Service",
    description="REST API for classes, students, status tags and attendance",
    version="1.0.0",
    lifespan=lifespan,
)


def require_planner() -> PlannerStore:
    """Dependency that only hands out the store once someone is signed in."""
    if store is None or gate is None:
        raise HTTPException(status_code=503, detail="Planner is not initialized")
    if not planner_mounted:
        raise HTTPException(status_code=401, detail="Sign in to use the planner")
    return store


def require_gate() -> AuthGate:
    if gate is None:
        raise HTTPException(status_code=503, detail="Authentication is not initialized")
    return gate


def _to_pydantic_classroom(classroom: ClassRoom) -> PydanticClassRoom:
    return PydanticClassRoom(**classroom.to_dict())


def _to_auth_response(result: AuthResult) -> AuthResponse:
    user = PydanticAuthUser(**result.user.to_dict()) if result.user else None
    return AuthResponse(ok=result.ok, message=result.message, user=user)


def _http_error(e: PlannerError) -> HTTPException:
    if isinstance(e, (ClassNotFoundError, StudentNotFoundError)):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, (InvalidInputError, UnknownStatusError)):
        return HTTPException(status_code=422, detail=str(e))
    return HTTPException(status_code=500, detail=f"Planner error: {str(e)}")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "planner-service"}


# ----------------------------------------------------------------------
# Authentication
# ----------------------------------------------------------------------

@app.post("/auth/sign-in", response_model=AuthResponse)
async def sign_in(request: SignInRequest, auth: AuthGate = Depends(require_gate)) -> AuthResponse:
    """Sign in with the authorized email and password."""
    return _to_auth_response(auth.sign_in(request.email, request.password))


@app.post("/auth/send-link", response_model=AuthResponse)
async def send_sign_in_link(request: SendSignInLinkRequest, auth: AuthGate = Depends(require_gate)) -> AuthResponse:
    """Send a one-time sign-in link to the authorized email."""
    return _to_auth_response(auth.send_sign_in_link(request.email))


@app.post("/auth/complete", response_model=AuthResponse)
async def complete_sign_in(request: CompleteSignInRequest, auth: AuthGate = Depends(require_gate)) -> AuthResponse:
    """Finish an email-link sign-in from a pasted link."""
    return _to_auth_response(auth.complete_sign_in_from_link(request.email, request.link_url))


@app.get("/auth/complete", response_model=AuthResponse)
async def open_sign_in_link(request: Request, auth: AuthGate = Depends(require_gate)) -> AuthResponse:
    """
    Landing route for emailed sign-in links.

    Uses the email remembered when the link was sent.
    """
    return _to_auth_response(auth.complete_sign_in_from_link(None, str(request.url)))


@app.post("/auth/sign-out", response_model=AuthResponse)
async def sign_out(auth: AuthGate = Depends(require_gate)) -> AuthResponse:
    return _to_auth_response(auth.sign_out())


@app.get("/auth/me", response_model=AuthResponse)
async def who_am_i(auth: AuthGate = Depends(require_gate)) -> AuthResponse:
    """Report the signed-in user, if any."""
    return _to_auth_response(AuthResult(ok=auth.signed_in, user=auth.current_user))


# ----------------------------------------------------------------------
# Planner
# ----------------------------------------------------------------------

@app.get("/catalog", response_model=list[PydanticStatusGroup])
async def list_status_catalog() -> list[PydanticStatusGroup]:
    """List the status tag groups; available without signing in."""
    return [
        PydanticStatusGroup(
            key=group.key,
            label=group.label,
            color=group.color,
            tags=[PydanticStatusTag(key=tag.key, label=tag.label, icon=tag.icon) for tag in group.tags],
        )
        for group in STATUS_GROUPS
    ]


@app.get("/classes", response_model=ClassesResponse)
async def list_classes(planner: PlannerStore = Depends(require_planner)) -> ClassesResponse:
    """
    List all classes.

    ``error`` carries the banner message after a failed load or save.
    """
    return ClassesResponse(
        classes=[_to_pydantic_classroom(c) for c in planner.classes],
        error=planner.error,
    )


@app.post("/classes", response_model=AddClassResponse, status_code=201)
async def add_class(request: AddClassRequest, planner: PlannerStore = Depends(require_planner)) -> AddClassResponse:
    """Create a class with an empty roster."""
    try:
        classroom = planner.add_class(request.name, request.grade, request.schedule)
    except PlannerError as e:
        raise _http_error(e)
    return AddClassResponse(classroom=_to_pydantic_classroom(classroom), message=planner.notice or "")


@app.get("/classes/show", response_model=ShowClassesResponse)
async def show_classes(planner: PlannerStore = Depends(require_planner)) -> ShowClassesResponse:
    """Show all classes as a formatted table."""
    return ShowClassesResponse(formatted_classes=format_classes(planner.classes))


@app.get("/classes/{class_id}", response_model=PydanticClassRoom)
async def get_class(class_id: str, planner: PlannerStore = Depends(require_planner)) -> PydanticClassRoom:
    try:
        return _to_pydantic_classroom(planner.get_class(class_id))
    except PlannerError as e:
        raise _http_error(e)


@app.post("/classes/{class_id}/students", response_model=PydanticStudent, status_code=201)
async def add_student(
    class_id: str,
    request: AddStudentRequest,
    planner: PlannerStore = Depends(require_planner),
) -> PydanticStudent:
    """Add a student to a class."""
    try:
        student = planner.add_student(class_id, request.name)
    except PlannerError as e:
        raise _http_error(e)
    return PydanticStudent(**student.to_dict())


@app.post("/classes/{class_id}/students/{student_id}/statuses", response_model=PydanticStudent)
async def toggle_status(
    class_id: str,
    student_id: str,
    request: ToggleStatusRequest,
    planner: PlannerStore = Depends(require_planner),
) -> PydanticStudent:
    """Toggle a status tag on a student."""
    try:
        student = planner.toggle_status(class_id, student_id, request.status_key)
    except PlannerError as e:
        raise _http_error(e)
    return PydanticStudent(**student.to_dict())


@app.put("/classes/{class_id}/students/{student_id}/attendance", response_model=AttendanceResponse)
async def set_attendance(
    class_id: str,
    student_id: str,
    request: SetAttendanceRequest,
    planner: PlannerStore = Depends(require_planner),
) -> AttendanceResponse:
    """Set, overwrite or clear a student's attendance for a date."""
    try:
        day = parse_iso_date(request.date).isoformat()
        status = request.status
        if request.toggle:
            status = next_attendance(planner.get_attendance(class_id, student_id, day), status)
        stored = planner.set_attendance(class_id, student_id, day, status)
    except PlannerError as e:
        raise _http_error(e)
    return AttendanceResponse(date=day, student_id=student_id, status=stored)


@app.get("/classes/{class_id}/attendance", response_model=dict[str, str])
async def get_attendance(
    class_id: str,
    date: str,
    planner: PlannerStore = Depends(require_planner),
) -> dict[str, str]:
    """Attendance for every student of a class on a date ("" when unset)."""
    try:
        classroom = planner.get_class(class_id)
        return {
            student.id: planner.get_attendance(class_id, student.id, date)
            for student in classroom.students
        }
    except PlannerError as e:
        raise _http_error(e)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=PLANNER_SERVICE_HOST, port=PLANNER_SERVICE_PORT)
