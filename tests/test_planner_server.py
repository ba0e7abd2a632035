"""Tests for the planner MCP tool server."""
import typing as t

import pytest

from planner_server import server
from planner_server.store import PlannerStore


@pytest.fixture
def tools(store: PlannerStore) -> t.Iterator[None]:
    """Point the server's tools at the in-memory test store."""
    server.set_store(store)
    yield
    server.set_store(None)


async def get_tool_fn(name: str) -> t.Callable:
    """Return the plain function behind a registered tool."""
    registered = await server.mcp.get_tools()
    return registered[name].fn


@pytest.mark.asyncio
async def test_all_planner_tools_are_registered() -> None:
    """Test that every planner operation is exposed as a tool."""
    registered = await server.mcp.get_tools()

    assert {
        "add_class",
        "add_student",
        "toggle_status",
        "set_attendance",
        "mark_attendance",
        "list_classes",
        "list_status_catalog",
        "show_classes",
        "show_attendance",
    } <= set(registered)


@pytest.mark.asyncio
async def test_tools_drive_the_store(tools, store: PlannerStore) -> None:
    """Test the class example scenario through the tool functions."""
    add_class = await get_tool_fn("add_class")
    add_student = await get_tool_fn("add_student")
    toggle_status = await get_tool_fn("toggle_status")
    list_classes = await get_tool_fn("list_classes")

    classroom = add_class("Math P1", "7", "even")
    alice = add_student(classroom["id"], "Alice")
    toggled = toggle_status(classroom["id"], alice["id"], "exceptional_effort")

    assert toggled["statuses"] == ["exceptional_effort"]
    assert list_classes() == [c.to_dict() for c in store.classes]


@pytest.mark.asyncio
async def test_mark_attendance_resubmission_clears(tools, store: PlannerStore) -> None:
    """Test pressing the same attendance button twice clears the entry."""
    mark_attendance = await get_tool_fn("mark_attendance")
    classroom = store.add_class("Math P1", "7", "even")
    alice = store.add_student(classroom.id, "Alice")

    assert mark_attendance(classroom.id, alice.id, "present", "2024-03-01") == "present"
    assert mark_attendance(classroom.id, alice.id, "present", "2024-03-01") == ""
    assert store.get_attendance(classroom.id, alice.id, "2024-03-01") == ""

    assert mark_attendance(classroom.id, alice.id, "tardy", "2024-03-01") == "tardy"
    assert mark_attendance(classroom.id, alice.id, "absent", "2024-03-01") == "absent"


@pytest.mark.asyncio
async def test_status_catalog_tool() -> None:
    list_status_catalog = await get_tool_fn("list_status_catalog")
    groups = list_status_catalog()

    assert [g["key"] for g in groups] == ["performance", "discipline", "checkIns"]
    assert {"key": "office_referral", "label": "Office Referral", "icon": "📋"} in groups[1]["tags"]


def test_format_classes(store: PlannerStore) -> None:
    assert server.format_classes(()) == "🏫 No classes found."

    classroom = store.add_class("Math P1", "7", "even")
    alice = store.add_student(classroom.id, "Alice")
    store.toggle_status(classroom.id, alice.id, "exceptional_performance")
    text = server.format_classes(store.classes)

    assert "Math P1 (7th Grade, Even Days)" in text
    assert "Alice" in text
    assert "⭐" in text
    assert "Total: 1 class(es)" in text


def test_format_attendance(store: PlannerStore) -> None:
    classroom = store.add_class("Math P1", "7", "even")
    alice = store.add_student(classroom.id, "Alice")
    store.add_student(classroom.id, "Bob")
    store.set_attendance(classroom.id, alice.id, "2024-03-01", "tardy")

    text = server.format_attendance(store.classes, "2024-03-01")

    assert "ATTENDANCE 2024-03-01" in text
    assert "tardy" in text
    assert "—" in text
