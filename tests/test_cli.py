"""Tests for the planner command line."""
import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from auth_server import gate as gate_module
from auth_server.gate import AUTH_USER_KEY, EMAIL_FOR_SIGN_IN_KEY
from planner_cli import run
from planner_cli.run import main
from planner_server.config import PLANNER_AUTHORIZED_EMAIL
from planner_server.errors import StorageWriteError


@pytest.fixture
def storage_file(tmp_path: Path) -> Path:
    return tmp_path / "planner.json"


@pytest.fixture
def signed_in_file(storage_file: Path) -> Path:
    """A storage file that already holds a session for the authorized email."""
    session = {"email": PLANNER_AUTHORIZED_EMAIL, "signed_in_at": "2024-03-01T08:00:00+00:00", "method": "password"}
    storage_file.write_text(json.dumps({AUTH_USER_KEY: json.dumps(session)}), encoding="utf-8")
    return storage_file


def invoke(storage_file: Path, *args: str):
    return CliRunner().invoke(main, ["--storage", str(storage_file), *args])


def saved_classes(storage_file: Path) -> list:
    items = json.loads(storage_file.read_text(encoding="utf-8"))
    return json.loads(items["teacherPlannerClasses"])


def test_planner_commands_require_sign_in(storage_file: Path) -> None:
    result = invoke(storage_file, "add-class", "Math P1", "--grade", "7", "--schedule", "even")

    assert result.exit_code == 1
    assert "Not signed in" in result.output
    assert not storage_file.exists()


def test_login_with_email_link(storage_file: Path, monkeypatch) -> None:
    """Test sending a link and completing sign-in with it."""
    sent = []
    monkeypatch.setattr(gate_module, "log_sign_in_link", lambda email, link: sent.append(link))

    result = invoke(storage_file, "login", PLANNER_AUTHORIZED_EMAIL)
    assert result.exit_code == 0

    items = json.loads(storage_file.read_text(encoding="utf-8"))
    assert items[EMAIL_FOR_SIGN_IN_KEY] == PLANNER_AUTHORIZED_EMAIL

    result = invoke(storage_file, "complete-login", sent[0])
    assert result.exit_code == 0

    result = invoke(storage_file, "whoami")
    assert PLANNER_AUTHORIZED_EMAIL in result.output

    # the link is spent
    invoke(storage_file, "logout")
    assert invoke(storage_file, "complete-login", sent[0]).exit_code == 1
    assert "Not signed in" in invoke(storage_file, "whoami").output


def test_login_rejects_other_email(storage_file: Path) -> None:
    result = invoke(storage_file, "login", "someone@else.org")

    assert result.exit_code == 1
    assert "Sorry" in result.output


def test_complete_login_rejects_non_link(storage_file: Path) -> None:
    result = invoke(storage_file, "complete-login", "https://example.org/")
    assert result.exit_code == 1


def test_class_workflow(signed_in_file: Path) -> None:
    """Test adding a class and student, then tagging and taking attendance."""
    result = invoke(signed_in_file, "add-class", "Math P1", "--grade", "7", "--schedule", "even")
    assert result.exit_code == 0
    assert "Class added successfully!" in result.output
    class_id = saved_classes(signed_in_file)[0]["id"]

    result = invoke(signed_in_file, "add-student", class_id, "Alice")
    assert result.exit_code == 0
    student_id = saved_classes(signed_in_file)[0]["students"][0]["id"]

    result = invoke(signed_in_file, "toggle-status", class_id, student_id, "exceptional_effort")
    assert result.exit_code == 0
    assert saved_classes(signed_in_file)[0]["students"][0]["statuses"] == ["exceptional_effort"]

    invoke(signed_in_file, "attendance", class_id, student_id, "present", "--date", "2024-03-01")
    assert saved_classes(signed_in_file)[0]["attendance"] == {"2024-03-01": {student_id: "present"}}

    # same button again clears it
    invoke(signed_in_file, "attendance", class_id, student_id, "present", "--date", "2024-03-01")
    assert saved_classes(signed_in_file)[0]["attendance"] == {"2024-03-01": {student_id: ""}}

    result = invoke(signed_in_file, "show", "--date", "2024-03-01")
    assert result.exit_code == 0
    assert "Alice" in result.output


def test_unknown_class_fails_cleanly(signed_in_file: Path) -> None:
    result = invoke(signed_in_file, "add-student", "missing", "Alice")

    assert result.exit_code == 1
    assert "missing" in result.output


def test_unknown_status_key_fails(signed_in_file: Path) -> None:
    invoke(signed_in_file, "add-class", "Math P1", "--grade", "7", "--schedule", "even")
    class_id = saved_classes(signed_in_file)[0]["id"]
    invoke(signed_in_file, "add-student", class_id, "Alice")
    student_id = saved_classes(signed_in_file)[0]["students"][0]["id"]

    result = invoke(signed_in_file, "toggle-status", class_id, student_id, "gold_star")

    assert result.exit_code == 1
    assert saved_classes(signed_in_file)[0]["students"][0]["statuses"] == []


def test_logout(signed_in_file: Path) -> None:
    assert invoke(signed_in_file, "logout").exit_code == 0
    assert "Not signed in" in invoke(signed_in_file, "whoami").output


def test_catalog_needs_no_sign_in(storage_file: Path) -> None:
    result = invoke(storage_file, "catalog")

    assert result.exit_code == 0
    assert "office_referral" in result.output


def test_calendar_is_built_and_saved(signed_in_file: Path) -> None:
    invoke(signed_in_file, "add-class", "Math P1", "--grade", "7", "--schedule", "odd")

    result = invoke(signed_in_file, "calendar", "--start", "2024-03-04", "--months", "1")

    assert result.exit_code == 0
    assert "ODD" in result.output
    items = json.loads(signed_in_file.read_text(encoding="utf-8"))
    assert json.loads(items["teacherPlannerCalendar"])["2024-03-04"]["type"] == "odd"


class ClassesWriteFails(run.JsonFileStorage):
    """File storage whose writes of the planner collection fail."""

    def set_item(self, key: str, value: str) -> None:
        if key == "teacherPlannerClasses":
            raise StorageWriteError("disk full")
        super().set_item(key, value)


def test_failed_save_is_reported(signed_in_file: Path, monkeypatch) -> None:
    """Test that a change which could not be written exits with an error."""
    monkeypatch.setattr(run, "JsonFileStorage", ClassesWriteFails)

    result = invoke(signed_in_file, "add-class", "Math P1", "--grade", "7", "--schedule", "even")

    assert result.exit_code == 1
    assert "Failed to save data" in result.output
    assert "✅" not in result.output
