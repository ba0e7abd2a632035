# -*- coding: utf-8 -*-
"""Tests for the key-value storage backends."""
import json
from pathlib import Path

import pytest

from planner_server.errors import StorageReadError
from planner_server.storage import JsonFileStorage, MemoryStorage
from planner_server.store import LOAD_FAILED_MESSAGE, PlannerStore


def test_memory_storage_round_trip() -> None:
    storage = MemoryStorage()
    assert storage.get_item("k") is None

    storage.set_item("k", "v")
    assert storage.get_item("k") == "v"

    storage.remove_item("k")
    storage.remove_item("k")
    assert storage.get_item("k") is None


def test_json_file_storage_creates_folders_on_write(tmp_path: Path) -> None:
    """Test that the file and its folder appear on the first write."""
    path = tmp_path / "nested" / "planner.json"
    storage = JsonFileStorage(str(path))
    assert storage.get_item("teacherPlannerClasses") is None
    assert not path.exists()

    storage.set_item("teacherPlannerClasses", "[]")
    storage.set_item("emailForSignIn", "teacher@example.org")

    assert json.loads(path.read_text(encoding="utf-8")) == {
        "teacherPlannerClasses": "[]",
        "emailForSignIn": "teacher@example.org",
    }


def test_json_file_storage_remove_item(tmp_path: Path) -> None:
    storage = JsonFileStorage(str(tmp_path / "planner.json"))
    storage.set_item("a", "1")
    storage.set_item("b", "2")

    storage.remove_item("a")

    assert storage.get_item("a") is None
    assert storage.get_item("b") == "2"


@pytest.mark.parametrize("content", ["{oops", "[1, 2, 3]"])
def test_json_file_storage_unreadable_file(tmp_path: Path, content: str) -> None:
    path = tmp_path / "planner.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(StorageReadError):
        JsonFileStorage(str(path)).get_item("teacherPlannerClasses")


def test_store_survives_corrupt_storage_file(tmp_path: Path) -> None:
    """Test that a corrupt file is reported as a load failure, not a crash."""
    path = tmp_path / "planner.json"
    path.write_text("{oops", encoding="utf-8")
    planner = PlannerStore(JsonFileStorage(str(path)))

    assert planner.hydrate() is False
    assert planner.error == LOAD_FAILED_MESSAGE
    assert planner.classes == ()


def test_store_reloads_from_file(tmp_path: Path) -> None:
    """Test that a second process sees what the first one saved."""
    path = str(tmp_path / "planner.json")
    first = PlannerStore(JsonFileStorage(path))
    first.hydrate()
    classroom = first.add_class("Math P1", "7", "even")
    first.add_student(classroom.id, "Alice")

    second = PlannerStore(JsonFileStorage(path))
    assert second.hydrate() is True
    assert second.classes == first.classes
