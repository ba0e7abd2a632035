# -*- coding: utf-8 -*-
"""
Key-value persistence backends.

The planner only needs what browser local storage offers: string values
stored under string keys. ``JsonFileStorage`` keeps every key in a single
JSON object on disk; ``MemoryStorage`` is the in-process variant.
"""
from __future__ import annotations

import json
import os
import typing as t

from planner_server.errors import StorageReadError, StorageWriteError


class KeyValueStorage(t.Protocol):
    def get_item(self, key: str) -> t.Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    """Dictionary-backed storage."""

    def __init__(self, items: t.Optional[dict[str, str]] = None) -> None:
        self.items: dict[str, str] = dict(items or {})

    def get_item(self, key: str) -> t.Optional[str]:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value

    def remove_item(self, key: str) -> None:
        self.items.pop(key, None)


class JsonFileStorage:
    """Storage kept in one JSON object file, mapping keys to string values.

    The file and its folder are created on the first write. Every write
    rewrites the whole file.
    """

    def __init__(self, filepath: str) -> None:
        self.filepath = filepath

    def _load(self) -> dict[str, str]:
        if not os.path.exists(self.filepath):
            return {}
        try:
            with open(self.filepath, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise StorageReadError(f"Failed to read {self.filepath}: {e}") from e
        if not isinstance(data, dict):
            raise StorageReadError(f"Storage file {self.filepath} does not hold an object")
        return data

    def _save(self, data: dict[str, str]) -> None:
        try:
            folder = os.path.dirname(self.filepath)
            if folder and not os.path.exists(folder):
                os.makedirs(folder)

            with open(self.filepath, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=4)
        except OSError as e:
            raise StorageWriteError(f"Failed to write {self.filepath}: {e}") from e

    def get_item(self, key: str) -> t.Optional[str]:
        value = self._load().get(key)
        return None if value is None else str(value)

    def set_item(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove_item(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)
