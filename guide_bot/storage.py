from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Callable, Generic, TypeVar

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class StorageError(RuntimeError):
    """Raised when a JSON store cannot be read or written."""


class JsonFileStore(Generic[T]):
    """A single JSON document on disk.

    A missing or empty file reads as ``default``.  Writes go to a temporary
    sibling first and replace the target, so a crash mid-write leaves the
    previous document in place.  ``update`` serialises read-modify-write
    cycles issued through the same store instance.
    """

    def __init__(self, path: Path, default: Callable[[], T]) -> None:
        self.path = Path(path)
        self._default = default
        self._lock = asyncio.Lock()

    def _read_sync(self) -> T:
        try:
            content = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return self._default()
        except OSError as exc:
            LOGGER.error("Failed to read storage %s: %s", self.path, exc)
            raise StorageError(f"Unable to read {self.path}") from exc

        if not content.strip():
            return self._default()

        try:
            data = json.loads(content)
        except json.JSONDecodeError as exc:
            LOGGER.error("Storage %s contains invalid JSON: %s", self.path, exc)
            raise StorageError(f"Invalid JSON in {self.path}") from exc

        fallback = self._default()
        if fallback is not None and not isinstance(data, type(fallback)):
            LOGGER.warning(
                "Storage %s holds %s instead of %s; treating it as empty.",
                self.path,
                type(data).__name__,
                type(fallback).__name__,
            )
            return fallback
        return data

    def _write_sync(self, value: T) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as handle:
                json.dump(value, handle, ensure_ascii=False, indent=2)
            tmp_path.replace(self.path)
        except (OSError, TypeError, ValueError) as exc:
            LOGGER.error("Failed to write storage %s: %s", self.path, exc)
            raise StorageError(f"Unable to write {self.path}") from exc

    async def read(self) -> T:
        return await asyncio.to_thread(self._read_sync)

    async def write(self, value: T) -> None:
        async with self._lock:
            await asyncio.to_thread(self._write_sync, value)

    async def update(self, mutator: Callable[[T], R]) -> R:
        """Let ``mutator`` change the document in place, then persist it."""

        async with self._lock:
            data = await asyncio.to_thread(self._read_sync)
            result = mutator(data)
            await asyncio.to_thread(self._write_sync, data)
            return result


def list_store(path: Path) -> JsonFileStore[list[Any]]:
    return JsonFileStore(path, list)


def object_store(path: Path) -> JsonFileStore[Any]:
    return JsonFileStore(path, lambda: None)


__all__ = ["JsonFileStore", "StorageError", "list_store", "object_store"]
