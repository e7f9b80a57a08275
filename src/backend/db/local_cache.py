"""
Device-local cache slots for demo sessions.

A slot holds one serialized value (the whole issue collection as JSON) and is
read and written wholesale. Nothing here is synchronized across processes.
"""

import logging
import re
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)

_UNSAFE_SLOT_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


@runtime_checkable
class LocalCache(Protocol):
    """A set of named slots holding serialized payloads."""

    def read(self, slot: str) -> str | None: ...
    def write(self, slot: str, payload: str) -> None: ...
    def delete(self, slot: str) -> None: ...


class MemoryLocalCache:
    """Slots kept in process memory; lost on restart."""

    def __init__(self) -> None:
        self._slots: dict[str, str] = {}

    def read(self, slot: str) -> str | None:
        return self._slots.get(slot)

    def write(self, slot: str, payload: str) -> None:
        self._slots[slot] = payload

    def delete(self, slot: str) -> None:
        self._slots.pop(slot, None)


class FileLocalCache:
    """One JSON file per slot under a cache directory."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory).expanduser()
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, slot: str) -> Path:
        return self.directory / f"{_UNSAFE_SLOT_CHARS.sub('_', slot)}.json"

    def read(self, slot: str) -> str | None:
        path = self._path(slot)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def write(self, slot: str, payload: str) -> None:
        path = self._path(slot)
        # write-then-rename
        tmp = path.with_suffix(".tmp")
        tmp.write_text(payload, encoding="utf-8")
        tmp.replace(path)
        logger.debug(f"Wrote local cache slot {slot} ({len(payload)} bytes)")

    def delete(self, slot: str) -> None:
        self._path(slot).unlink(missing_ok=True)
