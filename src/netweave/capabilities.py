"""Capabilities injected into the engine by its host: file objects and reading, MIME lookup, key-value storage."""
from __future__ import annotations

import asyncio
import json
import mimetypes

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Protocol, runtime_checkable


# ===================================================================
# Protocols
# ===================================================================

@runtime_checkable
class FileLike(Protocol):
    name: str
    size: int
    type: str | None


class FileReader(Protocol):
    async def read_text(self, file_obj: FileLike, encoding: str) -> str: ...


class MimeLookup(Protocol):
    def lookup(self, name: str) -> str | None: ...
    def extension(self, mime_type: str | None) -> str | None: ...
    def charset(self, mime_type: str | None) -> str | None: ...


class KeyValueStore(Protocol):
    def get_item(self, key: str) -> str | None: ...
    def set_item(self, key: str, value: str) -> None: ...


# ===================================================================
# Defaults
# ===================================================================

@dataclass
class LocalFile:
    """A file on disk described the way the engine expects file objects."""

    path: Path
    type: str | None = None

    def __post_init__(self) -> None:
        self.path = Path(self.path)
        if self.type is None:
            self.type = mimetypes.guess_type(self.path.name)[0]

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def size(self) -> int:
        return self.path.stat().st_size


class LocalFileReader:
    async def read_text(self, file_obj: FileLike, encoding: str) -> str:
        path = getattr(file_obj, "path", None)
        if path is None:
            raise TypeError(f"{type(file_obj).__name__} has no path to read from")
        return await asyncio.to_thread(Path(path).read_text, encoding=encoding)


# extensions the stdlib table lacks or maps differently
_EXTRA_TYPES = {
    "text/csv": "csv",
    "text/tab-separated-values": "tsv",
    "application/json": "json",
    "application/topojson": "topojson",
    "text/plain": "txt",
}


class StdlibMimeLookup:
    def lookup(self, name: str) -> str | None:
        return mimetypes.guess_type(name)[0]

    def extension(self, mime_type: str | None) -> str | None:
        if not mime_type:
            return None
        mime_type = mime_type.split(";")[0].strip().lower()
        if mime_type in _EXTRA_TYPES:
            return _EXTRA_TYPES[mime_type]
        guessed = mimetypes.guess_extension(mime_type)
        return guessed.lstrip(".") if guessed else None

    def charset(self, mime_type: str | None) -> str | None:
        if not mime_type:
            return None
        for parameter in mime_type.split(";")[1:]:
            key, _, value = parameter.partition("=")
            if key.strip().lower() == "charset" and value.strip():
                return value.strip().strip('"')
        base = mime_type.split(";")[0].strip().lower()
        if base.startswith("text/") or base in ("application/json", "application/javascript"):
            return "utf-8"
        return None


@dataclass
class InMemoryKeyValueStore:
    items: Dict[str, str] = field(default_factory=dict)

    def get_item(self, key: str) -> str | None:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value


@dataclass
class JsonFileKeyValueStore:
    """Keeps every key in one JSON document on disk."""

    path: Path

    def _load(self) -> Dict[str, str]:
        path = Path(self.path)
        if not path.exists():
            return {}
        return json.loads(path.read_text(encoding="utf-8"))

    def get_item(self, key: str) -> str | None:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._load()
        items[key] = value
        Path(self.path).write_text(json.dumps(items), encoding="utf-8")
