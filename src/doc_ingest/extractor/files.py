"""Uploaded-file abstractions consumed by the extraction pipeline.

The pipeline only needs a name, a declared media type, a size, and the raw
bytes (or their UTF-8 decoding).  ``InMemoryFile`` wraps an upload already
held in memory; ``LocalFile`` wraps a path on disk and guesses the media
type from the extension, the way a browser would when it has nothing better.
"""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

GENERIC_MEDIA_TYPE = "application/octet-stream"


@runtime_checkable
class UploadedFile(Protocol):
    """Minimal file interface the extractors depend on."""

    @property
    def name(self) -> str: ...

    @property
    def media_type(self) -> str: ...

    @property
    def size(self) -> int: ...

    def read_bytes(self) -> bytes: ...

    def read_text(self) -> str: ...


@dataclass(frozen=True)
class InMemoryFile:
    """An upload whose content is already in memory."""

    name: str
    data: bytes
    media_type: str = GENERIC_MEDIA_TYPE

    @property
    def size(self) -> int:
        return len(self.data)

    def read_bytes(self) -> bytes:
        return self.data

    def read_text(self) -> str:
        return self.data.decode("utf-8")


@dataclass(frozen=True)
class LocalFile:
    """A file on disk, read lazily on each call."""

    path: Path
    media_type: str = GENERIC_MEDIA_TYPE

    @classmethod
    def from_path(cls, path: str | Path, media_type: str | None = None) -> LocalFile:
        """Wrap *path*, guessing the media type from its extension if not given."""
        path = Path(path)
        if media_type is None:
            guessed, _ = mimetypes.guess_type(path.name)
            media_type = guessed or GENERIC_MEDIA_TYPE
        return cls(path=path, media_type=media_type)

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def size(self) -> int:
        return self.path.stat().st_size

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()

    def read_text(self) -> str:
        return self.path.read_text(encoding="utf-8")
