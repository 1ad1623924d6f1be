from __future__ import annotations

import base64
import os
from dataclasses import dataclass


@dataclass(frozen=True)
class SourceFile:
    """Raw bytes of one user-supplied file with its declared type and name."""

    data: bytes
    media_type: str
    filename: str

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        return os.path.splitext(self.filename or "")[1].lower()


@dataclass(frozen=True)
class Renditions:
    thumbnail: bytes
    preview: bytes
    full: bytes


@dataclass(frozen=True)
class ImageAsset:
    id: str
    original_name: str
    sanitized_name: str
    renditions: Renditions
    preview_data_uri: str
    thumbnail_data_uri: str
    size_bytes: int
    created_at_ms: int
    original_file: SourceFile | None = None  # None for hydrated assets
    edited: bool = False


@dataclass(frozen=True)
class SessionImage:
    """Read-only projection of an asset handed to forms and collaborators."""

    blob: bytes
    data_uri: str
    name: str
    original_name: str
    thumbnail: bytes
    thumbnail_uri: str


def to_data_uri(data: bytes, media_type: str = "image/jpeg") -> str:
    return f"data:{media_type};base64,{base64.b64encode(data).decode('ascii')}"
