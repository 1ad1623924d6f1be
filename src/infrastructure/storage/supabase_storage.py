from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from src.config import Settings
from src.domain.errors import PersistenceError

try:
    from supabase import Client
except Exception:  # pragma: no cover
    Client = object  # type: ignore

logger = logging.getLogger(__name__)


@dataclass
class StorageResult:
    path: str
    content_type: str
    size: int


class SupabaseStorage:
    """Object storage adapter for Supabase Storage with a local directory fallback."""

    def __init__(self, client: Client | None, settings: Settings) -> None:
        self.client = client
        self.bucket = settings.storage_bucket
        self.disabled = settings.supabase_disabled or client is None
        self.local_dir = Path(settings.local_storage_dir)
        if self.disabled:
            self.local_dir.mkdir(parents=True, exist_ok=True)

    def upload_bytes(
        self, path: str, data: bytes, content_type: str = "image/jpeg", upsert: bool = False
    ) -> StorageResult:
        if self.disabled:
            # local fake storage
            full_path = self.local_dir / path
            full_path.parent.mkdir(parents=True, exist_ok=True)
            full_path.write_bytes(data)
            return StorageResult(path=path, content_type=content_type, size=len(data))
        try:  # pragma: no cover - network
            self.client.storage.from_(self.bucket).upload(  # type: ignore[attr-defined]
                path=path,
                file=data,
                file_options={"content-type": content_type, "upsert": str(upsert).lower()},
            )
        except Exception as exc:  # pragma: no cover
            raise PersistenceError(f"Storage upload failed: {exc}") from exc
        return StorageResult(path=path, content_type=content_type, size=len(data))

    def download_bytes(self, path: str) -> bytes:
        if self.disabled:
            full_path = self.local_dir / path
            if not full_path.exists():
                raise PersistenceError(f"Storage object not found: {path}", code="not-found")
            return full_path.read_bytes()
        try:  # pragma: no cover - network
            return self.client.storage.from_(self.bucket).download(path)  # type: ignore[attr-defined]
        except Exception as exc:  # pragma: no cover
            raise PersistenceError(f"Storage download failed: {exc}") from exc

    def delete(self, path: str) -> None:
        if self.disabled:
            full_path = self.local_dir / path
            if full_path.exists():
                full_path.unlink()
            return
        try:  # pragma: no cover - network
            self.client.storage.from_(self.bucket).remove([path])  # type: ignore[attr-defined]
        except Exception as exc:
            raise PersistenceError(f"Storage delete failed: {exc}") from exc

    def get_public_url(self, path: str) -> str:
        if self.disabled:
            return f"/local-storage/{path}"
        try:  # pragma: no cover - network
            return self.client.storage.from_(self.bucket).get_public_url(path)  # type: ignore[attr-defined]
        except Exception:
            logger.warning("Could not resolve public URL for %s", path)
            return ""
