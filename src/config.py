"""Runtime configuration for the storefront media backend.

Values come from environment variables so the same build runs against a real
Supabase project or fully offline (``SUPABASE_DISABLED=1``).
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

MB = 1024 * 1024


@dataclass(frozen=True)
class RenditionTier:
    name: str
    max_edge: int
    quality: float


@dataclass(frozen=True)
class ImageConfig:
    max_files: int = 5
    max_file_size: int = 10 * MB
    accepted_types: tuple[str, ...] = (
        "image/jpeg",
        "image/png",
        "image/webp",
        "image/heic",
        "image/heif",
    )
    accepted_extensions: tuple[str, ...] = (".jpg", ".jpeg", ".png", ".webp", ".heic", ".heif")
    thumbnail: RenditionTier = RenditionTier("thumbnail", 200, 0.7)
    preview: RenditionTier = RenditionTier("preview", 800, 0.8)
    full: RenditionTier = RenditionTier("full", 1200, 0.85)
    compression_quality: float = 0.85
    filename_max_length: int = 50
    # Editor viewport, display-only downscale
    editor_max_width: int = 600
    editor_max_height: int = 400

    @property
    def tiers(self) -> tuple[RenditionTier, RenditionTier, RenditionTier]:
        return (self.thumbnail, self.preview, self.full)


@dataclass(frozen=True)
class GridConfig:
    auto_save_delay_ms: int = 2000
    highlight_duration_ms: int = 3000
    max_undo_history: int = 50
    default_columns: tuple[str, ...] = ("name", "stock", "price")


@dataclass
class Settings:
    env: str = field(default_factory=lambda: os.getenv("ENV", "development"))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    supabase_disabled: bool = field(
        default_factory=lambda: os.getenv("SUPABASE_DISABLED", "0") == "1"
    )
    supabase_url: str | None = field(default_factory=lambda: os.getenv("SUPABASE_URL"))
    supabase_key: str | None = field(default_factory=lambda: os.getenv("SUPABASE_ANON_KEY"))
    storage_bucket: str = field(
        default_factory=lambda: os.getenv("SUPABASE_STORAGE_BUCKET", "listing-images")
    )
    local_storage_dir: Path = field(
        default_factory=lambda: Path(os.getenv("SUPABASE_STORAGE_LOCAL_DIR", ".local_storage"))
    )
    image: ImageConfig = field(
        default_factory=lambda: ImageConfig(
            max_files=int(os.getenv("UPLOAD_MAX_FILES", "5")),
            max_file_size=int(os.getenv("UPLOAD_MAX_FILE_SIZE", str(10 * MB))),
        )
    )
    grid: GridConfig = field(default_factory=GridConfig)

    @property
    def offline(self) -> bool:
        return self.supabase_disabled or not self.supabase_url or not self.supabase_key


def configure_logging(level: str | int = "INFO") -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("src").setLevel(level)
