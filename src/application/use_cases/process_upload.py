from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Callable

from src.config import ImageConfig
from src.domain.entities.image import ImageAsset, SourceFile, to_data_uri
from src.domain.errors import ValidationError
from src.domain.services.filename_service import sanitize_filename
from src.domain.services.format_converter import FormatConverter, detect_kind
from src.domain.services.rendition_service import RenditionService


def _now_ms() -> int:
    return int(time.time() * 1000)


def new_asset_id() -> str:
    return f"img_{uuid.uuid4().hex[:16]}"


@dataclass
class ProcessUploadUseCase:
    converter: FormatConverter
    renditions: RenditionService
    config: ImageConfig = field(default_factory=ImageConfig)
    clock: Callable[[], int] = _now_ms

    def validate(self, file: SourceFile) -> None:
        if file.size > self.config.max_file_size:
            limit_mb = self.config.max_file_size // (1024 * 1024)
            raise ValidationError(
                f"{file.filename} is too large (max {limit_mb}MB)", code="file-too-large"
            )
        media_type = (file.media_type or "").lower()
        type_ok = any(t.split("/")[-1] in media_type for t in self.config.accepted_types)
        # Some pickers report "image/jpg" or an empty type for HEIC
        type_ok = type_ok or "image/jpg" in media_type
        if not type_ok and file.extension not in self.config.accepted_extensions:
            raise ValidationError(
                f"{file.filename} is not a supported image format", code="unsupported-format"
            )

    def execute(self, file: SourceFile) -> ImageAsset:
        """
        Turn one user file into a fully-formed asset.

        validate -> convert (HEIC/WebP only) -> renditions -> sanitized name.
        Nothing is returned unless every step succeeded.
        """
        self.validate(file)

        blob = file.data
        kind = detect_kind(file)
        if kind is not None:
            blob = self.converter.to_jpeg(file, kind)

        sizes = self.renditions.generate(blob)
        return ImageAsset(
            id=new_asset_id(),
            original_file=file,
            original_name=file.filename,
            sanitized_name=sanitize_filename(
                file.filename, clock=self.clock, max_length=self.config.filename_max_length
            ),
            renditions=sizes,
            preview_data_uri=to_data_uri(sizes.preview),
            thumbnail_data_uri=to_data_uri(sizes.thumbnail),
            size_bytes=len(sizes.full),
            created_at_ms=self.clock(),
        )
