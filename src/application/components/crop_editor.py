from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import TYPE_CHECKING

import numpy as np

from src.config import ImageConfig
from src.domain.entities.image import ImageAsset, to_data_uri
from src.domain.errors import EditorStateError, ValidationError
from src.domain.services.processing_service import ProcessingService
from src.domain.services.rendition_service import RenditionService

if TYPE_CHECKING:
    from src.application.components.upload_session import UploadSession

logger = logging.getLogger(__name__)


class CropRotateEditor:
    """Rotate/crop tool working on one session image at a time.

    The canvas is the asset's preview rendition fitted to the editor viewport, so a
    committed edit has the resolution of that canvas rather than of the full rendition.
    """

    def __init__(
        self,
        session: UploadSession,
        renditions: RenditionService,
        config: ImageConfig | None = None,
        processing: ProcessingService | None = None,
    ) -> None:
        self.session = session
        self.renditions = renditions
        self.config = config or ImageConfig()
        self.processing = processing or renditions.processing
        self.asset_id: str | None = None
        self.rotation = 0
        self._canvas: np.ndarray | None = None
        self._original: np.ndarray | None = None

    @property
    def is_open(self) -> bool:
        return self.asset_id is not None

    @property
    def size(self) -> tuple[int, int]:
        """Canvas (width, height)."""
        canvas = self._require_open()
        h, w = canvas.shape[:2]
        return w, h

    @property
    def canvas(self) -> np.ndarray:
        return self._require_open().copy()

    async def open(self, index: int) -> None:
        asset = self.session.asset_at(index)
        canvas = await asyncio.to_thread(self._load_canvas, asset)
        self.asset_id = asset.id
        self.rotation = 0
        self._canvas = canvas
        self._original = canvas.copy()

    def _load_canvas(self, asset: ImageAsset) -> np.ndarray:
        src = self.processing.decode(asset.renditions.preview)
        h, w = src.shape[:2]
        target = self.processing.fit_to_box(
            w, h, self.config.editor_max_width, self.config.editor_max_height
        )
        return self.processing.resize(src, target)

    def rotate_left(self) -> None:
        canvas = self._require_open()
        self._canvas = self.processing.rotate_quarter(canvas, 1)
        self.rotation = (self.rotation - 90) % 360

    def rotate_right(self) -> None:
        canvas = self._require_open()
        self._canvas = self.processing.rotate_quarter(canvas, -1)
        self.rotation = (self.rotation + 90) % 360

    def crop(self, x: int, y: int, width: int, height: int) -> None:
        canvas = self._require_open()
        h, w = canvas.shape[:2]
        if width <= 0 or height <= 0 or x < 0 or y < 0 or x + width > w or y + height > h:
            raise ValidationError(
                f"Crop area {width}x{height}+{x}+{y} is outside the {w}x{h} image"
            )
        self._canvas = self.processing.crop(canvas, x, x + width, y, y + height)

    def reset(self) -> None:
        self._require_open()
        self._canvas = self._original.copy()
        self.rotation = 0

    async def commit(self) -> ImageAsset | None:
        """Regenerate every rendition from the canvas and swap the asset in place."""
        canvas = self._require_open()
        asset_id = self.asset_id
        try:
            edited = await asyncio.to_thread(self._render, canvas)
        except Exception as exc:
            self.session.report_error(exc, "editor:commit")
            return None

        index = self.session.index_of(asset_id)
        if index is None:
            self.close()
            self.session.report_error(
                ValidationError("The image was removed before the edit was saved"), "editor:commit"
            )
            return None

        updated = dataclasses.replace(self.session.asset_at(index), **edited)
        self.close()
        self.session.replace_asset(asset_id, updated)
        logger.info("Committed edit for %s at position %d", asset_id, index)
        return updated

    def _render(self, canvas: np.ndarray) -> dict:
        blob = self.processing.encode_jpeg(canvas, self.config.compression_quality)
        sizes = self.renditions.generate(blob)
        return {
            "renditions": sizes,
            "preview_data_uri": to_data_uri(sizes.preview),
            "thumbnail_data_uri": to_data_uri(sizes.thumbnail),
            "size_bytes": len(sizes.full),
            "edited": True,
        }

    def cancel(self) -> None:
        self.close()

    def close(self) -> None:
        self.asset_id = None
        self.rotation = 0
        self._canvas = None
        self._original = None

    def _require_open(self) -> np.ndarray:
        if self._canvas is None:
            raise EditorStateError("Image editor is not open")
        return self._canvas
