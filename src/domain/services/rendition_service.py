from __future__ import annotations

import numpy as np

from src.config import ImageConfig, RenditionTier
from src.domain.entities.image import Renditions
from src.domain.errors import ConversionError
from src.domain.services.processing_service import ProcessingService


class RenditionService:
    """Produces thumbnail/preview/full JPEG renditions from one source image."""

    def __init__(
        self, processing: ProcessingService | None = None, config: ImageConfig | None = None
    ) -> None:
        self.processing = processing or ProcessingService()
        self.config = config or ImageConfig()

    def generate(self, blob: bytes) -> Renditions:
        """Decode once, then encode every tier. Either all three succeed or ConversionError."""
        src = self.processing.decode(blob, keep_alpha=True)
        src = self.processing.flatten_alpha(src)
        return self.generate_from_matrix(src)

    def generate_from_matrix(self, src: np.ndarray) -> Renditions:
        cfg = self.config
        return Renditions(
            thumbnail=self.render(src, cfg.thumbnail),
            preview=self.render(src, cfg.preview),
            full=self.render(src, cfg.full),
        )

    def render(self, src: np.ndarray, tier: RenditionTier) -> bytes:
        h, w = src.shape[:2]
        try:
            size = self.processing.fit_within(w, h, tier.max_edge)
        except ValueError as exc:
            raise ConversionError("Failed to load image") from exc
        resized = self.processing.resize(src, size)
        return self.processing.encode_jpeg(resized, tier.quality)
