from __future__ import annotations

import logging
from io import BytesIO
from typing import Literal

from PIL import Image

from src.domain.entities.image import SourceFile
from src.domain.errors import ConversionError
from src.domain.services.processing_service import ProcessingService

try:
    import pillow_heif
except Exception:  # pragma: no cover - env without pillow-heif installed
    pillow_heif = None  # type: ignore

logger = logging.getLogger(__name__)

SourceKind = Literal["heic", "webp"]

HEIC_EXTENSIONS = (".heic", ".heif")


def detect_kind(file: SourceFile) -> SourceKind | None:
    """Which conversion, if any, a source file needs before resizing."""
    media_type = (file.media_type or "").lower()
    if "heic" in media_type or "heif" in media_type or file.extension in HEIC_EXTENSIONS:
        return "heic"
    if "webp" in media_type or file.extension == ".webp":
        return "webp"
    return None


class FormatConverter:
    """Converts HEIC/HEIF and WebP sources to JPEG bytes."""

    def __init__(
        self,
        processing: ProcessingService | None = None,
        quality: float = 0.85,
        use_heif_decoder: bool = True,
    ) -> None:
        self.processing = processing or ProcessingService()
        self.quality = quality
        self.use_heif_decoder = use_heif_decoder and pillow_heif is not None

    def to_jpeg(self, file: SourceFile, kind: SourceKind) -> bytes:
        if kind == "heic":
            return self.heic_to_jpeg(file)
        if kind == "webp":
            return self.webp_to_jpeg(file)
        raise ValueError(f"Unsupported conversion: {kind}")

    def heic_to_jpeg(self, file: SourceFile) -> bytes:
        if self.use_heif_decoder:
            try:
                img = self._decode_heif(file.data)
                return self._encode(img)
            except Exception as exc:
                logger.warning("HEIC decoder failed for %s: %s", file.filename, exc)

        # Native fallback: only works where Pillow itself has a HEIF plugin registered
        try:
            img = self.processing.open_image(file.data)
        except ConversionError as exc:
            raise ConversionError(
                "HEIC format not supported - please use JPEG or PNG",
                code="heic-conversion",
            ) from exc
        try:
            return self._encode(img)
        except Exception as exc:
            raise ConversionError(
                "HEIC conversion failed - try JPEG/PNG instead",
                code="heic-conversion",
            ) from exc

    def webp_to_jpeg(self, file: SourceFile) -> bytes:
        try:
            img = self.processing.open_image(file.data)
            return self._encode(img)
        except Exception as exc:
            # WebP is usually displayable as-is, keep the original bytes
            logger.warning("WebP conversion failed for %s, keeping original: %s", file.filename, exc)
            return file.data

    # --------- helpers ---------
    @staticmethod
    def _decode_heif(data: bytes) -> Image.Image:
        with BytesIO(data) as bio:
            heif = pillow_heif.open_heif(bio, convert_hdr_to_8bit=True)
            return heif.to_pillow()

    def _encode(self, img: Image.Image) -> bytes:
        # JPEG has no alpha channel, transparent pixels become white
        matrix = self.processing.to_matrix(img, keep_alpha=True)
        return self.processing.encode_jpeg(self.processing.flatten_alpha(matrix), self.quality)
