from __future__ import annotations

from io import BytesIO

import numpy as np
from PIL import Image, ImageOps

from src.domain.errors import ConversionError


class ProcessingService:
    """Bitmap primitives for the upload pipeline. Bitmaps are float32 arrays normalized to [0, 1].

    Channel convention:
    - RGB: (H, W, 3)
    - RGBA: (H, W, 4), only between decode and flatten_alpha
    """

    # --------- codec ---------
    @staticmethod
    def open_image(data: bytes) -> Image.Image:
        """Decode bytes with Pillow, honoring EXIF orientation like a browser canvas does."""
        try:
            img = Image.open(BytesIO(data))
            img.load()
        except Exception as exc:
            raise ConversionError("Failed to load image") from exc
        return ImageOps.exif_transpose(img)

    @staticmethod
    def to_matrix(img: Image.Image, keep_alpha: bool = False) -> np.ndarray:
        has_alpha = img.mode in ("RGBA", "LA", "PA") or (
            img.mode == "P" and "transparency" in img.info
        )
        mode = "RGBA" if keep_alpha and has_alpha else "RGB"
        return np.asarray(img.convert(mode)).astype(np.float32) / 255.0

    @staticmethod
    def decode(data: bytes, keep_alpha: bool = False) -> np.ndarray:
        img = ProcessingService.open_image(data)
        return ProcessingService.to_matrix(img, keep_alpha=keep_alpha)

    @staticmethod
    def to_pil(matrix: np.ndarray) -> Image.Image:
        arr = np.clip(matrix, 0.0, 1.0).astype(np.float32)
        if arr.ndim == 2:
            return Image.fromarray(np.rint(arr * 255.0).astype("uint8"), mode="L")
        return Image.fromarray(np.rint(arr[..., :3] * 255.0).astype("uint8"), mode="RGB")

    @staticmethod
    def encode_jpeg(matrix: np.ndarray, quality: float) -> bytes:
        """Encode as JPEG; ``quality`` is on the canvas 0..1 scale."""
        img = ProcessingService.to_pil(matrix)
        if img.mode != "RGB":
            img = img.convert("RGB")
        buf = BytesIO()
        try:
            img.save(buf, format="JPEG", quality=int(round(quality * 100)))
        except Exception as exc:
            raise ConversionError("Failed to encode image") from exc
        return buf.getvalue()

    # --------- geometry ---------
    # Longer edge capped at max_edge. Sources already under the cap keep their size.
    @staticmethod
    def fit_within(width: int, height: int, max_edge: int) -> tuple[int, int]:
        if width <= 0 or height <= 0:
            raise ValueError("image dimensions must be > 0")
        longer = max(width, height)
        if longer <= max_edge:
            return width, height
        scale = max_edge / float(longer)
        return max(1, int(round(width * scale))), max(1, int(round(height * scale)))

    # Scale factor to fit inside a box without enlarging
    @staticmethod
    def fit_to_box(width: int, height: int, max_width: int, max_height: int) -> tuple[int, int]:
        scale = min(max_width / float(width), max_height / float(height), 1.0)
        return max(1, int(round(width * scale))), max(1, int(round(height * scale)))

    @staticmethod
    def resize(matrix: np.ndarray, target_wh: tuple[int, int]) -> np.ndarray:
        tw, th = target_wh
        h, w = matrix.shape[:2]
        if (w, h) == (tw, th):
            return matrix.astype(np.float32)
        img = ProcessingService.to_pil(matrix)
        out = img.resize((tw, th), Image.Resampling.LANCZOS)
        return np.asarray(out).astype(np.float32) / 255.0

    # Rotate by quarter turns. Positive turns are counterclockwise (rotate left).
    @staticmethod
    def rotate_quarter(matrix: np.ndarray, turns: int) -> np.ndarray:
        return np.ascontiguousarray(np.rot90(matrix.astype(np.float32), k=int(turns) % 4))

    # Crop region [y_start:y_end, x_start:x_end]
    @staticmethod
    def crop(matrix: np.ndarray, x_start: int, x_end: int, y_start: int, y_end: int) -> np.ndarray:
        return matrix.astype(np.float32)[y_start:y_end, x_start:x_end].copy()

    # Composite over an opaque background: out = a * rgb + (1 - a) * bg
    @staticmethod
    def flatten_alpha(matrix: np.ndarray, background: float = 1.0) -> np.ndarray:
        mat = matrix.astype(np.float32)
        if mat.ndim != 3 or mat.shape[2] < 4:
            return mat[..., :3] if mat.ndim == 3 else mat
        alpha = mat[..., 3:4]
        out = alpha * mat[..., :3] + (1.0 - alpha) * float(background)
        return np.clip(out, 0.0, 1.0).astype(np.float32)
