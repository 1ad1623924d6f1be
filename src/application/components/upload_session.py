from __future__ import annotations

import asyncio
import base64
import binascii
import dataclasses
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping
from urllib.parse import unquote_to_bytes

from src.application.components.crop_editor import CropRotateEditor
from src.application.use_cases.process_upload import ProcessUploadUseCase, new_asset_id
from src.domain.entities.image import ImageAsset, Renditions, SessionImage, SourceFile
from src.domain.errors import ErrorHandler, ValidationError
from src.domain.services.filename_service import sanitize_filename

logger = logging.getLogger(__name__)

ImagesCallback = Callable[[list[SessionImage]], Any]
ErrorCallback = Callable[[str], Any]

_DATA_URI = re.compile(r"^data:(?P<type>[^;,]*)(?P<params>(?:;[^;,]*)*),(?P<payload>.*)$", re.S)


@dataclass
class IntakeResult:
    added: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    rejected: int = 0


def unique_name(name: str, taken: set[str]) -> str:
    """Suffix ``-2``, ``-3``... before the extension until ``name`` is not in ``taken``."""
    if name not in taken:
        return name
    stem, dot, ext = name.rpartition(".")
    if not dot:
        stem, ext = name, ""
    n = 2
    while f"{stem}-{n}{dot}{ext}" in taken:
        n += 1
    return f"{stem}-{n}{dot}{ext}"


def decode_data_uri(uri: str) -> bytes:
    match = _DATA_URI.match(uri or "")
    if not match:
        raise ValidationError("Image data is not a valid data URI")
    payload = match.group("payload")
    if ";base64" in match.group("params"):
        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValidationError("Image data is not valid base64") from exc
    return unquote_to_bytes(payload)


class UploadSession:
    """Ordered, capacity-bounded collection of images being assembled for one listing form.

    Position 0 is the primary image. All mutations go through this class; readers get
    immutable ``SessionImage`` projections from ``get_all()``.
    """

    def __init__(
        self,
        pipeline: ProcessUploadUseCase,
        capacity: int | None = None,
        on_images_change: ImagesCallback | None = None,
        on_error: ErrorCallback | None = None,
    ) -> None:
        self.pipeline = pipeline
        self.capacity = capacity or pipeline.config.max_files
        self.on_images_change = on_images_change
        self.on_error = on_error
        self._images: list[ImageAsset] = []
        self._processing = False
        self.editor = CropRotateEditor(
            session=self,
            renditions=pipeline.renditions,
            config=pipeline.config,
        )

    # --------- read side ---------
    @property
    def is_processing(self) -> bool:
        return self._processing

    @property
    def count(self) -> int:
        return len(self._images)

    @property
    def has_images(self) -> bool:
        return bool(self._images)

    @property
    def remaining(self) -> int:
        return max(0, self.capacity - len(self._images))

    @property
    def primary(self) -> ImageAsset | None:
        return self._images[0] if self._images else None

    @property
    def ids(self) -> list[str]:
        return [img.id for img in self._images]

    def asset_at(self, index: int) -> ImageAsset:
        self._check_index(index)
        return self._images[index]

    def index_of(self, asset_id: str) -> int | None:
        for i, img in enumerate(self._images):
            if img.id == asset_id:
                return i
        return None

    def get_all(self) -> list[SessionImage]:
        return [
            SessionImage(
                blob=img.renditions.full,
                data_uri=img.preview_data_uri,
                name=img.sanitized_name,
                original_name=img.original_name,
                thumbnail=img.renditions.thumbnail,
                thumbnail_uri=img.thumbnail_data_uri,
            )
            for img in self._images
        ]

    # --------- intake ---------
    async def intake(self, files: Iterable[SourceFile]) -> IntakeResult:
        files = list(files)
        result = IntakeResult()
        if self._processing:
            self._report(ValidationError("Images are still processing, please wait"), "intake", result)
            result.rejected = len(files)
            return result

        remaining = self.remaining
        if remaining <= 0:
            self._report(
                ValidationError(f"Maximum {self.capacity} images allowed", code="capacity"),
                "intake",
                result,
            )
            result.rejected = len(files)
            return result

        to_process = files[:remaining]
        if len(to_process) < len(files):
            result.rejected = len(files) - len(to_process)
            self._report(
                ValidationError(f"Only {remaining} more image(s) can be added", code="capacity"),
                "intake",
                result,
            )

        self._processing = True
        try:
            for file in to_process:
                try:
                    asset = await asyncio.to_thread(self.pipeline.execute, file)
                except Exception as exc:
                    self._report(exc, f"intake:{file.filename}", result)
                    continue
                if len(self._images) >= self.capacity:
                    result.rejected += 1
                    self._report(
                        ValidationError(f"Maximum {self.capacity} images allowed", code="capacity"),
                        f"intake:{file.filename}",
                        result,
                    )
                    continue
                taken = {img.sanitized_name for img in self._images}
                if asset.sanitized_name in taken:
                    asset = dataclasses.replace(asset, sanitized_name=unique_name(asset.sanitized_name, taken))
                self._images.append(asset)
                result.added.append(asset.id)
                logger.info("Added %s as %s (%d bytes)", file.filename, asset.id, asset.size_bytes)
        finally:
            self._processing = False

        self._changed()
        return result

    async def hydrate(self, existing: Iterable[Mapping[str, Any]]) -> IntakeResult:
        """Replace contents with already-stored images (editing an existing listing)."""
        existing = list(existing)
        result = IntakeResult()
        if self._processing:
            self._report(ValidationError("Images are still processing, please wait"), "hydrate", result)
            result.rejected = len(existing)
            return result

        images: list[ImageAsset] = []
        for position, item in enumerate(existing):
            data_uri = item.get("data_uri")
            if not data_uri:
                self._report(ValidationError(f"Stored image {position + 1} has no image data"), "hydrate", result)
                continue
            if len(images) >= self.capacity:
                result.rejected += 1
                continue
            name = item.get("name") or "image.jpg"
            try:
                blob = decode_data_uri(data_uri)
                thumb_uri = item.get("thumbnail_uri") or data_uri
                thumb = blob if thumb_uri == data_uri else decode_data_uri(thumb_uri)
            except ValidationError as exc:
                self._report(exc, f"hydrate:{name}", result)
                continue
            now = self.pipeline.clock()
            asset = ImageAsset(
                id=new_asset_id(),
                original_name=name,
                sanitized_name=unique_name(
                    sanitize_filename(item.get("name") or "image", clock=self.pipeline.clock),
                    {img.sanitized_name for img in images},
                ),
                renditions=Renditions(thumbnail=thumb, preview=blob, full=blob),
                preview_data_uri=data_uri,
                thumbnail_data_uri=thumb_uri,
                size_bytes=len(blob),
                created_at_ms=now,
            )
            images.append(asset)
            result.added.append(asset.id)

        if result.rejected:
            self._report(
                ValidationError(
                    f"Maximum {self.capacity} images allowed, {result.rejected} not loaded",
                    code="capacity",
                ),
                "hydrate",
                result,
            )
        self.editor.close()
        self._images = images
        self._changed()
        return result

    # --------- ordering / removal ---------
    def reorder(self, new_order: Iterable[str]) -> None:
        new_order = list(new_order)
        current = self.ids
        if len(new_order) != len(current) or sorted(new_order) != sorted(current):
            raise ValidationError("New order must list every current image exactly once")
        by_id = {img.id: img for img in self._images}
        self._images = [by_id[i] for i in new_order]
        self._changed()

    def move(self, from_index: int, to_index: int) -> None:
        """Drag-drop convenience: move one image and shift the rest."""
        self._check_index(from_index)
        self._check_index(to_index)
        ids = self.ids
        ids.insert(to_index, ids.pop(from_index))
        self.reorder(ids)

    def remove(self, index: int) -> ImageAsset:
        self._check_index(index)
        removed = self._images.pop(index)
        if self.editor.is_open and self.editor.asset_id == removed.id:
            self.editor.close()
        self._changed()
        return removed

    def clear(self) -> None:
        self.editor.close()
        self._images = []
        self._changed()

    # --------- editing ---------
    async def edit(self, index: int) -> CropRotateEditor:
        self._check_index(index)
        await self.editor.open(index)
        return self.editor

    def replace_asset(self, asset_id: str, asset: ImageAsset) -> bool:
        """Swap in a regenerated asset at the position currently held by ``asset_id``."""
        index = self.index_of(asset_id)
        if index is None:
            return False
        self._images[index] = asset
        self._changed()
        return True

    # --------- helpers ---------
    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._images):
            raise ValidationError(f"No image at position {index}")

    def _changed(self) -> None:
        if self.on_images_change is None:
            return
        try:
            self.on_images_change(self.get_all())
        except Exception:
            logger.exception("onImagesChange callback failed")

    def report_error(self, error: BaseException | str, context: str = "") -> str:
        message = ErrorHandler.handle(error, context).user_message
        if self.on_error is not None:
            try:
                self.on_error(message)
            except Exception:
                logger.exception("onError callback failed")
        return message

    def _report(self, error: BaseException, context: str, result: IntakeResult) -> None:
        result.errors.append(self.report_error(error, context))
