from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from src.application.components.upload_session import unique_name
from src.domain.entities.image import SessionImage
from src.domain.errors import PersistenceError, ValidationError
from src.infrastructure.database.records import AssetRecord
from src.infrastructure.database.repositories.asset_repository import AssetRepository
from src.infrastructure.database.repositories.listing_repository import ListingRepository
from src.infrastructure.storage.supabase_storage import SupabaseStorage

logger = logging.getLogger(__name__)


@dataclass
class PublishSessionUseCase:
    storage: SupabaseStorage
    assets: AssetRepository
    listings: ListingRepository

    def execute(
        self,
        user_id: str,
        listing_id: str,
        images: list[SessionImage],
        *,
        edited: list[bool] | None = None,
    ) -> list[AssetRecord]:
        """
        Hand a finished upload session to the object and document stores.

        Blobs go to ``listings/{user_id}/{listing_id}/`` (full size plus a ``thumbs/``
        copy), one AssetRecord per image is written in session order, and the
        listing's ``imageUrls`` is replaced so position 0 stays the cover image.
        Previously published images of the listing are replaced.
        """
        if not images:
            raise ValidationError("Add at least one image before publishing")
        self.listings.get_owned(listing_id, user_id)

        base = f"listings/{user_id}/{listing_id}"
        uploaded: list[str] = []
        records: list[AssetRecord] = []
        used: set[str] = set()
        now = datetime.now(UTC)
        try:
            for position, img in enumerate(images):
                # Storage keys are unique within one publish
                name = unique_name(img.name, used)
                used.add(name)
                full = self.storage.upload_bytes(f"{base}/{name}", img.blob, upsert=True)
                uploaded.append(full.path)
                thumb = self.storage.upload_bytes(
                    f"{base}/thumbs/{name}", img.thumbnail, upsert=True
                )
                uploaded.append(thumb.path)
                records.append(
                    AssetRecord(
                        listing_id=listing_id,
                        position=position,
                        name=name,
                        original_name=img.original_name,
                        storage_path=full.path,
                        thumbnail_path=thumb.path,
                        url=self.storage.get_public_url(full.path),
                        thumbnail_url=self.storage.get_public_url(thumb.path),
                        size_bytes=full.size,
                        edited=bool(edited[position]) if edited else False,
                        is_primary=position == 0,
                        created_at=now,
                    )
                )

            self.assets.delete_for_listing(listing_id)
            for record in records:
                self.assets.create(record)
            self.listings.update(
                listing_id,
                {
                    "imageUrls": [r.url for r in records],
                    "thumbnailUrls": [r.thumbnail_url for r in records],
                },
            )
        except PersistenceError:
            self._cleanup(uploaded)
            raise
        except Exception as exc:
            self._cleanup(uploaded)
            raise PersistenceError(f"Publishing images failed: {exc}") from exc

        logger.info("Published %d image(s) for listing %s", len(records), listing_id)
        return records

    def _cleanup(self, paths: list[str]) -> None:
        for path in paths:
            try:
                self.storage.delete(path)
            except PersistenceError:
                logger.warning("Could not remove orphaned upload %s", path)
