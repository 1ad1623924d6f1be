from __future__ import annotations

from src.infrastructure.database.document_store import DocumentStore
from src.infrastructure.database.records import AssetRecord


def images_collection(listing_id: str) -> str:
    return f"Listings/{listing_id}/images"


class AssetRepository:
    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def create(self, record: AssetRecord) -> str:
        return self.store.create(images_collection(record.listing_id), record.model_dump(mode="json"))

    def list_for_listing(self, listing_id: str) -> list[AssetRecord]:
        rows = self.store.query(images_collection(listing_id), "listing_id", listing_id)
        records = [AssetRecord.model_validate({k: v for k, v in r.items() if k != "id"}) for r in rows]
        return sorted(records, key=lambda r: r.position)

    def delete_for_listing(self, listing_id: str) -> int:
        rows = self.store.query(images_collection(listing_id), "listing_id", listing_id)
        for row in rows:
            self.store.delete(images_collection(listing_id), row["id"])
        return len(rows)
