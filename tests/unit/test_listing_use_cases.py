import asyncio
import dataclasses
from datetime import UTC, datetime
from unittest.mock import Mock

import pytest

from src.application.components.bulk_edit_grid import BulkEditGrid
from src.application.components.inline_edit import InlineEditField
from src.application.use_cases.clone_listing import CloneListingUseCase
from src.application.use_cases.listing_template import CreateTemplateUseCase, apply_template
from src.application.use_cases.publish_session import PublishSessionUseCase
from src.application.use_cases.save_variations import (
    LoadVariationRowsUseCase,
    SaveVariationChangesUseCase,
)
from src.application.use_cases.update_listing_field import UpdateListingFieldUseCase, validator_for
from src.domain.entities.image import SessionImage
from src.domain.entities.variation import PendingChange, VariationRow
from src.domain.errors import NotFoundError, PersistenceError, ValidationError
from src.infrastructure.database.document_store import InMemoryDocumentStore
from src.infrastructure.database.repositories.asset_repository import AssetRepository
from src.infrastructure.database.repositories.listing_repository import ListingRepository
from src.infrastructure.storage.supabase_storage import SupabaseStorage

LISTING = {
    "name": "Linen Shirt",
    "uploaderId": "u1",
    "category": "Clothing",
    "subcategory": "Men",
    "subsubcategory": "Shirts",
    "brand": "Bloom",
    "description": "Breathable linen",
    "bulkPricing": [{"minQty": 10, "price": 4.5}],
    "imageUrls": ["https://cdn/old.jpg"],
    "variations": [
        {
            "title": "Red",
            "attributes": [
                {
                    "attr_name": "S",
                    "stock": 4,
                    "price": 5.0,
                    "retailPrice": 12.0,
                    "piece_count": 6,
                    "photoUrl": "https://cdn/red-s.jpg",
                    "originalPrice": 6.0,
                },
                {"attr_name": "M", "stock": 2, "price": 5.5},
            ],
        },
        {"title": "Blue", "attributes": [{"attr_name": "S", "stock": 0, "price": 6.0}]},
    ],
}


@pytest.fixture()
def store():
    return InMemoryDocumentStore()


@pytest.fixture()
def listings(store):
    return ListingRepository(store)


@pytest.fixture()
def listing_id(listings):
    return listings.create(LISTING)


def session_images(n=2):
    return [
        SessionImage(
            blob=f"full-{i}".encode(),
            data_uri="data:image/jpeg;base64,",
            name=f"shirt-{i}_1700000000000.jpg",
            original_name=f"Shirt {i}.jpg",
            thumbnail=f"thumb-{i}".encode(),
            thumbnail_uri="data:image/jpeg;base64,",
        )
        for i in range(n)
    ]


# --------- publish ---------
def test_publish_uploads_blobs_and_writes_records(settings, store, listings, listing_id):
    storage = SupabaseStorage(None, settings)
    uc = PublishSessionUseCase(storage=storage, assets=AssetRepository(store), listings=listings)
    records = uc.execute("u1", listing_id, session_images(), edited=[False, True])

    base = settings.local_storage_dir / "listings" / "u1" / listing_id
    assert (base / "shirt-0_1700000000000.jpg").read_bytes() == b"full-0"
    assert (base / "thumbs" / "shirt-1_1700000000000.jpg").read_bytes() == b"thumb-1"

    assert [r.position for r in records] == [0, 1]
    assert [r.is_primary for r in records] == [True, False]
    assert records[1].edited

    stored = AssetRepository(store).list_for_listing(listing_id)
    assert [r.name for r in stored] == ["shirt-0_1700000000000.jpg", "shirt-1_1700000000000.jpg"]
    listing = listings.get(listing_id)
    assert listing["imageUrls"] == [
        f"/local-storage/listings/u1/{listing_id}/shirt-0_1700000000000.jpg",
        f"/local-storage/listings/u1/{listing_id}/shirt-1_1700000000000.jpg",
    ]
    assert len(listing["thumbnailUrls"]) == 2


def test_republish_replaces_previous_records(settings, store, listings, listing_id):
    uc = PublishSessionUseCase(SupabaseStorage(None, settings), AssetRepository(store), listings)
    uc.execute("u1", listing_id, session_images(3))
    uc.execute("u1", listing_id, session_images(1))
    assert len(AssetRepository(store).list_for_listing(listing_id)) == 1


def test_publish_requires_ownership(settings, store, listings, listing_id):
    uc = PublishSessionUseCase(SupabaseStorage(None, settings), AssetRepository(store), listings)
    with pytest.raises(NotFoundError):
        uc.execute("intruder", listing_id, session_images())


def test_publish_requires_images(settings, store, listings, listing_id):
    uc = PublishSessionUseCase(SupabaseStorage(None, settings), AssetRepository(store), listings)
    with pytest.raises(ValidationError):
        uc.execute("u1", listing_id, [])


def test_publish_failure_removes_uploaded_blobs(settings, store, listings, listing_id):
    listings.update = Mock(side_effect=RuntimeError("boom"))
    uc = PublishSessionUseCase(SupabaseStorage(None, settings), AssetRepository(store), listings)
    with pytest.raises(PersistenceError, match="Publishing images failed: boom"):
        uc.execute("u1", listing_id, session_images())
    base = settings.local_storage_dir / "listings" / "u1" / listing_id
    assert not list(base.rglob("*.jpg"))


# --------- variations ---------
def test_load_variation_rows(listings, listing_id):
    rows = LoadVariationRowsUseCase(listings).execute(listing_id)
    assert [r.name for r in rows] == ["Red - S", "Red - M", "Blue - S"]
    assert rows[0].retail == 12.0
    assert rows[1].retail is None
    assert rows[2].key == ("Blue", "S")


def test_load_missing_listing(listings):
    with pytest.raises(NotFoundError):
        LoadVariationRowsUseCase(listings).execute("missing")


def test_grid_save_writes_back_to_listing(listings, listing_id):
    rows = LoadVariationRowsUseCase(listings).execute(listing_id)
    grid = BulkEditGrid(
        columns=["name", "stock", "price", "retail"],
        rows=rows,
        on_save=SaveVariationChangesUseCase(listings).for_listing(listing_id),
    )
    grid.edit_cell(0, "stock", "40")
    grid.edit_cell(2, "price", "6.75")
    grid.edit_cell(0, "retail", "13")
    assert asyncio.run(grid.save_all_changes()) is True

    variations = listings.get(listing_id)["variations"]
    red_s = variations[0]["attributes"][0]
    assert red_s["stock"] == 40
    assert red_s["retailPrice"] == 13.0
    # untouched attribute fields survive the round trip
    assert red_s["photoUrl"] == "https://cdn/red-s.jpg"
    assert red_s["originalPrice"] == 6.0
    assert red_s["piece_count"] == 6
    assert variations[1]["attributes"][0]["price"] == 6.75
    assert variations[0]["attributes"][1]["stock"] == 2


def test_save_rejects_rows_missing_from_listing(listings, listing_id):
    uc = SaveVariationChangesUseCase(listings)
    rows = [VariationRow(name="Green - L", stock=1, key=("Green", "L"))]
    with pytest.raises(ValidationError):
        uc.execute(listing_id, [PendingChange(0, "stock", 0, 1)], rows)


# --------- clone ---------
def test_clone_resets_name_images_stock_and_photos(listings, listing_id):
    new_id, cloned = CloneListingUseCase(listings).execute("u1", listing_id)
    stored = listings.get(new_id)
    assert stored["name"] == "Linen Shirt (Copy)"
    assert stored["imageUrls"] == []
    assert stored["uploaderId"] == "u1"
    assert stored["_clonedFrom"] == listing_id
    assert stored["_isClone"] is True
    for field in ("category", "subcategory", "subsubcategory", "brand", "description", "bulkPricing"):
        assert stored[field] == LISTING[field]

    red_s = stored["variations"][0]["attributes"][0]
    assert red_s["stock"] == 0
    assert red_s["photoUrl"] is None
    assert red_s["price"] == 5.0
    assert red_s["originalPrice"] == 6.0
    assert red_s["retailPrice"] == 12.0
    assert red_s["piece_count"] == 6
    red_m = stored["variations"][0]["attributes"][1]
    assert red_m["originalPrice"] == 5.5
    assert red_m["piece_count"] == 1
    assert cloned["name"] == stored["name"]


def test_clone_of_someone_elses_listing(listings, listing_id):
    with pytest.raises(NotFoundError):
        CloneListingUseCase(listings).execute("intruder", listing_id)


def test_publish_gives_duplicate_names_distinct_keys(settings, store, listings, listing_id):
    images = session_images(2)
    images[1] = dataclasses.replace(images[1], name=images[0].name)
    uc = PublishSessionUseCase(SupabaseStorage(None, settings), AssetRepository(store), listings)
    records = uc.execute("u1", listing_id, images)

    assert len({r.storage_path for r in records}) == 2
    assert len({r.thumbnail_path for r in records}) == 2
    base = settings.local_storage_dir / "listings" / "u1" / listing_id
    assert (base / "shirt-0_1700000000000.jpg").read_bytes() == b"full-0"
    assert (base / "shirt-0_1700000000000-2.jpg").read_bytes() == b"full-1"


# --------- templates ---------
def test_template_captures_reusable_shape(listings, listing_id):
    now = datetime(2026, 1, 5, tzinfo=UTC)
    template = CreateTemplateUseCase(listings).execute("u1", listing_id, now=now)
    assert template == {
        "templateName": "Template: Linen Shirt",
        "category": "Clothing",
        "subcategory": "Men",
        "subsubcategory": "Shirts",
        "brand": "Bloom",
        "variationTypes": ["Red", "Blue"],
        "bulkPricing": [{"minQty": 10, "price": 4.5}],
        "createdAt": "2026-01-05T00:00:00+00:00",
    }
    assert apply_template(template) == {
        "category": "Clothing",
        "subcategory": "Men",
        "subsubcategory": "Shirts",
        "brand": "Bloom",
        "createVariations": ["Red", "Blue"],
    }


def test_template_of_someone_elses_listing(listings, listing_id):
    with pytest.raises(NotFoundError):
        CreateTemplateUseCase(listings).execute("intruder", listing_id)


# --------- inline field edits ---------
def test_inline_field_edit_writes_listing(listings, listing_id):
    uc = UpdateListingFieldUseCase(listings)
    field = InlineEditField(
        "name",
        uc.current_value("u1", listing_id, "name"),
        on_save=uc.for_listing("u1", listing_id),
        validate=validator_for("name"),
    )
    field.input(" Linen Tee ")
    assert asyncio.run(field.save()) is True
    assert listings.get(listing_id)["name"] == "Linen Tee"


def test_inline_field_rejects_empty_name_and_unknown_fields(listings, listing_id):
    validate = validator_for("name")
    assert validate("  ") == "Listing name cannot be empty"
    assert validate("x" * 201).startswith("Listing name must be")
    assert validator_for("brand") is None
    with pytest.raises(ValidationError):
        UpdateListingFieldUseCase(listings).execute("u1", listing_id, "uploaderId", "me")
    with pytest.raises(NotFoundError):
        UpdateListingFieldUseCase(listings).execute("intruder", listing_id, "name", "Mine")
