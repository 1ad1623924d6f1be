"""Schemas of the documents this service writes to the document store."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class AssetRecord(BaseModel):
    """Metadata of one published listing image."""

    model_config = ConfigDict(extra="forbid")

    listing_id: str
    position: int = Field(..., ge=0)
    name: str = Field(..., min_length=1)
    original_name: str
    storage_path: str
    thumbnail_path: str
    url: str
    thumbnail_url: str
    size_bytes: int = Field(..., ge=0)
    edited: bool = False
    is_primary: bool = False
    created_at: datetime


class VariationAttributeRecord(BaseModel):
    """One purchasable option inside a listing variation."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    attr_name: str
    stock: int = Field(0, ge=0)
    price: float = Field(0.0, ge=0)
    retail_price: float | None = Field(None, ge=0, alias="retailPrice")
    piece_count: int = 1
    photo_url: str | None = Field(None, alias="photoUrl")


class VariationRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    title: str = ""
    attributes: list[VariationAttributeRecord] = Field(default_factory=list)


class ProfileRecord(BaseModel):
    id: str
    email: str | None = None
    display_name: str | None = None
    created_at: datetime | None = None
