from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator


class SessionImageItem(BaseModel):
    """One image of an upload session, in display order."""
    index: int = Field(..., description="Position in the session (0 is the primary image)", ge=0)
    id: str = Field(..., description="Session-local identifier of the image", example="img_3f2a9c0d1e4b5a6f")
    name: str = Field(..., description="Sanitized storage filename", example="summer-dress_1718000000000.jpg")
    original_name: str = Field(..., description="Filename as uploaded", example="Summer Dress!.HEIC")
    size_bytes: int = Field(..., description="Size of the full-size rendition in bytes", ge=0)
    edited: bool = Field(False, description="Whether the image went through the crop/rotate editor")
    is_primary: bool = Field(False, description="True for the cover image of the listing")
    thumbnail_uri: str | None = Field(None, description="Thumbnail as a base64 JPEG data URI")


class SessionResponse(BaseModel):
    """State of an upload session."""
    id: str = Field(..., description="Upload session identifier")
    count: int = Field(..., description="Number of images in the session", ge=0)
    capacity: int = Field(..., description="Maximum number of images", example=5)
    remaining: int = Field(..., description="How many more images can be added", ge=0)
    images: list[SessionImageItem] = Field(default_factory=list, description="Images in display order")
    messages: list[str] = Field(
        default_factory=list,
        description="User-facing messages reported since the previous request",
        example=["photo.gif is not a supported image format. Please check your input and try again."],
    )


class IntakeResponse(BaseModel):
    """Outcome of adding a batch of files to a session."""
    session: SessionResponse
    added: list[str] = Field(default_factory=list, description="Ids of the images added, in upload order")
    rejected: int = Field(0, description="Files dropped because the session was full", ge=0)


class ReorderRequest(BaseModel):
    """New image order, as a permutation of the current image ids."""
    ids: list[str] = Field(..., description="Every current image id exactly once", example=["img_b", "img_a"])


class EditOperation(BaseModel):
    """A single editor step."""
    operation: Literal["rotate_left", "rotate_right", "crop", "reset"] = Field(
        ..., description="Editor action to apply", example="rotate_right"
    )
    x: int | None = Field(None, description="Crop left edge in canvas pixels", ge=0)
    y: int | None = Field(None, description="Crop top edge in canvas pixels", ge=0)
    width: int | None = Field(None, description="Crop width in canvas pixels", gt=0)
    height: int | None = Field(None, description="Crop height in canvas pixels", gt=0)

    @model_validator(mode="after")
    def _crop_needs_area(self) -> EditOperation:
        if self.operation == "crop" and None in (self.x, self.y, self.width, self.height):
            raise ValueError("crop needs x, y, width and height")
        return self


class EditImageRequest(BaseModel):
    """Editor steps applied in order, then committed."""
    operations: list[EditOperation] = Field(
        ...,
        min_length=1,
        description="Operations applied in sequence on the editor canvas",
        example=[
            {"operation": "rotate_right"},
            {"operation": "crop", "x": 10, "y": 10, "width": 300, "height": 200},
        ],
    )


class EditImageResponse(BaseModel):
    session: SessionResponse
    image: SessionImageItem
    canvas_width: int = Field(..., description="Width of the committed canvas in pixels")
    canvas_height: int = Field(..., description="Height of the committed canvas in pixels")
    rotation: int = Field(..., description="Accumulated rotation in degrees, clockwise", example=90)


class HydrateItem(BaseModel):
    """An already stored image, as shown by the listing edit form."""
    data_uri: str = Field(..., description="Image as a data URI", example="data:image/jpeg;base64,/9j/4AAQ...")
    name: str | None = Field(None, description="Stored filename")
    thumbnail_uri: str | None = Field(None, description="Optional thumbnail data URI")


class HydrateRequest(BaseModel):
    images: list[HydrateItem] = Field(default_factory=list, description="Existing listing images in order")


class PublishRequest(BaseModel):
    """Publish the session images onto a listing owned by the caller."""
    listing_id: str = Field(..., description="Listing that receives the images", example="lst_123")


class PublishedImage(BaseModel):
    position: int = Field(..., ge=0)
    name: str
    url: str = Field(..., description="Public URL of the full-size image")
    thumbnail_url: str = Field(..., description="Public URL of the thumbnail")
    is_primary: bool


class PublishResponse(BaseModel):
    listing_id: str
    images: list[PublishedImage]
