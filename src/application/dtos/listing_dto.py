from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class CloneListingResponse(BaseModel):
    """Response model for listing duplication."""
    id: str = Field(..., description="Identifier of the new listing")
    name: str = Field(..., description="Name of the new listing", example="Linen Shirt (Copy)")
    cloned_from: str = Field(..., description="Identifier of the source listing")
    variation_count: int = Field(0, description="Number of variations carried over", ge=0)


class FieldUpdateRequest(BaseModel):
    """Request model for an inline single-field edit."""
    value: str = Field(..., description="New text for the field", example="Linen Shirt, Relaxed Fit")


class FieldUpdateResponse(BaseModel):
    """Response model for an inline single-field edit."""
    field: str = Field(..., description="Edited field", example="name")
    value: str = Field(..., description="Stored value after trimming")
    saved: bool = Field(..., description="False when the value was unchanged and nothing was written")


class ListingTemplateResponse(BaseModel):
    """Reusable shape of a listing plus the form values it pre-fills."""
    template_name: str = Field(..., description="Display name", example="Template: Linen Shirt")
    category: Optional[str] = Field(None, description="Top-level category")
    subcategory: Optional[str] = Field(None, description="Subcategory")
    subsubcategory: Optional[str] = Field(None, description="Third-level category")
    brand: Optional[str] = Field(None, description="Brand name")
    variation_types: List[str] = Field(default_factory=list, description="Variation titles", example=["Red", "Blue"])
    bulk_pricing: Optional[Any] = Field(None, description="Bulk pricing tiers copied as stored")
    created_at: str = Field(..., description="ISO-8601 creation time")
    form_fields: Dict[str, Any] = Field(default_factory=dict, description="Values a new listing form starts from")
