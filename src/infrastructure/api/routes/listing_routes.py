from __future__ import annotations

from fastapi import APIRouter, Depends, status

from src.application.components.inline_edit import InlineEditField
from src.application.dtos.listing_dto import (
    CloneListingResponse,
    FieldUpdateRequest,
    FieldUpdateResponse,
    ListingTemplateResponse,
)
from src.application.use_cases.clone_listing import CloneListingUseCase
from src.application.use_cases.listing_template import CreateTemplateUseCase, apply_template
from src.application.use_cases.update_listing_field import UpdateListingFieldUseCase, validator_for
from src.domain.errors import StorefrontError, UnknownError
from src.infrastructure.api.dependencies import get_current_user, get_listing_repo, http_error
from src.infrastructure.database.repositories.listing_repository import ListingRepository

router = APIRouter(
    prefix="/listings",
    tags=["Listings"],
    responses={
        401: {"description": "Unauthorized - Invalid or missing authentication token"},
        404: {"description": "Not Found - Listing does not exist or belongs to another seller"},
    },
)


@router.post(
    "/{listing_id}/clone",
    response_model=CloneListingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Clone Listing",
    description="""
    Duplicate one of your listings as the starting point for a similar product.

    **Kept**: category path, brand, description, bulk pricing, variations with their
    prices and piece counts.
    **Reset**: name gets a " (Copy)" suffix, images are removed, stock is set to 0 and
    per-option photos are cleared.

    **Authentication required**: Yes (Bearer token)
    """,
    responses={502: {"description": "Bad Gateway - Database write failed"}},
)
def clone_listing(
    listing_id: str,
    user=Depends(get_current_user),
    listings: ListingRepository = Depends(get_listing_repo),
):
    """Clone a listing owned by the caller."""
    try:
        new_id, cloned = CloneListingUseCase(listings).execute(user.id, listing_id)
    except StorefrontError as exc:
        raise http_error(exc, "listings:clone") from exc
    return CloneListingResponse(
        id=new_id,
        name=cloned["name"],
        cloned_from=listing_id,
        variation_count=len(cloned["variations"]),
    )


@router.get(
    "/{listing_id}/template",
    response_model=ListingTemplateResponse,
    summary="Listing Template",
    description="""
    Build a template from one of your listings for creating similar products.

    The template carries the category path, brand, variation titles and bulk pricing.
    `form_fields` holds the values a new listing form is pre-filled with.
    """,
)
def listing_template(
    listing_id: str,
    user=Depends(get_current_user),
    listings: ListingRepository = Depends(get_listing_repo),
):
    """Create a template from a listing owned by the caller."""
    try:
        template = CreateTemplateUseCase(listings).execute(user.id, listing_id)
    except StorefrontError as exc:
        raise http_error(exc, "listings:template") from exc
    return ListingTemplateResponse(
        template_name=template["templateName"],
        category=template["category"],
        subcategory=template["subcategory"],
        subsubcategory=template["subsubcategory"],
        brand=template["brand"],
        variation_types=template["variationTypes"],
        bulk_pricing=template["bulkPricing"],
        created_at=template["createdAt"],
        form_fields=apply_template(template),
    )


@router.patch(
    "/{listing_id}/fields/{field}",
    response_model=FieldUpdateResponse,
    summary="Edit Listing Field",
    description="""
    Change one text field of a listing in place (`name`, `brand` or `description`).

    The value is trimmed and validated first; an empty name is rejected.
    Sending the current value writes nothing and returns `saved: false`.
    """,
    responses={
        400: {"description": "Bad Request - Field not editable or value rejected"},
        502: {"description": "Bad Gateway - Database write failed"},
    },
)
async def edit_field(
    listing_id: str,
    field: str,
    request: FieldUpdateRequest,
    user=Depends(get_current_user),
    listings: ListingRepository = Depends(get_listing_repo),
):
    """Validate and save one listing field."""
    use_case = UpdateListingFieldUseCase(listings)
    try:
        current = use_case.current_value(user.id, listing_id, field)
    except StorefrontError as exc:
        raise http_error(exc, f"listings:field:{field}") from exc

    editor = InlineEditField(
        field,
        current,
        on_save=use_case.for_listing(user.id, listing_id),
        validate=validator_for(field),
    )
    editor.input(request.value)
    saved = await editor.save()
    if editor.last_error is not None:
        if isinstance(editor.last_error, StorefrontError):
            raise http_error(editor.last_error, f"listings:field:{field}")
        raise http_error(UnknownError(str(editor.last_error)), f"listings:field:{field}")
    return FieldUpdateResponse(field=field, value=editor.value, saved=saved)
