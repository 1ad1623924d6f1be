from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from src.domain.errors import StorefrontError
from src.infrastructure.api.dependencies import get_current_user, get_profile_repo, http_error
from src.infrastructure.database.repositories.profile_repository import ProfileRepository

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
    responses={
        401: {"description": "Unauthorized - Invalid or missing authentication token"},
        422: {"description": "Validation Error - Invalid request format"},
    },
)


class ValidateTokenResponse(BaseModel):
    """Response model for token validation."""
    user_id: str = Field(..., description="Unique identifier of the authenticated seller")
    email: str | None = Field(None, description="Email address of the seller", example="seller@example.com")


@router.post(
    "/validate",
    response_model=ValidateTokenResponse,
    status_code=status.HTTP_200_OK,
    summary="Validate Authentication Token",
    description="""
    Validate the Supabase access token and make sure a seller profile exists.

    This endpoint:
    - Verifies the token in the Authorization header
    - Creates the profile in the `Users` collection on first login
    - Returns basic seller information

    **Authentication required**: Yes (Bearer token)
    """,
    response_description="Seller information confirming valid authentication",
)
def validate_token(
    user=Depends(get_current_user),
    profiles: ProfileRepository = Depends(get_profile_repo),
):
    """Validate the token and ensure the seller profile exists."""
    try:
        prof = profiles.upsert(user.id, user.email)
    except StorefrontError as exc:
        raise http_error(exc, "auth:validate") from exc
    return {"user_id": prof.id, "email": prof.email}


class UserProfileResponse(BaseModel):
    """Response model for seller profile information."""
    id: str = Field(..., description="Unique identifier of the seller")
    email: str | None = Field(None, description="Email address of the seller", example="seller@example.com")
    name: str | None = Field(None, description="Display name of the seller", example="Bloom Wholesale")
    label: str = Field(..., description="Name shown on the storefront", example="Bloom Wholesale")
    created_at: datetime | None = Field(None, description="ISO timestamp when the profile was created")


@router.get(
    "/me",
    response_model=UserProfileResponse,
    status_code=status.HTTP_200_OK,
    summary="Get Current Seller Profile",
    description="""
    Retrieve the profile of the currently authenticated seller.

    The `label` falls back to the email's local part, then to the user id, when no
    display name is set.

    **Authentication required**: Yes (Bearer token)
    """,
    response_description="Seller profile information",
)
def get_me(
    user=Depends(get_current_user),
    profiles: ProfileRepository = Depends(get_profile_repo),
):
    """Get the current seller's profile."""
    try:
        prof = profiles.upsert(user.id, user.email)
    except StorefrontError as exc:
        raise http_error(exc, "auth:me") from exc
    return {
        "id": prof.id,
        "email": prof.email,
        "name": prof.display_name,
        "label": prof.label,
        "created_at": prof.created_at,
    }


class UpdateProfileBody(BaseModel):
    """Request model for updating the seller profile."""
    name: str = Field(..., min_length=1, max_length=100, description="Display name", example="Bloom Wholesale")


class UpdateProfileResponse(BaseModel):
    """Response model for profile update."""
    id: str = Field(..., description="Unique identifier of the seller")
    email: str | None = Field(None, description="Email address of the seller")
    name: str = Field(..., description="Updated display name")


@router.patch(
    "/profile",
    response_model=UpdateProfileResponse,
    status_code=status.HTTP_200_OK,
    summary="Update Seller Profile",
    description="""
    Update the display name of the authenticated seller.

    **Request Requirements:**
    - Display name must be between 1 and 100 characters
    - Display name cannot be empty or whitespace only

    **Authentication required**: Yes (Bearer token)
    """,
    response_description="Updated seller profile",
    responses={400: {"description": "Bad Request - Invalid name provided"}},
)
def update_profile(
    body: UpdateProfileBody,
    user=Depends(get_current_user),
    profiles: ProfileRepository = Depends(get_profile_repo),
):
    """Update the current seller's display name."""
    if not body.name or not body.name.strip():
        raise HTTPException(status_code=400, detail="Display name cannot be empty")
    try:
        prof = profiles.set_display_name(user.id, body.name.strip())
    except StorefrontError as exc:
        raise http_error(exc, "auth:profile") from exc
    return {"id": prof.id, "email": prof.email, "name": prof.display_name}
