from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.domain.errors import (
    ConversionError,
    ErrorHandler,
    NotFoundError,
    PersistenceError,
    StorefrontError,
    ValidationError,
)
from src.infrastructure.context import AppContext
from src.infrastructure.database.repositories.asset_repository import AssetRepository
from src.infrastructure.database.repositories.listing_repository import ListingRepository
from src.infrastructure.database.repositories.profile_repository import ProfileRepository
from src.infrastructure.database.supabase_client import SupabaseAuthAdapter, UserInfo
from src.infrastructure.storage.supabase_storage import SupabaseStorage

_bearer_scheme = HTTPBearer(auto_error=False)


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_auth_adapter(ctx: Annotated[AppContext, Depends(get_context)]) -> SupabaseAuthAdapter:
    return ctx.auth


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(_bearer_scheme)] = None,
    auth: Annotated[SupabaseAuthAdapter, Depends(get_auth_adapter)] = None,
) -> UserInfo:
    if not credentials or not credentials.scheme or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    token = credentials.credentials
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    try:
        return auth.validate_token(token)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc))


def get_storage(ctx: Annotated[AppContext, Depends(get_context)]) -> SupabaseStorage:
    return ctx.storage


def get_asset_repo(ctx: Annotated[AppContext, Depends(get_context)]) -> AssetRepository:
    return AssetRepository(ctx.documents)


def get_listing_repo(ctx: Annotated[AppContext, Depends(get_context)]) -> ListingRepository:
    return ListingRepository(ctx.documents)


def get_profile_repo(ctx: Annotated[AppContext, Depends(get_context)]) -> ProfileRepository:
    return ProfileRepository(ctx.documents)


def http_error(exc: StorefrontError, context: str = "") -> HTTPException:
    """Translate a domain error into an HTTP error carrying the user-facing message."""
    report = ErrorHandler.handle(exc, context)
    if isinstance(exc, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, ValidationError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, ConversionError):
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    elif isinstance(exc, PersistenceError):
        code = status.HTTP_502_BAD_GATEWAY
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=report.user_message)
