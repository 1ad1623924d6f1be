from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, File, HTTPException, Path, UploadFile, status
from fastapi.responses import Response

from src.application.dtos.common_dto import SuccessResponse
from src.application.dtos.image_dto import (
    EditImageRequest,
    EditImageResponse,
    HydrateRequest,
    IntakeResponse,
    PublishedImage,
    PublishRequest,
    PublishResponse,
    ReorderRequest,
    SessionImageItem,
    SessionResponse,
)
from src.application.use_cases.publish_session import PublishSessionUseCase
from src.domain.entities.image import SourceFile
from src.domain.errors import StorefrontError
from src.infrastructure.api.dependencies import (
    get_asset_repo,
    get_context,
    get_current_user,
    get_listing_repo,
    get_storage,
    http_error,
)
from src.infrastructure.context import AppContext, SessionHandle
from src.infrastructure.database.repositories.asset_repository import AssetRepository
from src.infrastructure.database.repositories.listing_repository import ListingRepository
from src.infrastructure.storage.supabase_storage import SupabaseStorage

router = APIRouter(
    prefix="/sessions",
    tags=["Upload Sessions"],
    responses={
        401: {"description": "Unauthorized - Invalid or missing authentication token"},
        404: {"description": "Not Found - Session or image does not exist for this user"},
        422: {"description": "Validation Error - Invalid request format"},
    },
)


def _image_item(handle: SessionHandle, index: int) -> SessionImageItem:
    asset = handle.session.asset_at(index)
    return SessionImageItem(
        index=index,
        id=asset.id,
        name=asset.sanitized_name,
        original_name=asset.original_name,
        size_bytes=asset.size_bytes,
        edited=asset.edited,
        is_primary=index == 0,
        thumbnail_uri=asset.thumbnail_data_uri,
    )


def _session_response(session_id: str, handle: SessionHandle) -> SessionResponse:
    session = handle.session
    messages = list(handle.messages)
    handle.messages.clear()
    return SessionResponse(
        id=session_id,
        count=session.count,
        capacity=session.capacity,
        remaining=session.remaining,
        images=[_image_item(handle, i) for i in range(session.count)],
        messages=messages,
    )


def _handle(ctx: AppContext, session_id: str, user_id: str) -> SessionHandle:
    try:
        return ctx.session_for(session_id, user_id)
    except StorefrontError as exc:
        raise http_error(exc, "sessions") from exc


@router.post(
    "",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open Upload Session",
    description="""
    Start an empty upload session for a listing form.

    A session holds up to the configured number of images (5 by default) in display
    order. The image at position 0 is the primary (cover) image.

    **Authentication required**: Yes (Bearer token)
    """,
    response_description="The new, empty session",
)
def open_session(
    user=Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """Create a new upload session owned by the caller."""
    session_id, handle = ctx.open_session(user.id)
    return _session_response(session_id, handle)


@router.get(
    "/{session_id}",
    response_model=SessionResponse,
    summary="Get Upload Session",
    description="Return the images of a session in display order, plus any pending messages.",
)
def get_session(
    session_id: str,
    user=Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """Get session state."""
    return _session_response(session_id, _handle(ctx, session_id, user.id))


@router.delete(
    "/{session_id}",
    response_model=SuccessResponse,
    summary="Close Upload Session",
    description="Discard a session and everything in it. Nothing is persisted.",
)
def close_session(
    session_id: str,
    user=Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """Drop the session."""
    try:
        ctx.close_session(session_id, user.id)
    except StorefrontError as exc:
        raise http_error(exc, "sessions") from exc
    return SuccessResponse(ok=True, message="Session closed")


@router.post(
    "/{session_id}/images",
    response_model=IntakeResponse,
    summary="Add Images",
    description="""
    Add one or more image files to the session.

    **Supported formats**: JPEG, PNG, WebP, HEIC/HEIF
    **Maximum file size**: 10MB per file

    Each file is:
    - Validated for size and type
    - Converted to JPEG when it is HEIC/HEIF or WebP
    - Rendered as thumbnail (200px), preview (800px) and full (1200px) JPEGs
    - Given a sanitized, timestamped filename

    Files are processed in order. A file that fails is reported in `messages`
    and the rest of the batch continues. Files beyond the session capacity are
    dropped and counted in `rejected`.

    **Authentication required**: Yes (Bearer token)
    """,
    response_description="Ids of the added images and the updated session",
)
async def add_images(
    session_id: str,
    files: list[UploadFile] = File(..., description="Image files to add"),
    user=Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """Run the upload pipeline over the submitted files."""
    handle = _handle(ctx, session_id, user.id)
    sources = []
    for upload in files:
        data = await upload.read()
        sources.append(
            SourceFile(
                data=data,
                media_type=upload.content_type or "",
                filename=upload.filename or "upload",
            )
        )
    result = await handle.session.intake(sources)
    return IntakeResponse(
        session=_session_response(session_id, handle),
        added=result.added,
        rejected=result.rejected,
    )


@router.get(
    "/{session_id}/images/{index}/{rendition}",
    summary="Download Rendition",
    description="Download the thumbnail, preview or full-size JPEG of one session image.",
    response_description="JPEG image bytes",
    responses={200: {"content": {"image/jpeg": {}}}},
)
def get_rendition(
    session_id: str,
    index: int = Path(..., ge=0, description="Image position"),
    rendition: Literal["thumbnail", "preview", "full"] = Path(..., description="Size tier"),
    user=Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """Stream one rendition of a session image."""
    handle = _handle(ctx, session_id, user.id)
    try:
        asset = handle.session.asset_at(index)
    except StorefrontError as exc:
        raise http_error(exc, "sessions:rendition") from exc
    data = getattr(asset.renditions, rendition)
    return Response(
        content=data,
        media_type="image/jpeg",
        headers={"Content-Disposition": f'inline; filename="{asset.sanitized_name}"'},
    )


@router.put(
    "/{session_id}/order",
    response_model=SessionResponse,
    summary="Reorder Images",
    description="""
    Set a new display order. The body must list every current image id exactly
    once; the first id becomes the primary image.
    """,
    responses={400: {"description": "Bad Request - Not a permutation of the current ids"}},
)
def reorder_images(
    session_id: str,
    body: ReorderRequest,
    user=Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """Reorder the session images."""
    handle = _handle(ctx, session_id, user.id)
    try:
        handle.session.reorder(body.ids)
    except StorefrontError as exc:
        raise http_error(exc, "sessions:reorder") from exc
    return _session_response(session_id, handle)


@router.delete(
    "/{session_id}/images/{index}",
    response_model=SessionResponse,
    summary="Remove Image",
    description="Remove the image at a position; later images shift up by one.",
    responses={400: {"description": "Bad Request - No image at that position"}},
)
def remove_image(
    session_id: str,
    index: int = Path(..., ge=0),
    user=Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """Remove one image."""
    handle = _handle(ctx, session_id, user.id)
    try:
        handle.session.remove(index)
    except StorefrontError as exc:
        raise http_error(exc, "sessions:remove") from exc
    return _session_response(session_id, handle)


@router.post(
    "/{session_id}/images/{index}/edit",
    response_model=EditImageResponse,
    summary="Crop / Rotate Image",
    description="""
    Open the image in the editor, apply the operations in order and commit.

    **Operations:**
    - `rotate_left` / `rotate_right`: quarter turn, width and height swap
    - `crop`: keep the `x`, `y`, `width`, `height` rectangle of the current canvas
    - `reset`: go back to the canvas as opened

    The editor canvas is the preview rendition fitted into 600x400, so crop
    coordinates refer to that canvas. On commit all three renditions are
    regenerated and the image keeps its position. If any operation is invalid
    nothing is committed.
    """,
    responses={
        400: {"description": "Bad Request - Crop area outside the image"},
        422: {"description": "Unprocessable Entity - Image could not be re-encoded"},
    },
)
async def edit_image(
    session_id: str,
    body: EditImageRequest,
    index: int = Path(..., ge=0),
    user=Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """Apply editor operations and commit them."""
    handle = _handle(ctx, session_id, user.id)
    try:
        editor = await handle.session.edit(index)
    except StorefrontError as exc:
        raise http_error(exc, "sessions:edit") from exc

    try:
        for op in body.operations:
            if op.operation == "rotate_left":
                editor.rotate_left()
            elif op.operation == "rotate_right":
                editor.rotate_right()
            elif op.operation == "crop":
                editor.crop(op.x, op.y, op.width, op.height)
            else:
                editor.reset()
    except StorefrontError as exc:
        editor.cancel()
        raise http_error(exc, "sessions:edit") from exc

    width, height = editor.size
    rotation = editor.rotation
    updated = await editor.commit()
    if updated is None:
        message = handle.messages[-1] if handle.messages else "Image edit failed"
        handle.messages.clear()
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=message)
    position = handle.session.index_of(updated.id)
    return EditImageResponse(
        session=_session_response(session_id, handle),
        image=_image_item(handle, position),
        canvas_width=width,
        canvas_height=height,
        rotation=rotation,
    )


@router.post(
    "/{session_id}/hydrate",
    response_model=SessionResponse,
    summary="Load Existing Images",
    description="""
    Replace the session contents with images that are already stored, e.g. when an
    existing listing is opened for editing. Data URIs are kept as given and are not
    recompressed. Invalid entries and entries beyond capacity are reported in
    `messages` and skipped.
    """,
)
async def hydrate_session(
    session_id: str,
    body: HydrateRequest,
    user=Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """Load existing images into the session."""
    handle = _handle(ctx, session_id, user.id)
    await handle.session.hydrate([item.model_dump() for item in body.images])
    return _session_response(session_id, handle)


@router.post(
    "/{session_id}/clear",
    response_model=SessionResponse,
    summary="Clear Session",
    description="Remove every image from the session.",
)
def clear_session(
    session_id: str,
    user=Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """Empty the session."""
    handle = _handle(ctx, session_id, user.id)
    handle.session.clear()
    return _session_response(session_id, handle)


@router.post(
    "/{session_id}/publish",
    response_model=PublishResponse,
    summary="Publish Images To Listing",
    description="""
    Upload the session images to storage and attach them to a listing.

    This endpoint:
    - Stores the full-size JPEG and its thumbnail under `listings/{user}/{listing}/`
    - Writes one image record per position, position 0 being the primary image
    - Replaces the listing's `imageUrls` with the new URLs in session order

    **Authentication required**: Yes (Bearer token). The listing must belong to the caller.
    """,
    responses={
        400: {"description": "Bad Request - Session has no images"},
        502: {"description": "Bad Gateway - Storage or database write failed"},
    },
)
def publish_session(
    session_id: str,
    body: PublishRequest,
    user=Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
    storage: SupabaseStorage = Depends(get_storage),
    assets: AssetRepository = Depends(get_asset_repo),
    listings: ListingRepository = Depends(get_listing_repo),
):
    """Persist the session images onto a listing."""
    handle = _handle(ctx, session_id, user.id)
    session = handle.session
    uc = PublishSessionUseCase(storage=storage, assets=assets, listings=listings)
    try:
        records = uc.execute(
            user.id,
            body.listing_id,
            session.get_all(),
            edited=[session.asset_at(i).edited for i in range(session.count)],
        )
    except StorefrontError as exc:
        raise http_error(exc, "sessions:publish") from exc
    return PublishResponse(
        listing_id=body.listing_id,
        images=[
            PublishedImage(
                position=r.position,
                name=r.name,
                url=r.url,
                thumbnail_url=r.thumbnail_url,
                is_primary=r.is_primary,
            )
            for r in records
        ],
    )
