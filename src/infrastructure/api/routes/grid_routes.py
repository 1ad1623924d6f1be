from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from src.application.components.bulk_edit_grid import BulkEditGrid
from src.application.dtos.common_dto import SuccessResponse
from src.application.dtos.grid_dto import (
    CellEditRequest,
    CreateGridRequest,
    GridActionResponse,
    GridResponse,
    GridRowOut,
    PasteRequest,
    PendingChangeOut,
)
from src.application.use_cases.save_variations import (
    LoadVariationRowsUseCase,
    SaveVariationChangesUseCase,
)
from src.domain.errors import StorefrontError
from src.infrastructure.api.dependencies import (
    get_context,
    get_current_user,
    get_listing_repo,
    http_error,
)
from src.infrastructure.context import AppContext, GridHandle
from src.infrastructure.database.repositories.listing_repository import ListingRepository

router = APIRouter(
    prefix="/grids",
    tags=["Bulk Edit"],
    responses={
        401: {"description": "Unauthorized - Invalid or missing authentication token"},
        404: {"description": "Not Found - Grid or listing does not exist for this user"},
        422: {"description": "Validation Error - Invalid request format"},
    },
)


def _grid_response(grid_id: str, handle: GridHandle) -> GridResponse:
    grid = handle.grid
    messages = list(handle.messages)
    handle.messages.clear()
    return GridResponse(
        id=grid_id,
        listing_id=handle.listing_id,
        columns=grid.columns,
        rows=[
            GridRowOut(
                index=i,
                name=row.name,
                stock=row.stock,
                price=row.price,
                retail=row.retail,
                status=grid.row_status(i),
            )
            for i, row in enumerate(grid.get_data())
        ],
        pending=[
            PendingChangeOut(row=c.row, col=c.col, old_value=c.old_value, new_value=c.new_value)
            for c in grid.pending_changes
        ],
        change_summary=grid.change_summary,
        can_save=grid.can_save,
        can_undo=grid.can_undo,
        can_redo=grid.can_redo,
        status=grid.status,
        messages=messages,
    )


def _action(grid_id: str, handle: GridHandle, ok: bool, changed: int = 0) -> GridActionResponse:
    return GridActionResponse(ok=ok, changed=changed, grid=_grid_response(grid_id, handle))


def _handle(ctx: AppContext, grid_id: str, user_id: str) -> GridHandle:
    try:
        return ctx.grid_for(grid_id, user_id)
    except StorefrontError as exc:
        raise http_error(exc, "grids") from exc


@router.post(
    "",
    response_model=GridResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open Bulk Edit Grid",
    description="""
    Open a spreadsheet-style grid for quick stock and price edits.

    With `listing_id`, the grid holds one row per variation option of that listing
    (e.g. "Red - M") and saving writes the changes back to the listing in one update.
    Without it, the grid edits the `rows` given in the body and saving only moves
    the saved baseline.

    **Columns**: `name` (read only), `stock`, `price`, `retail`

    **Authentication required**: Yes (Bearer token)
    """,
    responses={400: {"description": "Bad Request - Unknown column"}},
)
def open_grid(
    body: CreateGridRequest,
    user=Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
    listings: ListingRepository = Depends(get_listing_repo),
):
    """Create a grid over a listing or explicit rows."""
    on_save = None
    rows: list = [row.model_dump() for row in body.rows]
    try:
        if body.listing_id:
            listings.get_owned(body.listing_id, user.id)
            rows = LoadVariationRowsUseCase(listings).execute(body.listing_id)
            on_save = SaveVariationChangesUseCase(listings).for_listing(body.listing_id)
    except StorefrontError as exc:
        raise http_error(exc, "grids:open") from exc

    def factory(on_error):
        return BulkEditGrid(
            columns=body.columns,
            rows=rows,
            on_save=on_save,
            on_error=on_error,
            config=ctx.settings.grid,
        )

    try:
        grid_id, handle = ctx.open_grid(user.id, factory, listing_id=body.listing_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _grid_response(grid_id, handle)


@router.get(
    "/{grid_id}",
    response_model=GridResponse,
    summary="Get Grid",
    description="Rows with their status, pending changes and undo/redo availability.",
)
def get_grid(
    grid_id: str,
    user=Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """Get grid state."""
    return _grid_response(grid_id, _handle(ctx, grid_id, user.id))


@router.patch(
    "/{grid_id}/cells",
    response_model=GridActionResponse,
    summary="Edit Cells",
    description="""
    Apply cell edits in order. Values are coerced like a spreadsheet: anything that
    is not a non-negative number becomes 0, stock is truncated to a whole number and
    prices are rounded to 2 decimals. Consecutive edits of the same cell form one
    undo step.
    """,
    responses={400: {"description": "Bad Request - Read-only or unknown cell"}},
)
def edit_cells(
    grid_id: str,
    body: CellEditRequest,
    user=Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """Edit one or more cells."""
    handle = _handle(ctx, grid_id, user.id)
    accepted = 0
    try:
        for edit in body.edits:
            if handle.grid.edit_cell(edit.row, edit.col, edit.value):
                accepted += 1
    except StorefrontError as exc:
        raise http_error(exc, "grids:edit") from exc
    return _action(grid_id, handle, accepted == len(body.edits), changed=accepted)


@router.post(
    "/{grid_id}/paste",
    response_model=GridActionResponse,
    summary="Paste",
    description="""
    Paste tab/newline separated text with its top-left value at the anchor cell.
    Cells outside the grid and the read-only `name` column are skipped. The paste
    is undone as a single step.
    """,
    responses={400: {"description": "Bad Request - Anchor outside the grid"}},
)
def paste(
    grid_id: str,
    body: PasteRequest,
    user=Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """Paste clipboard text."""
    handle = _handle(ctx, grid_id, user.id)
    try:
        handle.grid.select(body.row, body.col)
    except StorefrontError as exc:
        raise http_error(exc, "grids:paste") from exc
    changed = handle.grid.paste(body.text)
    return _action(grid_id, handle, changed > 0, changed=changed)


@router.post(
    "/{grid_id}/undo",
    response_model=GridActionResponse,
    summary="Undo",
    description="Revert the most recent edit step. `ok` is false when there is nothing to undo.",
)
def undo(
    grid_id: str,
    user=Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """Undo the last step."""
    handle = _handle(ctx, grid_id, user.id)
    return _action(grid_id, handle, handle.grid.undo())


@router.post(
    "/{grid_id}/redo",
    response_model=GridActionResponse,
    summary="Redo",
    description="Re-apply the most recently undone step. `ok` is false when there is nothing to redo.",
)
def redo(
    grid_id: str,
    user=Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """Redo the last undone step."""
    handle = _handle(ctx, grid_id, user.id)
    return _action(grid_id, handle, handle.grid.redo())


@router.post(
    "/{grid_id}/save",
    response_model=GridActionResponse,
    summary="Save All Changes",
    description="""
    Persist every pending change in one batch.

    On success the saved values become the new baseline and the changed rows are
    flagged `saved` for a few seconds. On failure nothing is lost: the changes stay
    pending and the reason is returned in `messages` with `ok` false.
    """,
)
async def save_all(
    grid_id: str,
    user=Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """Save pending changes."""
    handle = _handle(ctx, grid_id, user.id)
    pending = len(handle.grid.pending_changes)
    ok = await handle.grid.save_all_changes()
    return _action(grid_id, handle, ok, changed=pending if ok else 0)


@router.post(
    "/{grid_id}/discard",
    response_model=GridActionResponse,
    summary="Discard Changes",
    description="Drop every unsaved change and the undo history.",
)
def discard(
    grid_id: str,
    user=Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """Discard unsaved changes."""
    handle = _handle(ctx, grid_id, user.id)
    handle.grid.discard_changes()
    return _action(grid_id, handle, True)


@router.delete(
    "/{grid_id}",
    response_model=SuccessResponse,
    summary="Close Edit Grid",
    description="Drop the grid and any unsaved changes. Saved changes are unaffected.",
)
def close_grid(
    grid_id: str,
    user=Depends(get_current_user),
    ctx: AppContext = Depends(get_context),
):
    """Drop the grid."""
    try:
        ctx.close_grid(grid_id, user.id)
    except StorefrontError as exc:
        raise http_error(exc, "grids") from exc
    return SuccessResponse(ok=True, message="Grid closed")
