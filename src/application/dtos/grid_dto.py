from __future__ import annotations

from pydantic import BaseModel, Field


class GridRowIn(BaseModel):
    """Row supplied when a grid is opened without a listing."""
    name: str = Field(..., description="Variant label, read only in the grid", example="Red - M")
    stock: int | float | str | None = Field(0, description="Units in stock")
    price: int | float | str | None = Field(0, description="Wholesale price")
    retail: int | float | str | None = Field(None, description="Suggested retail price")


class CreateGridRequest(BaseModel):
    """Open a bulk edit grid over a listing's variations, or over explicit rows."""
    listing_id: str | None = Field(None, description="Listing whose variations are edited", example="lst_123")
    columns: list[str] | None = Field(
        None, description="Visible columns in order", example=["name", "stock", "price", "retail"]
    )
    rows: list[GridRowIn] = Field(default_factory=list, description="Rows when no listing is given")


class GridRowOut(BaseModel):
    index: int = Field(..., ge=0)
    name: str
    stock: int
    price: float
    retail: float | None = None
    status: str = Field(..., description="modified, saved or clean", example="modified")


class PendingChangeOut(BaseModel):
    row: int
    col: str
    old_value: float | int | None
    new_value: float | int | None


class GridResponse(BaseModel):
    """Current state of a bulk edit grid."""
    id: str = Field(..., description="Grid identifier")
    listing_id: str | None = Field(None, description="Listing the grid saves to")
    columns: list[str]
    rows: list[GridRowOut]
    pending: list[PendingChangeOut] = Field(default_factory=list, description="Unsaved cell changes")
    change_summary: str = Field(..., example="2 changes pending")
    can_save: bool
    can_undo: bool
    can_redo: bool
    status: str = Field(..., description="Last status message", example="Ready")
    messages: list[str] = Field(default_factory=list, description="Messages reported since the previous request")


class GridActionResponse(BaseModel):
    """Grid state plus whether the requested action took effect."""
    ok: bool = Field(..., description="False when the action was a no-op or was rejected")
    changed: int = Field(0, description="Number of cells changed by the action", ge=0)
    grid: GridResponse


class CellEdit(BaseModel):
    row: int = Field(..., ge=0, description="Row index")
    col: str = Field(..., description="Column name", example="stock")
    value: int | float | str | None = Field(..., description="Raw cell input", example="12")


class CellEditRequest(BaseModel):
    """One or more cell edits, applied in order like consecutive keystrokes."""
    edits: list[CellEdit] = Field(..., min_length=1)


class PasteRequest(BaseModel):
    """Clipboard text pasted at an anchor cell."""
    text: str = Field(..., description="Tab separated columns, newline separated rows", example="5\t9.99\n7\t8.50")
    row: int = Field(..., ge=0, description="Anchor row")
    col: str = Field(..., description="Anchor column", example="stock")

