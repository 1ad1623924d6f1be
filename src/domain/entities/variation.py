from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class VariationRow:
    """One editable row of the bulk edit grid (a listing variant)."""

    name: str
    stock: int = 0
    price: float = 0.0
    retail: float | None = None
    # Identity inside the listing document: (variation title, attribute name)
    key: tuple[str, str] | None = None

    def get(self, column: str) -> Any:
        return getattr(self, column)

    def set(self, column: str, value: Any) -> None:
        setattr(self, column, value)


@dataclass(frozen=True)
class PendingChange:
    row: int
    col: str
    old_value: Any
    new_value: Any


@dataclass(frozen=True)
class EditHistoryEntry:
    row: int
    col: str
    old_value: Any
    new_value: Any


@dataclass
class EditStep:
    """One undoable step; a single cell edit or a whole paste."""

    entries: list[EditHistoryEntry] = field(default_factory=list)
    source: str = "edit"
