from __future__ import annotations

import asyncio
import copy
import inspect
import logging
import math
import re
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Mapping

from src.config import GridConfig
from src.domain.entities.variation import EditHistoryEntry, EditStep, PendingChange, VariationRow
from src.domain.errors import ErrorHandler, ValidationError

logger = logging.getLogger(__name__)

READ_ONLY_COLUMNS = frozenset({"name"})
NUMERIC_COLUMNS = {"stock": int, "price": float, "retail": float}
KNOWN_COLUMNS = READ_ONLY_COLUMNS | set(NUMERIC_COLUMNS)

SaveCallback = Callable[[list[PendingChange], list[VariationRow]], Awaitable[Any] | Any]
ErrorCallback = Callable[[str], Any]
Validator = Callable[[Any], Any]


@dataclass(frozen=True)
class Caret:
    """Text caret inside the focused cell input."""

    start: int
    end: int
    length: int

    @property
    def at_start(self) -> bool:
        return self.start == 0

    @property
    def at_end(self) -> bool:
        return self.end == self.length


def coerce_value(column: str, raw: Any) -> int | float:
    """Spreadsheet-style coercion: anything unparseable, negative or NaN becomes 0."""
    if isinstance(raw, bool) or raw is None:
        value = 0.0
    elif isinstance(raw, (int, float)):
        value = float(raw)
    else:
        try:
            value = float(str(raw).strip())
        except ValueError:
            value = 0.0
    if not math.isfinite(value) or value < 0:
        value = 0.0
    if NUMERIC_COLUMNS[column] is int:
        return int(value)
    return round(value, 2)


def _to_row(row: VariationRow | Mapping[str, Any]) -> VariationRow:
    if isinstance(row, VariationRow):
        return copy.deepcopy(row)
    key = row.get("key")
    return VariationRow(
        name=str(row.get("name", "")),
        stock=coerce_value("stock", row.get("stock")),
        price=coerce_value("price", row.get("price")),
        retail=None if row.get("retail") is None else coerce_value("retail", row.get("retail")),
        key=tuple(key) if key else None,
    )


class BulkEditGrid:
    """Spreadsheet-like editor over variation rows with undo/redo and deferred batch save.

    ``data`` is the working copy, ``original`` the last saved truth; the pending map holds
    one entry per cell whose working value differs from the original.
    """

    def __init__(
        self,
        columns: Iterable[str] | None = None,
        rows: Iterable[VariationRow | Mapping[str, Any]] = (),
        on_save: SaveCallback | None = None,
        on_error: ErrorCallback | None = None,
        validate: Validator | None = None,
        config: GridConfig | None = None,
        clock: Callable[[], int] | None = None,
        autosave_enabled: bool = False,
    ) -> None:
        self.config = config or GridConfig()
        self.columns = list(columns or self.config.default_columns)
        unknown = [c for c in self.columns if c not in KNOWN_COLUMNS]
        if unknown:
            raise ValueError(f"Unknown grid columns: {unknown}")
        self.on_save = on_save
        self.on_error = on_error
        self.validate = validate
        self.clock = clock or (lambda: int(time.time() * 1000))
        self.autosave_enabled = autosave_enabled

        self.status = "Ready"
        self.selected: tuple[int, int] | None = None
        self._saving = False
        self._saved_until_ms = 0
        self._autosave_handle: asyncio.TimerHandle | None = None
        self._autosave_task: asyncio.Task | None = None
        self._generation = 0
        self.set_data(rows)

    # --------- data ---------
    def set_data(self, rows: Iterable[VariationRow | Mapping[str, Any]]) -> None:
        self._generation += 1
        self._data: list[VariationRow] = [_to_row(r) for r in rows]
        self._original: list[VariationRow] = copy.deepcopy(self._data)
        self._pending: dict[tuple[int, str], PendingChange] = {}
        self._undo: deque[EditStep] = deque(maxlen=self.config.max_undo_history)
        self._redo: deque[EditStep] = deque(maxlen=self.config.max_undo_history)
        self._last_edited: tuple[int, str] | None = None
        self.selected = None

    def get_data(self) -> list[VariationRow]:
        return copy.deepcopy(self._data)

    def get_original(self) -> list[VariationRow]:
        return copy.deepcopy(self._original)

    @property
    def row_count(self) -> int:
        return len(self._data)

    @property
    def pending_changes(self) -> list[PendingChange]:
        return list(self._pending.values())

    @property
    def has_changes(self) -> bool:
        return bool(self._pending)

    @property
    def is_saving(self) -> bool:
        return self._saving

    @property
    def can_save(self) -> bool:
        return bool(self._pending) and not self._saving

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def change_summary(self) -> str:
        count = len(self._pending)
        if count == 0:
            return "No changes"
        return f"{count} change{'s' if count > 1 else ''} pending"

    def row_status(self, row: int) -> str:
        if any(r == row for r, _ in self._pending):
            return "modified"
        if self.clock() < self._saved_until_ms:
            return "saved"
        return "clean"

    def is_cell_modified(self, row: int, col: str) -> bool:
        return (row, col) in self._pending

    # --------- editing ---------
    def edit_cell(self, row: int, col: str, raw_value: Any) -> bool:
        self._check_cell(row, col)
        if col in READ_ONLY_COLUMNS:
            raise ValidationError(f"Column '{col}' is read-only")
        if not self._passes_validation(raw_value):
            return False

        value = coerce_value(col, raw_value)
        current = self._data[row].get(col)
        self.selected = (row, self.columns.index(col))
        if value == current:
            return True

        top = self._undo[-1] if self._undo else None
        if (
            top is not None
            and top.source == "edit"
            and self._last_edited == (row, col)
            and len(top.entries) == 1
        ):
            # Consecutive keystrokes in one cell form a single undo step
            first = top.entries[0]
            top.entries[0] = EditHistoryEntry(row, col, first.old_value, value)
        else:
            self._undo.append(EditStep([EditHistoryEntry(row, col, current, value)]))
        self._redo.clear()
        self._last_edited = (row, col)

        self._data[row].set(col, value)
        self._sync_pending(row, col)
        self._schedule_autosave()
        return True

    def paste(self, text: str, anchor: tuple[int, str] | None = None) -> int:
        """Apply tab/newline separated clipboard text starting at the anchor cell.

        Returns the number of cells changed. The whole paste is one undo step.
        """
        if not text:
            return 0
        if anchor is None:
            if self.selected is None:
                return 0
            start_row, start_col = self.selected
        else:
            start_row, col_name = anchor
            if col_name not in self.columns:
                return 0
            start_col = self.columns.index(col_name)
        if not 0 <= start_row < len(self._data):
            return 0

        lines = re.split(r"\r?\n", text)
        if len(lines) > 1 and lines[-1] == "":
            lines.pop()

        entries: list[EditHistoryEntry] = []
        for row_offset, line in enumerate(lines):
            target_row = start_row + row_offset
            if target_row >= len(self._data):
                break
            for col_offset, raw in enumerate(line.split("\t")):
                target_index = start_col + col_offset
                if target_index >= len(self.columns):
                    break
                target_col = self.columns[target_index]
                if target_col in READ_ONLY_COLUMNS:
                    continue
                if not self._passes_validation(raw):
                    continue
                value = coerce_value(target_col, raw)
                old = self._data[target_row].get(target_col)
                if value == old:
                    continue
                self._data[target_row].set(target_col, value)
                self._sync_pending(target_row, target_col)
                entries.append(EditHistoryEntry(target_row, target_col, old, value))

        if entries:
            self._undo.append(EditStep(entries, source="paste"))
            self._redo.clear()
            self._schedule_autosave()
        self._last_edited = None
        self._set_status("Pasted values")
        return len(entries)

    def undo(self) -> bool:
        if not self._undo:
            return False
        step = self._undo.pop()
        for entry in reversed(step.entries):
            self._data[entry.row].set(entry.col, entry.old_value)
            self._sync_pending(entry.row, entry.col)
        self._redo.append(step)
        self._last_edited = None
        self._set_status("Undid change")
        return True

    def redo(self) -> bool:
        if not self._redo:
            return False
        step = self._redo.pop()
        for entry in step.entries:
            self._data[entry.row].set(entry.col, entry.new_value)
            self._sync_pending(entry.row, entry.col)
        self._undo.append(step)
        self._last_edited = None
        self._set_status("Redid change")
        return True

    def discard_changes(self) -> None:
        self._data = copy.deepcopy(self._original)
        self._pending.clear()
        self._undo.clear()
        self._redo.clear()
        self._last_edited = None
        self._cancel_autosave()
        self._set_status("Changes discarded")

    def close(self) -> None:
        """Stop any scheduled autosave; the grid is being dropped."""
        self._cancel_autosave()

    # --------- navigation ---------
    def select(self, row: int, col: str) -> None:
        self._check_cell(row, col)
        self.selected = (row, self.columns.index(col))

    @property
    def selected_cell(self) -> tuple[int, str] | None:
        if self.selected is None:
            return None
        row, col_index = self.selected
        return row, self.columns[col_index]

    def navigate(self, key: str, shift: bool = False, caret: Caret | None = None) -> tuple[int, str] | None:
        """Move the selection like a spreadsheet. Returns the new cell, or None if it stays put."""
        if self.selected is None:
            return None
        row, col = self.selected
        if key == "Tab":
            move = (0, -1 if shift else 1)
        elif key == "Enter":
            move = (-1 if shift else 1, 0)
        elif key == "ArrowUp":
            move = (-1, 0)
        elif key == "ArrowDown":
            move = (1, 0)
        elif key == "ArrowLeft":
            # Leave in-cell caret movement alone until the caret hits the edge
            if caret is not None and not caret.at_start:
                return None
            move = (0, -1)
        elif key == "ArrowRight":
            if caret is not None and not caret.at_end:
                return None
            move = (0, 1)
        else:
            return None

        new_row, new_col = row + move[0], col + move[1]
        if key == "Tab":
            if new_col < 0:
                new_row -= 1
                new_col = len(self.columns) - 1
            elif new_col >= len(self.columns):
                new_row += 1
                new_col = 0

        if not 0 <= new_row < len(self._data) or not 0 <= new_col < len(self.columns):
            return None
        self.selected = (new_row, new_col)
        self._last_edited = None
        return new_row, self.columns[new_col]

    def copy_selection(self) -> str:
        cell = self.selected_cell
        if cell is None:
            return ""
        row, col = cell
        value = self._data[row].get(col)
        self._set_status("Copied to clipboard")
        return "" if value is None else str(value)

    # --------- persistence ---------
    async def save_all_changes(self) -> bool:
        """Hand every pending change to ``on_save``; all or nothing."""
        if not self._pending or self._saving:
            return False

        changes = list(self._pending.values())
        snapshot = copy.deepcopy(self._data)
        generation = self._generation
        self._saving = True
        self._cancel_autosave()
        self._set_status("Saving...")
        try:
            if self.on_save is not None:
                if inspect.iscoroutinefunction(self.on_save):
                    result = self.on_save(list(changes), copy.deepcopy(snapshot))
                else:
                    # Blocking store calls stay off the event loop
                    result = await asyncio.to_thread(self.on_save, list(changes), copy.deepcopy(snapshot))
                if inspect.isawaitable(result):
                    await result
        except Exception as exc:
            self._set_status("Save failed!")
            self._report(exc, "grid:save")
            return False
        finally:
            self._saving = False

        self._last_edited = None
        if generation != self._generation:
            # set_data() replaced the rows mid-save; the snapshot is not their baseline
            self._set_status("All changes saved!")
            logger.info("Saved %d grid change(s) for replaced data", len(changes))
            return True

        # Edits made while the save was in flight stay pending against the new baseline
        self._original = snapshot
        touched = set(self._pending) | {(c.row, c.col) for c in changes}
        for row, col in touched:
            self._sync_pending(row, col)
        self._saved_until_ms = self.clock() + self.config.highlight_duration_ms
        self._set_status("All changes saved!")
        logger.info("Saved %d grid change(s)", len(changes))
        return True

    # --------- helpers ---------
    def _sync_pending(self, row: int, col: str) -> None:
        original = self._original[row].get(col)
        current = self._data[row].get(col)
        if current == original:
            self._pending.pop((row, col), None)
        else:
            self._pending[(row, col)] = PendingChange(row, col, original, current)

    def _check_cell(self, row: int, col: str) -> None:
        if col not in self.columns:
            raise ValidationError(f"Unknown column '{col}'")
        if not 0 <= row < len(self._data):
            raise ValidationError(f"No row at index {row}")

    def _passes_validation(self, raw: Any) -> bool:
        if self.validate is None:
            return True
        verdict = self.validate(raw)
        if verdict is True:
            return True
        self._report(ValidationError(str(verdict) if verdict else "Invalid value"), "grid:validate")
        return False

    def _set_status(self, message: str) -> None:
        self.status = message

    def _report(self, error: BaseException, context: str) -> None:
        message = ErrorHandler.handle(error, context).user_message
        if self.on_error is None:
            return
        try:
            self.on_error(message)
        except Exception:
            logger.exception("onError callback failed")

    def _schedule_autosave(self) -> None:
        self._cancel_autosave()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._autosave_handle = loop.call_later(
            self.config.auto_save_delay_ms / 1000.0, self._autosave_due
        )

    def _cancel_autosave(self) -> None:
        if self._autosave_handle is not None:
            self._autosave_handle.cancel()
            self._autosave_handle = None

    def _autosave_due(self) -> None:
        self._autosave_handle = None
        if not self.autosave_enabled:
            # Explicit "Save All" is the only persistence path by default
            logger.debug("Autosave timer elapsed with %d pending change(s)", len(self._pending))
            return
        self._autosave_task = asyncio.get_running_loop().create_task(self.save_all_changes())
