import asyncio
import threading
from unittest.mock import AsyncMock, Mock

import pytest

from src.application.components.bulk_edit_grid import BulkEditGrid, Caret, coerce_value
from src.config import GridConfig
from src.domain.errors import PersistenceError, ValidationError

ROWS = [
    {"name": "Red - S", "stock": 10, "price": 5.0},
    {"name": "Red - M", "stock": 3, "price": 5.5},
    {"name": "Blue - S", "stock": 0, "price": 6.0},
]


class FakeClock:
    def __init__(self, now=1_000_000):
        self.now = now

    def __call__(self):
        return self.now


def make_grid(**kwargs):
    return BulkEditGrid(rows=ROWS, **kwargs)


@pytest.mark.parametrize(
    "column,raw,expected",
    [
        ("stock", "12", 12),
        ("stock", "7.9", 7),
        ("stock", "abc", 0),
        ("stock", "-5", 0),
        ("stock", "nan", 0),
        ("stock", "", 0),
        ("price", "3.456", 3.46),
        ("price", 2, 2.0),
        ("price", "inf", 0),
        ("retail", None, 0),
    ],
)
def test_coerce_value(column, raw, expected):
    assert coerce_value(column, raw) == expected


def test_edit_records_pending_change_against_original():
    grid = make_grid()
    assert grid.edit_cell(0, "stock", "12")
    assert grid.get_data()[0].stock == 12
    [change] = grid.pending_changes
    assert (change.row, change.col, change.old_value, change.new_value) == (0, "stock", 10, 12)
    assert grid.change_summary == "1 change pending"
    assert grid.row_status(0) == "modified"
    assert grid.is_cell_modified(0, "stock")


def test_editing_back_to_original_clears_pending():
    grid = make_grid()
    grid.edit_cell(0, "stock", "12")
    grid.edit_cell(0, "stock", "10")
    assert not grid.has_changes
    assert grid.change_summary == "No changes"


def test_change_summary_plural():
    grid = make_grid()
    grid.edit_cell(0, "stock", 1)
    grid.edit_cell(1, "price", 9)
    assert grid.change_summary == "2 changes pending"


def test_name_column_is_read_only():
    grid = make_grid()
    with pytest.raises(ValidationError):
        grid.edit_cell(0, "name", "Green")


def test_unknown_cell_rejected():
    grid = make_grid()
    with pytest.raises(ValidationError):
        grid.edit_cell(9, "stock", 1)
    with pytest.raises(ValidationError):
        grid.edit_cell(0, "retail", 1)


def test_unknown_column_in_constructor():
    with pytest.raises(ValueError):
        BulkEditGrid(columns=["name", "colour"])


def test_validator_rejection_reports_and_keeps_value():
    on_error = Mock()
    grid = make_grid(validate=lambda raw: True if str(raw).isdigit() else "Digits only", on_error=on_error)
    assert grid.edit_cell(0, "stock", "x1") is False
    assert grid.get_data()[0].stock == 10
    assert not grid.has_changes
    assert not grid.can_undo
    on_error.assert_called_once()
    assert on_error.call_args.args[0].startswith("Digits only")


def test_consecutive_edits_to_one_cell_are_one_undo_step():
    grid = make_grid()
    grid.edit_cell(0, "stock", "1")
    grid.edit_cell(0, "stock", "12")
    assert grid.undo()
    assert grid.get_data()[0].stock == 10
    assert not grid.has_changes
    assert not grid.can_undo
    assert grid.redo()
    assert grid.get_data()[0].stock == 12
    assert grid.has_changes


def test_undo_redo_when_empty():
    grid = make_grid()
    assert grid.undo() is False
    assert grid.redo() is False


def test_new_edit_clears_redo():
    grid = make_grid()
    grid.edit_cell(0, "stock", 1)
    grid.undo()
    assert grid.can_redo
    grid.edit_cell(1, "stock", 2)
    assert not grid.can_redo


def test_history_is_bounded():
    grid = make_grid(config=GridConfig(max_undo_history=3))
    for i, row in enumerate([0, 1, 0, 1, 0]):
        grid.edit_cell(row, "stock", 100 + i)
    undone = 0
    while grid.undo():
        undone += 1
    assert undone == 3


def test_paste_block_is_one_undo_step():
    grid = make_grid()
    grid.select(0, "stock")
    changed = grid.paste("5\t9.99\n7\t8.50\n")
    assert changed == 4
    data = grid.get_data()
    assert (data[0].stock, data[0].price, data[1].stock, data[1].price) == (5, 9.99, 7, 8.5)
    assert grid.status == "Pasted values"

    assert grid.undo()
    data = grid.get_data()
    assert (data[0].stock, data[0].price, data[1].stock, data[1].price) == (10, 5.0, 3, 5.5)
    assert not grid.has_changes


def test_paste_skips_name_and_out_of_bounds_cells():
    grid = make_grid()
    assert grid.paste("X\t4", anchor=(0, "name")) == 1
    assert grid.get_data()[0].name == "Red - S"
    assert grid.get_data()[0].stock == 4

    assert grid.paste("1\t2\n3\t4", anchor=(2, "price")) == 1
    assert grid.get_data()[2].price == 1.0


def test_paste_without_anchor_or_selection_is_noop():
    grid = make_grid()
    assert grid.paste("1") == 0
    assert not grid.can_undo


def test_paste_of_identical_values_adds_no_step():
    grid = make_grid()
    assert grid.paste("10\t5", anchor=(0, "stock")) == 0
    assert not grid.can_undo


def test_tab_navigation_wraps_rows():
    grid = make_grid()
    grid.select(0, "price")
    assert grid.navigate("Tab") == (1, "name")
    assert grid.navigate("Tab", shift=True) == (0, "price")


def test_navigation_stops_at_edges():
    grid = make_grid()
    grid.select(2, "price")
    assert grid.navigate("Tab") is None
    assert grid.selected_cell == (2, "price")
    grid.select(0, "name")
    assert grid.navigate("ArrowUp") is None
    assert grid.navigate("ArrowLeft") is None


def test_enter_and_vertical_arrows():
    grid = make_grid()
    grid.select(0, "stock")
    assert grid.navigate("Enter") == (1, "stock")
    assert grid.navigate("Enter", shift=True) == (0, "stock")
    assert grid.navigate("ArrowDown", caret=Caret(1, 1, 2)) == (1, "stock")
    assert grid.navigate("ArrowUp") == (0, "stock")


def test_horizontal_arrows_respect_caret():
    grid = make_grid()
    grid.select(0, "stock")
    assert grid.navigate("ArrowLeft", caret=Caret(1, 1, 2)) is None
    assert grid.navigate("ArrowRight", caret=Caret(1, 1, 2)) is None
    assert grid.navigate("ArrowRight", caret=Caret(2, 2, 2)) == (0, "price")
    assert grid.navigate("ArrowLeft", caret=Caret(0, 0, 3)) == (0, "stock")


def test_copy_selection():
    grid = make_grid()
    assert grid.copy_selection() == ""
    grid.select(1, "price")
    assert grid.copy_selection() == "5.5"
    assert grid.status == "Copied to clipboard"


def test_save_hands_copies_and_moves_baseline():
    clock = FakeClock()
    on_save = Mock()
    grid = make_grid(on_save=on_save, clock=clock)
    grid.edit_cell(0, "stock", 12)

    assert asyncio.run(grid.save_all_changes()) is True
    changes, rows = on_save.call_args.args
    assert [(c.row, c.col, c.new_value) for c in changes] == [(0, "stock", 12)]
    rows[0].stock = 999
    assert grid.get_data()[0].stock == 12
    assert grid.get_original()[0].stock == 12
    assert not grid.has_changes
    assert grid.status == "All changes saved!"
    assert grid.row_status(0) == "saved"
    clock.now += 3001
    assert grid.row_status(0) == "clean"


def test_save_with_nothing_pending_is_noop():
    on_save = Mock()
    grid = make_grid(on_save=on_save)
    assert asyncio.run(grid.save_all_changes()) is False
    on_save.assert_not_called()


def test_failed_save_keeps_changes():
    on_error = Mock()
    grid = make_grid(on_save=Mock(side_effect=PersistenceError("network request failed")), on_error=on_error)
    grid.edit_cell(0, "stock", 12)
    assert asyncio.run(grid.save_all_changes()) is False
    assert grid.has_changes
    assert grid.get_original()[0].stock == 10
    assert grid.status == "Save failed!"
    assert not grid.is_saving
    assert on_error.call_args.args[0].startswith("Network connection lost")


def test_async_save_callback_is_awaited():
    on_save = AsyncMock()
    grid = make_grid(on_save=on_save)
    grid.edit_cell(1, "price", "7.25")
    assert asyncio.run(grid.save_all_changes()) is True
    on_save.assert_awaited_once()


def test_edits_during_save_stay_pending_and_second_save_is_refused():
    grid = make_grid()
    seen = {}

    async def on_save(changes, rows):
        await asyncio.sleep(0)
        assert grid.is_saving
        assert not grid.can_save
        seen["second"] = await grid.save_all_changes()
        grid.edit_cell(1, "stock", "99")

    grid.on_save = on_save
    grid.edit_cell(0, "stock", "12")
    assert asyncio.run(grid.save_all_changes()) is True
    assert seen["second"] is False
    assert grid.get_original()[0].stock == 12
    [pending] = grid.pending_changes
    assert (pending.row, pending.col, pending.old_value, pending.new_value) == (1, "stock", 3, 99)


def test_discard_restores_original_and_history():
    grid = make_grid()
    grid.edit_cell(0, "stock", 1)
    grid.paste("9", anchor=(1, "price"))
    grid.discard_changes()
    assert [r.stock for r in grid.get_data()] == [10, 3, 0]
    assert grid.get_data()[1].price == 5.5
    assert not grid.has_changes
    assert not grid.can_undo
    assert grid.status == "Changes discarded"


def test_autosave_runs_only_when_enabled():
    async def scenario(enabled):
        on_save = Mock()
        grid = make_grid(
            on_save=on_save,
            config=GridConfig(auto_save_delay_ms=10),
            autosave_enabled=enabled,
        )
        grid.edit_cell(0, "stock", 4)
        await asyncio.sleep(0.1)
        return on_save.call_count, grid.has_changes

    assert asyncio.run(scenario(True)) == (1, False)
    assert asyncio.run(scenario(False)) == (0, True)


def test_undo_redo_price_cell_restores_pending_entry():
    grid = BulkEditGrid(rows=[{"name": f"r{i}", "stock": 1, "price": 100} for i in range(3)])
    grid.edit_cell(2, "price", 150)
    grid.undo()
    assert grid.get_data()[2].price == 100
    assert not grid.is_cell_modified(2, "price")
    grid.redo()
    assert grid.get_data()[2].price == 150
    assert grid.is_cell_modified(2, "price")


def test_paste_two_by_two_block():
    grid = make_grid()
    assert grid.paste("5\t20\n6\t25", anchor=(1, "stock")) == 4
    data = grid.get_data()
    assert (data[1].stock, data[1].price, data[2].stock, data[2].price) == (5, 20.0, 6, 25.0)


def test_nothing_to_discard_after_successful_save():
    grid = make_grid(on_save=Mock())
    grid.edit_cell(0, "stock", 12)
    asyncio.run(grid.save_all_changes())
    grid.discard_changes()
    assert grid.get_data() == grid.get_original()
    assert grid.get_data()[0].stock == 12


def test_set_data_during_save_keeps_new_baseline():
    grid = make_grid()

    async def scenario():
        release = asyncio.Event()

        async def on_save(changes, rows):
            await release.wait()

        grid.on_save = on_save
        grid.edit_cell(1, "stock", 8)
        task = asyncio.create_task(grid.save_all_changes())
        await asyncio.sleep(0)
        grid.set_data([{"name": "Only", "stock": 1, "price": 2}])
        release.set()
        return await task

    assert asyncio.run(scenario()) is True
    assert [r.name for r in grid.get_original()] == ["Only"]
    assert grid.get_data() == grid.get_original()
    assert not grid.has_changes


def test_paste_with_negative_anchor_changes_nothing():
    grid = make_grid()
    assert grid.paste("50", anchor=(-1, "stock")) == 0
    assert [r.stock for r in grid.get_data()] == [10, 3, 0]
    assert not grid.can_undo


def test_blocking_save_callback_runs_off_the_event_loop():
    seen = {}

    def on_save(changes, rows):
        seen["thread"] = threading.get_ident()

    grid = make_grid(on_save=on_save)
    grid.edit_cell(0, "stock", 1)
    assert asyncio.run(grid.save_all_changes()) is True
    assert seen["thread"] != threading.get_ident()


def test_edit_after_save_is_its_own_undo_step():
    grid = make_grid(on_save=Mock())
    grid.edit_cell(0, "stock", 12)
    asyncio.run(grid.save_all_changes())
    grid.edit_cell(0, "stock", 15)
    assert grid.undo()
    assert grid.get_data()[0].stock == 12
    assert not grid.has_changes
