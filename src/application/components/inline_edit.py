from __future__ import annotations

import asyncio
import inspect
import logging
import time
from typing import Any, Awaitable, Callable

from src.application.components.bulk_edit_grid import NUMERIC_COLUMNS, coerce_value
from src.config import GridConfig
from src.domain.errors import ErrorHandler, ValidationError

logger = logging.getLogger(__name__)

FieldSaveCallback = Callable[[Any, str], Awaitable[Any] | Any]


class InlineEditField:
    """Single listing field edited in place: type, validate, save, or revert.

    ``original_value`` is the last saved value. A failed save keeps the field dirty so
    the user can retry or revert.
    """

    def __init__(
        self,
        field_name: str,
        value: Any = "",
        on_save: FieldSaveCallback | None = None,
        on_error: Callable[[str], Any] | None = None,
        validate: Callable[[Any], Any] | None = None,
        column: str | None = None,
        config: GridConfig | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        if column is not None and column not in NUMERIC_COLUMNS:
            raise ValueError(f"Unknown numeric column: {column}")
        self.field_name = field_name
        self.on_save = on_save
        self.on_error = on_error
        self.validate = validate
        self.column = column
        self.config = config or GridConfig()
        self.clock = clock or (lambda: int(time.time() * 1000))

        self.original_value = self._normalize(value)
        self.value = self.original_value
        self._raw: Any = value
        self.last_error: BaseException | None = None
        self._saving = False
        self._saved_until_ms = 0

    @property
    def is_dirty(self) -> bool:
        return self.value != self.original_value

    @property
    def has_error(self) -> bool:
        return self.last_error is not None

    @property
    def is_saving(self) -> bool:
        return self._saving

    @property
    def status(self) -> str:
        if self._saving:
            return "saving"
        if self.last_error is not None:
            return "error"
        if self.is_dirty:
            return "modified"
        if self.clock() < self._saved_until_ms:
            return "saved"
        return "clean"

    def input(self, raw: Any) -> None:
        self._raw = raw
        self.value = self._normalize(raw)

    def revert(self) -> None:
        self._raw = self.original_value
        self.value = self.original_value
        self.last_error = None

    async def save(self) -> bool:
        """Validate and persist the current value. Returns True only when ``on_save`` ran."""
        if not self.is_dirty or self._saving:
            return False

        if self.validate is not None:
            # Numeric fields are validated as typed, before coercion
            verdict = self.validate(self._raw if self.column is not None else self.value)
            if verdict is not True:
                self._fail(ValidationError(str(verdict) if verdict else "Invalid value"))
                return False

        value = self.value
        self._saving = True
        try:
            if self.on_save is not None:
                if inspect.iscoroutinefunction(self.on_save):
                    result = self.on_save(value, self.field_name)
                else:
                    result = await asyncio.to_thread(self.on_save, value, self.field_name)
                if inspect.isawaitable(result):
                    await result
        except Exception as exc:
            self._fail(exc)
            return False
        finally:
            self._saving = False

        self.original_value = value
        self.last_error = None
        self._saved_until_ms = self.clock() + self.config.highlight_duration_ms
        logger.info("Saved field %s", self.field_name)
        return True

    def _normalize(self, raw: Any) -> Any:
        if self.column is not None:
            return coerce_value(self.column, raw)
        return "" if raw is None else str(raw).strip()

    def _fail(self, error: BaseException) -> None:
        self.last_error = error
        message = ErrorHandler.handle(error, f"field:{self.field_name}").user_message
        if self.on_error is None:
            return
        try:
            self.on_error(message)
        except Exception:
            logger.exception("onError callback failed")
