from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from src.domain.errors import ValidationError
from src.infrastructure.database.repositories.listing_repository import ListingRepository

# Text fields a seller may change in place from the listing overview
EDITABLE_FIELDS = ("name", "brand", "description")
NAME_MAX_LENGTH = 200


def validator_for(field: str) -> Callable[[Any], Any] | None:
    if field != "name":
        return None

    def validate(value: Any) -> bool | str:
        text = str(value or "").strip()
        if not text:
            return "Listing name cannot be empty"
        if len(text) > NAME_MAX_LENGTH:
            return f"Listing name must be {NAME_MAX_LENGTH} characters or fewer"
        return True

    return validate


@dataclass
class UpdateListingFieldUseCase:
    listings: ListingRepository

    def current_value(self, user_id: str, listing_id: str, field: str) -> Any:
        self._check_field(field)
        return self.listings.get_owned(listing_id, user_id).get(field)

    def execute(self, user_id: str, listing_id: str, field: str, value: Any) -> None:
        self._check_field(field)
        self.listings.get_owned(listing_id, user_id)
        self.listings.update(listing_id, {field: value})

    def for_listing(self, user_id: str, listing_id: str):
        """``on_save`` callback for an InlineEditField bound to one listing."""

        def on_save(value: Any, field: str) -> None:
            self.execute(user_id, listing_id, field, value)

        return on_save

    @staticmethod
    def _check_field(field: str) -> None:
        if field not in EDITABLE_FIELDS:
            raise ValidationError(f"Field '{field}' cannot be edited inline")
