from __future__ import annotations

import logging
from dataclasses import dataclass

from src.domain.entities.variation import PendingChange, VariationRow
from src.domain.errors import NotFoundError, ValidationError
from src.infrastructure.database.records import VariationRecord
from src.infrastructure.database.repositories.listing_repository import ListingRepository

logger = logging.getLogger(__name__)


def row_label(title: str, attr_name: str) -> str:
    return f"{title} - {attr_name}" if title else attr_name


@dataclass
class LoadVariationRowsUseCase:
    listings: ListingRepository

    def execute(self, listing_id: str) -> list[VariationRow]:
        """Flatten ``variations[].attributes[]`` into one grid row per option."""
        listing = self.listings.get(listing_id)
        if listing is None:
            raise NotFoundError("Listing not found")
        rows: list[VariationRow] = []
        for variation in self.listings.variations(listing):
            for attr in variation.attributes:
                rows.append(
                    VariationRow(
                        name=row_label(variation.title, attr.attr_name),
                        stock=attr.stock,
                        price=attr.price,
                        retail=attr.retail_price,
                        key=(variation.title, attr.attr_name),
                    )
                )
        return rows


@dataclass
class SaveVariationChangesUseCase:
    """Persists grid edits back into the listing's nested variations, in one update."""

    listings: ListingRepository

    def execute(
        self, listing_id: str, changes: list[PendingChange], rows: list[VariationRow]
    ) -> int:
        listing = self.listings.get(listing_id)
        if listing is None:
            raise NotFoundError("Listing not found")
        variations: list[VariationRecord] = self.listings.variations(listing)

        index = {}
        for variation in variations:
            for attr in variation.attributes:
                index[(variation.title, attr.attr_name)] = attr

        changed_rows = sorted({c.row for c in changes})
        for row_index in changed_rows:
            row = rows[row_index]
            attr = index.get(row.key) if row.key else None
            if attr is None:
                raise ValidationError(f"Option '{row.name}' no longer exists on this listing")
            attr.stock = row.stock
            attr.price = row.price
            if row.retail is not None:
                attr.retail_price = row.retail

        self.listings.set_variations(listing_id, variations)
        logger.info("Updated %d variation row(s) on listing %s", len(changed_rows), listing_id)
        return len(changed_rows)

    def for_listing(self, listing_id: str):
        """Grid ``on_save`` callback bound to one listing."""

        def on_save(changes: list[PendingChange], rows: list[VariationRow]) -> int:
            return self.execute(listing_id, changes, rows)

        return on_save
