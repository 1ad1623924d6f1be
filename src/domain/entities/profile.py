from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class ProfileEntity:
    """Seller profile stored in the ``Users`` collection."""

    id: str  # Supabase auth user id
    email: str | None
    created_at: datetime | None = None
    display_name: str | None = None

    @property
    def label(self) -> str:
        """Name shown on the storefront when no display name is set."""
        if self.display_name:
            return self.display_name
        if self.email:
            return self.email.split("@", 1)[0]
        return self.id
