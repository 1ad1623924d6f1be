from __future__ import annotations

from datetime import UTC, datetime

from src.domain.entities.profile import ProfileEntity
from src.infrastructure.database.document_store import DocumentStore
from src.infrastructure.database.records import ProfileRecord

USERS = "Users"


class ProfileRepository:
    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def _row_to_entity(self, row: dict) -> ProfileEntity:
        record = ProfileRecord.model_validate(row)
        return ProfileEntity(
            id=record.id,
            email=record.email,
            created_at=record.created_at,
            display_name=record.display_name,
        )

    def get(self, user_id: str) -> ProfileEntity | None:
        row = self.store.get(USERS, user_id)
        return self._row_to_entity(row) if row else None

    def upsert(self, user_id: str, email: str | None) -> ProfileEntity:
        existing = self.store.get(USERS, user_id)
        if existing is None:
            record = ProfileRecord(id=user_id, email=email, created_at=datetime.now(UTC))
            self.store.create(USERS, record.model_dump(mode="json"))
            return self._row_to_entity(record.model_dump())
        if email and existing.get("email") != email:
            self.store.update(USERS, user_id, {"email": email})
            existing["email"] = email
        return self._row_to_entity(existing)

    def set_display_name(self, user_id: str, display_name: str) -> ProfileEntity:
        self.upsert(user_id, None)
        self.store.update(USERS, user_id, {"display_name": display_name})
        return self.get(user_id)
