"""Generic document-store collaborator.

Records live in collections addressed by slash-separated paths
(``Listings``, ``Listings/<id>/images``). The Supabase implementation keeps every
collection in one ``documents`` table with a JSON ``data`` column; the in-memory
implementation is used when Supabase is disabled (tests, local demos).
"""
from __future__ import annotations

import copy
import logging
import uuid
from datetime import UTC, datetime
from typing import Any, Protocol

from src.domain.errors import PersistenceError

try:
    from supabase import Client
except Exception:  # pragma: no cover
    Client = object  # type: ignore

logger = logging.getLogger(__name__)


class DocumentStore(Protocol):
    def create(self, collection: str, record: dict[str, Any]) -> str: ...

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None: ...

    def update(self, collection: str, doc_id: str, partial: dict[str, Any]) -> None: ...

    def delete(self, collection: str, doc_id: str) -> None: ...

    def query(self, collection: str, field: str, value: Any) -> list[dict[str, Any]]: ...


class InMemoryDocumentStore:
    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}

    def create(self, collection: str, record: dict[str, Any]) -> str:
        doc_id = str(record.get("id") or uuid.uuid4().hex)
        stored = copy.deepcopy(record)
        stored["id"] = doc_id
        self._collections.setdefault(collection, {})[doc_id] = stored
        return doc_id

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        record = self._collections.get(collection, {}).get(doc_id)
        return copy.deepcopy(record) if record is not None else None

    def update(self, collection: str, doc_id: str, partial: dict[str, Any]) -> None:
        record = self._collections.get(collection, {}).get(doc_id)
        if record is None:
            raise PersistenceError(f"No document {collection}/{doc_id}", code="not-found")
        record.update(copy.deepcopy(partial))

    def delete(self, collection: str, doc_id: str) -> None:
        self._collections.get(collection, {}).pop(doc_id, None)

    def query(self, collection: str, field: str, value: Any) -> list[dict[str, Any]]:
        docs = self._collections.get(collection, {}).values()
        return [copy.deepcopy(d) for d in docs if d.get(field) == value]


class SupabaseDocumentStore:
    table = "documents"

    def __init__(self, client: Client) -> None:
        self.client = client

    def _row_to_record(self, row: dict) -> dict[str, Any]:
        record = dict(row.get("data") or {})
        record["id"] = row["id"]
        return record

    def create(self, collection: str, record: dict[str, Any]) -> str:
        data = dict(record)
        doc_id = str(data.pop("id", None) or uuid.uuid4().hex)
        now = datetime.now(UTC).isoformat()
        try:  # pragma: no cover - network
            self.client.table(self.table).insert(
                {
                    "id": doc_id,
                    "collection": collection,
                    "data": data,
                    "created_at": now,
                    "updated_at": now,
                }
            ).execute()
        except Exception as exc:
            raise PersistenceError(f"Document create failed: {exc}") from exc
        return doc_id

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        try:  # pragma: no cover - network
            res = (
                self.client.table(self.table)
                .select("*")
                .eq("collection", collection)
                .eq("id", doc_id)
                .limit(1)
                .execute()
            )
        except Exception as exc:
            raise PersistenceError(f"Document get failed: {exc}") from exc
        rows = res.data or []
        return self._row_to_record(rows[0]) if rows else None

    def update(self, collection: str, doc_id: str, partial: dict[str, Any]) -> None:
        current = self.get(collection, doc_id)
        if current is None:
            raise PersistenceError(f"No document {collection}/{doc_id}", code="not-found")
        current.pop("id", None)
        current.update(partial)
        try:  # pragma: no cover - network
            self.client.table(self.table).update(
                {"data": current, "updated_at": datetime.now(UTC).isoformat()}
            ).eq("collection", collection).eq("id", doc_id).execute()
        except Exception as exc:
            raise PersistenceError(f"Document update failed: {exc}") from exc

    def delete(self, collection: str, doc_id: str) -> None:
        try:  # pragma: no cover - network
            self.client.table(self.table).delete().eq("collection", collection).eq(
                "id", doc_id
            ).execute()
        except Exception as exc:
            raise PersistenceError(f"Document delete failed: {exc}") from exc

    def query(self, collection: str, field: str, value: Any) -> list[dict[str, Any]]:
        try:  # pragma: no cover - network
            res = (
                self.client.table(self.table)
                .select("*")
                .eq("collection", collection)
                .eq(f"data->>{field}", value)
                .execute()
            )
        except Exception as exc:
            raise PersistenceError(f"Document query failed: {exc}") from exc
        return [self._row_to_record(row) for row in res.data or []]
