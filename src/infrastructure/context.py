"""Per-application object graph: settings, Supabase adapters and live editing state."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any

from src.application.components.bulk_edit_grid import BulkEditGrid
from src.application.components.upload_session import UploadSession
from src.application.use_cases.process_upload import ProcessUploadUseCase
from src.config import Settings
from src.domain.errors import NotFoundError
from src.domain.services.format_converter import FormatConverter
from src.domain.services.processing_service import ProcessingService
from src.domain.services.rendition_service import RenditionService
from src.infrastructure.database.document_store import (
    DocumentStore,
    InMemoryDocumentStore,
    SupabaseDocumentStore,
)
from src.infrastructure.database.supabase_client import SupabaseAuthAdapter, create_supabase_client
from src.infrastructure.storage.supabase_storage import SupabaseStorage

logger = logging.getLogger(__name__)


@dataclass
class SessionHandle:
    owner_id: str
    session: UploadSession
    messages: list[str] = field(default_factory=list)


@dataclass
class GridHandle:
    owner_id: str
    grid: BulkEditGrid
    listing_id: str | None = None
    messages: list[str] = field(default_factory=list)


@dataclass
class AppContext:
    settings: Settings
    client: Any
    auth: SupabaseAuthAdapter
    documents: DocumentStore
    storage: SupabaseStorage
    processing: ProcessingService
    converter: FormatConverter
    renditions: RenditionService
    sessions: dict[str, SessionHandle] = field(default_factory=dict)
    grids: dict[str, GridHandle] = field(default_factory=dict)

    @classmethod
    def build(cls, settings: Settings | None = None) -> AppContext:
        settings = settings or Settings()
        client = create_supabase_client(settings)
        documents: DocumentStore
        if client is None:
            logger.info("Supabase disabled, using in-memory documents and %s", settings.local_storage_dir)
            documents = InMemoryDocumentStore()
        else:
            documents = SupabaseDocumentStore(client)
        processing = ProcessingService()
        return cls(
            settings=settings,
            client=client,
            auth=SupabaseAuthAdapter(client),
            documents=documents,
            storage=SupabaseStorage(client, settings),
            processing=processing,
            converter=FormatConverter(processing, quality=settings.image.compression_quality),
            renditions=RenditionService(processing, settings.image),
        )

    def new_pipeline(self) -> ProcessUploadUseCase:
        return ProcessUploadUseCase(
            converter=self.converter,
            renditions=self.renditions,
            config=self.settings.image,
        )

    # --------- sessions ---------
    def open_session(self, owner_id: str) -> tuple[str, SessionHandle]:
        session_id = uuid.uuid4().hex
        messages: list[str] = []
        session = UploadSession(self.new_pipeline(), on_error=messages.append)
        handle = SessionHandle(owner_id=owner_id, session=session, messages=messages)
        self.sessions[session_id] = handle
        return session_id, handle

    def session_for(self, session_id: str, owner_id: str) -> SessionHandle:
        handle = self.sessions.get(session_id)
        if handle is None or handle.owner_id != owner_id:
            raise NotFoundError("Upload session not found")
        return handle

    def close_session(self, session_id: str, owner_id: str) -> None:
        self.session_for(session_id, owner_id)
        del self.sessions[session_id]

    # --------- grids ---------
    def open_grid(self, owner_id: str, grid_factory, listing_id: str | None = None) -> tuple[str, GridHandle]:
        grid_id = uuid.uuid4().hex
        messages: list[str] = []
        grid = grid_factory(messages.append)
        handle = GridHandle(owner_id=owner_id, grid=grid, listing_id=listing_id, messages=messages)
        self.grids[grid_id] = handle
        return grid_id, handle

    def grid_for(self, grid_id: str, owner_id: str) -> GridHandle:
        handle = self.grids.get(grid_id)
        if handle is None or handle.owner_id != owner_id:
            raise NotFoundError("Edit grid not found")
        return handle

    def close_grid(self, grid_id: str, owner_id: str) -> None:
        handle = self.grid_for(grid_id, owner_id)
        handle.grid.close()
        del self.grids[grid_id]
