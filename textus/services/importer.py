from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

import structlog

from textus.config import Settings, settings as default_settings
from textus.datastore.base import DocumentStore
from textus.datastore.factory import datastore
from textus.services.indexing import IndexingPipeline, RecordCollection
from textus.text.chunking import PartLike, split_text

logger = structlog.get_logger()


class ImportState(str, Enum):
    START = "start"
    METADATA_WRITTEN = "metadata_written"
    CHUNKS_WRITTEN = "chunks_written"
    SEMANTICS_WRITTEN = "semantics_written"
    TYPOGRAPHY_WRITTEN = "typography_written"
    REFRESHED = "refreshed"
    DONE = "done"
    FAILED = "failed"


_COLLECTION_STATES = {
    "text": ImportState.CHUNKS_WRITTEN,
    "semantics": ImportState.SEMANTICS_WRITTEN,
    "typography": ImportState.TYPOGRAPHY_WRITTEN,
}


@dataclass
class ImportRun:
    """Progress of a single import."""

    state: ImportState = ImportState.START
    text_id: Optional[str] = None
    error: Optional[BaseException] = None
    history: List[ImportState] = field(default_factory=lambda: [ImportState.START])

    def advance(self, state: ImportState):
        self.state = state
        self.history.append(state)
        logger.info("import_state", state=state.value, text_id=self.text_id)


def now_millis() -> int:
    return int(time.time() * 1000)


def _stamp(annotations: Iterable[Mapping[str, Any]], text_id: str) -> List[Dict[str, Any]]:
    return [{**annotation, "textId": text_id} for annotation in annotations]


class TextImporter:
    """Writes a text's metadata, chunks and annotations as one import."""

    def __init__(self, store: DocumentStore, config: Optional[Settings] = None):
        self.store = store
        self.settings = config or default_settings

    def build_collections(
        self,
        text_id: str,
        text_parts: Iterable[PartLike],
        semantics: Iterable[Mapping[str, Any]],
        typography: Iterable[Mapping[str, Any]],
    ) -> List[RecordCollection]:
        chunks = split_text(text_parts, self.settings.text_chunk_size)
        return [
            RecordCollection("text", [chunk.to_record(text_id) for chunk in chunks]),
            RecordCollection("semantics", _stamp(semantics, text_id)),
            RecordCollection("typography", _stamp(typography, text_id)),
        ]

    async def import_text(
        self,
        metadata: Mapping[str, Any],
        semantics: Iterable[Mapping[str, Any]],
        typography: Iterable[Mapping[str, Any]],
        text_parts: Iterable[PartLike],
    ) -> str:
        """Import a text and return its newly minted text id."""
        run = await self.run_import(metadata, semantics, typography, text_parts)
        return run.text_id

    async def run_import(
        self,
        metadata: Mapping[str, Any],
        semantics: Iterable[Mapping[str, Any]],
        typography: Iterable[Mapping[str, Any]],
        text_parts: Iterable[PartLike],
        run: Optional[ImportRun] = None,
    ) -> ImportRun:
        """Import a text, recording progress in ``run``.

        A fresh run is created when none is passed.

        Raises:
            StoreError: The metadata write or the final refresh failed.
            PartialWriteError: A chunk or annotation write failed; records
                written before it are not removed.
        """
        if run is None:
            run = ImportRun()
        index_name = self.settings.store_index

        async def collection_done(collection: RecordCollection):
            run.advance(_COLLECTION_STATES.get(collection.type, run.state))

        try:
            structure = {**metadata, "date": now_millis()}
            run.text_id = await self.store.index(index_name, "structure", structure)
            run.advance(ImportState.METADATA_WRITTEN)
            logger.info("structure_registered", text_id=run.text_id)

            collections = self.build_collections(run.text_id, text_parts, semantics, typography)
            pipeline = IndexingPipeline(self.store, index_name)
            result = await pipeline.run(collections, on_collection=collection_done)

            await self.store.refresh(index_name)
            run.advance(ImportState.REFRESHED)
        except Exception as exc:
            run.error = exc
            run.advance(ImportState.FAILED)
            logger.error("text_import_failed", text_id=run.text_id, error=str(exc))
            raise

        run.advance(ImportState.DONE)
        logger.info("text_imported", text_id=run.text_id, records=result.counts)
        return run


text_importer = TextImporter(datastore)
