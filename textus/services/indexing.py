"""Ordered, fail-fast persistence of typed record collections.

The store has no multi-document transactions. Collections are written one
record at a time in the order given; the first failed write stops the run
and surfaces as PartialWriteError. Records written before the failure stay
in the store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import structlog

from textus.datastore.base import DocumentStore
from textus.exceptions import PartialWriteError

logger = structlog.get_logger()


@dataclass
class RecordCollection:
    type: str
    records: List[Dict[str, Any]]


@dataclass
class PipelineResult:
    counts: Dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.counts.values())


CollectionCallback = Callable[[RecordCollection], Awaitable[None]]


class IndexingPipeline:
    def __init__(self, store: DocumentStore, index_name: str):
        self.store = store
        self.index_name = index_name

    async def _index_collection(self, collection: RecordCollection) -> int:
        written = 0
        for record in collection.records:
            try:
                await self.store.index(self.index_name, collection.type, record)
            except Exception as exc:
                logger.error(
                    "collection_index_failed",
                    type=collection.type,
                    written=written,
                    error=str(exc),
                )
                raise PartialWriteError(collection.type, written, exc) from exc
            written += 1
        return written

    async def run(
        self,
        collections: Sequence[RecordCollection],
        on_collection: Optional[CollectionCallback] = None,
    ) -> PipelineResult:
        """Index every collection in order, stopping at the first failure.

        ``on_collection`` is awaited after each collection completes.
        """
        result = PipelineResult()
        for collection in collections:
            written = await self._index_collection(collection)
            result.counts[collection.type] = result.counts.get(collection.type, 0) + written
            logger.info("collection_indexed", type=collection.type, records=written)
            if on_collection is not None:
                await on_collection(collection)
        return result


async def run_indexing_pipeline(
    store: DocumentStore, index_name: str, collections: Sequence[RecordCollection]
) -> PipelineResult:
    return await IndexingPipeline(store, index_name).run(collections)
