from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

import structlog

from textus.config import Settings, settings as default_settings
from textus.datastore.base import DocumentStore, QuerySpec
from textus.datastore.factory import datastore
from textus.exceptions import UnknownRecordTypeError
from textus.models import TextFragment, TextSummary
from textus.services.bibliography import BibliographyRegenerator, NoOpBibliographyRegenerator
from textus.services.importer import now_millis
from textus.text.ranges import build_overlap_query, build_text_query, reconstruct_range

logger = structlog.get_logger()

ANNOTATION_TYPES = ("typography", "semantics")


class TextService:
    """Read side of the text store plus metadata and single-annotation writes."""

    def __init__(
        self,
        store: DocumentStore,
        config: Optional[Settings] = None,
        bibliography: Optional[BibliographyRegenerator] = None,
    ):
        self.store = store
        self.settings = config or default_settings
        self.bibliography = bibliography or NoOpBibliographyRegenerator()

    @property
    def index_name(self) -> str:
        return self.settings.store_index

    async def fetch_text(self, text_id: str, start: int, end: int) -> TextFragment:
        """Return text in ``[start, end)`` with every annotation overlapping it."""
        query = build_overlap_query(
            text_id, start, end, index=self.index_name, size=self.settings.max_query_size
        )
        hits = await self.store.search(query)

        chunks = []
        annotations: Dict[str, list] = {name: [] for name in ANNOTATION_TYPES}
        for hit in hits:
            if hit.type == "text":
                chunks.append(hit.source)
            elif hit.type in annotations:
                annotations[hit.type].append({**hit.source, "id": hit.id})
            else:
                logger.error("unknown_record_type", type=hit.type, id=hit.id)
                raise UnknownRecordTypeError(hit.type)

        text_range = reconstruct_range(
            start, end, chunks, verify_contiguity=self.settings.verify_contiguity
        )
        logger.info("text_fetched", text_id=text_id, start=start, end=end, chunks=len(chunks))
        return TextFragment(
            textId=text_id,
            text=text_range.text,
            typography=annotations["typography"],
            semantics=annotations["semantics"],
            start=start,
            end=end,
        )

    async def fetch_complete_text(self, text_id: str) -> TextFragment:
        query = build_text_query(text_id, index=self.index_name, size=self.settings.max_query_size)
        hits = await self.store.search(query)

        chunks = [hit.source for hit in hits if hit.type == "text"]
        typography = [{**hit.source, "id": hit.id} for hit in hits if hit.type == "typography"]
        text_range = reconstruct_range(
            None, None, chunks, verify_contiguity=self.settings.verify_contiguity
        )
        return TextFragment(textId=text_id, text=text_range.text, typography=typography)

    async def get_text_metadata(self, text_id: str) -> Dict[str, Any]:
        return await self.store.get(self.index_name, text_id, record_type="structure")

    async def update_text_metadata(
        self, text_id: str, metadata: Mapping[str, Any]
    ) -> Dict[str, Any]:
        """Replace a text's metadata; chunk and annotation records are left alone."""
        structure = {**metadata, "date": now_millis()}
        await self.store.index(
            self.index_name, "structure", structure, id=text_id, refresh=True, create=False
        )
        await self.bibliography.regenerate(text_id, structure)
        logger.info("text_metadata_updated", text_id=text_id)
        return await self.get_text_metadata(text_id)

    async def list_text_summaries(self) -> Dict[str, TextSummary]:
        query = QuerySpec(
            must=[],
            size=self.settings.summary_query_size,
            index=self.index_name,
            types=["structure"],
        )
        hits = await self.store.search(query)
        return {
            hit.id: TextSummary(
                title=hit.source.get("title"),
                owners=hit.source.get("owners"),
                date=hit.source.get("date"),
            )
            for hit in hits
        }

    async def create_semantic_annotation(self, annotation: Mapping[str, Any]) -> str:
        annotation_id = await self.store.index(
            self.index_name, "semantics", dict(annotation), refresh=True
        )
        logger.info(
            "semantic_annotation_created", id=annotation_id, text_id=annotation.get("textId")
        )
        return annotation_id


text_service = TextService(datastore)
