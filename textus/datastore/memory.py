from __future__ import annotations

import copy
import uuid
from typing import Any, Dict, List, Optional, Tuple

import structlog

from textus.datastore.base import Hit, QuerySpec, query_matches
from textus.exceptions import RecordNotFoundError, StoreError

logger = structlog.get_logger()

# (record_type, source) keyed by record id
_Records = Dict[str, Tuple[str, Dict[str, Any]]]


class InMemoryDocumentStore:
    """Process-local document store with near-real-time search visibility.

    Writes are readable through ``get`` straight away but only become
    searchable after ``refresh`` (or when written with ``refresh=True``).
    """

    def __init__(self):
        self._visible: Dict[str, _Records] = {}
        self._pending: Dict[str, _Records] = {}

    def _ensure(self, index_name: str):
        self._visible.setdefault(index_name, {})
        self._pending.setdefault(index_name, {})

    def _lookup(self, index_name: str, id: str) -> Optional[Tuple[str, Dict[str, Any]]]:
        pending = self._pending.get(index_name, {})
        if id in pending:
            return pending[id]
        return self._visible.get(index_name, {}).get(id)

    async def create_index(self, index_name: str) -> None:
        self._ensure(index_name)
        logger.info("index_created", backend="memory", index=index_name)

    async def index(
        self,
        index_name: str,
        record_type: str,
        record: Dict[str, Any],
        *,
        id: Optional[str] = None,
        refresh: bool = False,
        create: bool = False,
    ) -> str:
        self._ensure(index_name)
        if id is not None and create and self._lookup(index_name, id) is not None:
            raise StoreError(f"Record '{id}' already exists in index '{index_name}'")
        record_id = id or uuid.uuid4().hex
        self._visible[index_name].pop(record_id, None)
        self._pending[index_name][record_id] = (record_type, copy.deepcopy(record))
        if refresh:
            await self.refresh(index_name)
        return record_id

    async def search(self, query: QuerySpec) -> List[Hit]:
        hits = []
        for record_id, (record_type, source) in self._visible.get(query.index, {}).items():
            if query_matches(query, record_type, source):
                if len(hits) >= query.size:
                    break
                hits.append(Hit(type=record_type, id=record_id, source=copy.deepcopy(source)))
        return hits

    async def get(
        self, index_name: str, id: str, *, record_type: Optional[str] = None
    ) -> Dict[str, Any]:
        found = self._lookup(index_name, id)
        if found is None or (record_type is not None and found[0] != record_type):
            raise RecordNotFoundError(index_name, id)
        return copy.deepcopy(found[1])

    async def delete(self, index_name: str, record_type: str, id: str) -> bool:
        for bucket in (self._pending.get(index_name, {}), self._visible.get(index_name, {})):
            found = bucket.get(id)
            if found is not None and found[0] == record_type:
                del bucket[id]
                return True
        return False

    async def refresh(self, index_name: str) -> None:
        self._ensure(index_name)
        pending = self._pending[index_name]
        self._visible[index_name].update(pending)
        pending.clear()

    async def ping(self) -> bool:
        return True

    def clear(self):
        self._visible.clear()
        self._pending.clear()
