"""Document store interface.

A document store is responsible for:
  - Persisting typed records (text metadata, chunks, annotations) under an index
  - Selecting records with a boolean "must" list of match and range clauses
  - Making recent writes visible to search on refresh
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Union


@dataclass
class MatchClause:
    """Equality test on a record source field."""

    field: str
    value: Any


@dataclass
class RangeClause:
    """Numeric comparison on a record source field; unset bounds are ignored."""

    field: str
    lt: Optional[float] = None
    lte: Optional[float] = None
    gt: Optional[float] = None
    gte: Optional[float] = None


Clause = Union[MatchClause, RangeClause]


@dataclass
class QuerySpec:
    """Boolean "must" query with a result cap and a target index."""

    must: List[Clause]
    size: int
    index: str
    types: Optional[List[str]] = None


@dataclass
class Hit:
    """A record returned by search."""

    type: str
    id: str
    source: Dict[str, Any] = field(default_factory=dict)


def clause_matches(clause: Clause, source: Dict[str, Any]) -> bool:
    value = source.get(clause.field)
    if isinstance(clause, MatchClause):
        return value == clause.value
    if value is None:
        return False
    if clause.lt is not None and not value < clause.lt:
        return False
    if clause.lte is not None and not value <= clause.lte:
        return False
    if clause.gt is not None and not value > clause.gt:
        return False
    if clause.gte is not None and not value >= clause.gte:
        return False
    return True


def query_matches(query: QuerySpec, record_type: str, source: Dict[str, Any]) -> bool:
    """Evaluate a query against one record, as a backend without native support would."""
    if query.types is not None and record_type not in query.types:
        return False
    return all(clause_matches(clause, source) for clause in query.must)


class DocumentStore(Protocol):
    """Async primitives the text services need from a backend."""

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
        """Write one record and return its id.

        Args:
            index_name: Target index.
            record_type: Type the record is stored under.
            record: Record source.
            id: Explicit id; a new one is minted when omitted.
            refresh: Make the write visible to search immediately.
            create: Fail if a record with this id already exists.
        """
        ...

    async def search(self, query: QuerySpec) -> List[Hit]:
        ...

    async def get(
        self, index_name: str, id: str, *, record_type: Optional[str] = None
    ) -> Dict[str, Any]:
        ...

    async def delete(self, index_name: str, record_type: str, id: str) -> bool:
        ...

    async def refresh(self, index_name: str) -> None:
        ...

    async def create_index(self, index_name: str) -> None:
        ...

    async def ping(self) -> bool:
        """Report whether the backend is reachable."""
        ...
