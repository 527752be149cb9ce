"""SQLAlchemy-backed document store.

Records live in a single ``stored_records`` table. The fields the overlap
query filters on (``textId``, ``start``, ``end``) are promoted to indexed
columns so range selection runs as a SQL ``WHERE`` clause; any other clause
is evaluated against the decoded JSON source.
"""

from __future__ import annotations

import asyncio
import json
import uuid
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from textus.database import build_engine, build_session_factory, init_db, session_scope
from textus.datastore.base import Clause, Hit, MatchClause, QuerySpec, RangeClause, clause_matches
from textus.exceptions import RecordNotFoundError, StoreError
from textus.models import StoredRecord

logger = structlog.get_logger()

_COLUMNS = {
    "textId": StoredRecord.text_id,
    "start": StoredRecord.start,
    "end": StoredRecord.end,
}


def _int_or_none(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _column_condition(clause: Clause):
    column = _COLUMNS.get(clause.field)
    if column is None:
        return None
    if isinstance(clause, MatchClause):
        if clause.field == "textId":
            return column == str(clause.value)
        return column == clause.value
    conditions = []
    if clause.lt is not None:
        conditions.append(column < clause.lt)
    if clause.lte is not None:
        conditions.append(column <= clause.lte)
    if clause.gt is not None:
        conditions.append(column > clause.gt)
    if clause.gte is not None:
        conditions.append(column >= clause.gte)
    conditions.append(column.is_not(None))
    return conditions


class SqlDocumentStore:
    """Relational substitute for the document store; every write commits."""

    def __init__(self, database_url: str):
        self._engine = build_engine(database_url)
        self._session_factory = build_session_factory(self._engine)
        self._initialized = False

    def _init_tables(self):
        if not self._initialized:
            init_db(self._engine)
            self._initialized = True

    async def _run(self, fn, *args, **kwargs):
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except SQLAlchemyError as exc:
            raise StoreError(f"Database failure: {exc}") from exc

    def _create_index(self, index_name: str):
        self._init_tables()
        logger.info("index_created", backend="sql", index=index_name)

    async def create_index(self, index_name: str) -> None:
        await self._run(self._create_index, index_name)

    def _index(
        self,
        index_name: str,
        record_type: str,
        record: Dict[str, Any],
        id: Optional[str],
        create: bool,
    ) -> str:
        self._init_tables()
        record_id = id or uuid.uuid4().hex
        text_id = record.get("textId")
        with session_scope(self._session_factory) as db:
            row = db.get(StoredRecord, (record_id, index_name))
            if row is not None and create:
                raise StoreError(f"Record '{record_id}' already exists in index '{index_name}'")
            if row is None:
                row = StoredRecord(id=record_id, index_name=index_name)
                db.add(row)
            row.record_type = record_type
            row.text_id = str(text_id) if text_id is not None else None
            row.start = _int_or_none(record.get("start"))
            row.end = _int_or_none(record.get("end"))
            row.source = json.dumps(record)
        return record_id

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
        return await self._run(self._index, index_name, record_type, record, id, create)

    def _search(self, query: QuerySpec) -> List[Hit]:
        self._init_tables()
        stmt = select(StoredRecord).where(StoredRecord.index_name == query.index)
        if query.types is not None:
            stmt = stmt.where(StoredRecord.record_type.in_(query.types))
        residual = []
        for clause in query.must:
            condition = _column_condition(clause)
            if condition is None:
                residual.append(clause)
            elif isinstance(condition, list):
                stmt = stmt.where(*condition)
            else:
                stmt = stmt.where(condition)
        if not residual:
            stmt = stmt.limit(query.size)

        hits = []
        with session_scope(self._session_factory) as db:
            for row in db.scalars(stmt):
                source = json.loads(row.source)
                if not all(clause_matches(clause, source) for clause in residual):
                    continue
                if len(hits) >= query.size:
                    break
                hits.append(Hit(type=row.record_type, id=row.id, source=source))
        return hits

    async def search(self, query: QuerySpec) -> List[Hit]:
        return await self._run(self._search, query)

    def _get(self, index_name: str, id: str, record_type: Optional[str]) -> Dict[str, Any]:
        self._init_tables()
        with session_scope(self._session_factory) as db:
            row = db.get(StoredRecord, (id, index_name))
            if row is None or (record_type is not None and row.record_type != record_type):
                raise RecordNotFoundError(index_name, id)
            return json.loads(row.source)

    async def get(
        self, index_name: str, id: str, *, record_type: Optional[str] = None
    ) -> Dict[str, Any]:
        return await self._run(self._get, index_name, id, record_type)

    def _delete(self, index_name: str, record_type: str, id: str) -> bool:
        self._init_tables()
        with session_scope(self._session_factory) as db:
            row = db.get(StoredRecord, (id, index_name))
            if row is None or row.record_type != record_type:
                return False
            db.delete(row)
        return True

    async def delete(self, index_name: str, record_type: str, id: str) -> bool:
        return await self._run(self._delete, index_name, record_type, id)

    async def refresh(self, index_name: str) -> None:
        # Committed rows are already visible to every session.
        logger.debug("index_refreshed", backend="sql", index=index_name)

    def _ping(self) -> bool:
        with self._engine.connect() as conn:
            conn.exec_driver_sql("SELECT 1")
        return True

    async def ping(self) -> bool:
        try:
            return await self._run(self._ping)
        except StoreError:
            return False
