"""
Document store boundary.

The core only relies on equality filters plus a single sort key and a limit. Anything richer
(range or substring search) is done by fetching a bounded page and filtering in memory, so every
query is clamped to `max_query_limit` records.

Two implementations:
- InMemoryDocumentStore: dict-backed, guarded by an asyncio.Lock (development and tests).
- SqlDocumentStore: SQLAlchemy, one `documents` table keyed by (collection, id) with a JSON body.
  Synchronous session work runs in a worker thread so callers never block the event loop.

Driver errors are wrapped into ExternalServiceFailure; callers decide whether to retry.
"""
from __future__ import annotations

import asyncio
import copy
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, TypeVar

from sqlalchemy import JSON, Column, String, create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from core.errors import ExternalServiceFailure, NotFoundError

logger = logging.getLogger("document_store")

DEFAULT_MAX_QUERY_LIMIT = 500

T = TypeVar("T")


@dataclass
class Document:
    id: str
    data: Dict[str, Any]


@dataclass
class _WriteOp:
    kind: str  # "set" or "update"
    collection: str
    doc_id: str
    fields: Dict[str, Any]
    merge: bool = False


@dataclass
class WriteBatch:
    """Queued writes applied together by commit(); either all land or none do."""
    store: "DocumentStore"
    ops: List[_WriteOp] = field(default_factory=list)

    def set(self, collection: str, doc_id: str, fields: Mapping[str, Any], merge: bool = False) -> "WriteBatch":
        self.ops.append(_WriteOp("set", collection, doc_id, dict(fields), merge))
        return self

    def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> "WriteBatch":
        self.ops.append(_WriteOp("update", collection, doc_id, dict(fields)))
        return self

    async def commit(self) -> None:
        if self.ops:
            await self.store._apply_batch(self.ops)
        self.ops = []


def _matches(data: Mapping[str, Any], filters: Optional[Mapping[str, Any]]) -> bool:
    if not filters:
        return True
    return all(key in data and data[key] == value for key, value in filters.items())


def _sort_key(field_name: str) -> Callable[[Document], Tuple[bool, Any]]:
    def _key(doc: Document) -> Tuple[bool, Any]:
        value = doc.data.get(field_name)
        return (value is None, value if value is not None else 0)
    return _key


def _order_and_limit(docs: List[Document], order_by: Optional[str], limit: int) -> List[Document]:
    if order_by:
        descending = order_by.startswith("-")
        name = order_by.lstrip("-")
        try:
            docs = sorted(docs, key=_sort_key(name), reverse=descending)
        except TypeError:
            # mixed value types under one field; fall back to string ordering
            docs = sorted(docs, key=lambda d: str(d.data.get(name, "")), reverse=descending)
    return docs[:limit]


class DocumentStore(ABC):
    def __init__(self, max_query_limit: int = DEFAULT_MAX_QUERY_LIMIT) -> None:
        self.max_query_limit = max_query_limit

    def _clamp(self, limit: Optional[int]) -> int:
        if limit is None or limit <= 0:
            return self.max_query_limit
        return min(limit, self.max_query_limit)

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Document]:
        """Return documents whose fields equal every filter value, optionally ordered ("-field" = descending)."""

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        ...

    @abstractmethod
    async def create(self, collection: str, fields: Mapping[str, Any]) -> str:
        ...

    @abstractmethod
    async def set(self, collection: str, doc_id: str, fields: Mapping[str, Any], merge: bool = False) -> None:
        """Create or replace the document at a caller-chosen id; merge=True keeps unspecified fields."""

    @abstractmethod
    async def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        """Merge fields into an existing document; NotFoundError if it does not exist."""

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> None:
        ...

    @abstractmethod
    async def _apply_batch(self, ops: List[_WriteOp]) -> None:
        ...


class InMemoryDocumentStore(DocumentStore):
    def __init__(self, max_query_limit: int = DEFAULT_MAX_QUERY_LIMIT) -> None:
        super().__init__(max_query_limit)
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = asyncio.Lock()

    def _collection(self, name: str) -> Dict[str, Dict[str, Any]]:
        return self._collections.setdefault(name, {})

    async def query(self, collection, filters=None, order_by=None, limit=None):
        async with self._lock:
            docs = [
                Document(doc_id, copy.deepcopy(data))
                for doc_id, data in self._collection(collection).items()
                if _matches(data, filters)
            ]
        return _order_and_limit(docs, order_by, self._clamp(limit))

    async def get(self, collection, doc_id):
        async with self._lock:
            data = self._collection(collection).get(doc_id)
            return Document(doc_id, copy.deepcopy(data)) if data is not None else None

    async def create(self, collection, fields):
        doc_id = uuid.uuid4().hex
        async with self._lock:
            self._collection(collection)[doc_id] = copy.deepcopy(dict(fields))
        return doc_id

    async def set(self, collection, doc_id, fields, merge=False):
        await self._apply_batch([_WriteOp("set", collection, doc_id, dict(fields), merge)])

    async def update(self, collection, doc_id, fields):
        await self._apply_batch([_WriteOp("update", collection, doc_id, dict(fields))])

    async def delete(self, collection, doc_id):
        async with self._lock:
            self._collection(collection).pop(doc_id, None)

    async def _apply_batch(self, ops):
        async with self._lock:
            for op in ops:
                if op.kind == "update" and op.doc_id not in self._collection(op.collection):
                    raise NotFoundError(f"Document {op.collection}/{op.doc_id} not found")
            for op in ops:
                bucket = self._collection(op.collection)
                fields = copy.deepcopy(op.fields)
                if op.kind == "set" and not op.merge:
                    bucket[op.doc_id] = fields
                else:
                    bucket[op.doc_id] = {**bucket.get(op.doc_id, {}), **fields}


Base = declarative_base()


class DocumentRow(Base):
    __tablename__ = "documents"

    collection = Column(String(100), primary_key=True)
    id = Column(String(255), primary_key=True)
    data = Column(JSON, nullable=False, default=dict)


def _json_filters(filters: Optional[Mapping[str, Any]]) -> Tuple[list, Dict[str, Any]]:
    """Split equality filters into SQL JSON comparisons and the ones left for Python."""
    clauses = []
    leftover: Dict[str, Any] = {}
    for key, value in (filters or {}).items():
        element = DocumentRow.data[key]
        if isinstance(value, bool):
            clauses.append(element.as_boolean() == value)
        elif isinstance(value, int):
            clauses.append(element.as_integer() == value)
        elif isinstance(value, float):
            clauses.append(element.as_float() == value)
        elif isinstance(value, str):
            clauses.append(element.as_string() == value)
        else:
            leftover[key] = value
    return clauses, leftover


class SqlDocumentStore(DocumentStore):
    def __init__(self, database_url: str, max_query_limit: int = DEFAULT_MAX_QUERY_LIMIT) -> None:
        super().__init__(max_query_limit)
        engine_kwargs: Dict[str, Any] = {}
        if database_url.startswith("sqlite"):
            # sessions are used from worker threads
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if database_url in ("sqlite://", "sqlite:///:memory:"):
                engine_kwargs["poolclass"] = StaticPool
        self._engine = create_engine(database_url, **engine_kwargs)
        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        Base.metadata.create_all(bind=self._engine)

    async def _run(self, operation: str, fn: Callable[[Session], T]) -> T:
        def _work() -> T:
            with self._session_factory() as session:
                result = fn(session)
                session.commit()
                return result

        try:
            return await asyncio.to_thread(_work)
        except SQLAlchemyError as e:
            logger.error("document_store_failed", extra={"error": str(e), "error_type": type(e).__name__})
            raise ExternalServiceFailure(f"Document store {operation} failed") from e

    async def query(self, collection, filters=None, order_by=None, limit=None):
        clauses, leftover = _json_filters(filters)
        stmt = select(DocumentRow).where(DocumentRow.collection == collection, *clauses)
        # with a sort key or a filter SQL cannot express, rows are ordered/matched in Python
        if not order_by and not leftover:
            stmt = stmt.order_by(DocumentRow.id).limit(self._clamp(limit))

        def _fn(session: Session) -> List[Document]:
            rows = session.scalars(stmt).all()
            return [Document(row.id, dict(row.data or {})) for row in rows if _matches(row.data or {}, leftover)]

        docs = await self._run("query", _fn)
        return _order_and_limit(docs, order_by, self._clamp(limit))

    async def get(self, collection, doc_id):
        def _fn(session: Session) -> Optional[Document]:
            row = session.get(DocumentRow, (collection, doc_id))
            return Document(row.id, dict(row.data or {})) if row is not None else None

        return await self._run("get", _fn)

    async def create(self, collection, fields):
        doc_id = uuid.uuid4().hex

        def _fn(session: Session) -> str:
            session.add(DocumentRow(collection=collection, id=doc_id, data=dict(fields)))
            return doc_id

        return await self._run("create", _fn)

    async def set(self, collection, doc_id, fields, merge=False):
        await self._apply_batch([_WriteOp("set", collection, doc_id, dict(fields), merge)])

    async def update(self, collection, doc_id, fields):
        await self._apply_batch([_WriteOp("update", collection, doc_id, dict(fields))])

    async def delete(self, collection, doc_id):
        def _fn(session: Session) -> None:
            row = session.get(DocumentRow, (collection, doc_id))
            if row is not None:
                session.delete(row)

        await self._run("delete", _fn)

    async def _apply_batch(self, ops):
        def _fn(session: Session) -> None:
            for op in ops:
                row = session.get(DocumentRow, (op.collection, op.doc_id))
                if op.kind == "update" and row is None:
                    raise NotFoundError(f"Document {op.collection}/{op.doc_id} not found")
                if row is None:
                    session.add(DocumentRow(collection=op.collection, id=op.doc_id, data=dict(op.fields)))
                elif op.kind == "set" and not op.merge:
                    row.data = dict(op.fields)
                else:
                    # reassign so the JSON column is flagged dirty
                    row.data = {**(row.data or {}), **op.fields}

        await self._run("batch", _fn)


def create_document_store(database_url: str, max_query_limit: int = DEFAULT_MAX_QUERY_LIMIT) -> DocumentStore:
    if database_url:
        logger.info("Using SQL document store")
        return SqlDocumentStore(database_url, max_query_limit=max_query_limit)
    logger.info("Using in-memory document store")
    return InMemoryDocumentStore(max_query_limit=max_query_limit)
