"""
Document store: the key/value persistence the pipelines read and write.

Collections used:
  clients, competitors           : read by the outline pipeline
  pitches                        : written once per run by the terminal stage
  pitch_stages, slide_structures,
  key_principles                 : read by the settings service

Two implementations share the ``DocumentStore`` protocol: an in-memory store
for tests and local runs, and a SQLAlchemy-backed store for deployments.
"""

from __future__ import annotations

import copy
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pitchdeck.core.exceptions import LookupFailure
from pitchdeck.core.logging import get_logger
from pitchdeck.models.database import create_all
from pitchdeck.models.models import DocumentRecord

logger = get_logger(__name__)


class DocumentStore(Protocol):
    async def get(self, collection: str, doc_id: str) -> dict | None: ...

    async def query(self, collection: str, field: str, value: Any) -> list[dict]: ...

    async def update(self, collection: str, doc_id: str, fields: dict) -> None: ...


def _with_id(doc_id: str, data: dict) -> dict:
    return {"id": doc_id, **copy.deepcopy(data)}


class InMemoryDocumentStore:
    """Dict-of-dicts store. Records come back as copies, never shared references."""

    def __init__(self, seed: dict[str, dict[str, dict]] | None = None) -> None:
        self._collections: dict[str, dict[str, dict]] = copy.deepcopy(seed or {})

    async def put(self, collection: str, doc_id: str, data: dict) -> None:
        self._collections.setdefault(collection, {})[doc_id] = copy.deepcopy(data)

    async def get(self, collection: str, doc_id: str) -> dict | None:
        data = self._collections.get(collection, {}).get(doc_id)
        return None if data is None else _with_id(doc_id, data)

    async def query(self, collection: str, field: str, value: Any) -> list[dict]:
        return [
            _with_id(doc_id, data)
            for doc_id, data in self._collections.get(collection, {}).items()
            if data.get(field) == value
        ]

    async def update(self, collection: str, doc_id: str, fields: dict) -> None:
        record = self._collections.get(collection, {}).get(doc_id)
        if record is None:
            raise LookupFailure(f"{collection}/{doc_id} does not exist")
        record.update(copy.deepcopy(fields))


class SqlDocumentStore:
    """Documents stored as JSON rows in a single SQLAlchemy table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._sessions = session_factory

    async def create_all(self) -> None:
        await create_all(self._sessions.kw["bind"])

    async def put(self, collection: str, doc_id: str, data: dict) -> None:
        async with self._sessions() as session:
            record = await session.get(DocumentRecord, (collection, doc_id))
            if record is None:
                session.add(DocumentRecord(collection=collection, doc_id=doc_id, data=dict(data)))
            else:
                record.data = dict(data)
            await session.commit()

    async def get(self, collection: str, doc_id: str) -> dict | None:
        async with self._sessions() as session:
            record = await session.get(DocumentRecord, (collection, doc_id))
            return None if record is None else _with_id(doc_id, record.data)

    async def query(self, collection: str, field: str, value: Any) -> list[dict]:
        # JSON path operators differ per dialect; collections are small, filter here.
        async with self._sessions() as session:
            rows = await session.scalars(
                select(DocumentRecord).where(DocumentRecord.collection == collection)
            )
            return [_with_id(r.doc_id, r.data) for r in rows if r.data.get(field) == value]

    async def update(self, collection: str, doc_id: str, fields: dict) -> None:
        async with self._sessions() as session:
            record = await session.get(DocumentRecord, (collection, doc_id))
            if record is None:
                raise LookupFailure(f"{collection}/{doc_id} does not exist")
            # Reassign so the JSON column is flagged dirty.
            record.data = {**record.data, **copy.deepcopy(fields)}
            await session.commit()
            logger.debug("document_updated", collection=collection, doc_id=doc_id, fields=list(fields))
