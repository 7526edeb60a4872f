"""
shelter_core.db.documents

Document store over the `documents` table.

Responsibilities:
- Store/retrieve JSON documents by collection + id.
- Offer equality filters and created_at ordering.
- Translate driver failures into `StoreUnavailable` / `StoreRejected`.

Every call opens its own short-lived session and commits on its own; there is no
client-side locking or cross-call transaction.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import asc, delete, desc, select, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shelter_core.db.errors import RecordNotFound, translate_errors
from shelter_core.db.models import Document


@dataclass(frozen=True, slots=True)
class DocumentSnapshot:
    id: str
    data: dict[str, Any]
    created_at: datetime
    updated_at: datetime


def _snapshot(doc: Document) -> DocumentSnapshot:
    return DocumentSnapshot(
        id=doc.id,
        data=dict(doc.data or {}),
        created_at=doc.created_at,
        updated_at=doc.updated_at,
    )


def _json_equals(field: str, value: Any):
    element = Document.data[field]
    # bool before int: bool is an int subclass.
    if isinstance(value, bool):
        return element.as_boolean() == value
    if isinstance(value, int):
        return element.as_integer() == value
    if isinstance(value, float):
        return element.as_float() == value
    if isinstance(value, str):
        return element.as_string() == value
    return None


class DocumentStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def add(self, collection: str, data: dict[str, Any], *, now: datetime) -> str:
        doc_id = uuid.uuid4().hex
        with translate_errors("add", collection):
            async with self._session_factory() as session:
                session.add(
                    Document(
                        collection=collection,
                        id=doc_id,
                        data=data,
                        created_at=now,
                        updated_at=now,
                    )
                )
                await session.commit()
        return doc_id

    async def get(self, collection: str, doc_id: str) -> DocumentSnapshot | None:
        with translate_errors("get", collection):
            async with self._session_factory() as session:
                doc = await session.get(Document, (collection, doc_id))
                return _snapshot(doc) if doc is not None else None

    async def scan(self, collection: str, *, newest_first: bool = True) -> list[DocumentSnapshot]:
        order = desc if newest_first else asc
        stmt = (
            select(Document)
            .where(Document.collection == collection)
            .order_by(order(Document.created_at), order(Document.id))
        )
        with translate_errors("list", collection):
            async with self._session_factory() as session:
                docs = (await session.execute(stmt)).scalars().all()
                return [_snapshot(d) for d in docs]

    async def find_equal(self, collection: str, field: str, value: Any) -> list[DocumentSnapshot]:
        clause = _json_equals(field, value)
        if clause is None:
            # Values without a typed JSON accessor (None, lists, dicts) are compared here.
            return [s for s in await self.scan(collection) if s.data.get(field) == value]

        stmt = (
            select(Document)
            .where(Document.collection == collection, clause)
            .order_by(desc(Document.created_at), desc(Document.id))
        )
        with translate_errors("query", collection):
            async with self._session_factory() as session:
                docs = (await session.execute(stmt)).scalars().all()
                return [_snapshot(d) for d in docs]

    async def update(
        self, collection: str, doc_id: str, patch: dict[str, Any], *, now: datetime
    ) -> None:
        with translate_errors("update", collection):
            async with self._session_factory() as session:
                doc = await session.get(Document, (collection, doc_id))
                if doc is None:
                    raise RecordNotFound(collection, doc_id)
                # Reassign so the JSON column is flagged dirty.
                doc.data = {**(doc.data or {}), **patch}
                doc.updated_at = now
                await session.commit()

    async def put(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        *,
        now: datetime,
        merge: bool = True,
    ) -> None:
        """
        Write a document under a caller-chosen id, creating it when missing.
        With `merge`, existing fields not present in `data` are kept.
        """

        with translate_errors("put", collection):
            async with self._session_factory() as session:
                doc = await session.get(Document, (collection, doc_id))
                if doc is None:
                    session.add(
                        Document(
                            collection=collection,
                            id=doc_id,
                            data=data,
                            created_at=now,
                            updated_at=now,
                        )
                    )
                else:
                    doc.data = {**(doc.data or {}), **data} if merge else data
                    doc.updated_at = now
                await session.commit()

    async def delete(self, collection: str, doc_id: str) -> None:
        stmt = delete(Document).where(Document.collection == collection, Document.id == doc_id)
        with translate_errors("delete", collection):
            async with self._session_factory() as session:
                await session.execute(stmt)
                await session.commit()

    async def ping(self) -> None:
        with translate_errors("ping", "*"):
            async with self._session_factory() as session:
                await session.execute(text("SELECT 1"))


# --- Module Notes -----------------------------------------------------------
# Last write wins on a single document; no version checks are performed on update/put.
