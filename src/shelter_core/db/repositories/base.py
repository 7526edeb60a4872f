"""
shelter_core.db.repositories.base

Generic per-collection repository.

Responsibilities:
- Create/read/update/delete records of one pydantic model type.
- Stamp `created_at` / `updated_at` from the repository clock only.
- Degrade list/lookup reads to "no data" when the store is unavailable.

Writes (create/update/upsert/delete) always propagate store errors: callers must know
when a write did not happen.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError
from pydantic_core import to_jsonable_python

from shelter_core.db.documents import DocumentSnapshot, DocumentStore
from shelter_core.db.errors import StoreUnavailable
from shelter_core.db.models import utcnow
from shelter_core.observability.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)

RESERVED_FIELDS = frozenset({"id", "created_at", "updated_at", "createdAt", "updatedAt"})


@dataclass(frozen=True, slots=True)
class StoredRecord(Generic[T]):
    id: str
    created_at: datetime
    updated_at: datetime
    data: T


class Repository(Generic[T]):
    def __init__(
        self,
        store: DocumentStore,
        collection: str,
        model: type[T],
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._collection = collection
        self._model = model
        self._clock = clock

    @property
    def collection(self) -> str:
        return self._collection

    async def create(self, data: T) -> str:
        payload = data.model_dump(mode="json")
        return await self._store.add(self._collection, payload, now=self._clock())

    async def get_all(self) -> list[StoredRecord[T]]:
        try:
            return await self.fetch_all()
        except StoreUnavailable as e:
            log.warning(
                "repository_read_degraded", collection=self._collection, op="get_all", error=str(e)
            )
            return []

    async def fetch_all(self) -> list[StoredRecord[T]]:
        """
        Like `get_all`, but store failures propagate. For check-then-write callers,
        which must not read an outage as "nothing stored yet".
        """

        snapshots = await self._store.scan(self._collection, newest_first=True)
        return self._to_records(snapshots)

    async def field_values(self, field: str) -> list[Any]:
        """
        Raw stored values of `field` across the collection, newest first.

        Documents that no longer validate as the model still contribute; store failures
        propagate.
        """

        snapshots = await self._store.scan(self._collection, newest_first=True)
        return [s.data.get(field) for s in snapshots]

    async def get(self, record_id: str) -> StoredRecord[T] | None:
        try:
            return await self.fetch(record_id)
        except StoreUnavailable as e:
            log.warning(
                "repository_read_degraded", collection=self._collection, op="get", error=str(e)
            )
            return None

    async def fetch(self, record_id: str) -> StoredRecord[T] | None:
        """
        Like `get`, but store failures propagate. For callers that must not mistake an
        outage for a missing record (e.g. credential checks).
        """

        snapshot = await self._store.get(self._collection, record_id)
        if snapshot is None:
            return None
        records = self._to_records([snapshot])
        return records[0] if records else None

    async def get_by_field(self, field: str, value: Any) -> list[StoredRecord[T]]:
        try:
            return await self.fetch_by_field(field, value)
        except StoreUnavailable as e:
            log.warning(
                "repository_read_degraded",
                collection=self._collection,
                op="get_by_field",
                field=field,
                error=str(e),
            )
            return []

    async def fetch_by_field(self, field: str, value: Any) -> list[StoredRecord[T]]:
        snapshots = await self._store.find_equal(self._collection, field, value)
        return self._to_records(snapshots)

    async def update(self, record_id: str, patch: Mapping[str, Any]) -> None:
        fields = self._clean_patch(patch)
        await self._store.update(self._collection, record_id, fields, now=self._clock())

    async def upsert(self, record_id: str, fields: Mapping[str, Any]) -> None:
        """
        Merge-write under a caller-chosen id (e.g. a user's subject id).
        """

        cleaned = self._clean_patch(fields)
        await self._store.put(self._collection, record_id, cleaned, now=self._clock(), merge=True)

    async def delete(self, record_id: str) -> None:
        await self._store.delete(self._collection, record_id)

    def _clean_patch(self, patch: Mapping[str, Any]) -> dict[str, Any]:
        fields = self._model.model_fields
        cleaned: dict[str, Any] = {}
        for key, value in patch.items():
            if key in RESERVED_FIELDS:
                raise ValueError(f"{key!r} is managed by the repository and cannot be written")
            if key not in fields:
                raise ValueError(f"{key!r} is not a field of {self._model.__name__}")
            validated = TypeAdapter(fields[key].annotation).validate_python(value)
            cleaned[key] = to_jsonable_python(validated)
        return cleaned

    def _to_records(self, snapshots: list[DocumentSnapshot]) -> list[StoredRecord[T]]:
        records: list[StoredRecord[T]] = []
        for snap in snapshots:
            try:
                data = self._model.model_validate(snap.data)
            except ValidationError as e:
                log.warning(
                    "repository_record_skipped",
                    collection=self._collection,
                    record_id=snap.id,
                    errors=e.error_count(),
                )
                continue
            records.append(
                StoredRecord(
                    id=snap.id,
                    created_at=snap.created_at,
                    updated_at=snap.updated_at,
                    data=data,
                )
            )
        return records


# --- Module Notes -----------------------------------------------------------
# `get_all` returning [] cannot tell "empty" from "unavailable"; callers that care use
# `DocumentStore.ping` (exposed as /readyz).
