"""
shelter_core.db.errors

Store error taxonomy.

- `StoreUnavailable`: the store could not be reached or is misconfigured. Read paths
  degrade on it; nothing shows it to an end user as a hard failure from the core.
- `StoreRejected`: the store refused the operation. Surfaced to callers of explicit
  create/update/delete.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError


class StoreError(Exception):
    def __init__(self, message: str, *, collection: str | None = None) -> None:
        super().__init__(message)
        self.collection = collection


class StoreUnavailable(StoreError):
    pass


class StoreRejected(StoreError):
    pass


class RecordNotFound(StoreRejected):
    def __init__(self, collection: str, record_id: str) -> None:
        super().__init__(f"No document {record_id!r} in {collection!r}", collection=collection)
        self.record_id = record_id


@contextmanager
def translate_errors(operation: str, collection: str) -> Iterator[None]:
    try:
        yield
    except StoreError:
        raise
    except (OperationalError, InterfaceError, PoolTimeoutError, OSError) as e:
        raise StoreUnavailable(
            f"{operation} on {collection!r} failed: store unavailable ({e.__class__.__name__})",
            collection=collection,
        ) from e
    except SQLAlchemyError as e:
        raise StoreRejected(f"{operation} on {collection!r} rejected: {e}", collection=collection) from e
