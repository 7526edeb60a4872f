"""
shelter_core.db.models

Persistence schema for the document store.

Responsibilities:
- Define the single `documents` table that backs every logical collection
  (`users`, `roles`, `casePapers`, `credentials`, ...).
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from shelter_core.db.base import Base


def utcnow() -> datetime:
    # Naive UTC: SQLite drops tzinfo on the way back, so keep both sides comparable.
    return datetime.now(tz=UTC).replace(tzinfo=None)


class Document(Base):
    __tablename__ = "documents"

    collection: Mapped[str] = mapped_column(String(64), primary_key=True)
    id: Mapped[str] = mapped_column(String(128), primary_key=True)

    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(nullable=False)
    updated_at: Mapped[datetime] = mapped_column(nullable=False)

    __table_args__ = (Index("ix_documents_collection_created", "collection", "created_at"),)


# --- Module Notes -----------------------------------------------------------
# Timestamps are columns rather than JSON fields so ordering by `created_at` stays indexed
# and callers can never smuggle them in through `data`.
