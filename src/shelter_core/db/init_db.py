"""
shelter_core.db.init_db

DB initialization helpers (dev/test convenience).
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine

from shelter_core.db import models  # noqa: F401  # registers tables on Base.metadata
from shelter_core.db.base import Base


async def init_db(engine: AsyncEngine) -> None:
    """
    Create the documents table if it does not exist.
    """

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
