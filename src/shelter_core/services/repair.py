"""
shelter_core.services.repair

Background repair of user profiles whose permissions were resolved by fallback.

Responsibilities:
- Persist self-healed permissions with a merge-write, off the request path.
- Retry with exponential backoff; report outcomes through logs only.

A repair is idempotent (same merge-write every attempt), and at most one repair per
subject is in flight at a time.
"""

from __future__ import annotations

import asyncio
from typing import Any

from shelter_core.db.errors import StoreError
from shelter_core.db.records import UserProfile
from shelter_core.db.repositories.base import Repository
from shelter_core.observability.logging import get_logger

log = get_logger(__name__)


class PermissionRepairer:
    def __init__(
        self,
        users: Repository[UserProfile],
        *,
        max_attempts: int = 3,
        backoff_seconds: float = 0.5,
    ) -> None:
        self._users = users
        self._max_attempts = max_attempts
        self._backoff_seconds = backoff_seconds
        self._pending: dict[str, asyncio.Task[bool]] = {}

    @property
    def pending(self) -> int:
        return len(self._pending)

    def schedule(self, subject_id: str, fields: dict[str, Any]) -> asyncio.Task[bool]:
        existing = self._pending.get(subject_id)
        if existing is not None and not existing.done():
            return existing

        task = asyncio.create_task(self.repair(subject_id, dict(fields)), name=f"repair:{subject_id}")
        self._pending[subject_id] = task
        task.add_done_callback(lambda t: self._forget(subject_id, t))
        log.info("permission_repair_scheduled", subject_id=subject_id, fields=sorted(fields))
        return task

    async def repair(self, subject_id: str, fields: dict[str, Any]) -> bool:
        for attempt in range(1, self._max_attempts + 1):
            try:
                await self._users.upsert(subject_id, fields)
            except StoreError as e:
                log.warning(
                    "permission_repair_attempt_failed",
                    subject_id=subject_id,
                    attempt=attempt,
                    max_attempts=self._max_attempts,
                    error=str(e),
                )
                if attempt < self._max_attempts:
                    await asyncio.sleep(self._backoff_seconds * 2 ** (attempt - 1))
                continue
            log.info("permission_repair_succeeded", subject_id=subject_id, attempt=attempt)
            return True

        log.error("permission_repair_gave_up", subject_id=subject_id, attempts=self._max_attempts)
        return False

    async def drain(self) -> None:
        """
        Wait for every scheduled repair to finish (shutdown and tests).
        """

        while True:
            running = [t for t in self._pending.values() if not t.done()]
            if not running:
                return
            await asyncio.gather(*running, return_exceptions=True)

    def _forget(self, subject_id: str, task: asyncio.Task[bool]) -> None:
        if self._pending.get(subject_id) is task:
            del self._pending[subject_id]
