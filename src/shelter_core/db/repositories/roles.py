"""
shelter_core.db.repositories.roles

Role catalog: durable role name -> permission set mapping.

Responsibilities:
- Case-insensitive role lookup that never raises (callers fall back to defaults).
- Idempotent, best-effort seeding of the built-in roles.
- Administrative role CRUD.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from shelter_core.auth.permissions import BUILT_IN_ROLES, PermissionSet
from shelter_core.db.errors import StoreError
from shelter_core.db.records import RoleRecord
from shelter_core.db.repositories.base import Repository, StoredRecord
from shelter_core.observability.logging import get_logger

log = get_logger(__name__)


class RoleValidationError(ValueError):
    pass


class RoleConflict(RoleValidationError):
    pass


@dataclass(frozen=True, slots=True)
class RoleDefinition:
    id: str
    name: str
    permissions: PermissionSet
    created_at: datetime
    updated_at: datetime


def _name_key(name: str) -> str:
    return name.strip().lower()


def _definition(record: StoredRecord[RoleRecord]) -> RoleDefinition:
    return RoleDefinition(
        id=record.id,
        name=record.data.name,
        permissions=record.data.permission_set,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


class RoleCatalog:
    def __init__(self, roles: Repository[RoleRecord]) -> None:
        self._roles = roles

    async def list_roles(self) -> list[RoleDefinition]:
        return [_definition(r) for r in await self._roles.get_all()]

    async def find_by_name(self, name: str) -> RoleDefinition | None:
        key = _name_key(name)
        if not key:
            return None
        try:
            records = await self._roles.get_all()
        except StoreError as e:
            log.warning("role_lookup_failed", role=name, error=str(e))
            return None
        # Oldest first: if a seeding race left duplicates, the first one created wins.
        for record in reversed(records):
            if _name_key(record.data.name) == key:
                return _definition(record)
        return None

    async def ensure_built_in_roles(self) -> list[str]:
        """
        Insert any missing built-in role. Safe to repeat; never raises.
        If the existing rows cannot be read, nothing is inserted.

        Returns the names that were inserted by this call.
        """

        created: list[str] = []
        try:
            existing = {_name_key(r.data.name) for r in await self._roles.fetch_all()}
            for name, permissions in BUILT_IN_ROLES.items():
                if name in existing:
                    continue
                await self._roles.create(RoleRecord(name=name, permissions=permissions.to_documents()))
                created.append(name)
                log.info("built_in_role_created", role=name)
        except StoreError as e:
            log.error("built_in_roles_seed_failed", error=str(e), created=created)
        return created

    async def create_role(self, name: str, permissions: PermissionSet) -> str:
        name = name.strip()
        self._validate(name, permissions)
        await self._ensure_name_free(name)
        role_id = await self._roles.create(RoleRecord(name=name, permissions=permissions.to_documents()))
        log.info("role_created", role=name, role_id=role_id)
        return role_id

    async def update_role(
        self,
        role_id: str,
        *,
        name: str | None = None,
        permissions: PermissionSet | None = None,
    ) -> None:
        patch: dict[str, object] = {}
        if name is not None:
            name = name.strip()
            if not name:
                raise RoleValidationError("Role name is required")
            await self._ensure_name_free(name, ignore_id=role_id)
            patch["name"] = name
        if permissions is not None:
            if permissions.enabled_count() == 0:
                raise RoleValidationError("Please select at least one permission")
            patch["permissions"] = permissions.to_documents()
        await self._roles.update(role_id, patch)
        log.info("role_updated", role_id=role_id, fields=sorted(patch))

    async def delete_role(self, role_id: str) -> None:
        await self._roles.delete(role_id)
        log.info("role_deleted", role_id=role_id)

    @staticmethod
    def _validate(name: str, permissions: PermissionSet) -> None:
        if not name:
            raise RoleValidationError("Role name is required")
        if permissions.enabled_count() == 0:
            raise RoleValidationError("Please select at least one permission")

    async def _ensure_name_free(self, name: str, *, ignore_id: str | None = None) -> None:
        key = _name_key(name)
        for record in await self._roles.fetch_all():
            if record.id != ignore_id and _name_key(record.data.name) == key:
                raise RoleConflict(f"A role named {record.data.name!r} already exists")


# --- Module Notes -----------------------------------------------------------
# Seeding is check-then-insert with no lock. Two administrators seeding at once can
# both insert a role; `find_by_name` then resolves to the oldest row.
