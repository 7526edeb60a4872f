"""
shelter_core.services.accounts

Account administration on top of the identity provider and the `users` collection.

Responsibilities:
- Self sign-up (always the `staff` role).
- Privileged user creation by an administrator, without touching the caller's session.
- Profile edits, role changes and deletion.
"""

from __future__ import annotations

from typing import Any

from shelter_core.auth.gate import require
from shelter_core.auth.identity import AuthError, Identity, LocalIdentityProvider
from shelter_core.auth.models import Principal, Role
from shelter_core.auth.permissions import FULL_ACCESS, Action, Module
from shelter_core.db.errors import StoreError
from shelter_core.db.records import UserProfile
from shelter_core.db.repositories.base import Repository, StoredRecord
from shelter_core.observability.logging import get_logger

log = get_logger(__name__)


def _profile_fields(name: str, email: str, role: str, phone: str) -> dict[str, Any]:
    fields: dict[str, Any] = {"name": name, "email": email, "role": role, "phone": phone}
    # Admin profiles carry their grants so bootstrap never depends on the role catalog.
    if role == Role.admin:
        fields["permissions"] = FULL_ACCESS.to_documents()
    return fields


class AccountService:
    def __init__(self, *, provider: LocalIdentityProvider, users: Repository[UserProfile]) -> None:
        self._provider = provider
        self._users = users

    async def sign_up(self, *, name: str, email: str, password: str, phone: str = "") -> Identity:
        identity = await self._provider.create_account(email, password, display_name=name)
        await self._write_profile(identity, _profile_fields(name, identity.email, Role.staff, phone))
        return identity

    async def create_user(
        self,
        actor: Principal,
        *,
        name: str,
        email: str,
        password: str,
        role: str = Role.staff,
        phone: str = "",
    ) -> str:
        require(actor, Module.user_management, Action.create_users)
        identity = await self._provider.create_account(email, password, display_name=name)
        fields = _profile_fields(name, identity.email, role, phone)
        fields["created_by"] = actor.id
        await self._write_profile(identity, fields)
        log.info("user_created", subject_id=identity.subject_id, role=role, created_by=actor.id)
        return identity.subject_id

    async def list_users(self, actor: Principal) -> list[StoredRecord[UserProfile]]:
        require(actor, Module.user_management, Action.view_users)
        return await self._users.get_all()

    async def update_user(
        self,
        actor: Principal,
        user_id: str,
        *,
        name: str | None = None,
        phone: str | None = None,
        role: str | None = None,
    ) -> None:
        require(actor, Module.user_management, Action.edit_users)
        patch: dict[str, Any] = {}
        if name is not None:
            patch["name"] = name
        if phone is not None:
            patch["phone"] = phone
        if role is not None:
            patch["role"] = role
            # Stored grants would shadow the new role; admins get theirs re-stamped.
            patch["permissions"] = FULL_ACCESS.to_documents() if role == Role.admin else None
        await self._users.update(user_id, patch)
        log.info("user_updated", subject_id=user_id, fields=sorted(patch), updated_by=actor.id)

    async def delete_user(self, actor: Principal, user_id: str) -> None:
        require(actor, Module.user_management, Action.delete_users)
        if user_id == actor.id:
            raise AuthError("self-delete", "You cannot delete your own account")
        credential = await self._provider.find_by_subject(user_id)
        # Credential first: once it is gone, outstanding tokens stop resolving.
        if credential is not None:
            await self._provider.delete_account(credential.email)
        await self._users.delete(user_id)
        log.info("user_deleted", subject_id=user_id, deleted_by=actor.id)

    async def _write_profile(self, identity: Identity, fields: dict[str, Any]) -> None:
        """
        Store the profile of a just-created account, or remove the account again.

        An account without a profile would bootstrap with the default role.
        """

        try:
            await self._users.upsert(identity.subject_id, fields)
        except StoreError as e:
            log.error("profile_write_failed", subject_id=identity.subject_id, error=str(e))
            try:
                await self._provider.delete_account(identity.email)
            except StoreError as cleanup_error:
                log.critical(
                    "account_rollback_failed", subject_id=identity.subject_id, error=str(cleanup_error)
                )
            raise
