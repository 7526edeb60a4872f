"""
shelter_core.services.bootstrap

Session bootstrap: authenticated identity -> permission-bearing `Principal`.

Responsibilities:
- Load the user's profile and resolve an effective role.
- Resolve permissions through the fallback ladder:
  profile override -> role catalog -> synthesized admin set -> empty.
- Schedule a background repair when admin permissions had to be resolved by fallback.
- Never fail for an authenticated subject: unexpected errors yield a minimal emergency
  principal instead.

States per run (strictly sequential):
AUTHENTICATED -> USER_RECORD_LOADED | USER_RECORD_MISSING -> ROLE_RESOLVED | ROLE_MISSING
-> PERMISSIONS_RESOLVED -> PRINCIPAL_READY
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

from shelter_core.auth.identity import Identity
from shelter_core.auth.models import Principal, Role
from shelter_core.auth.permissions import EMERGENCY_PERMISSIONS, FULL_ACCESS, PermissionSet
from shelter_core.db.errors import StoreError
from shelter_core.db.records import UserProfile
from shelter_core.db.repositories.base import Repository
from shelter_core.db.repositories.roles import RoleCatalog
from shelter_core.observability.logging import get_logger
from shelter_core.services.repair import PermissionRepairer
from shelter_core.settings import Settings

log = get_logger(__name__)


class BootstrapState(enum.StrEnum):
    authenticated = "AUTHENTICATED"
    user_record_loaded = "USER_RECORD_LOADED"
    user_record_missing = "USER_RECORD_MISSING"
    role_resolved = "ROLE_RESOLVED"
    role_missing = "ROLE_MISSING"
    permissions_resolved = "PERMISSIONS_RESOLVED"
    principal_ready = "PRINCIPAL_READY"


class PermissionSource(enum.StrEnum):
    profile = "PROFILE"
    role_catalog = "ROLE_CATALOG"
    synthesized_admin = "SYNTHESIZED_ADMIN"
    empty = "EMPTY"
    emergency = "EMERGENCY"


@dataclass(frozen=True, slots=True)
class BootstrapResult:
    principal: Principal
    states: tuple[BootstrapState, ...]
    permission_source: PermissionSource
    repair_scheduled: bool = False


class NewUserDefaultRolePolicy:
    """
    Role given to an authenticated subject whose profile names no role.

    The shipped default is `admin`: a subject without a profile is assumed to be the
    first operator account. Deployments can pick a safer role, or `None` for no access.
    """

    def __init__(self, role: str | None = Role.admin) -> None:
        self._role = role.strip() if role and role.strip() else None

    @classmethod
    def from_settings(cls, settings: Settings) -> NewUserDefaultRolePolicy:
        return cls(settings.new_user_default_role)

    def default_role(self, identity: Identity) -> str | None:
        return self._role


class SessionBootstrapper:
    def __init__(
        self,
        *,
        users: Repository[UserProfile],
        roles: RoleCatalog,
        repairer: PermissionRepairer | None = None,
        policy: NewUserDefaultRolePolicy | None = None,
    ) -> None:
        self._users = users
        self._roles = roles
        self._repairer = repairer
        self._policy = policy or NewUserDefaultRolePolicy()

    async def bootstrap(self, identity: Identity) -> BootstrapResult:
        try:
            return await self._resolve(identity)
        except Exception:
            log.critical("bootstrap_emergency_principal", subject_id=identity.subject_id, exc_info=True)
            return BootstrapResult(
                principal=_emergency_principal(identity),
                states=(BootstrapState.authenticated, BootstrapState.principal_ready),
                permission_source=PermissionSource.emergency,
            )

    async def _resolve(self, identity: Identity) -> BootstrapResult:
        states: list[BootstrapState] = [BootstrapState.authenticated]

        # 1. profile
        profile = await self._load_profile(identity.subject_id)
        states.append(
            BootstrapState.user_record_loaded if profile is not None else BootstrapState.user_record_missing
        )

        # 2. role
        role = profile.role if profile is not None else None
        if role is not None:
            states.append(BootstrapState.role_resolved)
        else:
            states.append(BootstrapState.role_missing)
            role = self._policy.default_role(identity)
            log.warning(
                "bootstrap_default_role",
                subject_id=identity.subject_id,
                role=role,
                profile_found=profile is not None,
            )

        # 3. permissions
        permissions, source = await self._resolve_permissions(profile, role)
        states.append(BootstrapState.permissions_resolved)

        # 4. self-heal
        repair_scheduled = False
        if role == Role.admin and source is not PermissionSource.profile:
            repair_scheduled = self._schedule_repair(identity, profile, role, permissions)

        principal = Principal(
            id=identity.subject_id,
            display_name=(profile.name if profile and profile.name else None)
            or identity.display_name
            or "User",
            email=identity.email,
            role=role or "",
            permissions=permissions,
            phone=profile.phone if profile is not None else "",
        )
        states.append(BootstrapState.principal_ready)
        log.info(
            "bootstrap_principal_ready",
            subject_id=identity.subject_id,
            role=principal.role,
            permission_source=source.value,
            repair_scheduled=repair_scheduled,
        )
        return BootstrapResult(
            principal=principal,
            states=tuple(states),
            permission_source=source,
            repair_scheduled=repair_scheduled,
        )

    async def _load_profile(self, subject_id: str) -> UserProfile | None:
        try:
            record = await self._users.fetch(subject_id)
        except StoreError as e:
            log.warning("bootstrap_profile_unreadable", subject_id=subject_id, error=str(e))
            return None
        if record is None:
            log.info("bootstrap_profile_missing", subject_id=subject_id)
            return None
        return record.data

    async def _resolve_permissions(
        self, profile: UserProfile | None, role: str | None
    ) -> tuple[PermissionSet, PermissionSource]:
        if profile is not None and profile.permissions:
            stored = profile.permission_set
            if not stored.is_empty:
                return stored, PermissionSource.profile

        if role:
            definition = await self._roles.find_by_name(role)
            if definition is not None and not definition.permissions.is_empty:
                return definition.permissions, PermissionSource.role_catalog

        if role == Role.admin:
            log.warning("bootstrap_synthesized_admin_permissions")
            return FULL_ACCESS, PermissionSource.synthesized_admin

        log.warning("bootstrap_no_permissions", role=role)
        return PermissionSet(), PermissionSource.empty

    def _schedule_repair(
        self,
        identity: Identity,
        profile: UserProfile | None,
        role: str,
        permissions: PermissionSet,
    ) -> bool:
        if self._repairer is None:
            return False
        fields: dict[str, Any] = {"permissions": permissions.to_documents()}
        if profile is None or profile.role is None:
            fields["role"] = role
        if profile is None or not profile.email:
            fields["email"] = identity.email
        if (profile is None or not profile.name) and identity.display_name:
            fields["name"] = identity.display_name
        self._repairer.schedule(identity.subject_id, fields)
        return True


def _emergency_principal(identity: Identity) -> Principal:
    local_part = identity.email.split("@")[0] if identity.email else ""
    return Principal(
        id=identity.subject_id,
        display_name=identity.display_name or local_part or "Emergency Admin",
        email=identity.email,
        role=Role.admin,
        permissions=EMERGENCY_PERMISSIONS,
    )
