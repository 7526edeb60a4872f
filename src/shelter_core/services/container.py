"""
shelter_core.services.container

Wiring of the core services over one document store.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from shelter_core.auth.identity import Credential, LocalIdentityProvider
from shelter_core.db.documents import DocumentStore
from shelter_core.db.models import utcnow
from shelter_core.db.records import (
    CASE_PAPERS,
    CREDENTIALS,
    ROLES,
    USERS,
    CasePaper,
    RoleRecord,
    UserProfile,
)
from shelter_core.db.repositories.base import Repository
from shelter_core.db.repositories.roles import RoleCatalog
from shelter_core.services.accounts import AccountService
from shelter_core.services.bootstrap import NewUserDefaultRolePolicy, SessionBootstrapper
from shelter_core.services.repair import PermissionRepairer
from shelter_core.services.sequence import SequenceAllocator
from shelter_core.settings import Settings


@dataclass(slots=True)
class Services:
    store: DocumentStore
    users: Repository[UserProfile]
    cases: Repository[CasePaper]
    roles: RoleCatalog
    allocator: SequenceAllocator
    provider: LocalIdentityProvider
    repairer: PermissionRepairer
    bootstrapper: SessionBootstrapper
    accounts: AccountService
    clock: Callable[[], datetime]


def build_services(
    store: DocumentStore,
    settings: Settings,
    *,
    clock: Callable[[], datetime] = utcnow,
) -> Services:
    users = Repository(store, USERS, UserProfile, clock=clock)
    cases = Repository(store, CASE_PAPERS, CasePaper, clock=clock)
    roles = RoleCatalog(Repository(store, ROLES, RoleRecord, clock=clock))
    credentials = Repository(store, CREDENTIALS, Credential, clock=clock)

    provider = LocalIdentityProvider(
        credentials,
        password_min_length=settings.password_min_length,
        max_failures=settings.login_max_failures,
        pbkdf2_iterations=settings.pbkdf2_iterations,
        lockout=timedelta(minutes=settings.login_lockout_minutes),
        clock=clock,
    )
    repairer = PermissionRepairer(
        users,
        max_attempts=settings.repair_max_attempts,
        backoff_seconds=settings.repair_backoff_seconds,
    )
    return Services(
        store=store,
        users=users,
        cases=cases,
        roles=roles,
        allocator=SequenceAllocator(cases, prefix=settings.case_number_prefix),
        provider=provider,
        repairer=repairer,
        bootstrapper=SessionBootstrapper(
            users=users,
            roles=roles,
            repairer=repairer,
            policy=NewUserDefaultRolePolicy.from_settings(settings),
        ),
        accounts=AccountService(provider=provider, users=users),
        clock=clock,
    )
