"""
tests.test_identity

Local identity provider, tokens and account administration.
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from shelter_core.auth.gate import PermissionDenied
from shelter_core.auth.identity import AuthError, Identity, hash_password, verify_password
from shelter_core.auth.jwt import JwtConfig, JwtValidationError, decode_identity, issue_token
from shelter_core.auth.models import Principal
from shelter_core.auth.permissions import BUILT_IN_ROLES, FULL_ACCESS
from shelter_core.db.errors import StoreUnavailable
from shelter_core.db.records import CREDENTIALS, USERS
from shelter_core.services.container import Services, build_services
from shelter_core.settings import Settings


def _admin() -> Principal:
    return Principal(
        id="admin-1", display_name="Admin", email="admin@example.org", role="admin", permissions=FULL_ACCESS
    )


def test_password_hash_round_trip() -> None:
    stored = hash_password("s3cret!", iterations=1000)

    assert stored.startswith("1000$")
    assert verify_password("s3cret!", stored)
    assert not verify_password("s3cret?", stored)
    assert not verify_password("s3cret!", "not-a-hash")


@pytest.mark.asyncio
async def test_sign_in_errors(services: Services) -> None:
    await services.provider.create_account("asha@example.org", "secret1")

    with pytest.raises(AuthError) as exc:
        await services.provider.sign_in("not-an-email", "secret1")
    assert exc.value.code == "invalid-email"

    with pytest.raises(AuthError) as exc:
        await services.provider.sign_in("asha@example.org", "wrong")
    assert exc.value.code == "wrong-password"
    assert exc.value.message == "Incorrect password"

    identity = await services.provider.sign_in(" ASHA@example.org ", "secret1")
    assert identity.email == "asha@example.org"


@pytest.mark.asyncio
async def test_create_account_rejects_weak_and_duplicate(services: Services) -> None:
    with pytest.raises(AuthError) as exc:
        await services.provider.create_account("asha@example.org", "123")
    assert exc.value.code == "weak-password"

    await services.provider.create_account("asha@example.org", "secret1")
    with pytest.raises(AuthError) as exc:
        await services.provider.create_account("Asha@Example.org", "secret2")
    assert exc.value.code == "email-already-in-use"


@pytest.mark.asyncio
async def test_repeated_failures_lock_the_account(services: Services, settings: Settings) -> None:
    await services.provider.create_account("asha@example.org", "secret1")
    for _ in range(settings.login_max_failures):
        with pytest.raises(AuthError):
            await services.provider.sign_in("asha@example.org", "wrong")

    with pytest.raises(AuthError) as exc:
        await services.provider.sign_in("asha@example.org", "secret1")
    assert exc.value.code == "too-many-requests"


@pytest.mark.asyncio
async def test_disabled_account_cannot_sign_in(services: Services) -> None:
    await services.provider.create_account("asha@example.org", "secret1")
    await services.provider.set_disabled("asha@example.org", True)

    with pytest.raises(AuthError) as exc:
        await services.provider.sign_in("asha@example.org", "secret1")
    assert exc.value.code == "user-disabled"


@pytest.mark.asyncio
async def test_change_password_and_reset_request(services: Services) -> None:
    await services.provider.create_account("asha@example.org", "secret1")
    await services.provider.request_password_reset("asha@example.org", now=services.clock())

    await services.provider.change_password("asha@example.org", "secret1", "secret2")

    await services.provider.sign_in("asha@example.org", "secret2")
    with pytest.raises(AuthError):
        await services.provider.sign_in("asha@example.org", "secret1")
    with pytest.raises(AuthError) as exc:
        await services.provider.request_password_reset("ghost@example.org", now=services.clock())
    assert exc.value.code == "user-not-found"


@pytest.mark.asyncio
async def test_admin_creates_user_without_switching_session(services: Services) -> None:
    await services.roles.ensure_built_in_roles()
    admin = _admin()

    user_id = await services.accounts.create_user(
        admin, name="Dr. Rao", email="rao@example.org", password="secret1", role="doctor"
    )

    record = await services.users.get(user_id)
    assert record is not None
    assert record.data.role == "doctor"
    assert record.data.created_by == admin.id
    assert record.data.permissions is None

    identity = await services.provider.sign_in("rao@example.org", "secret1")
    assert identity.subject_id == user_id
    result = await services.bootstrapper.bootstrap(identity)
    assert result.principal.permissions == BUILT_IN_ROLES["doctor"]


@pytest.mark.asyncio
async def test_user_admin_requires_permissions(services: Services) -> None:
    staff = Principal(
        id="s1",
        display_name="Staff",
        email="s1@example.org",
        role="staff",
        permissions=BUILT_IN_ROLES["staff"],
    )

    with pytest.raises(PermissionDenied):
        await services.accounts.create_user(staff, name="X", email="x@example.org", password="secret1")
    with pytest.raises(PermissionDenied):
        await services.accounts.list_users(staff)
    with pytest.raises(PermissionDenied):
        await services.accounts.delete_user(staff, "anyone")


@pytest.mark.asyncio
async def test_role_change_resets_stored_permissions(services: Services) -> None:
    admin = _admin()
    user_id = await services.accounts.create_user(
        admin, name="Ravi", email="ravi@example.org", password="secret1", role="admin"
    )
    record = await services.users.get(user_id)
    assert record is not None and record.data.permission_set == FULL_ACCESS

    await services.accounts.update_user(admin, user_id, role="staff")

    record = await services.users.get(user_id)
    assert record is not None
    assert record.data.role == "staff"
    assert record.data.permissions is None


@pytest.mark.asyncio
async def test_delete_user_removes_profile_and_credential(services: Services) -> None:
    admin = _admin()
    user_id = await services.accounts.create_user(
        admin, name="Ravi", email="ravi@example.org", password="secret1"
    )

    with pytest.raises(AuthError) as exc:
        await services.accounts.delete_user(admin, admin.id)
    assert exc.value.code == "self-delete"

    await services.accounts.delete_user(admin, user_id)

    assert await services.users.get(user_id) is None
    with pytest.raises(AuthError) as exc:
        await services.provider.sign_in("ravi@example.org", "secret1")
    assert exc.value.code == "user-not-found"


def test_token_round_trip(settings: Settings) -> None:
    cfg = JwtConfig.from_settings(settings)
    identity = Identity(subject_id="u1", email="u1@example.org", display_name="U One")

    token = issue_token(cfg=cfg, identity=identity, ttl=timedelta(minutes=5))

    assert decode_identity(cfg=cfg, token=token) == identity


def test_expired_or_foreign_tokens_are_rejected(settings: Settings) -> None:
    cfg = JwtConfig.from_settings(settings)
    identity = Identity(subject_id="u1", email="u1@example.org")

    expired = issue_token(cfg=cfg, identity=identity, ttl=timedelta(seconds=-60))
    with pytest.raises(JwtValidationError):
        decode_identity(cfg=cfg, token=expired)

    other = JwtConfig(
        alg=cfg.alg,
        issuer=cfg.issuer,
        audience=cfg.audience,
        secret="another-secret-with-at-least-32-bytes",
    )
    foreign = issue_token(cfg=other, identity=identity, ttl=timedelta(minutes=5))
    with pytest.raises(JwtValidationError):
        decode_identity(cfg=cfg, token=foreign)


@pytest.mark.asyncio
async def test_lock_lifts_after_the_window(services: Services, settings: Settings, clock) -> None:
    await services.provider.create_account("asha@example.org", "secret1")
    for _ in range(settings.login_max_failures):
        with pytest.raises(AuthError):
            await services.provider.sign_in("asha@example.org", "wrong")

    clock.now += timedelta(minutes=settings.login_lockout_minutes - 1)
    with pytest.raises(AuthError) as exc:
        await services.provider.sign_in("asha@example.org", "secret1")
    assert exc.value.code == "too-many-requests"

    clock.now += timedelta(minutes=2)
    identity = await services.provider.sign_in("asha@example.org", "secret1")
    assert identity.email == "asha@example.org"

    # A fresh window: one wrong password does not lock again.
    with pytest.raises(AuthError) as exc:
        await services.provider.sign_in("asha@example.org", "wrong")
    assert exc.value.code == "wrong-password"
    await services.provider.sign_in("asha@example.org", "secret1")


@pytest.mark.asyncio
async def test_ensure_active_rejects_deleted_and_disabled_accounts(services: Services) -> None:
    identity = await services.provider.create_account("asha@example.org", "secret1")
    await services.provider.ensure_active(identity)

    await services.provider.set_disabled("asha@example.org", True)
    with pytest.raises(AuthError) as exc:
        await services.provider.ensure_active(identity)
    assert exc.value.code == "user-disabled"

    await services.provider.delete_account("asha@example.org")
    with pytest.raises(AuthError) as exc:
        await services.provider.ensure_active(identity)
    assert exc.value.code == "user-not-found"


@pytest.mark.asyncio
async def test_ensure_active_propagates_store_outage(
    partial_outage, settings: Settings, clock
) -> None:
    services = build_services(partial_outage(("find_equal", CREDENTIALS)), settings, clock=clock)
    identity = await services.provider.create_account("asha@example.org", "secret1")

    with pytest.raises(StoreUnavailable):
        await services.provider.ensure_active(identity)


@pytest.mark.asyncio
async def test_deleted_user_does_not_come_back_as_admin(services: Services) -> None:
    await services.roles.ensure_built_in_roles()
    admin = _admin()
    user_id = await services.accounts.create_user(
        admin, name="Ravi", email="ravi@example.org", password="secret1"
    )
    identity = await services.provider.sign_in("ravi@example.org", "secret1")

    await services.accounts.delete_user(admin, user_id)

    with pytest.raises(AuthError):
        await services.provider.ensure_active(identity)
    assert await services.provider.find_by_subject(user_id) is None
    assert await services.users.get(user_id) is None


@pytest.mark.asyncio
async def test_failed_profile_write_undoes_sign_up(partial_outage, settings: Settings, clock) -> None:
    services = build_services(partial_outage(("put", USERS)), settings, clock=clock)

    with pytest.raises(StoreUnavailable):
        await services.accounts.sign_up(name="Ravi", email="ravi@example.org", password="secret1")

    with pytest.raises(AuthError) as exc:
        await services.provider.sign_in("ravi@example.org", "secret1")
    assert exc.value.code == "user-not-found"
    assert await services.users.get_all() == []


@pytest.mark.asyncio
async def test_failed_profile_write_undoes_created_user(partial_outage, settings: Settings, clock) -> None:
    services = build_services(partial_outage(("put", USERS)), settings, clock=clock)

    with pytest.raises(StoreUnavailable):
        await services.accounts.create_user(
            _admin(), name="Dr. Rao", email="rao@example.org", password="secret1", role="doctor"
        )

    # The address is free again.
    await services.provider.create_account("rao@example.org", "secret1")
