"""
shelter_core.services.session

Session-scoped principal holder.

One `AuthSession` belongs to exactly one signed-in session. Every authentication
event (sign-in, a token for a different subject, sign-out) recomputes the principal
from scratch; nothing is carried over from the previous one.
"""

from __future__ import annotations

from shelter_core.auth.gate import can_access_module, can_perform
from shelter_core.auth.identity import Identity, LocalIdentityProvider
from shelter_core.auth.models import Principal
from shelter_core.auth.permissions import Action, Module
from shelter_core.observability.logging import get_logger
from shelter_core.services.bootstrap import SessionBootstrapper

log = get_logger(__name__)


class AuthSession:
    def __init__(self, *, provider: LocalIdentityProvider, bootstrapper: SessionBootstrapper) -> None:
        self._provider = provider
        self._bootstrapper = bootstrapper
        self._principal: Principal | None = None
        # Bumped on every auth event; a bootstrap finishing under an older value is stale.
        self._generation = 0

    @property
    def principal(self) -> Principal | None:
        return self._principal

    @property
    def is_authenticated(self) -> bool:
        return self._principal is not None

    async def sign_in(self, email: str, password: str) -> Principal:
        identity = await self._provider.sign_in(email, password)
        principal = await self.on_auth_state_changed(identity)
        if principal is None:
            # A sign-out raced this sign-in; the session is signed out.
            raise RuntimeError("session was signed out while signing in")
        return principal

    async def sign_out(self) -> None:
        await self.on_auth_state_changed(None)

    async def on_auth_state_changed(self, identity: Identity | None) -> Principal | None:
        self._generation += 1
        generation = self._generation
        self._principal = None
        if identity is None:
            log.info("session_signed_out")
            return None

        result = await self._bootstrapper.bootstrap(identity)
        if generation != self._generation:
            log.info("bootstrap_result_discarded", subject_id=identity.subject_id)
            return None
        self._principal = result.principal
        return result.principal

    def can_perform(self, module: Module | str, action: Action | str) -> bool:
        return can_perform(self._principal, module, action)

    def can_access_module(self, module: Module | str) -> bool:
        return can_access_module(self._principal, module)
