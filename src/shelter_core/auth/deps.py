"""
shelter_core.auth.deps

FastAPI dependency functions for authentication and authorization.

Responsibilities:
- Convert a bearer token into a bootstrapped `Principal`, refusing tokens of deleted or
  disabled accounts.
- Enforce module/action permissions via reusable dependency factories.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_403_FORBIDDEN

from shelter_core.api.deps import services_dep, settings_dep
from shelter_core.auth.gate import can_access_module, can_perform
from shelter_core.auth.identity import AuthError
from shelter_core.auth.jwt import JwtConfig, JwtValidationError, decode_identity
from shelter_core.auth.models import Principal
from shelter_core.auth.permissions import Action, Module
from shelter_core.services.container import Services
from shelter_core.services.session import AuthSession
from shelter_core.settings import Settings

_bearer = HTTPBearer(auto_error=False)


async def get_principal(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    settings: Settings = Depends(settings_dep),
    services: Services = Depends(services_dep),
) -> Principal:
    if creds is None or not creds.credentials:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Missing bearer token")

    try:
        identity = decode_identity(cfg=JwtConfig.from_settings(settings), token=creds.credentials)
    except JwtValidationError as e:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail=f"Invalid token: {e}") from e

    try:
        await services.provider.ensure_active(identity)
    except AuthError as e:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail=e.message) from e

    # The session lives for this request only; permissions are never cached across requests.
    session = AuthSession(provider=services.provider, bootstrapper=services.bootstrapper)
    principal = await session.on_auth_state_changed(identity)
    if principal is None:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Session ended")
    return principal


def require_permission(module: Module, action: Action):
    def _dep(principal: Principal = Depends(get_principal)) -> Principal:
        if not can_perform(principal, module, action):
            raise HTTPException(
                status_code=HTTP_403_FORBIDDEN,
                detail=f"Missing permission: {module.value} / {action.value}",
            )
        return principal

    return _dep


def require_module(module: Module):
    def _dep(principal: Principal = Depends(get_principal)) -> Principal:
        if not can_access_module(principal, module):
            raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail=f"No access to {module.value}")
        return principal

    return _dep
