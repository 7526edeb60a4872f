"""
shelter_core.auth.jwt

Session token issuing and validation.

Responsibilities:
- Issue short-lived HS256 tokens after a successful sign-in.
- Decode and validate tokens with strict claim requirements (iss/aud/exp/iat/sub).
- Turn a validated token back into the provider-vouched `Identity`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from jwt import InvalidTokenError

from shelter_core.auth.identity import Identity
from shelter_core.settings import Settings


@dataclass(frozen=True, slots=True)
class JwtConfig:
    alg: str
    issuer: str
    audience: str
    secret: str

    @classmethod
    def from_settings(cls, settings: Settings) -> JwtConfig:
        return cls(
            alg=settings.jwt_alg,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            secret=settings.jwt_secret,
        )


class JwtValidationError(Exception):
    pass


def issue_token(*, cfg: JwtConfig, identity: Identity, ttl: timedelta = timedelta(hours=1)) -> str:
    now = datetime.now(tz=UTC)
    # Only identity claims travel in the token; role and permissions are re-resolved
    # from the store for every request.
    payload: dict[str, Any] = {
        "iss": cfg.issuer,
        "aud": cfg.audience,
        "sub": identity.subject_id,
        "email": identity.email,
        "name": identity.display_name,
        "iat": int(now.timestamp()),
        "exp": int((now + ttl).timestamp()),
    }
    return jwt.encode(payload, cfg.secret, algorithm=cfg.alg)


def decode_identity(*, cfg: JwtConfig, token: str) -> Identity:
    try:
        payload = jwt.decode(
            token,
            cfg.secret,
            algorithms=[cfg.alg],
            issuer=cfg.issuer,
            audience=cfg.audience,
            options={"require": ["exp", "iat", "iss", "aud", "sub"]},
        )
    except InvalidTokenError as e:
        raise JwtValidationError(str(e)) from e

    subject = str(payload.get("sub") or "")
    if not subject:
        raise JwtValidationError("empty subject")
    name = payload.get("name")
    return Identity(
        subject_id=subject,
        email=str(payload.get("email") or ""),
        display_name=str(name) if name else None,
    )
