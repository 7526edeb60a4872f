"""
shelter_core.auth.identity

Identity provider boundary.

Responsibilities:
- Define the `Identity` handed over by the provider after authentication.
- Define stable, user-presentable authentication errors.
- Provide `LocalIdentityProvider`, a credential store kept in the document store.

Passwords are hashed with PBKDF2-HMAC-SHA256 (random 16-byte salt) and stored as
`"<iterations>$<hex salt>$<hex hash>"` in the `credentials` collection, keyed by
the normalized e-mail address. Repeated wrong passwords lock sign-in for a
configurable window.
"""

from __future__ import annotations

import hashlib
import hmac
import re
import secrets
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict

from shelter_core.db.models import utcnow
from shelter_core.db.records import CREDENTIALS
from shelter_core.db.repositories.base import Repository
from shelter_core.observability.logging import get_logger

log = get_logger(__name__)

_PBKDF2_ITERATIONS = 260_000
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

AUTH_MESSAGES: dict[str, str] = {
    "user-not-found": "No account found with this email address",
    "wrong-password": "Incorrect password",
    "invalid-email": "Invalid email address",
    "user-disabled": "This account has been disabled",
    "too-many-requests": "Too many failed login attempts. Please try again later",
    "invalid-credential": "Invalid email or password",
    "email-already-in-use": "An account with this email already exists",
    "weak-password": "Password is too weak. Please choose a stronger password",
}


class AuthError(Exception):
    def __init__(self, code: str, message: str | None = None) -> None:
        self.code = code
        self.message = message or AUTH_MESSAGES.get(code, "Authentication failed")
        super().__init__(self.message)


@dataclass(frozen=True, slots=True)
class Identity:
    """
    What the provider vouches for: never read back from the profile store.
    """

    subject_id: str
    email: str
    display_name: str | None = None


class Credential(BaseModel):
    model_config = ConfigDict(extra="ignore")

    subject_id: str
    email: str
    display_name: str | None = None
    password_hash: str
    disabled: bool = False
    failed_attempts: int = 0
    reset_requested_at: datetime | None = None
    locked_until: datetime | None = None


def hash_password(
    password: str, *, salt: bytes | None = None, iterations: int = _PBKDF2_ITERATIONS
) -> str:
    salt = salt or secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return f"{iterations}${salt.hex()}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        iterations, salt_hex, digest_hex = stored.split("$")
        candidate = hashlib.pbkdf2_hmac(
            "sha256", password.encode("utf-8"), bytes.fromhex(salt_hex), int(iterations)
        )
    except ValueError:
        return False
    return hmac.compare_digest(candidate.hex(), digest_hex)


def normalize_email(email: str) -> str:
    normalized = email.strip().lower()
    if not _EMAIL_RE.match(normalized):
        raise AuthError("invalid-email")
    return normalized


class LocalIdentityProvider:
    def __init__(
        self,
        credentials: Repository[Credential],
        *,
        password_min_length: int = 6,
        max_failures: int = 5,
        pbkdf2_iterations: int = _PBKDF2_ITERATIONS,
        lockout: timedelta = timedelta(minutes=15),
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if credentials.collection != CREDENTIALS:
            raise ValueError(f"credentials must live in {CREDENTIALS!r}")
        self._credentials = credentials
        self._password_min_length = password_min_length
        self._max_failures = max_failures
        self._iterations = pbkdf2_iterations
        self._lockout = lockout
        self._clock = clock

    async def sign_in(self, email: str, password: str) -> Identity:
        key = normalize_email(email)
        record = await self._credentials.fetch(key)
        if record is None:
            raise AuthError("user-not-found")
        cred = record.data
        if cred.disabled:
            raise AuthError("user-disabled")
        now = self._clock()
        if cred.locked_until is not None and now < cred.locked_until:
            raise AuthError("too-many-requests")
        if not verify_password(password, cred.password_hash):
            await self._record_failure(key, cred, now)
            raise AuthError("wrong-password")
        if cred.failed_attempts or cred.locked_until is not None:
            await self._credentials.update(key, {"failed_attempts": 0, "locked_until": None})
        return Identity(subject_id=cred.subject_id, email=cred.email, display_name=cred.display_name)

    async def _record_failure(self, key: str, cred: Credential, now: datetime) -> None:
        failures = cred.failed_attempts + 1
        if failures < self._max_failures:
            await self._credentials.update(key, {"failed_attempts": failures})
            log.info("sign_in_failed", subject_id=cred.subject_id, failures=failures)
            return
        # The counter restarts once the lock runs out.
        locked_until = now + self._lockout
        await self._credentials.update(key, {"failed_attempts": 0, "locked_until": locked_until})
        log.warning("sign_in_locked", subject_id=cred.subject_id, locked_until=locked_until.isoformat())

    async def create_account(
        self, email: str, password: str, *, display_name: str | None = None
    ) -> Identity:
        """
        Register a new account. Does not sign anybody in or out.
        """

        key = normalize_email(email)
        self._check_strength(password)
        if await self._credentials.fetch(key) is not None:
            raise AuthError("email-already-in-use")
        subject_id = uuid.uuid4().hex
        await self._credentials.upsert(
            key,
            {
                "subject_id": subject_id,
                "email": key,
                "display_name": display_name,
                "password_hash": hash_password(password, iterations=self._iterations),
                "disabled": False,
                "failed_attempts": 0,
            },
        )
        log.info("account_created", subject_id=subject_id)
        return Identity(subject_id=subject_id, email=key, display_name=display_name)

    async def request_password_reset(self, email: str, *, now: datetime) -> None:
        key = normalize_email(email)
        record = await self._credentials.fetch(key)
        if record is None:
            raise AuthError("user-not-found")
        await self._credentials.update(key, {"reset_requested_at": now})
        # Delivery of the reset link is left to the mail integration.
        log.info("password_reset_requested", subject_id=record.data.subject_id)

    async def change_password(self, email: str, current_password: str, new_password: str) -> None:
        identity = await self.sign_in(email, current_password)
        self._check_strength(new_password)
        await self._credentials.update(
            normalize_email(email),
            {
                "password_hash": hash_password(new_password, iterations=self._iterations),
                "reset_requested_at": None,
            },
        )
        log.info("password_changed", subject_id=identity.subject_id)

    async def set_disabled(self, email: str, disabled: bool) -> None:
        await self._credentials.update(
            normalize_email(email), {"disabled": disabled, "failed_attempts": 0, "locked_until": None}
        )

    async def delete_account(self, email: str) -> None:
        await self._credentials.delete(normalize_email(email))

    def _check_strength(self, password: str) -> None:
        if len(password) < self._password_min_length:
            raise AuthError("weak-password")

    async def find_by_subject(self, subject_id: str) -> Credential | None:
        matches = await self._credentials.fetch_by_field("subject_id", subject_id)
        return matches[0].data if matches else None

    async def ensure_active(self, identity: Identity) -> None:
        """
        Reject a previously issued identity whose account was deleted or disabled since.

        Store failures propagate: an outage must not pass as "account gone" nor as "active".
        """

        cred = await self.find_by_subject(identity.subject_id)
        if cred is None:
            raise AuthError("user-not-found")
        if cred.disabled:
            raise AuthError("user-disabled")
