"""
shelter_core.api.errors

Translate core exceptions into HTTP responses.

Rejections are passed through verbatim so an administrator sees why a write failed;
an unavailable store on a write path is a 503.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_422_UNPROCESSABLE_CONTENT,
    HTTP_429_TOO_MANY_REQUESTS,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from shelter_core.auth.gate import PermissionDenied
from shelter_core.auth.identity import AuthError
from shelter_core.db.errors import RecordNotFound, StoreRejected, StoreUnavailable
from shelter_core.db.repositories.roles import RoleConflict, RoleValidationError
from shelter_core.observability.logging import get_logger

log = get_logger(__name__)

_AUTH_STATUS = {
    "invalid-email": HTTP_400_BAD_REQUEST,
    "weak-password": HTTP_400_BAD_REQUEST,
    "self-delete": HTTP_400_BAD_REQUEST,
    "email-already-in-use": HTTP_409_CONFLICT,
    "user-disabled": HTTP_403_FORBIDDEN,
    "too-many-requests": HTTP_429_TOO_MANY_REQUESTS,
}


def _error(status: int, detail: str, code: str | None = None) -> JSONResponse:
    body: dict[str, str] = {"detail": detail}
    if code is not None:
        body["code"] = code
    return JSONResponse(status_code=status, content=body)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AuthError)
    async def _auth_error(_: Request, exc: AuthError) -> JSONResponse:
        return _error(_AUTH_STATUS.get(exc.code, HTTP_401_UNAUTHORIZED), exc.message, exc.code)

    @app.exception_handler(PermissionDenied)
    async def _permission_denied(_: Request, exc: PermissionDenied) -> JSONResponse:
        return _error(HTTP_403_FORBIDDEN, str(exc))

    @app.exception_handler(RoleConflict)
    async def _role_conflict(_: Request, exc: RoleConflict) -> JSONResponse:
        return _error(HTTP_409_CONFLICT, str(exc))

    @app.exception_handler(RoleValidationError)
    async def _role_invalid(_: Request, exc: RoleValidationError) -> JSONResponse:
        return _error(HTTP_422_UNPROCESSABLE_CONTENT, str(exc))

    @app.exception_handler(RecordNotFound)
    async def _not_found(_: Request, exc: RecordNotFound) -> JSONResponse:
        return _error(HTTP_404_NOT_FOUND, str(exc))

    @app.exception_handler(StoreRejected)
    async def _rejected(_: Request, exc: StoreRejected) -> JSONResponse:
        return _error(HTTP_409_CONFLICT, str(exc))

    @app.exception_handler(StoreUnavailable)
    async def _unavailable(_: Request, exc: StoreUnavailable) -> JSONResponse:
        log.error("store_unavailable_on_write", collection=exc.collection, error=str(exc))
        return _error(HTTP_503_SERVICE_UNAVAILABLE, "Record store is unavailable, please retry")
