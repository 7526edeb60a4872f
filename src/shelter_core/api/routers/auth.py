from __future__ import annotations

from datetime import timedelta

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from starlette.status import HTTP_201_CREATED, HTTP_202_ACCEPTED, HTTP_204_NO_CONTENT

from shelter_core.api.deps import services_dep, settings_dep
from shelter_core.auth.deps import get_principal
from shelter_core.auth.identity import Identity
from shelter_core.auth.jwt import JwtConfig, issue_token
from shelter_core.auth.models import Principal
from shelter_core.services.container import Services
from shelter_core.services.session import AuthSession
from shelter_core.settings import Settings

router = APIRouter(prefix="/v1/auth", tags=["auth"])


class SignInRequest(BaseModel):
    email: str = Field(min_length=3, max_length=256)
    password: str = Field(min_length=1)


class SignUpRequest(BaseModel):
    name: str = Field(min_length=1, max_length=256)
    email: str = Field(min_length=3, max_length=256)
    password: str = Field(min_length=1)
    phone: str = ""


class ResetPasswordRequest(BaseModel):
    email: str = Field(min_length=3, max_length=256)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=1)


class PrincipalResponse(BaseModel):
    id: str
    display_name: str
    email: str
    role: str
    modules: list[str]


class SignInResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    principal: PrincipalResponse


def _principal_response(principal: Principal) -> PrincipalResponse:
    return PrincipalResponse(
        id=principal.id,
        display_name=principal.display_name,
        email=principal.email,
        role=principal.role,
        modules=[m.value for m in principal.visible_modules()],
    )


@router.post("/sign-in", response_model=SignInResponse)
async def sign_in(
    body: SignInRequest,
    services: Services = Depends(services_dep),
    settings: Settings = Depends(settings_dep),
) -> SignInResponse:
    session = AuthSession(provider=services.provider, bootstrapper=services.bootstrapper)
    principal = await session.sign_in(body.email, body.password)
    token = issue_token(
        cfg=JwtConfig.from_settings(settings),
        identity=Identity(
            subject_id=principal.id,
            email=principal.email,
            display_name=principal.display_name,
        ),
        ttl=timedelta(minutes=settings.jwt_ttl_minutes),
    )
    return SignInResponse(access_token=token, principal=_principal_response(principal))


@router.post("/sign-up", status_code=HTTP_201_CREATED)
async def sign_up(body: SignUpRequest, services: Services = Depends(services_dep)) -> dict[str, str]:
    identity = await services.accounts.sign_up(
        name=body.name, email=body.email, password=body.password, phone=body.phone
    )
    return {"user_id": identity.subject_id}


@router.post("/reset-password", status_code=HTTP_202_ACCEPTED)
async def reset_password(
    body: ResetPasswordRequest, services: Services = Depends(services_dep)
) -> dict[str, str]:
    await services.provider.request_password_reset(body.email, now=services.clock())
    return {"status": "requested"}


@router.post("/change-password", status_code=HTTP_204_NO_CONTENT)
async def change_password(
    body: ChangePasswordRequest,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(services_dep),
) -> None:
    await services.provider.change_password(principal.email, body.current_password, body.new_password)


@router.get("/me", response_model=PrincipalResponse)
async def me(principal: Principal = Depends(get_principal)) -> PrincipalResponse:
    return _principal_response(principal)
