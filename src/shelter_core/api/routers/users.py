"""
shelter_core.api.routers.users

User administration endpoints.

Permission checks run inside `AccountService`; this router only maps HTTP to it.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from starlette.status import HTTP_201_CREATED, HTTP_204_NO_CONTENT

from shelter_core.api.deps import services_dep
from shelter_core.auth.deps import get_principal
from shelter_core.auth.models import Principal, Role
from shelter_core.services.container import Services

router = APIRouter(prefix="/v1/users", tags=["users"])


class UserCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=256)
    email: str = Field(min_length=3, max_length=256)
    password: str = Field(min_length=1)
    role: str = Field(default=Role.staff, min_length=1, max_length=64)
    phone: str = ""


class UserUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=256)
    phone: str | None = None
    role: str | None = Field(default=None, min_length=1, max_length=64)


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    role: str | None
    phone: str
    created_by: str | None
    created_at: datetime
    updated_at: datetime


@router.get("", response_model=list[UserResponse])
async def list_users(
    principal: Principal = Depends(get_principal),
    services: Services = Depends(services_dep),
) -> list[UserResponse]:
    records = await services.accounts.list_users(principal)
    return [
        UserResponse(
            id=r.id,
            name=r.data.name,
            email=r.data.email,
            role=r.data.role,
            phone=r.data.phone,
            created_by=r.data.created_by,
            created_at=r.created_at,
            updated_at=r.updated_at,
        )
        for r in records
    ]


@router.post("", status_code=HTTP_201_CREATED)
async def create_user(
    body: UserCreateRequest,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(services_dep),
) -> dict[str, str]:
    user_id = await services.accounts.create_user(
        principal,
        name=body.name,
        email=body.email,
        password=body.password,
        role=body.role,
        phone=body.phone,
    )
    return {"user_id": user_id}


@router.patch("/{user_id}", status_code=HTTP_204_NO_CONTENT)
async def update_user(
    user_id: str,
    body: UserUpdateRequest,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(services_dep),
) -> None:
    await services.accounts.update_user(
        principal, user_id, name=body.name, phone=body.phone, role=body.role
    )


@router.delete("/{user_id}", status_code=HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(services_dep),
) -> None:
    await services.accounts.delete_user(principal, user_id)
