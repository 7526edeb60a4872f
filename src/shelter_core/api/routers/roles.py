"""
shelter_core.api.routers.roles

Role catalog endpoints (Role Management module).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from starlette.status import HTTP_201_CREATED, HTTP_204_NO_CONTENT

from shelter_core.api.deps import services_dep
from shelter_core.auth.deps import require_module, require_permission
from shelter_core.auth.permissions import MODULE_ACTIONS, Action, Module, PermissionSet
from shelter_core.services.container import Services

router = APIRouter(prefix="/v1/roles", tags=["roles"])


class RoleCreateRequest(BaseModel):
    name: str = Field(max_length=64)
    # Stored document shape: [{"module": ..., "actions": [{"name": ..., "enabled": ...}]}]
    permissions: list[dict[str, Any]] = Field(default_factory=list)


class RoleUpdateRequest(BaseModel):
    name: str | None = Field(default=None, max_length=64)
    permissions: list[dict[str, Any]] | None = None


class RoleResponse(BaseModel):
    id: str
    name: str
    permissions: list[dict[str, Any]]
    created_at: datetime
    updated_at: datetime


@router.get(
    "",
    response_model=list[RoleResponse],
    dependencies=[Depends(require_permission(Module.role_management, Action.view_roles))],
)
async def list_roles(services: Services = Depends(services_dep)) -> list[RoleResponse]:
    return [
        RoleResponse(
            id=r.id,
            name=r.name,
            permissions=r.permissions.to_documents(),
            created_at=r.created_at,
            updated_at=r.updated_at,
        )
        for r in await services.roles.list_roles()
    ]


@router.get("/modules", dependencies=[Depends(require_module(Module.role_management))])
async def list_modules() -> list[dict[str, Any]]:
    # What a role editor offers: every module with its closed set of actions.
    return [
        {"module": module.value, "actions": [a.value for a in actions]}
        for module, actions in MODULE_ACTIONS.items()
    ]


@router.post(
    "",
    status_code=HTTP_201_CREATED,
    dependencies=[Depends(require_permission(Module.role_management, Action.create_roles))],
)
async def create_role(
    body: RoleCreateRequest, services: Services = Depends(services_dep)
) -> dict[str, str]:
    role_id = await services.roles.create_role(
        body.name, PermissionSet.from_documents(body.permissions)
    )
    return {"role_id": role_id}


@router.post(
    "/seed",
    dependencies=[Depends(require_permission(Module.role_management, Action.create_roles))],
)
async def seed_roles(services: Services = Depends(services_dep)) -> dict[str, list[str]]:
    return {"created": await services.roles.ensure_built_in_roles()}


@router.patch(
    "/{role_id}",
    status_code=HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_permission(Module.role_management, Action.edit_roles))],
)
async def update_role(
    role_id: str, body: RoleUpdateRequest, services: Services = Depends(services_dep)
) -> None:
    permissions = None
    if body.permissions is not None:
        permissions = PermissionSet.from_documents(body.permissions)
    await services.roles.update_role(role_id, name=body.name, permissions=permissions)


@router.delete(
    "/{role_id}",
    status_code=HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_permission(Module.role_management, Action.delete_roles))],
)
async def delete_role(role_id: str, services: Services = Depends(services_dep)) -> None:
    await services.roles.delete_role(role_id)
