"""
shelter_core.api.routers.cases

Case paper endpoints (Case Management module).

Responsibilities:
- Preview the next case number.
- Create case papers with an allocated case number.
- List, edit and delete case papers.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from starlette.status import (
    HTTP_201_CREATED,
    HTTP_204_NO_CONTENT,
    HTTP_404_NOT_FOUND,
    HTTP_422_UNPROCESSABLE_CONTENT,
)

from shelter_core.api.deps import services_dep
from shelter_core.auth.deps import require_permission
from shelter_core.auth.models import Principal
from shelter_core.auth.permissions import Action, Module
from shelter_core.db.records import CasePaper, CasePaperFields
from shelter_core.observability.logging import get_logger
from shelter_core.services.container import Services

log = get_logger(__name__)

router = APIRouter(prefix="/v1/cases", tags=["cases"])


class CaseResponse(CasePaper):
    id: str
    created_at: datetime
    updated_at: datetime


class CaseCreateResponse(BaseModel):
    case_id: str
    case_number: str


@router.get(
    "",
    response_model=list[CaseResponse],
    dependencies=[Depends(require_permission(Module.case_management, Action.view_cases))],
)
async def list_cases(services: Services = Depends(services_dep)) -> list[CaseResponse]:
    return [
        CaseResponse(id=r.id, created_at=r.created_at, updated_at=r.updated_at, **r.data.model_dump())
        for r in await services.cases.get_all()
    ]


@router.get(
    "/next-number",
    dependencies=[Depends(require_permission(Module.case_management, Action.create_cases))],
)
async def next_case_number(services: Services = Depends(services_dep)) -> dict[str, str]:
    return {"case_number": await services.allocator.next_case_number()}


@router.get(
    "/{case_id}",
    response_model=CaseResponse,
    dependencies=[Depends(require_permission(Module.case_management, Action.view_cases))],
)
async def get_case(case_id: str, services: Services = Depends(services_dep)) -> CaseResponse:
    record = await services.cases.get(case_id)
    if record is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Case not found")
    return CaseResponse(
        id=record.id, created_at=record.created_at, updated_at=record.updated_at, **record.data.model_dump()
    )


@router.post("", response_model=CaseCreateResponse, status_code=HTTP_201_CREATED)
async def create_case(
    body: CasePaperFields,
    principal: Principal = Depends(require_permission(Module.case_management, Action.create_cases)),
    services: Services = Depends(services_dep),
) -> CaseCreateResponse:
    case_number = await services.allocator.next_case_number()
    case_id = await services.cases.create(CasePaper(case_number=case_number, **body.model_dump()))
    log.info("case_created", case_id=case_id, case_number=case_number, created_by=principal.id)
    return CaseCreateResponse(case_id=case_id, case_number=case_number)


@router.patch(
    "/{case_id}",
    status_code=HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_permission(Module.case_management, Action.edit_cases))],
)
async def update_case(
    case_id: str,
    patch: dict[str, Any],
    services: Services = Depends(services_dep),
) -> None:
    try:
        await services.cases.update(case_id, patch)
    except ValueError as e:
        raise HTTPException(status_code=HTTP_422_UNPROCESSABLE_CONTENT, detail=str(e)) from e


@router.delete(
    "/{case_id}",
    status_code=HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_permission(Module.case_management, Action.delete_cases))],
)
async def delete_case(case_id: str, services: Services = Depends(services_dep)) -> None:
    await services.cases.delete(case_id)
