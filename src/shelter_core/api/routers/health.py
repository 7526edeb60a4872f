"""
shelter_core.api.routers.health

Health and readiness endpoints.

`/readyz` is the health signal list endpoints do not give: they return empty
results when the store is down, this one reports it.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from starlette.status import HTTP_503_SERVICE_UNAVAILABLE

from shelter_core.api.deps import services_dep
from shelter_core.db.errors import StoreError
from shelter_core.services.container import Services

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(services: Services = Depends(services_dep)) -> dict[str, str]:
    try:
        await services.store.ping()
    except StoreError as e:
        raise HTTPException(status_code=HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)) from e
    return {"status": "ready"}
