"""
shelter_core.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for settings and the core services.
- Encapsulate app.state access patterns.
"""

from __future__ import annotations

from fastapi import Request

from shelter_core.services.container import Services
from shelter_core.settings import Settings


def settings_dep(request: Request) -> Settings:
    # Settings are fixed by `create_app`; tests pass their own instance.
    return request.app.state.settings  # type: ignore[attr-defined]


def services_dep(request: Request) -> Services:
    # Built on app startup in `shelter_core.api.app.create_app`.
    return request.app.state.services  # type: ignore[attr-defined]
