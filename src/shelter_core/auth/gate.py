"""
shelter_core.auth.gate

Authorization gate consumed by every feature area.

Both checks are pure and never raise; a missing principal is simply denied.
`require` is the raising form used by service-level operations.
"""

from __future__ import annotations

from shelter_core.auth.models import Principal
from shelter_core.auth.permissions import Action, Module


def can_perform(principal: Principal | None, module: Module | str, action: Action | str) -> bool:
    if principal is None:
        return False
    return principal.can_perform(module, action)


def can_access_module(principal: Principal | None, module: Module | str) -> bool:
    # Weaker than can_perform: any enabled action makes the whole module visible.
    if principal is None:
        return False
    return principal.can_access_module(module)


class PermissionDenied(Exception):
    def __init__(self, module: Module | str, action: Action | str) -> None:
        super().__init__(f"Missing permission {action!s} in {module!s}")
        self.module = module
        self.action = action


def require(principal: Principal | None, module: Module | str, action: Action | str) -> Principal:
    if principal is None or not can_perform(principal, module, action):
        raise PermissionDenied(module, action)
    return principal
