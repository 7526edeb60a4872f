"""
shelter_core.auth.models

Auth domain models.

Responsibilities:
- Define the authenticated, authorized identity type (`Principal`).
- Define the built-in role names.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from shelter_core.auth.permissions import Action, Module, PermissionSet


class Role(enum.StrEnum):
    admin = "admin"
    doctor = "doctor"
    staff = "staff"
    volunteer = "volunteer"
    photographer = "photographer"


@dataclass(frozen=True, slots=True)
class Principal:
    """
    The signed-in user for one session.

    `role` is one of `Role` for built-in accounts; administrators may also assign
    catalog roles they created themselves, so the field is kept as a plain string.
    """

    id: str
    display_name: str
    email: str
    role: str
    permissions: PermissionSet
    phone: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == Role.admin

    def can_perform(self, module: Module | str, action: Action | str) -> bool:
        return self.permissions.is_enabled(module, action)

    def can_access_module(self, module: Module | str) -> bool:
        entry = self.permissions.module(module)
        return entry is not None and entry.any_enabled

    def visible_modules(self) -> list[Module]:
        return [m for m in Module if self.can_access_module(m)]
