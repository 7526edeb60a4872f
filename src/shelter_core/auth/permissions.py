"""
shelter_core.auth.permissions

Module/action permission model.

Responsibilities:
- Define the closed set of feature modules and their actions.
- Provide the `PermissionSet` value type and deny-by-default lookups.
- Hold the canonical permission tables for the built-in roles.

Stored permission documents (user profiles, role rows) have this shape:
`[{"module": "Inventory", "actions": [{"name": "Add Items", "enabled": true}, ...]}, ...]`.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

from shelter_core.observability.logging import get_logger

log = get_logger(__name__)


class Module(enum.StrEnum):
    dashboard = "Dashboard"
    case_management = "Case Management"
    user_management = "User Management"
    role_management = "Role Management"
    animal_care = "Animal Care"
    facility_management = "Facility Management"
    inventory = "Inventory"
    media_library = "Media Library"


class Action(enum.StrEnum):
    view_dashboard = "View Dashboard"
    view_analytics = "View Analytics"
    view_reports = "View Reports"

    view_cases = "View Cases"
    create_cases = "Create Cases"
    edit_cases = "Edit Cases"
    delete_cases = "Delete Cases"
    archive_cases = "Archive Cases"

    view_users = "View Users"
    create_users = "Create Users"
    edit_users = "Edit Users"
    delete_users = "Delete Users"

    view_roles = "View Roles"
    create_roles = "Create Roles"
    edit_roles = "Edit Roles"
    delete_roles = "Delete Roles"

    view_care_records = "View Care Records"
    add_care_records = "Add Care Records"
    edit_care_records = "Edit Care Records"
    delete_care_records = "Delete Care Records"

    view_cleaning_records = "View Cleaning Records"
    add_cleaning_records = "Add Cleaning Records"
    edit_cleaning_records = "Edit Cleaning Records"
    delete_cleaning_records = "Delete Cleaning Records"

    view_inventory = "View Inventory"
    add_items = "Add Items"
    edit_items = "Edit Items"
    delete_items = "Delete Items"
    generate_reports = "Generate Reports"

    view_media = "View Media"
    upload_media = "Upload Media"
    edit_media = "Edit Media"
    delete_media = "Delete Media"


# Catalog order is the order modules and actions are listed in stored documents.
MODULE_ACTIONS: dict[Module, tuple[Action, ...]] = {
    Module.dashboard: (Action.view_dashboard, Action.view_analytics, Action.view_reports),
    Module.case_management: (
        Action.view_cases,
        Action.create_cases,
        Action.edit_cases,
        Action.delete_cases,
        Action.archive_cases,
    ),
    Module.user_management: (
        Action.view_users,
        Action.create_users,
        Action.edit_users,
        Action.delete_users,
    ),
    Module.role_management: (
        Action.view_roles,
        Action.create_roles,
        Action.edit_roles,
        Action.delete_roles,
    ),
    Module.animal_care: (
        Action.view_care_records,
        Action.add_care_records,
        Action.edit_care_records,
        Action.delete_care_records,
    ),
    Module.facility_management: (
        Action.view_cleaning_records,
        Action.add_cleaning_records,
        Action.edit_cleaning_records,
        Action.delete_cleaning_records,
    ),
    Module.inventory: (
        Action.view_inventory,
        Action.add_items,
        Action.edit_items,
        Action.delete_items,
        Action.generate_reports,
    ),
    Module.media_library: (
        Action.view_media,
        Action.upload_media,
        Action.edit_media,
        Action.delete_media,
    ),
}


class ActionPermission(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: Action
    enabled: bool = False


class ModulePermission(BaseModel):
    model_config = ConfigDict(frozen=True)

    module: Module
    actions: tuple[ActionPermission, ...] = ()

    @model_validator(mode="after")
    def _check_actions(self) -> ModulePermission:
        allowed = MODULE_ACTIONS[self.module]
        seen: set[Action] = set()
        for action in self.actions:
            if action.name not in allowed:
                raise ValueError(f"{action.name!r} is not an action of module {self.module!r}")
            if action.name in seen:
                raise ValueError(f"duplicate action {action.name!r} in module {self.module!r}")
            seen.add(action.name)
        return self

    def action(self, name: Action | str) -> ActionPermission | None:
        for action in self.actions:
            if action.name == name:
                return action
        return None

    @property
    def any_enabled(self) -> bool:
        return any(a.enabled for a in self.actions)


class PermissionSet(BaseModel):
    """
    Ordered module grants. Anything not listed is denied.
    """

    model_config = ConfigDict(frozen=True)

    modules: tuple[ModulePermission, ...] = ()

    @model_validator(mode="after")
    def _check_unique_modules(self) -> PermissionSet:
        names = [m.module for m in self.modules]
        if len(names) != len(set(names)):
            raise ValueError("module keys must be unique within a permission set")
        return self

    @property
    def is_empty(self) -> bool:
        return not self.modules

    def module(self, module: Module | str) -> ModulePermission | None:
        for entry in self.modules:
            if entry.module == module:
                return entry
        return None

    def is_enabled(self, module: Module | str, action: Action | str) -> bool:
        entry = self.module(module)
        if entry is None:
            return False
        grant = entry.action(action)
        return grant is not None and grant.enabled

    def enabled_count(self) -> int:
        return sum(1 for m in self.modules for a in m.actions if a.enabled)

    def to_documents(self) -> list[dict[str, Any]]:
        return [m.model_dump(mode="json") for m in self.modules]

    @classmethod
    def from_documents(cls, raw: Any) -> PermissionSet:
        """
        Lenient parse of stored permission documents.

        Legacy or hand-edited data must never break a session: entries with unknown
        modules/actions or duplicate keys are dropped (first occurrence wins).
        """

        if not isinstance(raw, list):
            return cls()
        modules: list[ModulePermission] = []
        seen_modules: set[Module] = set()
        for item in raw:
            if not isinstance(item, dict):
                continue
            try:
                module = Module(item.get("module"))
            except ValueError:
                log.warning("permission_unknown_module", module=item.get("module"))
                continue
            if module in seen_modules:
                log.warning("permission_duplicate_module", module=module.value)
                continue
            actions: list[ActionPermission] = []
            seen_actions: set[Action] = set()
            for raw_action in item.get("actions") or []:
                if not isinstance(raw_action, dict):
                    continue
                try:
                    action = ActionPermission.model_validate(raw_action)
                except ValidationError:
                    log.warning("permission_invalid_action", module=module.value, action=raw_action)
                    continue
                if action.name not in MODULE_ACTIONS[module] or action.name in seen_actions:
                    log.warning(
                        "permission_action_dropped", module=module.value, action=action.name.value
                    )
                    continue
                seen_actions.add(action.name)
                actions.append(action)
            seen_modules.add(module)
            modules.append(ModulePermission(module=module, actions=tuple(actions)))
        return cls(modules=tuple(modules))

    @classmethod
    def grant(cls, table: Mapping[Module, Iterable[Action]]) -> PermissionSet:
        """
        Build a set listing every catalog action of each given module, enabling only
        the granted ones.
        """

        modules = []
        for module, granted in table.items():
            enabled = set(granted)
            modules.append(
                ModulePermission(
                    module=module,
                    actions=tuple(
                        ActionPermission(name=a, enabled=a in enabled) for a in MODULE_ACTIONS[module]
                    ),
                )
            )
        return cls(modules=tuple(modules))


def _all_except(module: Module, *denied: Action) -> tuple[Action, ...]:
    return tuple(a for a in MODULE_ACTIONS[module] if a not in denied)


FULL_ACCESS = PermissionSet.grant(MODULE_ACTIONS)

BUILT_IN_ROLES: dict[str, PermissionSet] = {
    "admin": FULL_ACCESS,
    "doctor": PermissionSet.grant(
        {
            Module.dashboard: MODULE_ACTIONS[Module.dashboard],
            Module.case_management: _all_except(Module.case_management, Action.delete_cases),
            Module.animal_care: _all_except(Module.animal_care, Action.delete_care_records),
            Module.media_library: _all_except(Module.media_library, Action.delete_media),
        }
    ),
    "staff": PermissionSet.grant(
        {
            Module.dashboard: (Action.view_dashboard, Action.view_reports),
            Module.case_management: (Action.view_cases, Action.create_cases),
            Module.animal_care: (Action.view_care_records, Action.add_care_records),
            Module.facility_management: _all_except(
                Module.facility_management, Action.delete_cleaning_records
            ),
            Module.inventory: (Action.view_inventory, Action.add_items),
        }
    ),
    "photographer": PermissionSet.grant(
        {
            Module.dashboard: (Action.view_dashboard,),
            Module.media_library: _all_except(Module.media_library, Action.delete_media),
        }
    ),
}

# Minimal grant used when bootstrap itself fails; keeps the operator out of lockout.
EMERGENCY_PERMISSIONS = PermissionSet(
    modules=(
        ModulePermission(
            module=Module.dashboard,
            actions=(ActionPermission(name=Action.view_dashboard, enabled=True),),
        ),
        ModulePermission(
            module=Module.user_management,
            actions=(
                ActionPermission(name=Action.view_users, enabled=True),
                ActionPermission(name=Action.create_users, enabled=True),
            ),
        ),
    )
)
