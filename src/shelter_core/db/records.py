"""
shelter_core.db.records

Record shapes stored through `Repository[T]`.

Stored documents may predate the current shapes (missing role, permissions written by
hand, ...). The models below coerce unusable values to "absent" instead of failing,
so legacy documents stay readable.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shelter_core.auth.permissions import PermissionSet

USERS = "users"
ROLES = "roles"
CASE_PAPERS = "casePapers"
CREDENTIALS = "credentials"


class UserProfile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    email: str = ""
    role: str | None = None
    phone: str = ""
    # Raw stored shape; parsed leniently through `permission_set`.
    permissions: list[Any] | None = None
    created_by: str | None = None

    @field_validator("name", "email", "phone", mode="before")
    @classmethod
    def _text_or_empty(cls, v: Any) -> str:
        return v if isinstance(v, str) else ""

    @field_validator("role", mode="before")
    @classmethod
    def _role_or_none(cls, v: Any) -> str | None:
        if isinstance(v, str) and v.strip():
            return v.strip()
        return None

    @field_validator("permissions", mode="before")
    @classmethod
    def _list_or_none(cls, v: Any) -> list[Any] | None:
        return v if isinstance(v, list) else None

    @property
    def permission_set(self) -> PermissionSet:
        return PermissionSet.from_documents(self.permissions)


class RoleRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1)
    permissions: list[Any] = Field(default_factory=list)

    @property
    def permission_set(self) -> PermissionSet:
        return PermissionSet.from_documents(self.permissions)


class TreatmentDay(BaseModel):
    date: str
    dressing: bool = False
    medication: bool = False
    injectable: bool = False
    surgery: bool = False
    remark: str = ""


class CasePaperFields(BaseModel):
    """
    Case paper fields an operator fills in; the case number is allocated.
    """

    model_config = ConfigDict(extra="ignore")

    date_time: str = ""
    informer_name: str = ""
    informer_aadhar: str = ""
    location: str = ""
    phone_no: str = ""
    alternate_phone: str | None = None
    age: str = ""
    animal_type: str = ""
    rescue_by: str = ""
    sex: str = ""
    admitted: bool = False
    history: str | None = None
    symptoms: str | None = None
    treatment: str | None = None
    treatment_schedule: list[TreatmentDay] = Field(default_factory=list)


class CasePaper(CasePaperFields):
    case_number: str = ""
