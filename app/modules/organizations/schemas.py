import re
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional
from datetime import datetime

NAME_PATTERN = r"^[a-zA-Z0-9\s_-]+$"
SLUG_PATTERN = r"^[a-z0-9_-]+$"
INVITE_CODE_PATTERN = r"^[A-Z0-9]{8}$"

_DANGEROUS_MARKUP = re.compile(r"<script|javascript:|on\w+=", re.IGNORECASE)


def sanitize_description(value: Optional[str]) -> Optional[str]:
    """Reject script-like markup and escape angle brackets; empty strings become None"""
    if value is None:
        return None
    if _DANGEROUS_MARKUP.search(value):
        raise ValueError("Invalid characters in description")
    value = value.replace("<", "&lt;").replace(">", "&gt;").strip()
    return value or None


class OrganizationCreate(BaseModel):
    name: str = Field(min_length=2, max_length=100, pattern=NAME_PATTERN)
    slug: str = Field(min_length=2, max_length=50, pattern=SLUG_PATTERN)
    description: Optional[str] = Field(default=None, max_length=500)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = " ".join(v.split())
        if len(v) < 2:
            raise ValueError("Name must be at least 2 characters")
        return v

    @field_validator("description")
    @classmethod
    def clean_description(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_description(v)


class OrganizationUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=2, max_length=100, pattern=NAME_PATTERN)
    description: Optional[str] = Field(default=None, max_length=500)
    slug: Optional[str] = None  # accepted only so it can be rejected explicitly

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        return " ".join(v.split()) if v is not None else None

    @field_validator("description")
    @classmethod
    def clean_description(cls, v: Optional[str]) -> Optional[str]:
        if v == "":
            return ""
        return sanitize_description(v)


class OrganizationDeleteConfirmation(BaseModel):
    name: str = Field(min_length=1)


class OrganizationJoin(BaseModel):
    slug: str = Field(min_length=2, max_length=50, pattern=SLUG_PATTERN)
    invite_code: str = Field(pattern=INVITE_CODE_PATTERN)

    @field_validator("invite_code", mode="before")
    @classmethod
    def normalize_code(cls, v):
        return v.strip().upper() if isinstance(v, str) else v


class OrganizationResponse(BaseModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    invite_code: str
    created_by: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OrganizationPublicResponse(BaseModel):
    """Organization without its invite code, for plain members"""
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    created_by: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class OrganizationDetailsResponse(BaseModel):
    organization: OrganizationPublicResponse
    invite_code: Optional[str] = None
    userRole: str
    isOwner: bool
    isAdmin: bool
    canManageMembers: bool
    canEditSettings: bool


class UserOrganizationResponse(BaseModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    role: str
    joined_at: Optional[datetime] = None


class OrganizationStatsResponse(BaseModel):
    member_count: int
    project_count: int
    active_members_count: int


class InviteCodeResponse(BaseModel):
    invite_code: str


class MemberRoleUpdate(BaseModel):
    role: str = Field(pattern=r"^(admin|member)$")


class OrganizationMemberResponse(BaseModel):
    id: str
    organization_id: str
    user_id: str
    role: str
    joined_at: datetime

    class Config:
        from_attributes = True


class SuccessResponse(BaseModel):
    success: bool = True
