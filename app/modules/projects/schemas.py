from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, Dict, Any, Literal
from datetime import datetime
from uuid import UUID

ProjectStatus = Literal["active", "archived", "completed", "on_hold"]

SLUG_PATTERN = r"^[a-z0-9_-]+$"
HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


def _blank_to_none(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


def _strip_name(v: str) -> str:
    v = v.strip()
    if len(v) < 2:
        raise ValueError("Name must be at least 2 characters")
    return v


class ProjectCreate(BaseModel):
    organization_id: UUID
    name: str = Field(min_length=2, max_length=100)
    slug: str = Field(min_length=2, max_length=50)
    description: Optional[str] = Field(default=None, max_length=1000)
    status: ProjectStatus = "active"
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR_PATTERN)
    icon: Optional[str] = Field(default=None, max_length=50)
    is_favorite: bool = False
    settings: Optional[Dict[str, Any]] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return _strip_name(v)

    @field_validator("slug", mode="before")
    @classmethod
    def normalize_slug(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("slug")
    @classmethod
    def check_slug(cls, v: str) -> str:
        if not all(c.isascii() and (c.isalnum() or c in "-_") for c in v) or v != v.lower():
            raise ValueError("Slug can only contain lowercase letters, numbers, hyphens and underscores")
        return v

    @field_validator("description", "icon")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)


class ProjectUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    status: Optional[ProjectStatus] = None
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR_PATTERN)
    icon: Optional[str] = Field(default=None, max_length=50)
    is_favorite: Optional[bool] = None
    settings: Optional[Dict[str, Any]] = None

    # Omitting these leaves them untouched; they cannot be cleared
    @field_validator("name", "status", "is_favorite", mode="before")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return _strip_name(v)

    @field_validator("description", "icon")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)


class ProjectResponse(BaseModel):
    id: str
    organization_id: str
    name: str
    slug: str
    description: Optional[str] = None
    status: str
    color: Optional[str] = None
    icon: Optional[str] = None
    is_favorite: bool = False
    settings: Optional[Dict[str, Any]] = None
    created_by: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    archived_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProjectMemberAdd(BaseModel):
    user_id: UUID
    role_id: UUID


class ProjectMemberRoleUpdate(BaseModel):
    role_id: UUID


class ProjectMemberResponse(BaseModel):
    id: str
    project_id: str
    user_id: str
    role_id: str
    invited_by: Optional[str] = None
    joined_at: datetime

    class Config:
        from_attributes = True
