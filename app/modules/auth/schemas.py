from pydantic import BaseModel, ConfigDict, EmailStr, Field, HttpUrl, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime

from app.modules.organizations.schemas import UserOrganizationResponse

USER_NAME_PATTERN = r"^[a-zA-Z0-9\s._-]+$"


def _clean_user_name(v: str) -> str:
    v = " ".join(v.split())
    if len(v) < 2:
        raise ValueError("Name must be at least 2 characters")
    return v


class CurrentUserResponse(BaseModel):
    id: str
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = {}
    organizations: List[UserOrganizationResponse] = []
    permission_matrix: Dict[str, Any]


class UserProfileCreate(BaseModel):
    email: Optional[EmailStr] = None  # defaults to the signed-in user's email
    name: str = Field(min_length=2, max_length=100, pattern=USER_NAME_PATTERN)
    avatar_url: Optional[HttpUrl] = None

    @field_validator("name")
    @classmethod
    def clean_name(cls, v: str) -> str:
        return _clean_user_name(v)


class UserProfileUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=2, max_length=100, pattern=USER_NAME_PATTERN)
    avatar_url: Optional[HttpUrl] = None  # null removes the avatar

    @field_validator("name", mode="before")
    @classmethod
    def reject_null_name(cls, v):
        if v is None:
            raise ValueError("Name cannot be null")
        return v

    @field_validator("name")
    @classmethod
    def clean_name(cls, v: str) -> str:
        return _clean_user_name(v)


class UserProfileResponse(BaseModel):
    id: str
    email: str
    name: str
    avatar_url: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
