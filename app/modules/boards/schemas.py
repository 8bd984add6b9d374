from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime
from uuid import UUID

HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"
DEFAULT_COLUMN_COLOR = "#6B7280"


def _strip_name(v: str) -> str:
    v = v.strip()
    if len(v) < 2:
        raise ValueError("Name must be at least 2 characters")
    return v


def _reject_null(v):
    """Explicit null on a non-nullable column; omit the key to leave it unchanged"""
    if v is None:
        raise ValueError("Field cannot be null")
    return v


class BoardCreate(BaseModel):
    project_id: UUID
    name: str = Field(min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    settings: Optional[Dict[str, Any]] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return _strip_name(v)

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


class BoardUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    settings: Optional[Dict[str, Any]] = None

    @field_validator("name", mode="before")
    @classmethod
    def reject_null(cls, v):
        return _reject_null(v)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return _strip_name(v)


class BoardColumnCreate(BaseModel):
    name: str = Field(min_length=2, max_length=50)
    color: str = Field(default=DEFAULT_COLUMN_COLOR, pattern=HEX_COLOR_PATTERN)
    wip_limit: Optional[int] = Field(default=None, gt=0)
    position: Optional[int] = Field(default=None, ge=0)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return _strip_name(v)


class BoardColumnUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR_PATTERN)
    wip_limit: Optional[int] = Field(default=None, gt=0)  # null removes the limit

    @field_validator("name", "color", mode="before")
    @classmethod
    def reject_null(cls, v):
        return _reject_null(v)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return _strip_name(v)


class PositionItem(BaseModel):
    id: UUID
    position: int = Field(ge=0)


class ColumnReorder(BaseModel):
    columns: List[PositionItem] = Field(min_length=1)


class BoardColumnResponse(BaseModel):
    id: str
    board_id: str
    name: str
    color: str
    wip_limit: Optional[int] = None
    position: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BoardResponse(BaseModel):
    id: str
    project_id: str
    organization_id: str
    name: str
    description: Optional[str] = None
    settings: Optional[Dict[str, Any]] = None
    created_by: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BoardWithColumnsResponse(BoardResponse):
    columns: List[BoardColumnResponse] = []
