from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from typing import Optional, List, Dict, Any, Literal
from datetime import date, datetime
from uuid import UUID

FieldType = Literal["text", "number", "date", "select", "checkbox"]


class TextFieldConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    max_length: Optional[int] = Field(default=None, gt=0, le=10000)
    multiline: bool = False


class NumberFieldConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = Field(default=None, gt=0)

    @model_validator(mode="after")
    def check_bounds(self):
        if self.min is not None and self.max is not None and self.min >= self.max:
            raise ValueError("Minimum value must be less than maximum value")
        return self


class DateFieldConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    min: Optional[date] = None
    max: Optional[date] = None

    @model_validator(mode="after")
    def check_bounds(self):
        if self.min is not None and self.max is not None and self.min >= self.max:
            raise ValueError("Minimum date must be before maximum date")
        return self


class SelectFieldConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    options: List[str] = Field(min_length=1)
    multiple: bool = False

    @field_validator("options")
    @classmethod
    def check_options(cls, v: List[str]) -> List[str]:
        for option in v:
            if not 1 <= len(option) <= 100:
                raise ValueError("Options must be between 1 and 100 characters")
        if len(set(v)) != len(v):
            raise ValueError("Options must be unique")
        return v


class CheckboxFieldConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    default: Optional[bool] = None


CONFIG_MODELS = {
    "text": TextFieldConfig,
    "number": NumberFieldConfig,
    "date": DateFieldConfig,
    "select": SelectFieldConfig,
    "checkbox": CheckboxFieldConfig,
}


def validate_config(field_type: str, config: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Validate config against the field type and return its normalized form.

    Raises ValueError with a readable message; select fields need a config.
    """
    model = CONFIG_MODELS.get(field_type)
    if model is None:
        raise ValueError(f"Unknown field type: {field_type}")
    try:
        parsed = model(**(config or {}))
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        message = first["msg"].removeprefix("Value error, ")
        raise ValueError(f"Invalid {field_type} config: {location + ': ' if location else ''}{message}")
    return parsed.model_dump(mode="json", exclude_none=True)


class CustomFieldCreate(BaseModel):
    board_id: UUID
    name: str = Field(min_length=1, max_length=100)
    field_type: FieldType
    config: Optional[Dict[str, Any]] = None
    required: bool = False
    position: Optional[int] = Field(default=None, ge=0)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field name cannot be empty")
        return v

    @model_validator(mode="after")
    def check_config(self):
        self.config = validate_config(self.field_type, self.config)
        return self


class CustomFieldUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    config: Optional[Dict[str, Any]] = None
    required: Optional[bool] = None
    field_type: Optional[FieldType] = None  # accepted only so a type change can be rejected explicitly

    # A null config resets it to the type's defaults; these three cannot be null
    @field_validator("name", "required", "field_type", mode="before")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field name cannot be empty")
        return v


class FieldPosition(BaseModel):
    id: UUID
    position: int = Field(ge=0)


class CustomFieldReorder(BaseModel):
    board_id: UUID
    fields: List[FieldPosition] = Field(min_length=1)


class CustomFieldValue(BaseModel):
    value: Any = None


class ValueValidationResponse(BaseModel):
    valid: bool
    error: Optional[str] = None


class CustomFieldResponse(BaseModel):
    id: str
    board_id: str
    name: str
    field_type: str
    config: Optional[Dict[str, Any]] = None
    required: bool = False
    position: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
