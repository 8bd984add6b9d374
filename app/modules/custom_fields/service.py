import logging
from datetime import date, datetime
from supabase import Client
from app.core.errors import BusinessRuleViolation, InternalError, NotFound, ValidationFailed
from app.core.permissions import Action
from app.core.positions import next_position, validate_reorder, write_positions
from app.core.timestamps import utcnow_iso
from app.modules.boards.service import BoardService
from app.modules.custom_fields.schemas import (
    CustomFieldCreate, CustomFieldUpdate, CustomFieldReorder, CustomFieldResponse,
    ValueValidationResponse, validate_config
)
from typing import List, Optional, Dict, Any

logger = logging.getLogger(__name__)


def _parse_date(value: Any) -> Optional[date]:
    """A plain YYYY-MM-DD date or a full ISO timestamp; anything else is not a date"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    try:
        if len(value) == 10:
            return date.fromisoformat(value)
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def check_value(field: Dict[str, Any], value: Any) -> Optional[str]:
    """Return why value is not acceptable for the field definition, or None when it is"""
    config = field.get("config") or {}
    field_type = field["field_type"]

    if value is None or value == "" or value == []:
        return "This field is required" if field.get("required") else None

    if field_type == "text":
        if not isinstance(value, str):
            return "Value must be text"
        max_length = config.get("max_length")
        if max_length and len(value) > max_length:
            return f"Value must be at most {max_length} characters"

    elif field_type == "number":
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return "Value must be a number"
        if config.get("min") is not None and value < config["min"]:
            return f"Value must be at least {config['min']}"
        if config.get("max") is not None and value > config["max"]:
            return f"Value must be at most {config['max']}"

    elif field_type == "date":
        parsed = _parse_date(value)
        if parsed is None:
            return "Value must be a date (YYYY-MM-DD)"
        if config.get("min") and parsed < date.fromisoformat(config["min"]):
            return f"Date must be on or after {config['min']}"
        if config.get("max") and parsed > date.fromisoformat(config["max"]):
            return f"Date must be on or before {config['max']}"

    elif field_type == "select":
        options = config.get("options") or []
        if config.get("multiple"):
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                return "Value must be a list of options"
            invalid = [v for v in value if v not in options]
            if invalid:
                return f"Invalid options: {', '.join(invalid)}"
        elif not isinstance(value, str) or value not in options:
            return f"Value must be one of: {', '.join(options)}"

    elif field_type == "checkbox":
        if not isinstance(value, bool):
            return "Value must be true or false"

    else:
        return f"Unknown field type: {field_type}"

    return None


class CustomFieldService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.boards = BoardService(supabase)

    def _get_field_row(self, field_id: str) -> Dict[str, Any]:
        result = self.supabase.table("custom_field_definitions")\
            .select("*")\
            .eq("id", field_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise NotFound("Custom field not found", code="CUSTOM_FIELD_NOT_FOUND")
        return result.data[0]

    def get_authorized_field(self, field_id: str, user_id: str, action: Action) -> Dict[str, Any]:
        field = self._get_field_row(field_id)
        self.boards.get_authorized_board(field["board_id"], user_id, action)
        return field

    def _list_fields(self, board_id: str) -> List[Dict[str, Any]]:
        result = self.supabase.table("custom_field_definitions")\
            .select("*")\
            .eq("board_id", board_id)\
            .order("position")\
            .execute()
        return result.data or []

    def create_field(self, user_id: str, field_data: CustomFieldCreate) -> CustomFieldResponse:
        board_id = str(field_data.board_id)
        self.boards.get_authorized_board(board_id, user_id, Action.MANAGE_CUSTOM_FIELDS)

        position = field_data.position
        if position is None:
            position = next_position(field["position"] for field in self._list_fields(board_id))

        result = self.supabase.table("custom_field_definitions").insert({
            "board_id": board_id,
            "name": field_data.name,
            "field_type": field_data.field_type,
            "config": field_data.config,
            "required": field_data.required,
            "position": position
        }).execute()
        if not result.data:
            raise InternalError("Failed to create custom field definition")

        logger.info(f"Custom field created: id={result.data[0]['id']} board={board_id} user={user_id}")
        return CustomFieldResponse(**result.data[0])

    def list_fields(self, user_id: str, board_id: str) -> List[CustomFieldResponse]:
        self.boards.get_authorized_board(board_id, user_id, Action.VIEW_PROJECT)
        return [CustomFieldResponse(**field) for field in self._list_fields(board_id)]

    def get_field(self, user_id: str, field_id: str) -> CustomFieldResponse:
        return CustomFieldResponse(**self.get_authorized_field(field_id, user_id, Action.VIEW_PROJECT))

    def update_field(self, user_id: str, field_id: str, field_data: CustomFieldUpdate) -> CustomFieldResponse:
        """Update name, config or required flag; config is checked against the stored field type"""
        field = self.get_authorized_field(field_id, user_id, Action.MANAGE_CUSTOM_FIELDS)

        update_data = field_data.model_dump(exclude_unset=True)
        field_type = update_data.pop("field_type", None)
        if field_type is not None and field_type != field["field_type"]:
            raise BusinessRuleViolation("The type of a custom field cannot be changed", code="CANNOT_CHANGE_FIELD_TYPE")
        if not update_data:
            raise ValidationFailed("No valid data provided for update")

        if "config" in update_data:
            try:
                update_data["config"] = validate_config(field["field_type"], update_data["config"])
            except ValueError as e:
                raise ValidationFailed(str(e))

        update_data["updated_at"] = utcnow_iso()
        result = self.supabase.table("custom_field_definitions")\
            .update(update_data)\
            .eq("id", field_id)\
            .execute()
        if not result.data:
            raise NotFound("Custom field not found", code="CUSTOM_FIELD_NOT_FOUND")
        return CustomFieldResponse(**result.data[0])

    def delete_field(self, user_id: str, field_id: str) -> None:
        """Delete a definition; stored task values go with it through the foreign key cascade"""
        field = self.get_authorized_field(field_id, user_id, Action.MANAGE_CUSTOM_FIELDS)
        self.supabase.table("custom_field_definitions")\
            .delete()\
            .eq("id", field_id)\
            .execute()
        logger.info(f"Custom field deleted: id={field_id} board={field['board_id']} user={user_id}")

    def reorder_fields(self, user_id: str, reorder: CustomFieldReorder) -> List[CustomFieldResponse]:
        board_id = str(reorder.board_id)
        self.boards.get_authorized_board(board_id, user_id, Action.MANAGE_CUSTOM_FIELDS)

        items = [(str(item.id), item.position) for item in reorder.fields]
        previous = {field["id"]: field["position"] for field in self._list_fields(board_id)}
        validate_reorder(items, set(previous), not_found_code="FIELD_NOT_IN_BOARD")
        write_positions(self.supabase, "custom_field_definitions", board_id, items, previous)

        return [CustomFieldResponse(**field) for field in self._list_fields(board_id)]

    def validate_value(self, user_id: str, field_id: str, value: Any) -> ValueValidationResponse:
        field = self.get_authorized_field(field_id, user_id, Action.VIEW_PROJECT)
        error = check_value(field, value)
        return ValueValidationResponse(valid=error is None, error=error)
