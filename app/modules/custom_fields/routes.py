from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.custom_fields.schemas import (
    CustomFieldCreate, CustomFieldUpdate, CustomFieldReorder, CustomFieldResponse,
    CustomFieldValue, ValueValidationResponse
)
from app.modules.custom_fields.service import CustomFieldService
from app.core.dependencies import get_current_user_id
from supabase import Client
from typing import List, Dict
from uuid import UUID

router = APIRouter(prefix="/custom-fields", tags=["custom-fields"])


def get_custom_field_service(supabase: Client = Depends(get_supabase)) -> CustomFieldService:
    return CustomFieldService(supabase)


@router.post("", response_model=CustomFieldResponse, status_code=201)
async def create_custom_field(
    field_data: CustomFieldCreate,
    current_user: Dict = Depends(get_current_user_id),
    service: CustomFieldService = Depends(get_custom_field_service)
):
    """Define a custom field on a board (organization admin or owner)"""
    return service.create_field(current_user["id"], field_data)


@router.get("", response_model=List[CustomFieldResponse])
async def list_custom_fields(
    board_id: UUID,
    current_user: Dict = Depends(get_current_user_id),
    service: CustomFieldService = Depends(get_custom_field_service)
):
    return service.list_fields(current_user["id"], str(board_id))


@router.post("/reorder", response_model=List[CustomFieldResponse])
async def reorder_custom_fields(
    reorder: CustomFieldReorder,
    current_user: Dict = Depends(get_current_user_id),
    service: CustomFieldService = Depends(get_custom_field_service)
):
    return service.reorder_fields(current_user["id"], reorder)


@router.get("/{field_id}", response_model=CustomFieldResponse)
async def get_custom_field(
    field_id: UUID,
    current_user: Dict = Depends(get_current_user_id),
    service: CustomFieldService = Depends(get_custom_field_service)
):
    return service.get_field(current_user["id"], str(field_id))


@router.patch("/{field_id}", response_model=CustomFieldResponse)
async def update_custom_field(
    field_id: UUID,
    field_data: CustomFieldUpdate,
    current_user: Dict = Depends(get_current_user_id),
    service: CustomFieldService = Depends(get_custom_field_service)
):
    return service.update_field(current_user["id"], str(field_id), field_data)


@router.delete("/{field_id}", status_code=204)
async def delete_custom_field(
    field_id: UUID,
    current_user: Dict = Depends(get_current_user_id),
    service: CustomFieldService = Depends(get_custom_field_service)
):
    service.delete_field(current_user["id"], str(field_id))


@router.post("/{field_id}/validate", response_model=ValueValidationResponse)
async def validate_custom_field_value(
    field_id: UUID,
    payload: CustomFieldValue,
    current_user: Dict = Depends(get_current_user_id),
    service: CustomFieldService = Depends(get_custom_field_service)
):
    """Check a task value against the field definition without storing it"""
    return service.validate_value(current_user["id"], str(field_id), payload.value)
