from fastapi import APIRouter, Depends, Query
from app.database.supabase_client import get_supabase
from app.modules.boards.schemas import (
    BoardCreate, BoardUpdate, BoardResponse, BoardWithColumnsResponse,
    BoardColumnCreate, BoardColumnUpdate, BoardColumnResponse, ColumnReorder
)
from app.modules.boards.service import BoardService
from app.core.dependencies import get_current_user_id
from supabase import Client
from typing import List, Dict
from uuid import UUID

router = APIRouter(prefix="/boards", tags=["boards"])


def get_board_service(supabase: Client = Depends(get_supabase)) -> BoardService:
    return BoardService(supabase)


@router.post("", response_model=BoardWithColumnsResponse, status_code=201)
async def create_board(
    board_data: BoardCreate,
    current_user: Dict = Depends(get_current_user_id),
    service: BoardService = Depends(get_board_service)
):
    """Create a board with default columns"""
    return service.create_board(current_user["id"], board_data)


@router.get("", response_model=List[BoardResponse])
async def list_boards(
    project_id: UUID,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: Dict = Depends(get_current_user_id),
    service: BoardService = Depends(get_board_service)
):
    return service.list_boards(current_user["id"], str(project_id), limit=limit, offset=offset)


@router.get("/{board_id}", response_model=BoardWithColumnsResponse)
async def get_board(
    board_id: UUID,
    current_user: Dict = Depends(get_current_user_id),
    service: BoardService = Depends(get_board_service)
):
    """Board with its columns in position order"""
    return service.get_board(current_user["id"], str(board_id))


@router.patch("/{board_id}", response_model=BoardResponse)
async def update_board(
    board_id: UUID,
    board_data: BoardUpdate,
    current_user: Dict = Depends(get_current_user_id),
    service: BoardService = Depends(get_board_service)
):
    return service.update_board(current_user["id"], str(board_id), board_data)


@router.delete("/{board_id}", status_code=204)
async def delete_board(
    board_id: UUID,
    current_user: Dict = Depends(get_current_user_id),
    service: BoardService = Depends(get_board_service)
):
    """Delete a board (organization admin or owner, board must have no tasks)"""
    service.delete_board(current_user["id"], str(board_id))


@router.post("/{board_id}/duplicate", response_model=BoardWithColumnsResponse, status_code=201)
async def duplicate_board(
    board_id: UUID,
    current_user: Dict = Depends(get_current_user_id),
    service: BoardService = Depends(get_board_service)
):
    return service.duplicate_board(current_user["id"], str(board_id))


@router.get("/{board_id}/columns", response_model=List[BoardColumnResponse])
async def list_columns(
    board_id: UUID,
    current_user: Dict = Depends(get_current_user_id),
    service: BoardService = Depends(get_board_service)
):
    return service.list_columns(current_user["id"], str(board_id))


@router.post("/{board_id}/columns", response_model=BoardColumnResponse, status_code=201)
async def create_column(
    board_id: UUID,
    column_data: BoardColumnCreate,
    current_user: Dict = Depends(get_current_user_id),
    service: BoardService = Depends(get_board_service)
):
    return service.create_column(current_user["id"], str(board_id), column_data)


@router.post("/{board_id}/columns/reorder", response_model=List[BoardColumnResponse])
async def reorder_columns(
    board_id: UUID,
    reorder: ColumnReorder,
    current_user: Dict = Depends(get_current_user_id),
    service: BoardService = Depends(get_board_service)
):
    """Apply a full set of column positions (0..n-1)"""
    return service.reorder_columns(current_user["id"], str(board_id), reorder)


@router.patch("/{board_id}/columns/{column_id}", response_model=BoardColumnResponse)
async def update_column(
    board_id: UUID,
    column_id: UUID,
    column_data: BoardColumnUpdate,
    current_user: Dict = Depends(get_current_user_id),
    service: BoardService = Depends(get_board_service)
):
    return service.update_column(current_user["id"], str(board_id), str(column_id), column_data)


@router.delete("/{board_id}/columns/{column_id}", status_code=204)
async def delete_column(
    board_id: UUID,
    column_id: UUID,
    current_user: Dict = Depends(get_current_user_id),
    service: BoardService = Depends(get_board_service)
):
    service.delete_column(current_user["id"], str(board_id), str(column_id))
