import logging
from supabase import Client
from app.core.dependencies import authorize_org_id_action
from app.core.errors import Conflict, InternalError, NotFound, ValidationFailed
from app.core.permissions import Action
from app.core.positions import next_position, validate_reorder, write_positions
from app.core.timestamps import utcnow_iso
from app.modules.boards.schemas import (
    BoardCreate, BoardUpdate, BoardResponse, BoardWithColumnsResponse,
    BoardColumnCreate, BoardColumnUpdate, BoardColumnResponse, ColumnReorder
)
from typing import List, Dict, Any

logger = logging.getLogger(__name__)

DEFAULT_COLUMNS = [
    {"name": "To Do", "color": "#6B7280", "position": 0},
    {"name": "In Progress", "color": "#3B82F6", "position": 1, "wip_limit": 3},
    {"name": "Done", "color": "#10B981", "position": 2},
]


class BoardService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _get_board_row(self, board_id: str) -> Dict[str, Any]:
        result = self.supabase.table("boards")\
            .select("*")\
            .eq("id", board_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise NotFound("Board not found", code="BOARD_NOT_FOUND")
        return result.data[0]

    def get_authorized_board(self, board_id: str, user_id: str, action: Action) -> Dict[str, Any]:
        """Fetch a board and check the caller may perform action in the owning organization"""
        board = self._get_board_row(board_id)
        authorize_org_id_action(board["organization_id"], user_id, action, self.supabase)
        return board

    def _get_project_row(self, project_id: str) -> Dict[str, Any]:
        result = self.supabase.table("projects")\
            .select("id, organization_id")\
            .eq("id", project_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise NotFound("Project not found", code="PROJECT_NOT_FOUND")
        return result.data[0]

    def _list_columns(self, board_id: str) -> List[Dict[str, Any]]:
        result = self.supabase.table("board_columns")\
            .select("*")\
            .eq("board_id", board_id)\
            .order("position")\
            .execute()
        return result.data or []

    def _insert_board(self, project: Dict[str, Any], user_id: str, name: str, description, settings) -> Dict[str, Any]:
        result = self.supabase.table("boards").insert({
            "project_id": project["id"],
            "organization_id": project["organization_id"],
            "name": name,
            "description": description,
            "settings": settings,
            "created_by": user_id
        }).execute()
        if not result.data:
            raise InternalError("Failed to create board")
        return result.data[0]

    def _insert_columns_or_rollback(self, board: Dict[str, Any], columns: List[Dict[str, Any]]) -> None:
        try:
            for column in columns:
                result = self.supabase.table("board_columns").insert({
                    "board_id": board["id"],
                    "name": column["name"],
                    "color": column["color"],
                    "wip_limit": column.get("wip_limit"),
                    "position": column["position"]
                }).execute()
                if not result.data:
                    raise InternalError("Failed to create board column")
        except Exception as e:
            logger.error(f"Column creation for board {board['id']} failed, rolling back: {e}")
            try:
                self.supabase.table("boards").delete().eq("id", board["id"]).execute()
            except Exception as rollback_error:
                logger.error(f"Rollback of board {board['id']} failed: {rollback_error}")
            raise InternalError("Failed to create board columns")

    def create_board(self, user_id: str, board_data: BoardCreate) -> BoardWithColumnsResponse:
        """Create a board with the default To Do / In Progress / Done columns"""
        project = self._get_project_row(str(board_data.project_id))
        authorize_org_id_action(project["organization_id"], user_id, Action.CREATE_BOARD, self.supabase)

        board = self._insert_board(project, user_id, board_data.name, board_data.description, board_data.settings)
        self._insert_columns_or_rollback(board, DEFAULT_COLUMNS)

        logger.info(f"Board created: id={board['id']} project={project['id']} user={user_id}")
        return BoardWithColumnsResponse(**board, columns=self._list_columns(board["id"]))

    def list_boards(self, user_id: str, project_id: str, limit: int = 20, offset: int = 0) -> List[BoardResponse]:
        project = self._get_project_row(project_id)
        authorize_org_id_action(project["organization_id"], user_id, Action.VIEW_PROJECT, self.supabase)

        result = self.supabase.table("boards")\
            .select("*")\
            .eq("project_id", project_id)\
            .order("created_at")\
            .limit(limit)\
            .offset(offset)\
            .execute()
        return [BoardResponse(**board) for board in result.data]

    def get_board(self, user_id: str, board_id: str) -> BoardWithColumnsResponse:
        board = self.get_authorized_board(board_id, user_id, Action.VIEW_PROJECT)
        return BoardWithColumnsResponse(**board, columns=self._list_columns(board_id))

    def update_board(self, user_id: str, board_id: str, board_data: BoardUpdate) -> BoardResponse:
        self.get_authorized_board(board_id, user_id, Action.UPDATE_BOARD)

        update_data = board_data.model_dump(exclude_unset=True)
        if not update_data:
            raise ValidationFailed("No valid data provided for update")
        if update_data.get("description") is not None:
            update_data["description"] = update_data["description"].strip() or None
        update_data["updated_at"] = utcnow_iso()

        result = self.supabase.table("boards")\
            .update(update_data)\
            .eq("id", board_id)\
            .execute()
        if not result.data:
            raise NotFound("Board not found", code="BOARD_NOT_FOUND")
        return BoardResponse(**result.data[0])

    def delete_board(self, user_id: str, board_id: str) -> None:
        """Delete a board; refused while tasks still reference it"""
        self.get_authorized_board(board_id, user_id, Action.DELETE_BOARD)

        tasks = self.supabase.table("tasks")\
            .select("id", count="exact")\
            .eq("board_id", board_id)\
            .limit(1)\
            .execute()
        if tasks.count or tasks.data:
            raise Conflict("Board still has tasks", code="BOARD_HAS_TASKS")

        self.supabase.table("boards")\
            .delete()\
            .eq("id", board_id)\
            .execute()
        logger.info(f"Board deleted: id={board_id} user={user_id}")

    def duplicate_board(self, user_id: str, board_id: str) -> BoardWithColumnsResponse:
        """Copy a board and its columns into the same project"""
        board = self.get_authorized_board(board_id, user_id, Action.CREATE_BOARD)
        project = {"id": board["project_id"], "organization_id": board["organization_id"]}
        columns = self._list_columns(board_id)

        # The copy suffix may push the name past the board name limit
        name = f"{board['name']} (copy)"[:100]
        copy = self._insert_board(project, user_id, name, board.get("description"), board.get("settings"))
        self._insert_columns_or_rollback(copy, columns)

        logger.info(f"Board duplicated: source={board_id} copy={copy['id']} user={user_id}")
        return BoardWithColumnsResponse(**copy, columns=self._list_columns(copy["id"]))

    # Columns

    def _get_column_row(self, board_id: str, column_id: str) -> Dict[str, Any]:
        result = self.supabase.table("board_columns")\
            .select("*")\
            .eq("id", column_id)\
            .eq("board_id", board_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise NotFound("Column not found", code="COLUMN_NOT_FOUND")
        return result.data[0]

    def list_columns(self, user_id: str, board_id: str) -> List[BoardColumnResponse]:
        self.get_authorized_board(board_id, user_id, Action.VIEW_PROJECT)
        return [BoardColumnResponse(**column) for column in self._list_columns(board_id)]

    def create_column(self, user_id: str, board_id: str, column_data: BoardColumnCreate) -> BoardColumnResponse:
        """Append a column, or place it at the requested position without renumbering the others"""
        self.get_authorized_board(board_id, user_id, Action.UPDATE_BOARD)

        position = column_data.position
        if position is None:
            position = next_position(column["position"] for column in self._list_columns(board_id))

        result = self.supabase.table("board_columns").insert({
            "board_id": board_id,
            "name": column_data.name,
            "color": column_data.color,
            "wip_limit": column_data.wip_limit,
            "position": position
        }).execute()
        if not result.data:
            raise InternalError("Failed to create board column")
        return BoardColumnResponse(**result.data[0])

    def update_column(self, user_id: str, board_id: str, column_id: str, column_data: BoardColumnUpdate) -> BoardColumnResponse:
        self.get_authorized_board(board_id, user_id, Action.UPDATE_BOARD)
        self._get_column_row(board_id, column_id)

        update_data = column_data.model_dump(exclude_unset=True)
        if not update_data:
            raise ValidationFailed("No valid data provided for update")
        update_data["updated_at"] = utcnow_iso()

        result = self.supabase.table("board_columns")\
            .update(update_data)\
            .eq("id", column_id)\
            .execute()
        if not result.data:
            raise NotFound("Column not found", code="COLUMN_NOT_FOUND")
        return BoardColumnResponse(**result.data[0])

    def delete_column(self, user_id: str, board_id: str, column_id: str) -> None:
        self.get_authorized_board(board_id, user_id, Action.UPDATE_BOARD)
        self._get_column_row(board_id, column_id)
        self.supabase.table("board_columns")\
            .delete()\
            .eq("id", column_id)\
            .execute()

    def reorder_columns(self, user_id: str, board_id: str, reorder: ColumnReorder) -> List[BoardColumnResponse]:
        self.get_authorized_board(board_id, user_id, Action.UPDATE_BOARD)

        items = [(str(item.id), item.position) for item in reorder.columns]
        previous = {column["id"]: column["position"] for column in self._list_columns(board_id)}
        validate_reorder(items, set(previous), not_found_code="COLUMN_NOT_IN_BOARD")
        write_positions(self.supabase, "board_columns", board_id, items, previous)

        return [BoardColumnResponse(**column) for column in self._list_columns(board_id)]
