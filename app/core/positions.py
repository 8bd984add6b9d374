"""
Position sequencing shared by board columns and custom fields.
"""

import logging
from typing import Dict, Iterable, List, Set, Tuple

from supabase import Client

from app.core.errors import BusinessRuleViolation, InternalError, ValidationFailed
from app.core.timestamps import utcnow_iso

logger = logging.getLogger(__name__)


def validate_reorder(items: List[Tuple[str, int]], known_ids: Set[str], not_found_code: str) -> None:
    """Check a batch of (id, position) pairs before it is written.

    Positions must be exactly 0..n-1 with no duplicates, ids must be unique
    and every id must belong to the parent (board) being reordered.
    """
    if not items:
        raise ValidationFailed("Reorder data cannot be empty")

    ids = [item_id for item_id, _ in items]
    if len(set(ids)) != len(ids):
        raise BusinessRuleViolation("Duplicate ids in reorder data", code="INVALID_POSITIONS")

    positions = sorted(position for _, position in items)
    if positions != list(range(len(positions))):
        raise BusinessRuleViolation(
            "Positions must be sequential starting from 0 with no duplicates",
            code="INVALID_POSITIONS"
        )

    unknown = [item_id for item_id in ids if item_id not in known_ids]
    if unknown:
        raise BusinessRuleViolation(
            "Some ids do not belong to this board",
            code=not_found_code,
            details={"ids": unknown}
        )


def write_positions(
    supabase: Client,
    table: str,
    board_id: str,
    items: List[Tuple[str, int]],
    previous: Dict[str, int]
) -> None:
    """Store a validated reorder batch row by row.

    If any write fails, the rows already written get their previous position
    back, so the batch lands completely or not at all.
    """
    now = utcnow_iso()
    written: List[str] = []
    try:
        for item_id, position in items:
            supabase.table(table)\
                .update({"position": position, "updated_at": now})\
                .eq("id", item_id)\
                .eq("board_id", board_id)\
                .execute()
            written.append(item_id)
    except Exception as e:
        logger.error(f"Reorder of {table} on board {board_id} failed after {len(written)} rows, restoring: {e}")
        for item_id in written:
            try:
                supabase.table(table)\
                    .update({"position": previous[item_id]})\
                    .eq("id", item_id)\
                    .eq("board_id", board_id)\
                    .execute()
            except Exception as restore_error:
                logger.error(f"Restoring position of {table} row {item_id} failed: {restore_error}")
        raise InternalError("Failed to save the new order", code="REORDER_FAILED")


def next_position(positions: Iterable[int]) -> int:
    """Position that appends after the existing ones"""
    return max(positions, default=-1) + 1
