"""Compound identifiers for single table cells.

Token layout::

    <table_id>_cell_<row_index>_<col_index>_cell_<row>_<row_span>_cell_<col>_<col_span>

The word token ``_cell_`` never appears inside an integer, so the three
numeric groups can always be split back out. Tokens carrying ``_skip_row_``
mark rows the analysis backend skipped; they do not address a cell.
"""
from __future__ import annotations

from typing import Any

from .logging import get_logger
from .types import CellIdentity, ContentId, TableCell

CELL_DELIMITER = "_cell_"
SKIP_ROW_SENTINEL = "_skip_row_"

log = get_logger(__name__)


def encode(table_id: ContentId, cell: TableCell) -> str:
    return (
        f"{table_id}{CELL_DELIMITER}{int(cell.row_index)}_{int(cell.col_index)}"
        f"{CELL_DELIMITER}{int(cell.row)}_{int(cell.row_span)}"
        f"{CELL_DELIMITER}{int(cell.col)}_{int(cell.col_span)}"
    )


def overlay_key(table_id: ContentId, cell: TableCell) -> str:
    """UI key for a cell: the backend's own cell identity when it has one."""
    if cell.cell_identity:
        return f"{table_id}{CELL_DELIMITER}{cell.cell_identity}"
    return encode(table_id, cell)


def _int_pair(group: str) -> tuple[int, int] | None:
    parts = group.split("_")
    if len(parts) != 2:
        return None
    try:
        return int(parts[0]), int(parts[1])
    except ValueError:
        return None


def decode(token: Any) -> CellIdentity | None:
    """Parse a cell token; None means "not a concrete cell". Never raises."""
    if not isinstance(token, str) or not token:
        return None
    if SKIP_ROW_SENTINEL in token:
        return None

    parts = token.split(CELL_DELIMITER)
    if len(parts) < 4:
        log.debug("cell_token_short", token=token)
        return None

    # The last three groups are numeric; anything before them is the table id.
    table_id = CELL_DELIMITER.join(parts[:-3])
    pairs = [_int_pair(g) for g in parts[-3:]]
    if any(p is None for p in pairs):
        log.debug("cell_token_not_numeric", token=token)
        return None

    (row_index, col_index), (row, row_span), (col, col_span) = pairs  # type: ignore[misc]
    return CellIdentity(
        row_index=row_index,
        col_index=col_index,
        row=row,
        row_span=row_span,
        col=col,
        col_span=col_span,
        table_id=table_id,
    )


def find_cell(cells: tuple[TableCell, ...] | list[TableCell], identity: CellIdentity) -> TableCell | None:
    for cell in cells:
        if (
            cell.row_index == identity.row_index
            and cell.col_index == identity.col_index
            and cell.row == identity.row
            and cell.row_span == identity.row_span
            and cell.col == identity.col
            and cell.col_span == identity.col_span
        ):
            return cell
    return None
