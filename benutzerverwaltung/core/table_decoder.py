"""Schema-driven decoding of raw table rows into typed cells.

Resolution rules (first match wins, anything else is dropped silently):

    Text column          + string            -> StringCell(value)
    Selection/Check      + "true" | "false"  -> BoolCell
    Selection/Single     + number            -> StringCell(option label), if the id resolves
    Selection/Multi      + list of numbers   -> ListCell(labels), unresolved ids skipped

Cells referencing a column id the schema does not know are dropped too.
Decoding never raises: stale or malformed source data degrades to
"field absent" and is left for the extractor to judge.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, Iterable, List, Optional

from .models import (
    BoolCell,
    CellValue,
    Column,
    ColumnSchema,
    DecodedRow,
    ListCell,
    RawRow,
    SelectionColumn,
    SelectionSubtype,
    StringCell,
    TextColumn,
)

logger = logging.getLogger(__name__)


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a selection id
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number_list(value: Any) -> bool:
    return isinstance(value, list) and all(_is_number(item) for item in value)


def decode_cell(column: Column, value: Any) -> Optional[CellValue]:
    """Resolve one payload against its column definition.

    Returns:
        The decoded cell, or None when the (column kind, payload shape)
        combination is not recognized.
    """
    if isinstance(column, TextColumn):
        if isinstance(value, str):
            return StringCell(value)
        return None

    if isinstance(column, SelectionColumn):
        if column.subtype is SelectionSubtype.CHECK:
            if value == "true" or value == "false":
                return BoolCell(value == "true")
            return None
        if column.subtype is SelectionSubtype.SINGLE:
            if not _is_number(value):
                return None
            label = column.label_for(value)
            return StringCell(label) if label is not None else None
        if column.subtype is SelectionSubtype.MULTI:
            if not _is_number_list(value):
                return None
            labels = [column.label_for(option_id) for option_id in value]
            return ListCell(tuple(label for label in labels if label is not None))
        raise AssertionError(f"unhandled selection subtype {column.subtype!r}")

    raise AssertionError(f"unhandled column kind {type(column).__name__}")


def decode_row(columns_by_id: Dict[int, Column], row: RawRow) -> DecodedRow:
    decoded: DecodedRow = {}
    for cell in row:
        column = columns_by_id.get(cell.column_id)
        if column is None:
            logger.debug("[table] Dropping cell for unknown column %s", cell.column_id)
            continue
        value = decode_cell(column, cell.value)
        if value is None:
            logger.debug("[table] Dropping undecodable cell in column '%s'", column.title)
            continue
        decoded[column.title] = value
    return decoded


def decode(schema: ColumnSchema, rows: Iterable[RawRow]) -> List[DecodedRow]:
    """Decode every row against the schema, preserving row order."""
    columns_by_id: Dict[int, Column] = {}
    for column in schema:
        columns_by_id.setdefault(column.id, column)
    return [decode_row(columns_by_id, row) for row in rows]
