"""
Table building: turn worksheet rows into Records.

Rows are read in order until the first row whose column-0 cell is empty;
that row and everything after it is ignored. Cell values are passed
through untouched.
"""

from typing import Any, Iterable, Iterator, Optional, Sequence

from models.mapping import ColumnMapping, FieldMapping
from models.records import GroupValue, GroupedFields, Record, SingleField
from utils.run_log import RunLog


def is_end_of_table(row: Sequence[Any]) -> bool:
    """True when the row's first cell is missing, None, or an empty string."""
    return len(row) == 0 or row[0] is None or row[0] == ""


def _cell(row: Sequence[Any], column_index: int) -> Any:
    if column_index < len(row):
        return row[column_index]
    return None


def build_group(group: str, pairs: list[FieldMapping], row: Sequence[Any]) -> Optional[GroupValue]:
    """
    Apply the nesting rule for one group.

    One mapping gives a SingleField, two or more give GroupedFields,
    none gives nothing.
    """
    if not pairs:
        return None
    if len(pairs) == 1:
        pair = pairs[0]
        return SingleField(group=group, field=pair.output_field, value=_cell(row, pair.column_index))
    return GroupedFields(
        group=group,
        fields={pair.output_field: _cell(row, pair.column_index) for pair in pairs},
    )


def build_record(row_number: int, row: Sequence[Any], mapping: ColumnMapping) -> Record:
    """Build one Record, groups in mapping order."""
    groups = []
    for group, pairs in mapping.items():
        value = build_group(group, pairs, row)
        if value is not None:
            groups.append(value)
    return Record(row_number=row_number, groups=groups)


def build_records(
    rows: Iterable[tuple[int, Sequence[Any]]],
    mapping: ColumnMapping,
    log: Optional[RunLog] = None
) -> Iterator[Record]:
    """
    Lazily build Records from (row_number, cells) pairs.

    Args:
        rows: Data rows below the header, in sheet order
        mapping: Resolved column mapping
        log: Run log for the end-of-table entry

    Yields:
        One Record per row until the first row with an empty first cell
    """
    log = log or RunLog()
    count = 0
    for row_number, row in rows:
        if is_end_of_table(row):
            log.info("blank_row_stops_table", row=row_number, records=count)
            return
        count += 1
        yield build_record(row_number, row, mapping)
    log.info("table_rows_exhausted", records=count)
