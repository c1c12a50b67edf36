"""
Workbook access for the parameter sheet and the input table.

Wraps an openpyxl workbook and exposes plain Python values:
parameter cells as trimmed text, the header row as trimmed text,
data rows as raw cell values (None for empty cells).
"""

from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Any, Iterator, Union
import json

from openpyxl import load_workbook
from openpyxl.worksheet.worksheet import Worksheet
import structlog

from exceptions import ConfigurationError, WorkbookReadError

logger = structlog.get_logger(__name__)


@dataclass
class TableSource:
    """Header row plus a lazy iterator over the rows below it."""
    sheet_name: str
    header_row_number: int
    header: list[str]
    column_count: int
    sheet: Worksheet

    def iter_rows(self) -> Iterator[tuple[int, list[Any]]]:
        """
        Yield (sheet_row_number, cells) for every row below the header.

        Each call starts again from the first data row.
        """
        first = self.header_row_number + 1
        if first > self.sheet.max_row:
            return
        rows = self.sheet.iter_rows(
            min_row=first,
            max_row=self.sheet.max_row,
            max_col=self.column_count,
            values_only=True,
        )
        for offset, row in enumerate(rows):
            yield first + offset, list(row)


class WorkbookSource:
    """
    Read-only view over an .xlsx workbook.

    Args:
        file: File path (str/Path) or file-like object (BytesIO)

    Raises:
        WorkbookReadError: If the file cannot be opened as a workbook
    """

    def __init__(self, file: Union[str, Path, BytesIO]):
        logger.info("opening_workbook", file_type=type(file).__name__)
        try:
            self.workbook = load_workbook(file, data_only=True)
        except Exception as e:
            logger.error("workbook_read_failed", error=str(e))
            raise WorkbookReadError(
                message="Failed to read workbook",
                details={"original_error": str(e)}
            ) from e

    @property
    def sheet_names(self) -> list[str]:
        return list(self.workbook.sheetnames)

    def has_sheet(self, name: str) -> bool:
        return name in self.workbook.sheetnames

    def _sheet(self, name: str, purpose: str) -> Worksheet:
        if not self.has_sheet(name):
            logger.error("sheet_not_found", sheet=name, purpose=purpose)
            raise ConfigurationError(
                f"{purpose} sheet '{name}' not found.",
                details={"sheet": name, "available": self.sheet_names}
            )
        return self.workbook[name]

    def parameter_cells(self, sheet_name: str) -> list[str]:
        """
        Column A of the parameter sheet as trimmed text, one entry per row.

        Raises:
            ConfigurationError: If the sheet is missing or has no data
        """
        sheet = self._sheet(sheet_name, "Parameter")
        cells = [
            _cell_text(row[0])
            for row in sheet.iter_rows(
                min_row=1, max_row=sheet.max_row, max_col=1, values_only=True
            )
        ]
        while cells and cells[-1] == "":
            cells.pop()

        if not cells:
            raise ConfigurationError(
                f"No data found in '{sheet_name}' sheet.",
                details={"sheet": sheet_name}
            )

        logger.debug("parameter_cells_read", sheet=sheet_name, rows=len(cells))
        return cells

    def table(self, sheet_name: str, header_row_number: int) -> TableSource:
        """
        Locate the input table.

        Args:
            sheet_name: Worksheet named by the "Input Sheet" parameter
            header_row_number: 1-based row holding the column labels

        Raises:
            ConfigurationError: If the sheet is missing or the header row is past its end
        """
        sheet = self._sheet(sheet_name, "Input")
        if header_row_number > sheet.max_row:
            raise ConfigurationError(
                f"Header row {header_row_number} is past the last row of '{sheet_name}'.",
                details={"sheet": sheet_name, "header_row": header_row_number, "last_row": sheet.max_row}
            )

        column_count = sheet.max_column
        header_cells = next(sheet.iter_rows(
            min_row=header_row_number,
            max_row=header_row_number,
            max_col=column_count,
            values_only=True,
        ))
        header = [_cell_text(value) for value in header_cells]

        logger.info(
            "input_table_located",
            sheet=sheet_name,
            header_row=header_row_number,
            columns=column_count
        )
        return TableSource(
            sheet_name=sheet_name,
            header_row_number=header_row_number,
            header=header,
            column_count=column_count,
            sheet=sheet,
        )


# ===================
# HELPER FUNCTIONS
# ===================

def _cell_text(value: Any) -> str:
    """
    Render a cell as trimmed text.

    Empty cells become "", booleans use JSON spelling so `true` still parses.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return json.dumps(value)
    return str(value).strip()
