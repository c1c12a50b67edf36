"""
Workbook and parameter parsers.
"""

from parsers.parameter_parser import (
    aggregate_parameters,
    classify_first_cell,
    FirstCellKind,
)
from parsers.workbook_parser import (
    WorkbookSource,
    TableSource,
)

__all__ = [
    "aggregate_parameters",
    "classify_first_cell",
    "FirstCellKind",
    "WorkbookSource",
    "TableSource",
]
