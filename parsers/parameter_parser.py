"""
Parameter aggregation.

Each non-blank parameter cell holds one JSON object, e.g.:
    {"Input Sheet":{"Name":"Test Opp"}}
    {"Table Header Row":{"Name":1}}
    {"oli":{"object_label":"Product","object_api_name":"Product__c"}}
    {"oli":{"object_label":"Qty","object_api_name":"Quantity__c"}}

All objects are merged into one Configuration. A key seen once keeps its
value; a repeated key collects every value into a list, in row order.
"""

from enum import Enum
from typing import Iterable, Optional
import json

from exceptions import ParseError
from models.parameters import Configuration
from utils.run_log import RunLog


class FirstCellKind(str, Enum):
    """How the first parameter cell is treated."""
    HEADER = "header"
    DATA = "data"


def classify_first_cell(cell: str) -> FirstCellKind:
    """
    Decide whether the first cell is a column label or a parameter row.

    Only the first cell is classified: anything that does not parse as JSON
    (including a blank cell) is taken to be a header and skipped.
    """
    try:
        json.loads(cell.strip())
    except ValueError:
        return FirstCellKind.HEADER
    return FirstCellKind.DATA


def aggregate_parameters(
    cells: Iterable[str],
    log: Optional[RunLog] = None
) -> Configuration:
    """
    Merge parameter cells into a Configuration.

    Args:
        cells: Parameter cells in sheet order (row 1 first)
        log: Run log for blank-row and summary entries

    Returns:
        Configuration with keys in first-seen order

    Raises:
        ParseError: If a cell after the optional header is not valid JSON
    """
    log = log or RunLog()
    cells = [str(cell) if cell is not None else "" for cell in cells]
    config = Configuration()

    if not cells:
        log.info("parameters_aggregated", keys=[])
        return config

    start = 0
    if classify_first_cell(cells[0]) is FirstCellKind.HEADER:
        log.debug("parameter_header_skipped", value=cells[0])
        start = 1

    for index in range(start, len(cells)):
        row_number = index + 1
        text = cells[index].strip()
        if not text:
            log.debug("parameter_blank_row_skipped", row=row_number)
            continue

        try:
            parsed = json.loads(text)
        except ValueError as e:
            log.error("parameter_parse_failed", row=row_number, error=str(e))
            raise ParseError(row=row_number, parser_message=str(e)) from e

        if not isinstance(parsed, dict):
            log.warning(
                "parameter_row_not_object",
                row=row_number,
                value_type=type(parsed).__name__
            )
            continue

        for key, value in parsed.items():
            config.add(key, value)

    log.info("parameters_aggregated", keys=config.keys())
    return config
