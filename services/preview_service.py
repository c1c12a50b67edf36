"""
Preview export of the built line item table.

Writes the flat records (what would be sent to Salesforce, before
stamping) to .xlsx or .csv so they can be reviewed before a sync.
"""

from io import BytesIO
from pathlib import Path
from typing import Union

import pandas as pd
import structlog

from exceptions import ValidationError
from models.records import FlatRecord

logger = structlog.get_logger(__name__)

PREVIEW_SHEET = "Line Items"


def records_to_frame(records: list[FlatRecord]) -> pd.DataFrame:
    """
    One row per record, columns in first-seen order.

    Fields missing from a record are left empty.
    """
    columns: list[str] = []
    for record in records:
        for key in record:
            if key not in columns:
                columns.append(key)
    return pd.DataFrame.from_records(records, columns=columns)


def export_records(records: list[FlatRecord], target: Union[str, Path, BytesIO], fmt: str = "xlsx") -> None:
    """
    Write records to a file or buffer.

    Args:
        records: Flat records
        target: Output path or buffer
        fmt: "xlsx" or "csv"

    Raises:
        ValidationError: If the format is not supported
    """
    frame = records_to_frame(records)

    if fmt == "xlsx":
        with pd.ExcelWriter(target, engine="openpyxl") as writer:
            frame.to_excel(writer, sheet_name=PREVIEW_SHEET, index=False)
    elif fmt == "csv":
        frame.to_csv(target, index=False)
    else:
        raise ValidationError(
            f"Unsupported export format: {fmt}",
            code="EXPORT_FORMAT_INVALID",
            details={"provided": fmt, "valid": ["xlsx", "csv"]}
        )

    logger.info("preview_exported", format=fmt, records=len(records), columns=len(frame.columns))


def export_format_for(path: Union[str, Path]) -> str:
    """Pick the export format from a file extension (defaults to xlsx)."""
    return "csv" if str(path).lower().endswith(".csv") else "xlsx"
