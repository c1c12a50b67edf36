"""
Unit tests for preview export.
"""

from io import BytesIO

import pandas as pd
import pytest

from exceptions import ValidationError
from services.preview_service import (
    PREVIEW_SHEET,
    export_format_for,
    export_records,
    records_to_frame,
)


@pytest.fixture
def records():
    return [
        {"Product__c": "Widget", "Quantity__c": 10},
        {"Product__c": "Gadget", "Customer__c": "Acme"},
    ]


class TestRecordsToFrame:
    """Tests for records_to_frame."""

    def test_columns_in_first_seen_order(self, records):
        frame = records_to_frame(records)

        assert list(frame.columns) == ["Product__c", "Quantity__c", "Customer__c"]
        assert len(frame) == 2
        assert pd.isna(frame.loc[1, "Quantity__c"])

    def test_empty(self):
        frame = records_to_frame([])

        assert frame.empty


class TestExportRecords:
    """Tests for export_records."""

    def test_xlsx(self, records):
        output = BytesIO()

        export_records(records, output, "xlsx")

        output.seek(0)
        frame = pd.read_excel(output, sheet_name=PREVIEW_SHEET)
        assert list(frame["Product__c"]) == ["Widget", "Gadget"]

    def test_csv(self, records, tmp_path):
        path = tmp_path / "preview.csv"

        export_records(records, path, "csv")

        frame = pd.read_csv(path)
        assert list(frame.columns) == ["Product__c", "Quantity__c", "Customer__c"]

    def test_unknown_format(self, records):
        with pytest.raises(ValidationError) as exc_info:
            export_records(records, BytesIO(), "json")

        assert exc_info.value.code == "EXPORT_FORMAT_INVALID"

    @pytest.mark.parametrize("path,fmt", [
        ("out.csv", "csv"),
        ("OUT.CSV", "csv"),
        ("out.xlsx", "xlsx"),
        ("out", "xlsx"),
    ])
    def test_format_from_extension(self, path, fmt):
        assert export_format_for(path) == fmt
