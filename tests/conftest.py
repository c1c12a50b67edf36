"""
Shared test fixtures.

Salesforce is replaced by FakeSalesforceClient, an in-memory line item
store with the same public methods as integrations.salesforce.SalesforceClient.
"""

import sys
from pathlib import Path

# Add project root to Python path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

import pytest
from typing import Optional
from unittest.mock import patch

from config import configure_logging
from exceptions import SalesforceError
from integrations.salesforce import LineItemObject
from models.sync import BatchResult, RecordError, RecordResult
from tests.factories import (
    LINE_ITEM_GROUPS,
    LINE_ITEM_HEADER,
    WorkbookFactory,
)

# Route structlog through stdlib logging so stdout holds only program output
configure_logging()


# ===================
# FAKE SALESFORCE CLIENT
# ===================

class FakeSalesforceClient:
    """
    In-memory stand-in for SalesforceClient.

    Rows are dicts with Id, parent, active flag, and revision fields.
    `reject_insert_indexes` makes those positions of the next insert fail;
    `fail_on` raises SalesforceError from the named method.
    """

    def __init__(self, rows: Optional[list[dict]] = None):
        self.line_item = LineItemObject()
        self.rows: list[dict] = rows or []
        self.calls: list[tuple] = []
        self.reject_insert_indexes: set[int] = set()
        self.reject_deactivate_ids: set[str] = set()
        self.fail_on: Optional[str] = None
        self._next_id = 1

    def _check(self, method: str):
        if self.fail_on == method:
            raise SalesforceError(method, "connection reset")

    def add_row(self, parent_id: str, revision: int, active: bool) -> str:
        row_id = f"a0X{self._next_id:06d}"
        self._next_id += 1
        item = self.line_item
        self.rows.append({
            "Id": row_id,
            item.parent_field: parent_id,
            item.active_field: active,
            item.revision_field: revision,
        })
        return row_id

    def get_active_line_item_ids(self, parent_id: str) -> list[str]:
        self.calls.append(("get_active_line_item_ids", parent_id))
        self._check("get_active_line_item_ids")
        item = self.line_item
        return [
            row["Id"] for row in self.rows
            if row[item.parent_field] == parent_id and row[item.active_field]
        ]

    def deactivate_line_items(self, ids: list[str]) -> BatchResult:
        self.calls.append(("deactivate_line_items", list(ids)))
        self._check("deactivate_line_items")
        result = BatchResult(operation="deactivate")
        for row_id in ids:
            if row_id in self.reject_deactivate_ids:
                result.results.append(RecordResult(
                    id=row_id,
                    success=False,
                    errors=[RecordError(status_code="ENTITY_IS_LOCKED", message="locked")],
                ))
                continue
            for row in self.rows:
                if row["Id"] == row_id:
                    row[self.line_item.active_field] = False
            result.results.append(RecordResult(id=row_id, success=True))
        return result

    def get_highest_revision_number(self, parent_id: str) -> int:
        self.calls.append(("get_highest_revision_number", parent_id))
        self._check("get_highest_revision_number")
        item = self.line_item
        revisions = [
            row[item.revision_field] for row in self.rows
            if row[item.parent_field] == parent_id and row[item.revision_field] is not None
        ]
        return max(revisions, default=0)

    def create_line_items(self, parent_id: str, line_items: list[dict]) -> BatchResult:
        self.calls.append(("create_line_items", parent_id, [dict(r) for r in line_items]))
        self._check("create_line_items")
        result = BatchResult(operation="insert")
        for index, line_item in enumerate(line_items):
            if index in self.reject_insert_indexes:
                result.results.append(RecordResult(
                    success=False,
                    errors=[RecordError(
                        status_code="REQUIRED_FIELD_MISSING",
                        message="Required fields are missing: [Product__c]",
                        fields=["Product__c"],
                    )],
                ))
                continue
            row_id = f"a0X{self._next_id:06d}"
            self._next_id += 1
            self.rows.append({"Id": row_id, **line_item, self.line_item.parent_field: parent_id})
            result.results.append(RecordResult(id=row_id, success=True))
        return result

    def called(self, method: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == method]


# ===================
# FIXTURES
# ===================

@pytest.fixture
def fake_salesforce() -> FakeSalesforceClient:
    """
    Empty in-memory Salesforce.

    Usage:
        def test_something(fake_salesforce):
            fake_salesforce.add_row("006A", revision=1, active=True)
    """
    return FakeSalesforceClient()


@pytest.fixture
def line_item_sheets() -> dict:
    """Parameter + input sheets with two line items under opportunity 006A."""
    return WorkbookFactory.line_item_sheets(
        header=LINE_ITEM_HEADER,
        rows=[
            ["006A", "Widget", 10, 0.25, "C-1"],
            ["006A", "Gadget", 3, 0.1, "C-2"],
        ],
        groups=LINE_ITEM_GROUPS,
    )


@pytest.fixture
def line_item_workbook(line_item_sheets):
    """In-memory workbook built from line_item_sheets."""
    from parsers.workbook_parser import WorkbookSource
    return WorkbookSource(WorkbookFactory.create(line_item_sheets))


@pytest.fixture
def reset_sync_singleton():
    """Reset the RevisionSyncService singleton around a test."""
    import services.revision_sync_service as module
    module._service = None
    yield
    module._service = None


@pytest.fixture
def api_client(fake_salesforce, reset_sync_singleton):
    """
    FastAPI test client whose sync service talks to fake_salesforce.

    Usage:
        def test_endpoint(api_client, fake_salesforce):
            response = api_client.post("/api/line-items/sync", files=...)
    """
    from fastapi.testclient import TestClient
    from main import app

    with patch("services.revision_sync_service.get_salesforce_client", return_value=fake_salesforce):
        yield TestClient(app)
