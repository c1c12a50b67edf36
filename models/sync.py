"""
Sync result schemas.

Batch results mirror the per-record payload of the Salesforce composite
sobjects API. Rejected records are reported, never retried.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import ConfigDict, Field

from models.base import BaseSchema
from models.mapping import FieldMapping, MappingWarning


BatchOperation = Literal["deactivate", "insert"]


class SyncStep(str, Enum):
    """Steps of a sync run, in execution order."""
    LOAD = "load"
    IDENTIFY_PARENT = "identify_parent"
    DEACTIVATE = "deactivate"
    COMPUTE_REVISION = "compute_revision"
    STAMP = "stamp"
    SUBMIT = "submit"
    SUMMARIZE = "summarize"


class RecordError(BaseSchema):
    """One error entry from a composite response."""
    status_code: Optional[str] = None
    message: str = ""
    fields: list[str] = Field(default_factory=list)


class RecordResult(BaseSchema):
    """Outcome for one record of a batch."""
    id: Optional[str] = None
    success: bool
    errors: list[RecordError] = Field(default_factory=list)


class RemoteBatchPartialFailure(BaseSchema):
    """A record the remote store rejected inside an otherwise accepted batch."""
    operation: BatchOperation
    index: int = Field(..., ge=0, description="Position of the record in the batch")
    record_id: Optional[str] = None
    errors: list[RecordError] = Field(default_factory=list)


class BatchResult(BaseSchema):
    """Per-record results of one logical batch (possibly several HTTP requests)."""
    operation: BatchOperation
    results: list[RecordResult] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return self.total - self.succeeded

    @property
    def partial_failures(self) -> list[RemoteBatchPartialFailure]:
        return [
            RemoteBatchPartialFailure(
                operation=self.operation,
                index=index,
                record_id=result.id,
                errors=result.errors,
            )
            for index, result in enumerate(self.results)
            if not result.success
        ]


class StepRecord(BaseSchema):
    """Saga log entry for one completed step."""
    step: SyncStep
    completed_at: datetime
    detail: dict[str, Any] = Field(default_factory=dict)


class SyncSummary(BaseSchema):
    """
    Result of a sync run.

    `deactivation` and `insertion` are independent: a run can deactivate
    the previous revision and still have some inserts rejected.
    """
    parent_id: str
    previous_revision: int
    revision: int
    record_count: int
    deactivation: BatchResult
    insertion: BatchResult
    partial_failures: list[RemoteBatchPartialFailure] = Field(default_factory=list)
    warnings: list[MappingWarning] = Field(default_factory=list)
    steps: list[StepRecord] = Field(default_factory=list)
    started_at: datetime
    finished_at: datetime
    elapsed_seconds: float

    @property
    def fully_applied(self) -> bool:
        return not self.partial_failures


class PreviewResponse(BaseSchema):
    """Table built from a workbook without touching Salesforce. Field names are not trimmed."""
    model_config = ConfigDict(str_strip_whitespace=False)

    input_sheet: str
    header_row: int
    parameters: dict[str, Any]
    mapping: dict[str, list[FieldMapping]]
    warnings: list[MappingWarning] = Field(default_factory=list)
    records: list[dict[str, Any]] = Field(default_factory=list)
    record_count: int
