"""
Revision sync service.

Builds line items from a workbook and publishes them to Salesforce as a
new revision under their parent opportunity:

    load -> identify parent -> deactivate active items -> compute revision
         -> stamp -> submit -> summarize

The remote steps are not transactional. If a run fails once any line item
of the previous revision has been deactivated (including partway through a
chunked deactivation), the new revision may be missing or partial; the
SyncInterruptedError raised in that case lists what completed and the
per-record results of any partly applied batch. Re-running the sync with
the same workbook publishes a fresh revision.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional
import time

from config import get_salesforce_client, settings as app_settings, Settings
from exceptions import AppError, MissingParentError, SyncInterruptedError
from integrations.salesforce import SalesforceClient
from models.mapping import ColumnMappingResult
from models.parameters import Configuration
from models.records import FlatRecord, GroupedFields, Record, SingleField
from models.sync import (
    BatchResult,
    PreviewResponse,
    StepRecord,
    SyncStep,
    SyncSummary,
)
from parsers.parameter_parser import aggregate_parameters
from parsers.workbook_parser import WorkbookSource
from services.column_mapper import resolve_column_mapping
from services.record_flattener import flatten_records
from services.table_builder import build_records
from utils.run_log import RunLog


@dataclass
class LoadedTable:
    """Everything the load step produces."""
    config: Configuration
    input_sheet: str
    header_row: int
    mapping: ColumnMappingResult
    records: list[Record] = field(default_factory=list)
    flat_records: list[FlatRecord] = field(default_factory=list)


@dataclass
class _Saga:
    """Steps completed so far in one run."""
    steps: list[StepRecord] = field(default_factory=list)

    def complete(self, step: SyncStep, **detail: Any) -> None:
        self.steps.append(StepRecord(step=step, completed_at=datetime.now(), detail=detail))

    def done(self, step: SyncStep) -> bool:
        return any(record.step == step for record in self.steps)


class RevisionSyncService:
    """
    Workbook -> Salesforce line item revision sync.

    Handles:
    - Loading parameters and building the line item table
    - Deactivating the current revision and inserting the next one
    """

    def __init__(
        self,
        client: Optional[SalesforceClient] = None,
        settings: Optional[Settings] = None,
    ):
        self._client = client
        self.settings = settings or app_settings

    @property
    def client(self) -> SalesforceClient:
        if self._client is None:
            self._client = get_salesforce_client()
        return self._client

    # ===================
    # LOAD
    # ===================

    def load_table(self, workbook: WorkbookSource, log: Optional[RunLog] = None) -> LoadedTable:
        """
        Read parameters, resolve the mapping, and build flat records.

        Raises:
            ConfigurationError: Missing parameter/input sheet or required parameter
            ParseError: Malformed parameter row
        """
        log = log or RunLog()

        cells = workbook.parameter_cells(self.settings.params_sheet)
        config = aggregate_parameters(cells, log)

        input_sheet = config.input_sheet
        header_row = config.header_row
        log.info("processing_input_sheet", sheet=input_sheet, header_row=header_row)

        table = workbook.table(input_sheet, header_row)
        mapping = resolve_column_mapping(config, table.header, log)

        records = list(build_records(table.iter_rows(), mapping.mapping, log))
        flat_records = flatten_records(records)
        log.info("data_table_built", records=len(records))

        return LoadedTable(
            config=config,
            input_sheet=input_sheet,
            header_row=header_row,
            mapping=mapping,
            records=records,
            flat_records=flat_records,
        )

    def preview(self, workbook: WorkbookSource, log: Optional[RunLog] = None) -> PreviewResponse:
        """Build the table without contacting Salesforce."""
        loaded = self.load_table(workbook, log)
        return PreviewResponse(
            input_sheet=loaded.input_sheet,
            header_row=loaded.header_row,
            parameters=loaded.config.to_dict(),
            mapping=loaded.mapping.mapping,
            warnings=loaded.mapping.warnings,
            records=loaded.flat_records,
            record_count=len(loaded.flat_records),
        )

    # ===================
    # PARENT
    # ===================

    def identify_parent(self, records: list[Record]) -> str:
        """
        Parent id from the first record's line item group.

        Raises:
            MissingParentError: No records, or the parent field is absent or blank
        """
        group_name = self.settings.parent_group
        field_name = self.settings.parent_field

        if not records:
            raise MissingParentError(
                "No line item records were built; cannot determine the parent id",
                details={"group": group_name, "field": field_name}
            )

        first = records[0]
        group = first.get_group(group_name)
        value = None
        if isinstance(group, GroupedFields):
            value = group.fields.get(field_name)
        elif isinstance(group, SingleField) and group.field == field_name:
            value = group.value

        if value is None or str(value).strip() == "":
            raise MissingParentError(
                f"Field '{field_name}' not found in group '{group_name}' of the first record",
                details={"group": group_name, "field": field_name, "row": first.row_number}
            )
        return str(value).strip()

    def stamp(self, flat_records: list[FlatRecord], parent_id: str, revision: int) -> list[FlatRecord]:
        """Copies of the records carrying parent id, active flag, and revision."""
        return [
            {
                **record,
                self.settings.parent_field: parent_id,
                self.settings.active_field: True,
                self.settings.revision_field: revision,
            }
            for record in flat_records
        ]

    # ===================
    # RUN
    # ===================

    def run(self, workbook: WorkbookSource, log: Optional[RunLog] = None) -> SyncSummary:
        """
        Publish the workbook's line items as a new revision.

        Args:
            workbook: Source workbook
            log: Run log; flushed after loading and when the run ends

        Returns:
            SyncSummary with deactivation and insertion results

        Raises:
            ConfigurationError, ParseError, MissingParentError: Before any remote call
            AuthError, SalesforceError: Remote failure before anything was written
            SyncInterruptedError: Remote failure after any active line item was deactivated
        """
        log = log or RunLog()
        saga = _Saga()
        started_at = datetime.now()
        started = time.monotonic()
        log.info("sync_started", started_at=started_at.isoformat())

        try:
            try:
                loaded = self.load_table(workbook, log)
                saga.complete(SyncStep.LOAD, records=len(loaded.records))
                log.flush()

                parent_id = self.identify_parent(loaded.records)
                saga.complete(SyncStep.IDENTIFY_PARENT, parent_id=parent_id)
                log.info("parent_identified", parent_id=parent_id)
            except AppError as e:
                log.error("sync_load_failed", code=e.code, error=e.message)
                raise

            summary = self._publish(loaded, parent_id, saga, log)
            summary.started_at = started_at
            summary.finished_at = datetime.now()
            summary.elapsed_seconds = round(time.monotonic() - started, 3)

            log.info(
                "sync_completed",
                parent_id=parent_id,
                revision=summary.revision,
                inserted=summary.insertion.succeeded,
                deactivated=summary.deactivation.succeeded,
                partial_failures=len(summary.partial_failures),
                elapsed_seconds=summary.elapsed_seconds
            )
            return summary
        finally:
            log.flush()

    def _publish(
        self,
        loaded: LoadedTable,
        parent_id: str,
        saga: _Saga,
        log: RunLog,
    ) -> SyncSummary:
        """Remote steps. Nothing here is rolled back."""
        step = SyncStep.DEACTIVATE
        deactivation: Optional[BatchResult] = None
        try:
            active_ids = self.client.get_active_line_item_ids(parent_id)
            deactivation = self.client.deactivate_line_items(active_ids)
            saga.complete(step, requested=len(active_ids), failed=deactivation.failed)
            log.info("deactivation_complete", requested=len(active_ids), failed=deactivation.failed)

            step = SyncStep.COMPUTE_REVISION
            previous_revision = self.client.get_highest_revision_number(parent_id)
            revision = previous_revision + 1
            saga.complete(step, previous_revision=previous_revision, revision=revision)
            log.info("revision_computed", highest_revision=previous_revision, new_revision=revision)

            step = SyncStep.STAMP
            stamped = self.stamp(loaded.flat_records, parent_id, revision)
            saga.complete(step, records=len(stamped))

            step = SyncStep.SUBMIT
            insertion = self.client.create_line_items(parent_id, stamped)
            saga.complete(step, submitted=len(stamped), failed=insertion.failed)
            log.info("insertion_complete", submitted=len(stamped), failed=insertion.failed)
        except AppError as e:
            log.error("sync_remote_step_failed", step=step.value, code=e.code, error=e.message)
            # Chunks applied before a failed composite write
            partial: Optional[BatchResult] = getattr(e, "partial_result", None)
            if step is SyncStep.DEACTIVATE and partial is not None:
                deactivation = partial

            written = saga.done(SyncStep.DEACTIVATE) or (
                deactivation is not None and deactivation.succeeded > 0
            )
            if not written:
                raise

            insertion_partial = partial if step is SyncStep.SUBMIT else None
            raise SyncInterruptedError(
                step.value,
                e.message,
                details={
                    "cause": e.code,
                    "parent_id": parent_id,
                    "completed_steps": [record.model_dump(mode="json") for record in saga.steps],
                    "deactivation": deactivation.model_dump(mode="json") if deactivation else None,
                    "insertion": insertion_partial.model_dump(mode="json") if insertion_partial else None,
                }
            ) from e

        partial_failures = deactivation.partial_failures + insertion.partial_failures
        for failure in partial_failures:
            log.warning(
                "remote_record_rejected",
                operation=failure.operation,
                index=failure.index,
                record_id=failure.record_id,
                errors=[error.message for error in failure.errors]
            )
        saga.complete(SyncStep.SUMMARIZE, partial_failures=len(partial_failures))

        now = datetime.now()
        return SyncSummary(
            parent_id=parent_id,
            previous_revision=previous_revision,
            revision=revision,
            record_count=len(loaded.flat_records),
            deactivation=deactivation,
            insertion=insertion,
            partial_failures=partial_failures,
            warnings=loaded.mapping.warnings,
            steps=saga.steps,
            started_at=now,
            finished_at=now,
            elapsed_seconds=0.0,
        )


# Singleton instance
_service: Optional[RevisionSyncService] = None


def get_revision_sync_service() -> RevisionSyncService:
    """Get or create RevisionSyncService instance."""
    global _service
    if _service is None:
        _service = RevisionSyncService()
    return _service
