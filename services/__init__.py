"""
Business logic services.

Each module handles one stage of the workbook -> Salesforce sync.
"""

from services.column_mapper import resolve_column_mapping
from services.table_builder import build_records
from services.record_flattener import flatten_record, flatten_records, flatten_mapping
from services.revision_sync_service import RevisionSyncService, get_revision_sync_service

__all__ = [
    "resolve_column_mapping",
    "build_records",
    "flatten_record",
    "flatten_records",
    "flatten_mapping",
    "RevisionSyncService",
    "get_revision_sync_service",
]
