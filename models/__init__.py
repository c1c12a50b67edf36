"""
Data models for parameters, mappings, records, and sync results.
"""

from models.base import BaseSchema
from models.parameters import (
    INPUT_SHEET_KEY,
    HEADER_ROW_KEY,
    RESERVED_KEYS,
    ScalarParam,
    ListParam,
    ParamValue,
    Configuration,
)
from models.mapping import (
    FieldMapping,
    MappingWarning,
    ColumnMapping,
    ColumnMappingResult,
)
from models.records import (
    SingleField,
    GroupedFields,
    GroupValue,
    FlatRecord,
    Record,
)
from models.sync import (
    SyncStep,
    RecordError,
    RecordResult,
    RemoteBatchPartialFailure,
    BatchResult,
    StepRecord,
    SyncSummary,
    PreviewResponse,
)

__all__ = [
    # Base
    "BaseSchema",

    # Parameters
    "INPUT_SHEET_KEY",
    "HEADER_ROW_KEY",
    "RESERVED_KEYS",
    "ScalarParam",
    "ListParam",
    "ParamValue",
    "Configuration",

    # Mapping
    "FieldMapping",
    "MappingWarning",
    "ColumnMapping",
    "ColumnMappingResult",

    # Records
    "SingleField",
    "GroupedFields",
    "GroupValue",
    "FlatRecord",
    "Record",

    # Sync
    "SyncStep",
    "RecordError",
    "RecordResult",
    "RemoteBatchPartialFailure",
    "BatchResult",
    "StepRecord",
    "SyncSummary",
    "PreviewResponse",
]
