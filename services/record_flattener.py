"""
Record flattening: hoist grouped fields to the top level.

One level only; records never nest deeper. When two groups write the
same field name, the group processed last wins.
"""

from typing import Any, Iterable, Mapping

from models.records import FlatRecord, GroupedFields, Record, SingleField


def flatten_record(record: Record) -> FlatRecord:
    """Flatten one Record, groups in configuration order."""
    flat: FlatRecord = {}
    for value in record.groups:
        if isinstance(value, SingleField):
            flat[value.field] = value.value
        elif isinstance(value, GroupedFields):
            flat.update(value.fields)
        else:
            raise TypeError(f"Unexpected group value: {type(value).__name__}")
    return flat


def flatten_records(records: Iterable[Record]) -> list[FlatRecord]:
    return [flatten_record(record) for record in records]


def flatten_mapping(data: Mapping[str, Any]) -> FlatRecord:
    """
    Flatten the dict form of a record.

    Nested dicts are merged into the top level; other values
    (including None) are copied as-is.
    """
    flat: FlatRecord = {}
    for key, value in data.items():
        if isinstance(value, Mapping):
            flat.update(value)
        else:
            flat[key] = value
    return flat
