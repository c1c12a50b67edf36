"""
Records built from worksheet rows.

A group that resolved to one column becomes a SingleField (a top-level
key in the dict form). A group that resolved to several columns becomes
GroupedFields, nested under the grouping key.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Union


@dataclass(frozen=True)
class SingleField:
    """Group with exactly one resolved mapping."""
    group: str
    field: str
    value: Any


@dataclass(frozen=True)
class GroupedFields:
    """Group with two or more resolved mappings."""
    group: str
    fields: dict[str, Any]


GroupValue = Union[SingleField, GroupedFields]

# Top-level field name -> value, ready for transmission
FlatRecord = dict[str, Any]


@dataclass
class Record:
    """One worksheet row, one entry per non-empty group in configuration order."""
    row_number: int
    groups: list[GroupValue] = field(default_factory=list)

    def get_group(self, name: str) -> Optional[GroupValue]:
        for value in self.groups:
            if value.group == name:
                return value
        return None

    def to_dict(self) -> dict[str, Any]:
        """Nested dict form, e.g. {"oli": {"Product__c": "Widget"}, "Customer__c": "Acme"}."""
        data: dict[str, Any] = {}
        for value in self.groups:
            if isinstance(value, SingleField):
                data[value.field] = value.value
            else:
                data[value.group] = dict(value.fields)
        return data
