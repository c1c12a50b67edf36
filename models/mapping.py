"""
Column mapping schemas.

A grouping key resolves to an ordered list of FieldMapping pairs.
Labels that cannot be found in the header row become MappingWarnings.
Field names are kept exactly as configured, surrounding spaces included.
"""

from pydantic import ConfigDict, Field

from models.base import BaseSchema


class FieldMapping(BaseSchema):
    """One output field read from one header column."""
    model_config = ConfigDict(str_strip_whitespace=False)

    output_field: str = Field(..., description="Target field name (object_api_name)")
    column_index: int = Field(..., ge=0, description="0-based header column index")


class MappingWarning(BaseSchema):
    """Header label not found. Non-fatal; the field is left out of every record."""
    model_config = ConfigDict(str_strip_whitespace=False)

    group: str
    label: str
    output_field: str
    message: str


# grouping key -> ordered mappings (possibly empty)
ColumnMapping = dict[str, list[FieldMapping]]


class ColumnMappingResult(BaseSchema):
    """Mapping for every grouping key plus the labels that did not resolve."""
    model_config = ConfigDict(str_strip_whitespace=False)

    mapping: ColumnMapping = Field(default_factory=dict)
    warnings: list[MappingWarning] = Field(default_factory=list)
