"""
Column mapping: resolve parameter groups against the header row.

For each grouping key, every entry with both `object_label` and
`object_api_name` is looked up in the header row (trimmed, case-sensitive,
left to right, first match wins). Labels that are not found are reported
as MappingWarnings and do not stop the run.
"""

from typing import Any, Optional, Sequence

from models.mapping import ColumnMappingResult, FieldMapping, MappingWarning
from models.parameters import Configuration
from utils.run_log import RunLog

LABEL_KEY = "object_label"
API_NAME_KEY = "object_api_name"


def find_column(header_row: Sequence[str], label: str) -> Optional[int]:
    """Index of the first header cell whose trimmed text equals `label`."""
    for index, cell in enumerate(header_row):
        text = "" if cell is None else str(cell).strip()
        if text == label:
            return index
    return None


def _entry_fields(entry: Any) -> Optional[tuple[str, str]]:
    """(label, api_name) for a usable entry, None when either is missing or empty."""
    if not isinstance(entry, dict):
        return None
    label = entry.get(LABEL_KEY)
    api_name = entry.get(API_NAME_KEY)
    if not label or not api_name:
        return None
    return str(label).strip(), str(api_name)


def resolve_column_mapping(
    config: Configuration,
    header_row: Sequence[str],
    log: Optional[RunLog] = None
) -> ColumnMappingResult:
    """
    Build the column mapping for every grouping key.

    Args:
        config: Aggregated parameters
        header_row: Header cell texts, 0-indexed
        log: Run log for unmatched labels and the final mapping

    Returns:
        ColumnMappingResult; every grouping key is present, possibly empty
    """
    log = log or RunLog()
    result = ColumnMappingResult()

    for group in config.grouping_keys():
        pairs: list[FieldMapping] = []

        for entry in config[group].as_list():
            fields = _entry_fields(entry)
            if fields is None:
                log.debug("mapping_entry_skipped", group=group, entry=entry)
                continue

            label, api_name = fields
            column = find_column(header_row, label)
            if column is None:
                message = f"Header label '{label}' for group '{group}' not found."
                log.warning("header_label_not_found", group=group, label=label)
                result.warnings.append(MappingWarning(
                    group=group,
                    label=label,
                    output_field=api_name,
                    message=message,
                ))
                continue

            pairs.append(FieldMapping(output_field=api_name, column_index=column))

        result.mapping[group] = pairs

    log.info(
        "column_mapping_resolved",
        mapping={
            group: [(p.output_field, p.column_index) for p in pairs]
            for group, pairs in result.mapping.items()
        },
        unmatched=len(result.warnings)
    )
    return result
