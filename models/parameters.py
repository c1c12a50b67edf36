"""
Parameter configuration built from the JSON rows of the parameter sheet.

Each key holds either a single JSON value or, once the key has been seen
more than once, the ordered list of every value seen for it.
"""

from dataclasses import dataclass, field
from typing import Any, Iterator, Union

from exceptions import ConfigurationError


INPUT_SHEET_KEY = "Input Sheet"
HEADER_ROW_KEY = "Table Header Row"
RESERVED_KEYS = (INPUT_SHEET_KEY, HEADER_ROW_KEY)


@dataclass(frozen=True)
class ScalarParam:
    """Key seen once."""
    value: Any

    def as_list(self) -> list:
        return [self.value]

    def to_json(self) -> Any:
        return self.value


@dataclass(frozen=True)
class ListParam:
    """Key seen two or more times (or given as a JSON array), values in the order they were read."""
    values: tuple

    def as_list(self) -> list:
        return list(self.values)

    def to_json(self) -> Any:
        return list(self.values)


ParamValue = Union[ScalarParam, ListParam]


@dataclass
class Configuration:
    """
    Ordered key -> ParamValue mapping.

    `add()` implements the aggregation rule: the first value for a key is
    kept scalar, the second turns it into a list, later ones append.
    A first value that is already a JSON array is kept as a list.
    """
    _values: dict[str, ParamValue] = field(default_factory=dict)

    def add(self, key: str, value: Any) -> None:
        current = self._values.get(key)
        if current is None:
            if isinstance(value, list):
                self._values[key] = ListParam(tuple(value))
            else:
                self._values[key] = ScalarParam(value)
        elif isinstance(current, ScalarParam):
            self._values[key] = ListParam((current.value, value))
        else:
            self._values[key] = ListParam(current.values + (value,))

    def __contains__(self, key: str) -> bool:
        return key in self._values

    def __getitem__(self, key: str) -> ParamValue:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def keys(self) -> list[str]:
        return list(self._values)

    def grouping_keys(self) -> list[str]:
        """Every key except the reserved sheet/header keys, in insertion order."""
        return [key for key in self._values if key not in RESERVED_KEYS]

    def reserved_name(self, key: str) -> Any:
        """
        Read the `Name` of a reserved, scalar-only parameter.

        Raises:
            ConfigurationError: If the key is missing, repeated, or has no Name
        """
        param = self._values.get(key)
        if param is None:
            raise ConfigurationError(
                f"Required parameter '{key}' not found",
                details={"parameter": key}
            )
        if not isinstance(param, ScalarParam):
            raise ConfigurationError(
                f"Parameter '{key}' must appear exactly once, as an object",
                details={"parameter": key, "occurrences": len(param.values)}
            )
        value = param.value
        if not isinstance(value, dict) or value.get("Name") in (None, ""):
            raise ConfigurationError(
                f"Parameter '{key}' must be an object with a 'Name'",
                details={"parameter": key, "value": value}
            )
        return value["Name"]

    @property
    def input_sheet(self) -> str:
        return str(self.reserved_name(INPUT_SHEET_KEY))

    @property
    def header_row(self) -> int:
        """1-based header row number."""
        raw = self.reserved_name(HEADER_ROW_KEY)
        try:
            row = int(raw)
        except (TypeError, ValueError):
            raise ConfigurationError(
                f"Parameter '{HEADER_ROW_KEY}' must be an integer row number",
                details={"parameter": HEADER_ROW_KEY, "value": raw}
            )
        if isinstance(raw, bool) or row < 1 or (isinstance(raw, float) and raw != row):
            raise ConfigurationError(
                f"Parameter '{HEADER_ROW_KEY}' must be a positive integer",
                details={"parameter": HEADER_ROW_KEY, "value": raw}
            )
        return row

    def to_dict(self) -> dict[str, Any]:
        """Plain JSON form: scalars unwrapped, repeated keys as lists."""
        return {key: param.to_json() for key, param in self._values.items()}
