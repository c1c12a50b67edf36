"""
Run log: structlog events plus a buffered, timestamped text trail.

Components receive the RunLog explicitly. Entries are mirrored to
structlog immediately and buffered for the sink; the orchestrator decides
when to flush (after loading, and when the run ends).
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Protocol, Union
import json

from openpyxl import Workbook, load_workbook
import structlog

logger = structlog.get_logger(__name__)

LOG_HEADER = ["Timestamp", "Message"]


@dataclass(frozen=True)
class LogEntry:
    """One line of the run log."""
    timestamp: datetime
    level: str
    message: str


class LogSink(Protocol):
    """Append-only destination for log entries."""

    def append(self, entries: list[LogEntry]) -> None:
        ...


def _format_message(event: str, fields: dict[str, Any]) -> str:
    if not fields:
        return event
    rendered = " ".join(
        f"{key}={json.dumps(value, default=str)}" for key, value in fields.items()
    )
    return f"{event} {rendered}"


class RunLog:
    """
    Buffered run log.

    Usage:
        run_log = RunLog(sink=WorkbookLogSink(path, "JF_SCRIPT_LOG"))
        run_log.info("records_built", count=3)
        run_log.flush()
    """

    def __init__(self, sink: Optional[LogSink] = None, **context: Any):
        self.sink = sink
        self._logger = logger.bind(**context) if context else logger
        self._buffer: list[LogEntry] = []
        self._history: list[LogEntry] = []

    def _record(self, level: str, event: str, fields: dict[str, Any]) -> None:
        getattr(self._logger, level)(event, **fields)
        entry = LogEntry(
            timestamp=datetime.now(),
            level=level,
            message=_format_message(event, fields),
        )
        self._buffer.append(entry)
        self._history.append(entry)

    def debug(self, event: str, **fields: Any) -> None:
        self._record("debug", event, fields)

    def info(self, event: str, **fields: Any) -> None:
        self._record("info", event, fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._record("warning", event, fields)

    def error(self, event: str, **fields: Any) -> None:
        self._record("error", event, fields)

    @property
    def entries(self) -> list[LogEntry]:
        """Every entry of this run, flushed or not."""
        return list(self._history)

    @property
    def pending(self) -> int:
        return len(self._buffer)

    def flush(self) -> int:
        """
        Append buffered entries to the sink and clear the buffer.

        Returns:
            Number of entries written (0 when there is no sink)
        """
        if not self._buffer:
            return 0
        if self.sink is None:
            self._buffer.clear()
            return 0

        entries = list(self._buffer)
        self.sink.append(entries)
        self._buffer.clear()
        return len(entries)


class WorkbookLogSink:
    """
    Appends entries to a worksheet, creating it (with a header row) on first use.

    `target` is a workbook path, or an in-memory Workbook that the caller saves.
    """

    def __init__(self, target: Union[str, Path, Workbook], sheet_name: str):
        self.target = target
        self.sheet_name = sheet_name

    def append(self, entries: list[LogEntry]) -> None:
        if isinstance(self.target, Workbook):
            self._append_rows(self.target, entries)
            return

        workbook = load_workbook(self.target)
        self._append_rows(workbook, entries)
        workbook.save(self.target)

    def _append_rows(self, workbook: Workbook, entries: list[LogEntry]) -> None:
        if self.sheet_name in workbook.sheetnames:
            sheet = workbook[self.sheet_name]
        else:
            sheet = workbook.create_sheet(self.sheet_name)
            sheet.append(LOG_HEADER)
            logger.info("log_sheet_created", sheet=self.sheet_name)

        for entry in entries:
            sheet.append([entry.timestamp, entry.message])
