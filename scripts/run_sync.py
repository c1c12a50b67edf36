"""
Run a line item sync from a workbook on disk.

Run log entries are appended to the workbook's log sheet (created on
first use) unless --no-log-sheet is given.

Usage:
    # Publish a new revision
    python scripts/run_sync.py "data/Opportunity 0068b.xlsx"

    # Build the table only, and export it for review
    python scripts/run_sync.py "data/Opportunity 0068b.xlsx" --dry-run --export preview.xlsx

Exit codes:
    0  success
    1  fatal error (nothing published, or sync interrupted)
    2  published, but some records were rejected by Salesforce
"""

import argparse
import json
import os
import sys
from typing import Optional

# Allow imports from the project root when running as a script
_root_dir = os.path.join(os.path.dirname(__file__), "..")
sys.path.insert(0, _root_dir)

from dotenv import load_dotenv
load_dotenv(os.path.join(_root_dir, ".env"))

from config import settings, configure_logging
from exceptions import AppError
from parsers.workbook_parser import WorkbookSource
from services.preview_service import export_format_for, export_records
from services.revision_sync_service import get_revision_sync_service
from utils.run_log import RunLog, WorkbookLogSink


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Publish workbook line items to Salesforce as a new revision."
    )
    parser.add_argument(
        "workbook",
        help="Path to the .xlsx workbook holding the parameter and input sheets",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Build the line item table and print it, without contacting Salesforce",
    )
    parser.add_argument(
        "--export",
        default="",
        help="Write the built table to this .xlsx or .csv file",
    )
    parser.add_argument(
        "--no-log-sheet",
        action="store_true",
        help=f"Do not append run log entries to the '{settings.log_sheet}' sheet",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    configure_logging()
    args = build_parser().parse_args(argv)

    if not os.path.isfile(args.workbook):
        print(f"ERROR: Workbook not found: {args.workbook}")
        return 1

    sink = None
    if settings.write_log_sheet and not args.no_log_sheet:
        sink = WorkbookLogSink(args.workbook, settings.log_sheet)
    log = RunLog(sink=sink, workbook=os.path.basename(args.workbook))
    service = get_revision_sync_service()

    try:
        workbook = WorkbookSource(args.workbook)

        if args.dry_run or args.export:
            preview = service.preview(workbook, log)
            if args.export:
                export_records(preview.records, args.export, export_format_for(args.export))
                print(f"Exported {preview.record_count} records to {args.export}")
            if args.dry_run:
                print(json.dumps(preview.model_dump(mode="json"), indent=2))
                return 0

        summary = service.run(workbook, log)

    except AppError as e:
        print(json.dumps(e.to_dict(), indent=2, default=str))
        return 1
    finally:
        log.flush()

    print(json.dumps(summary.model_dump(mode="json"), indent=2))
    return 0 if summary.fully_applied else 2


if __name__ == "__main__":
    sys.exit(main())
