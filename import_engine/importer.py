"""
import_engine.importer - Top-level orchestrator.

Coordinates xlsx_parser → row_mapper → LoadsService.create and
produces a structured ImportReport.  Each row is inserted inside its
own SAVEPOINT, so a failing row is rolled back on its own and the
batch carries on.
"""

from __future__ import annotations

import logging
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import config
from db.engine import get_session
from db.models import IMPORTED_SOURCE
from import_engine.report import ImportReport
from import_engine.row_mapper import has_required, map_row
from import_engine.xlsx_parser import SpreadsheetError, read_rows
from services.loads_service import LoadsService, LoadValidationError

logger = logging.getLogger(__name__)


def import_rows(
    session: Session,
    rows: list[dict],
    default_source: str = IMPORTED_SOURCE,
) -> ImportReport:
    """
    Insert every valid row into *session* without committing.

    Rows lacking a caliber cell are counted as skipped.  Rows that fail
    validation or insertion are reported as {row, error} where ``row``
    is the spreadsheet row number (header is row 1).
    """
    report = ImportReport()

    for idx, row in enumerate(rows):
        report.total_rows += 1
        if not has_required(row):
            report.skipped += 1
            continue

        try:
            data = map_row(row)
            if not data["source"]:
                data["source"] = default_source
            with session.begin_nested():
                LoadsService.create(session, data)
            report.imported += 1
        except (LoadValidationError, SQLAlchemyError) as exc:
            logger.warning(f"Import row {idx + 2} failed: {exc}")
            report.add_error(idx + 2, str(exc))
        except Exception as exc:
            logger.warning(f"Import row {idx + 2} failed unexpectedly: {exc}")
            report.add_error(idx + 2, f"Unexpected: {exc}")

    report.success = True
    logger.info(f"Import complete: {report.imported} imported, "
                f"{report.skipped} skipped, {len(report.errors)} errors")
    return report


def import_file(
    session: Session,
    path: str | Path,
    default_source: str = IMPORTED_SOURCE,
) -> ImportReport:
    """Parse *path* and import its rows into *session* (no commit)."""
    try:
        rows = read_rows(path)
    except SpreadsheetError as exc:
        logger.error(str(exc))
        return ImportReport.failed(str(exc))

    logger.info(f"Found {len(rows)} rows in {Path(path).name}")
    return import_rows(session, rows, default_source)


def run_import(path: str | Path, default_source: str = IMPORTED_SOURCE) -> ImportReport:
    """
    Import a spreadsheet into the database in its own session.

    Returns
    -------
    ImportReport with per-row error details.  ``success`` is False only
    when the file could not be read or the final commit failed.
    """
    session = get_session()
    try:
        report = import_file(session, path, default_source)
        if report.success:
            session.commit()
        else:
            session.rollback()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error(f"Fatal import error: {exc}")
        report = ImportReport.failed(f"Fatal import error: {exc}")
    finally:
        session.close()

    return report


def preview(path: str | Path, limit: int = config.PREVIEW_DEFAULT_LIMIT) -> dict:
    """
    Map the first *limit* rows without inserting anything.
    Raises SpreadsheetError when the file cannot be read.
    """
    rows = read_rows(path)
    mapped = []
    for row in rows[:max(limit, 0)]:
        data = map_row(row)
        data["source"] = data["source"] or IMPORTED_SOURCE
        mapped.append(data)
    return {"total": len(rows), "preview": mapped}
