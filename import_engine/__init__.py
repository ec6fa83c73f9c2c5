"""
import_engine - Spreadsheet import pipeline.

Public API:
    run_import(path, default_source="imported") → ImportReport
    preview(path, limit=10)                     → {total, preview}
    replace_imported_data(path)                 → ReplaceReport
"""

from import_engine.importer import run_import, import_rows, import_file, preview   # noqa: F401
from import_engine.replace import (                                                # noqa: F401
    replace_imported_data, ReplaceError, DeleteCountMismatchError,
)
from import_engine.report import ImportReport, ReplaceReport                       # noqa: F401
from import_engine.row_mapper import map_row                                       # noqa: F401
from import_engine.xlsx_parser import read_rows, SpreadsheetError                  # noqa: F401
