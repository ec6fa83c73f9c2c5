"""
import_engine.xlsx_parser - Low-level spreadsheet reading and cleaning.

Responsibilities:
  • First worksheet only
  • Header row whitespace stripping (blank header cells are dropped)
  • Fully empty data rows are dropped
  • Returns a list of {header: raw cell value} dicts
"""

from __future__ import annotations

from pathlib import Path
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException


class SpreadsheetError(ValueError):
    """The file could not be opened or read as a spreadsheet."""


def read_rows(path: str | Path) -> list[dict]:
    """
    Load the first sheet of *path* into memory.
    Raises SpreadsheetError if the file is missing, not a workbook, or
    its first sheet cannot be read (sheets are parsed lazily while
    iterating).
    """
    try:
        workbook = load_workbook(path, read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, SyntaxError, OSError, EOFError, KeyError, ValueError) as exc:
        raise SpreadsheetError(f"Failed to parse Excel file: {exc}") from exc

    try:
        if not workbook.worksheets:
            return []
        sheet = workbook.worksheets[0]
        rows = sheet.iter_rows(values_only=True)

        header = next(rows, None)
        if header is None:
            return []
        columns = [(idx, str(h).strip()) for idx, h in enumerate(header)
                   if h is not None and str(h).strip()]

        records: list[dict] = []
        for values in rows:
            record = {}
            for idx, name in columns:
                record[name] = values[idx] if idx < len(values) else None
            if any(_has_value(v) for v in record.values()):
                records.append(record)
        return records
    # SyntaxError covers the XML ParseError of both ElementTree and lxml
    except (SyntaxError, BadZipFile, OSError, EOFError, KeyError, ValueError) as exc:
        raise SpreadsheetError(f"Failed to parse Excel file: {exc}") from exc
    finally:
        workbook.close()


def _has_value(value) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True
